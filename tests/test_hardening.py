"""
Error taxonomy, validator and invariant tests.
"""

import pytest

from evmcore.context import VALID_TRANSITIONS, ExitStatus
from evmcore.hardening import (
    CryptoUtils,
    FailureReason,
    InvalidJumpDestination,
    InvalidOpcode,
    InvariantChecker,
    InvariantViolation,
    OutOfResource,
    StackTooDeep,
    StackUnderflow,
    ValidationError,
    Validators,
    VMError,
)


class TestErrorTaxonomy:
    """Tests for VMError subclasses."""

    @pytest.mark.parametrize("exc_type, reason", [
        (StackUnderflow, FailureReason.STACK_UNDERFLOW),
        (StackTooDeep, FailureReason.STACK_TOO_DEEP),
        (InvalidOpcode, FailureReason.INVALID_OPCODE),
        (InvalidJumpDestination, FailureReason.INVALID_JUMP_DESTINATION),
        (OutOfResource, FailureReason.OUT_OF_RESOURCE),
    ])
    def test_reasons(self, exc_type, reason):
        exc = exc_type()
        assert isinstance(exc, VMError)
        assert exc.reason is reason
        assert str(exc) == reason.value.replace("_", " ")

    def test_custom_message(self):
        assert str(StackUnderflow("Pop from empty stack")) == "Pop from empty stack"

    def test_host_errors_are_not_vm_errors(self):
        assert not issubclass(InvariantViolation, VMError)
        assert not issubclass(ValidationError, VMError)


class TestValidators:
    """Tests for host-supplied input validation."""

    def test_uint(self):
        assert Validators.validate_uint(5, "x") == 5
        with pytest.raises(ValidationError) as exc_info:
            Validators.validate_uint(-1, "x")
        assert exc_info.value.field == "x"
        with pytest.raises(ValidationError):
            Validators.validate_uint(1 << 256, "x")
        with pytest.raises(ValidationError):
            Validators.validate_uint(True, "x")
        with pytest.raises(ValidationError):
            Validators.validate_uint("5", "x")

    def test_address(self):
        assert Validators.validate_address((1 << 160) - 1, "a") == (1 << 160) - 1
        with pytest.raises(ValidationError):
            Validators.validate_address(1 << 160, "a")

    def test_bytes(self):
        assert Validators.validate_bytes(memoryview(b"ab"), "b") == b"ab"
        with pytest.raises(ValidationError):
            Validators.validate_bytes([1, 2], "b")


class TestInvariants:
    """Tests for the exit status state machine."""

    def test_running_transitions(self):
        for target in (ExitStatus.SUCCESS, ExitStatus.FAILURE, ExitStatus.REVERTED):
            InvariantChecker.check_state_transition(ExitStatus.RUNNING, target, VALID_TRANSITIONS)

    def test_terminal_is_final(self):
        for status in ExitStatus:
            assert status.is_terminal == (status is not ExitStatus.RUNNING)
            if status.is_terminal:
                with pytest.raises(InvariantViolation):
                    InvariantChecker.check_state_transition(status, ExitStatus.SUCCESS, VALID_TRANSITIONS)


class TestMerkleRoot:
    """Tests for the commitment helper."""

    def test_empty(self):
        assert CryptoUtils.merkle_root([]) == "0" * 64

    def test_single_leaf(self):
        leaf = CryptoUtils.hash_sha256("leaf")
        assert CryptoUtils.merkle_root([leaf]) == leaf

    def test_odd_count_duplicates_last(self):
        leaves = [CryptoUtils.hash_sha256(f"leaf{i}") for i in range(3)]
        assert CryptoUtils.merkle_root(leaves) == CryptoUtils.merkle_root(leaves + [leaves[-1]])

    def test_does_not_mutate_input(self):
        leaves = [CryptoUtils.hash_sha256(f"leaf{i}") for i in range(3)]
        original = list(leaves)
        CryptoUtils.merkle_root(leaves)
        assert leaves == original
