"""
evmcore Validation and Hardening Module

Error taxonomy, input validation and invariant enforcement shared by every
layer of the engine:

1. VM failure conditions (stack, opcode, jump and resource faults)
2. Validation of externally supplied integers (addresses, words)
3. State machine invariant enforcement for the exit status
4. Deterministic commitment helpers

Security Model:
    - Bytecode is untrusted; every fault it can trigger is a VMError
    - VMErrors are recoverable at the engine level and never escape a run
    - Misuse of the engine API by the host raises InvariantViolation
      or ValidationError instead

Copyright (c) 2026 Momentum. All rights reserved.
Contact: engineering@momentum.inc
"""

from __future__ import annotations

import hashlib
from enum import Enum
from typing import Any, Dict, List, Set, Union


# =============================================================================
# VM FAILURE TAXONOMY
# =============================================================================

class FailureReason(Enum):
    """Classified reasons for a Failure exit status."""
    STACK_UNDERFLOW = "stack_underflow"
    STACK_TOO_DEEP = "stack_too_deep"
    INVALID_OPCODE = "invalid_opcode"
    INVALID_JUMP_DESTINATION = "invalid_jump_destination"
    OUT_OF_RESOURCE = "out_of_resource"


class VMError(Exception):
    """Base class for conditions that halt execution with Failure."""

    reason: FailureReason

    def __init__(self, message: str = ""):
        super().__init__(message or self.reason.value.replace("_", " "))


class StackUnderflow(VMError):
    """Operand required from an empty (or too shallow) stack."""
    reason = FailureReason.STACK_UNDERFLOW


class StackTooDeep(VMError):
    """Push attempted at the stack depth limit."""
    reason = FailureReason.STACK_TOO_DEEP


class InvalidOpcode(VMError):
    """Undefined byte, INVALID, or an opcode without a handler."""
    reason = FailureReason.INVALID_OPCODE


class InvalidJumpDestination(VMError):
    """JUMP/JUMPI target out of range or not a JUMPDEST."""
    reason = FailureReason.INVALID_JUMP_DESTINATION


class OutOfResource(VMError):
    """Execution budget exhausted (step budget or memory cap)."""
    reason = FailureReason.OUT_OF_RESOURCE


# =============================================================================
# HOST-SIDE ERRORS
# =============================================================================

class ValidationError(Exception):
    """Base exception for validation failures."""

    def __init__(self, field: str, message: str, value: Any = None):
        self.field = field
        self.message = message
        self.value = value
        super().__init__(f"{field}: {message}")


class InvariantViolation(Exception):
    """State machine invariant violated."""
    pass


# =============================================================================
# INPUT VALIDATORS
# =============================================================================

class Validators:
    """Collection of input validators."""

    ADDRESS_BITS = 160
    WORD_BITS = 256

    @classmethod
    def validate_uint(cls, value: Any, field_name: str, bits: int = WORD_BITS) -> int:
        """Validate an unsigned integer that must fit in `bits` bits."""
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValidationError(field_name, f"must be an integer, got {type(value).__name__}", value)
        if value < 0:
            raise ValidationError(field_name, "cannot be negative", value)
        if value >> bits:
            raise ValidationError(field_name, f"exceeds {bits} bits", value)
        return value

    @classmethod
    def validate_address(cls, value: Any, field_name: str) -> int:
        """Validate a 160-bit account address."""
        return cls.validate_uint(value, field_name, cls.ADDRESS_BITS)

    @classmethod
    def validate_bytes(cls, value: Any, field_name: str) -> bytes:
        """Validate a byte sequence, normalising bytearray/memoryview to bytes."""
        if isinstance(value, (bytearray, memoryview)):
            return bytes(value)
        if not isinstance(value, bytes):
            raise ValidationError(field_name, f"must be bytes, got {type(value).__name__}", value)
        return value


# =============================================================================
# INVARIANT CHECKER
# =============================================================================

class InvariantChecker:
    """Enforces state machine invariants."""

    @staticmethod
    def check_state_transition(
        current_state: Enum,
        target_state: Enum,
        valid_transitions: Dict[Enum, Set[Enum]],
    ) -> None:
        """Verify state transition is valid."""
        valid_targets = valid_transitions.get(current_state, set())
        if target_state not in valid_targets:
            raise InvariantViolation(
                f"Invalid state transition: {current_state.value} -> {target_state.value}. "
                f"Valid targets: {sorted(s.value for s in valid_targets)}"
            )


# =============================================================================
# CRYPTOGRAPHIC UTILITIES
# =============================================================================

class CryptoUtils:
    """Deterministic hashing helpers."""

    @staticmethod
    def hash_sha256(data: Union[str, bytes]) -> str:
        """Compute SHA256 hash."""
        if isinstance(data, str):
            data = data.encode('utf-8')
        return hashlib.sha256(data).hexdigest()

    @staticmethod
    def merkle_root(leaves: List[str]) -> str:
        """
        Compute Merkle root with proper handling of odd leaf counts.

        Uses the convention of duplicating the last leaf when odd.
        """
        current_level = list(leaves)

        if not current_level:
            return "0" * 64

        while len(current_level) > 1:
            if len(current_level) % 2 == 1:
                current_level.append(current_level[-1])

            current_level = [
                hashlib.sha256((current_level[i] + current_level[i + 1]).encode()).hexdigest()
                for i in range(0, len(current_level), 2)
            ]

        return current_level[0]
