"""
Arithmetic, comparison and bitwise handler tests.

Programs push the right operand first so that the left operand ends up on
top of the stack, e.g. SUB(a, b) is assembled as PUSH b, PUSH a, SUB.
"""

import pytest

from evmcore.word import INT256_MIN, UINT256_MAX, to_unsigned

MINUS_ONE = UINT256_MAX
MIN = to_unsigned(INT256_MIN)


def binary(run, mnemonic, a, b):
    result = run([("PUSH", b), ("PUSH", a), (mnemonic,)])
    assert result.success, result.error
    return result.stack[-1]


def ternary(run, mnemonic, a, b, c):
    result = run([("PUSH", c), ("PUSH", b), ("PUSH", a), (mnemonic,)])
    assert result.success, result.error
    return result.stack[-1]


def unary(run, mnemonic, a):
    result = run([("PUSH", a), (mnemonic,)])
    assert result.success, result.error
    return result.stack[-1]


class TestArithmetic:
    """Tests for modular and signed arithmetic."""

    def test_add_sub_mul(self, run):
        assert binary(run, "ADD", 5, 3) == 8
        assert binary(run, "SUB", 5, 1) == 4
        assert binary(run, "MUL", 6, 7) == 42

    def test_add_wraps(self, run):
        assert binary(run, "ADD", UINT256_MAX, 1) == 0

    def test_sub_wraps(self, run):
        assert binary(run, "SUB", 0, 1) == UINT256_MAX

    def test_mul_wraps(self, run):
        assert binary(run, "MUL", 1 << 255, 2) == 0

    def test_div_mod(self, run):
        assert binary(run, "DIV", 10, 3) == 3
        assert binary(run, "MOD", 10, 3) == 1

    @pytest.mark.parametrize("x", [0, 1, 12345, UINT256_MAX])
    def test_division_by_zero_is_zero(self, run, x):
        assert binary(run, "DIV", x, 0) == 0
        assert binary(run, "MOD", x, 0) == 0
        assert binary(run, "SDIV", x, 0) == 0
        assert binary(run, "SMOD", x, 0) == 0

    def test_sdiv(self, run):
        assert binary(run, "SDIV", to_unsigned(-7), 2) == to_unsigned(-3)
        assert binary(run, "SDIV", 7, to_unsigned(-2)) == to_unsigned(-3)
        assert binary(run, "SDIV", to_unsigned(-8), to_unsigned(-2)) == 4

    def test_sdiv_overflow_wraps(self, run):
        assert binary(run, "SDIV", MIN, MINUS_ONE) == MIN

    def test_smod_takes_dividend_sign(self, run):
        assert binary(run, "SMOD", to_unsigned(-7), 3) == to_unsigned(-1)
        assert binary(run, "SMOD", 7, to_unsigned(-3)) == 1

    def test_addmod_mulmod_use_exact_intermediate(self, run):
        assert ternary(run, "ADDMOD", UINT256_MAX, 2, 10) == (UINT256_MAX + 2) % 10
        assert ternary(run, "MULMOD", UINT256_MAX, UINT256_MAX, 12) == (UINT256_MAX * UINT256_MAX) % 12
        assert ternary(run, "ADDMOD", 1, 2, 0) == 0
        assert ternary(run, "MULMOD", 3, 4, 0) == 0

    def test_exp(self, run):
        assert binary(run, "EXP", 2, 10) == 1024
        assert binary(run, "EXP", 2, 256) == 0
        assert binary(run, "EXP", 0, 0) == 1
        assert binary(run, "EXP", 3, UINT256_MAX) == pow(3, UINT256_MAX, 1 << 256)

    def test_signextend(self, run):
        assert binary(run, "SIGNEXTEND", 0, 0xFF) == UINT256_MAX
        assert binary(run, "SIGNEXTEND", 0, 0x7F) == 0x7F
        assert binary(run, "SIGNEXTEND", 31, 0xFF) == 0xFF
        assert binary(run, "SIGNEXTEND", 1 << 100, 0xFF) == 0xFF


class TestComparison:
    """Tests for unsigned and signed comparisons."""

    def test_unsigned(self, run):
        assert binary(run, "LT", 1, 2) == 1
        assert binary(run, "LT", 2, 1) == 0
        assert binary(run, "GT", 2, 1) == 1
        assert binary(run, "EQ", 5, 5) == 1
        assert binary(run, "EQ", 5, 6) == 0

    def test_signed(self, run):
        assert binary(run, "SLT", MINUS_ONE, 0) == 1
        assert binary(run, "SGT", MINUS_ONE, 0) == 0
        assert binary(run, "LT", MINUS_ONE, 0) == 0

    def test_iszero(self, run):
        assert unary(run, "ISZERO", 0) == 1
        assert unary(run, "ISZERO", 7) == 0


class TestBitwise:
    """Tests for bitwise logic and shifts."""

    def test_logic(self, run):
        assert binary(run, "AND", 0b1100, 0b1010) == 0b1000
        assert binary(run, "OR", 0b1100, 0b1010) == 0b1110
        assert binary(run, "XOR", 0b1100, 0b1010) == 0b0110
        assert unary(run, "NOT", 0) == UINT256_MAX

    def test_byte(self, run):
        value = int.from_bytes(bytes(range(32)), "big")
        assert binary(run, "BYTE", 0, value) == 0
        assert binary(run, "BYTE", 1, value) == 1
        assert binary(run, "BYTE", 31, value) == 31
        assert binary(run, "BYTE", 32, value) == 0

    def test_shl_shr(self, run):
        assert binary(run, "SHL", 4, 1) == 16
        assert binary(run, "SHL", 255, 1) == 1 << 255
        assert binary(run, "SHL", 256, 1) == 0
        assert binary(run, "SHL", 1, UINT256_MAX) == UINT256_MAX - 1
        assert binary(run, "SHR", 4, 256) == 16
        assert binary(run, "SHR", 256, UINT256_MAX) == 0

    def test_sar(self, run):
        assert binary(run, "SAR", 4, to_unsigned(-16)) == MINUS_ONE
        assert binary(run, "SAR", 1, to_unsigned(-16)) == to_unsigned(-8)
        assert binary(run, "SAR", 1, 16) == 8
        assert binary(run, "SAR", 300, to_unsigned(-1)) == MINUS_ONE
        assert binary(run, "SAR", 300, 1 << 254) == 0


class TestStackOps:
    """Tests for PUSH, DUP and SWAP handlers."""

    def test_push0(self, run):
        result = run([("PUSH0",)])
        assert result.stack == [0]

    def test_push32(self, run):
        result = run([("PUSH32", UINT256_MAX)])
        assert result.stack == [UINT256_MAX]
        assert result.pc == 33

    def test_truncated_push_zero_pads(self):
        """PUSH2 with one byte of code left pushes 0x1200."""
        from evmcore.engine import execute

        result = execute(bytes([0x61, 0x12]))
        assert result.success
        assert result.stack == [0x1200]

    def test_dup16(self, run):
        program = [("PUSH", i) for i in range(1, 17)] + [("DUP16",)]
        result = run(program)
        assert result.stack[-1] == 1
        assert len(result.stack) == 17

    def test_swap16(self, run):
        program = [("PUSH", i) for i in range(1, 18)] + [("SWAP16",)]
        result = run(program)
        assert result.stack[0] == 17
        assert result.stack[-1] == 1

    def test_dup_underflow(self, run):
        from evmcore.hardening import FailureReason

        result = run([("PUSH", 1), ("DUP2",)])
        assert result.failure is FailureReason.STACK_UNDERFLOW
        assert result.stack == [1]

    def test_swap_underflow(self, run):
        from evmcore.hardening import FailureReason

        result = run([("PUSH", 1), ("PUSH", 2), ("SWAP2",)])
        assert result.failure is FailureReason.STACK_UNDERFLOW
        assert result.stack == [1, 2]
