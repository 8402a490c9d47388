"""
256-bit word helpers.

Words are plain Python ints in the range [0, 2**256). Arithmetic handlers
reduce every result back into that range; signed operations reinterpret a
word as a two's-complement integer through to_signed/to_unsigned.
"""

from __future__ import annotations

WORD_SIZE = 32
WORD_BITS = 256

UINT256_CEIL = 1 << WORD_BITS
UINT256_MAX = UINT256_CEIL - 1
INT256_MIN = -(1 << (WORD_BITS - 1))
INT256_MAX = (1 << (WORD_BITS - 1)) - 1

ADDRESS_MASK = (1 << 160) - 1


def to_signed(value: int) -> int:
    """Interpret an unsigned word as two's-complement."""
    if value > INT256_MAX:
        return value - UINT256_CEIL
    return value


def to_unsigned(value: int) -> int:
    """Map a signed integer back onto the word range."""
    return value & UINT256_MAX


def sign_extend(byte_index: int, value: int) -> int:
    """
    Extend the sign bit of the byte at `byte_index` (0 = least significant)
    through the upper bits of the word.
    """
    if byte_index >= 31:
        return value
    bit = byte_index * 8 + 7
    mask = (1 << bit) - 1
    if value & (1 << bit):
        return value | (UINT256_MAX - mask)
    return value & mask


def word_from_bytes(data: bytes) -> int:
    """Big-endian decode of at most 32 bytes."""
    if len(data) > WORD_SIZE:
        raise ValueError(f"Word must be at most {WORD_SIZE} bytes, got {len(data)}")
    return int.from_bytes(data, "big")


def word_to_bytes(value: int) -> bytes:
    """32-byte big-endian encoding."""
    return (value & UINT256_MAX).to_bytes(WORD_SIZE, "big")


def ceil32(size: int) -> int:
    """Round up to the next multiple of 32."""
    remainder = size % WORD_SIZE
    if remainder == 0:
        return size
    return size + WORD_SIZE - remainder


def is_word(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and 0 <= value <= UINT256_MAX
