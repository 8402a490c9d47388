"""
Jump-destination analysis.

A single linear pass over the code marks every offset holding JUMPDEST as a
valid control-transfer target, stepping over the immediate data of each
PUSH so that a data byte equal to 0x5B is never marked.
"""

from __future__ import annotations

from functools import lru_cache

from evmcore.opcodes import Opcode, push_size


class JumpDestinations:
    """Bitmap of valid JUMP/JUMPI targets for one code buffer."""

    __slots__ = ("_bitmap",)

    def __init__(self, bitmap: bytes):
        self._bitmap = bitmap

    @classmethod
    def scan(cls, code: bytes) -> "JumpDestinations":
        bitmap = bytearray(len(code))
        pc = 0
        while pc < len(code):
            byte = code[pc]
            if byte == Opcode.JUMPDEST:
                bitmap[pc] = 1
            pc += 1 + push_size(byte)
        return cls(bytes(bitmap))

    def is_valid(self, offset: int) -> bool:
        if offset < 0 or offset >= len(self._bitmap):
            return False
        return self._bitmap[offset] == 1

    def __contains__(self, offset: int) -> bool:
        return self.is_valid(offset)

    def __len__(self) -> int:
        return len(self._bitmap)

    def offsets(self) -> list:
        return [i for i, flag in enumerate(self._bitmap) if flag]


@lru_cache(maxsize=256)
def analyze(code: bytes) -> JumpDestinations:
    """Cached analysis; code buffers are immutable bytes."""
    return JumpDestinations.scan(code)
