"""
evmcore Stack and Memory

Stack: LIFO of 256-bit words, at most 1024 deep.
Memory: byte-addressable, zero-initialised, grows in 32-byte words and never
shrinks during an execution.

Both are owned by exactly one execution context. Every failing operation
leaves the structure unchanged.

Copyright (c) 2026 Momentum. All rights reserved.
Contact: engineering@momentum.inc
"""

from __future__ import annotations

from typing import List, Tuple

from evmcore.hardening import OutOfResource, StackTooDeep, StackUnderflow
from evmcore.word import WORD_SIZE, ceil32, is_word, word_from_bytes, word_to_bytes

MAX_STACK_DEPTH = 1024
DEFAULT_MEMORY_LIMIT = 32 * 1024 * 1024  # 32 MiB


# =============================================================================
# STACK
# =============================================================================

StackCheckpoint = Tuple[int, Tuple[int, ...]]


class Stack:
    """Word stack with a hard depth limit."""

    __slots__ = ("_data", "max_depth")

    def __init__(self, max_depth: int = MAX_STACK_DEPTH) -> None:
        if not 0 < max_depth <= MAX_STACK_DEPTH:
            raise ValueError(f"max_depth must be in 1..{MAX_STACK_DEPTH}, got {max_depth}")
        self._data: List[int] = []
        self.max_depth = max_depth

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        return f"Stack({[hex(v) for v in self._data]})"

    def push(self, value: int) -> None:
        """Push a word onto the stack."""
        if not is_word(value):
            raise ValueError(f"Not a 256-bit word: {value!r}")
        if len(self._data) >= self.max_depth:
            raise StackTooDeep(f"Stack limit of {self.max_depth} reached")
        self._data.append(value)

    def pop(self) -> int:
        """Pop the top word."""
        if not self._data:
            raise StackUnderflow("Pop from empty stack")
        return self._data.pop()

    def pop_n(self, n: int) -> List[int]:
        """Pop n words, returned top first."""
        if n > len(self._data):
            raise StackUnderflow(f"Need {n} items, stack has {len(self._data)}")
        if n == 0:
            return []
        items = self._data[-n:]
        del self._data[-n:]
        items.reverse()
        return items

    def peek(self, depth: int = 0) -> int:
        """Read the word `depth` positions below the top without popping."""
        if depth < 0 or depth >= len(self._data):
            raise StackUnderflow(f"Stack underflow at depth {depth}")
        return self._data[-(depth + 1)]

    def dup(self, k: int) -> None:
        """Push a copy of the k-th item from the top (1-based)."""
        if k < 1 or k > len(self._data):
            raise StackUnderflow(f"DUP{k} needs {k} items, stack has {len(self._data)}")
        self.push(self.peek(k - 1))

    def swap(self, k: int) -> None:
        """Exchange the top with the item k positions below it."""
        if k < 1 or k >= len(self._data):
            raise StackUnderflow(f"SWAP{k} needs {k + 1} items, stack has {len(self._data)}")
        self._data[-1], self._data[-(k + 1)] = self._data[-(k + 1)], self._data[-1]

    def checkpoint(self, depth: int) -> StackCheckpoint:
        """Capture the length and top `depth` items for restore()."""
        depth = min(depth, len(self._data))
        return len(self._data), tuple(self._data[len(self._data) - depth:])

    def restore(self, checkpoint: StackCheckpoint) -> None:
        """Roll back to a checkpoint taken before one instruction ran."""
        length, top = checkpoint
        del self._data[length - len(top):]
        self._data.extend(top)

    def as_list(self) -> List[int]:
        """Copy of the stack, bottom first."""
        return list(self._data)


# =============================================================================
# MEMORY
# =============================================================================

class Memory:
    """Zero-initialised, word-aligned, monotonically growing byte memory."""

    __slots__ = ("_data", "limit")

    def __init__(self, limit: int = DEFAULT_MEMORY_LIMIT) -> None:
        self._data = bytearray()
        self.limit = limit

    def __len__(self) -> int:
        return len(self._data)

    def ensure(self, offset: int, length: int) -> None:
        """Grow to cover [offset, offset + length), rounded up to 32 bytes."""
        if length == 0:
            return
        end = offset + length
        if end > self.limit:
            raise OutOfResource(f"Memory limit exceeded: {end} > {self.limit}")
        if end > len(self._data):
            self._data.extend(bytes(ceil32(end) - len(self._data)))

    def store_word(self, offset: int, value: int) -> None:
        self.ensure(offset, WORD_SIZE)
        self._data[offset:offset + WORD_SIZE] = word_to_bytes(value)

    def load_word(self, offset: int) -> int:
        self.ensure(offset, WORD_SIZE)
        return word_from_bytes(bytes(self._data[offset:offset + WORD_SIZE]))

    def store_byte(self, offset: int, value: int) -> None:
        self.ensure(offset, 1)
        self._data[offset] = value & 0xFF

    def load_byte(self, offset: int) -> int:
        self.ensure(offset, 1)
        return self._data[offset]

    def read(self, offset: int, length: int) -> bytes:
        """Copy a range out of memory, growing it first."""
        if length == 0:
            return b""
        self.ensure(offset, length)
        return bytes(self._data[offset:offset + length])

    def write(self, offset: int, data: bytes) -> None:
        if not data:
            return
        self.ensure(offset, len(data))
        self._data[offset:offset + len(data)] = data

    def copy(self, src: int, dst: int, length: int) -> None:
        """Overlap-safe copy of `length` bytes from src to dst."""
        if length == 0:
            return
        # One ensure covering both ranges, so a failure grows nothing.
        self.ensure(max(src, dst), length)
        self._data[dst:dst + length] = self._data[src:src + length]
