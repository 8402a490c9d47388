"""
evmcore Dispatch Table

Immutable 256-entry table from opcode byte to handler. The default table is
built once per process from the registered handlers and shared read-only;
collaborators that implement further opcodes derive a new table with
with_handlers() instead of mutating the shared one.

Copyright (c) 2026 Momentum. All rights reserved.
Contact: engineering@momentum.inc
"""

from __future__ import annotations

from functools import lru_cache
from typing import Dict, Mapping, Optional, Tuple, Union

from evmcore.context import ExecutionContext
from evmcore.handlers import HANDLERS, Handler
from evmcore.hardening import InvalidOpcode
from evmcore.opcodes import Operation, decode


def invalid_instruction(ctx: ExecutionContext) -> None:
    """Trap for bytes without a handler."""
    operation = decode(ctx.code[ctx.pc])
    raise InvalidOpcode(f"Invalid opcode {operation.name} (0x{operation.byte:02X}) at pc={ctx.pc}")


class DispatchTable:
    """
    Opcode byte -> handler.

    Unassigned entries (undefined bytes, INVALID, and named opcodes whose
    semantics live outside the engine) resolve to invalid_instruction.
    """

    __slots__ = ("_entries",)

    def __init__(self, handlers: Optional[Mapping[int, Handler]] = None):
        handlers = handlers or {}
        for byte in handlers:
            if not 0 <= int(byte) <= 0xFF:
                raise ValueError(f"Opcode byte out of range: {byte}")
        self._entries: Tuple[Optional[Handler], ...] = tuple(
            handlers.get(byte) for byte in range(256)
        )

    @staticmethod
    def _byte(operation: Union[Operation, int]) -> int:
        if isinstance(operation, Operation):
            return operation.byte
        return int(operation)

    def lookup(self, operation: Union[Operation, int]) -> Handler:
        handler = self._entries[self._byte(operation)]
        return handler if handler is not None else invalid_instruction

    def is_assigned(self, operation: Union[Operation, int]) -> bool:
        return self._entries[self._byte(operation)] is not None

    def with_handlers(self, mapping: Mapping[int, Handler]) -> "DispatchTable":
        """New table with extra or replaced handlers; self is unchanged."""
        merged: Dict[int, Handler] = {
            byte: handler for byte, handler in enumerate(self._entries) if handler is not None
        }
        merged.update({int(byte): handler for byte, handler in mapping.items()})
        return DispatchTable(merged)

    def assigned(self) -> Tuple[int, ...]:
        """Bytes that have a real handler."""
        return tuple(byte for byte, handler in enumerate(self._entries) if handler is not None)

    def __len__(self) -> int:
        return len(self._entries)


@lru_cache(maxsize=1)
def default_dispatch_table() -> DispatchTable:
    """Process-wide table built from the registered handlers."""
    return DispatchTable(HANDLERS)
