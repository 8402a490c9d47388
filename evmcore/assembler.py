"""
evmcore Assembler

Mnemonic lists to bytecode and back. Used by the tests and handy for
building fixtures by hand.

Copyright (c) 2026 Momentum. All rights reserved.
Contact: engineering@momentum.inc
"""

from __future__ import annotations

from typing import Any, List, Optional, Sequence, Tuple, Union

from evmcore.opcodes import Opcode, by_name, decode

Instruction = Tuple[Any, ...]


class AssemblyError(ValueError):
    """Malformed instruction list."""
    pass


def _minimal_push(value: int) -> str:
    size = max(1, (value.bit_length() + 7) // 8)
    return f"PUSH{size}"


class Assembler:
    """Simple assembler for evmcore bytecode."""

    @staticmethod
    def assemble(instructions: Sequence[Instruction]) -> bytes:
        """
        Assemble instructions to bytecode.

        A bare "PUSH" picks the smallest width that holds its value
        ("PUSH0" is never chosen implicitly). Bytes immediates are
        left-padded to the push width.

        Example:
            code = Assembler.assemble([
                ("PUSH1", 0x42),
                ("PUSH", 0x00),
                ("SSTORE",),
                ("STOP",),
            ])
        """
        bytecode = bytearray()

        for instr in instructions:
            if not instr:
                raise AssemblyError("Empty instruction")
            mnemonic = str(instr[0]).upper()
            operand: Optional[Union[int, bytes]] = instr[1] if len(instr) > 1 else None

            if mnemonic == "PUSH":
                if operand is None:
                    raise AssemblyError("PUSH requires an operand")
                if isinstance(operand, (bytes, bytearray)):
                    mnemonic = f"PUSH{max(1, len(operand))}"
                else:
                    mnemonic = _minimal_push(operand)

            try:
                operation = by_name(mnemonic)
            except KeyError:
                raise AssemblyError(f"Unknown mnemonic: {instr[0]}") from None

            bytecode.append(operation.byte)
            size = operation.immediate_size

            if size == 0:
                if operand is not None:
                    raise AssemblyError(f"{mnemonic} takes no operand")
                continue

            if operand is None:
                raise AssemblyError(f"{mnemonic} requires an operand")
            if isinstance(operand, (bytes, bytearray)):
                if len(operand) > size:
                    raise AssemblyError(f"{mnemonic} operand longer than {size} bytes")
                bytecode.extend(bytes(operand).rjust(size, b"\x00"))
            else:
                if operand < 0 or operand.bit_length() > size * 8:
                    raise AssemblyError(f"{mnemonic} operand {operand:#x} does not fit")
                bytecode.extend(operand.to_bytes(size, "big"))

        return bytes(bytecode)

    @staticmethod
    def disassemble(bytecode: bytes) -> List[Tuple[int, str, Optional[int]]]:
        """
        Disassemble bytecode to instructions.

        Returns list of (offset, mnemonic, immediate_value). A PUSH cut off
        by the end of code reads its missing bytes as zero, as execution
        does.
        """
        instructions = []
        pc = 0

        while pc < len(bytecode):
            operation = decode(bytecode[pc])
            immediate = None
            size = operation.immediate_size
            if size:
                data = bytecode[pc + 1:pc + 1 + size]
                immediate = int.from_bytes(data + bytes(size - len(data)), "big")
            elif operation.defined and operation.opcode is Opcode.PUSH0:
                immediate = 0

            instructions.append((pc, operation.name, immediate))
            pc += operation.width

        return instructions
