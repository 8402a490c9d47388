"""
evmcore Opcode Catalog

Total mapping from a code byte (0x00-0xFF) to an Operation. Assigned bytes
follow the Cancun instruction set; every other byte decodes to an explicit
undefined Operation so that fetching never fails on untrusted code.

Instruction Ranges:

    0x00-0x0B: Stop and arithmetic (STOP, ADD ... SIGNEXTEND)
    0x10-0x1D: Comparison and bitwise logic (LT ... SAR)
    0x20:      KECCAK256
    0x30-0x3F: Transaction and account environment (ADDRESS ... EXTCODEHASH)
    0x40-0x4A: Block environment (BLOCKHASH ... BLOBBASEFEE)
    0x50-0x5F: Stack, memory, storage and flow (POP ... PUSH0)
    0x60-0x7F: PUSH1-PUSH32 (1-32 bytes of immediate data)
    0x80-0x9F: DUP1-DUP16, SWAP1-SWAP16
    0xA0-0xA4: LOG0-LOG4
    0xF0-0xFF: System (CREATE, CALL, RETURN, REVERT, INVALID, SELFDESTRUCT)

Copyright (c) 2026 Momentum. All rights reserved.
Contact: engineering@momentum.inc
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Dict, Tuple


# =============================================================================
# OPCODES
# =============================================================================

class Opcode(IntEnum):
    """Assigned opcode bytes."""

    # Stop and arithmetic (0x00-0x0B)
    STOP = 0x00
    ADD = 0x01
    MUL = 0x02
    SUB = 0x03
    DIV = 0x04
    SDIV = 0x05
    MOD = 0x06
    SMOD = 0x07
    ADDMOD = 0x08
    MULMOD = 0x09
    EXP = 0x0A
    SIGNEXTEND = 0x0B

    # Comparison and bitwise logic (0x10-0x1D)
    LT = 0x10
    GT = 0x11
    SLT = 0x12
    SGT = 0x13
    EQ = 0x14
    ISZERO = 0x15
    AND = 0x16
    OR = 0x17
    XOR = 0x18
    NOT = 0x19
    BYTE = 0x1A
    SHL = 0x1B
    SHR = 0x1C
    SAR = 0x1D

    # Hashing (0x20)
    KECCAK256 = 0x20

    # Transaction and account environment (0x30-0x3F)
    ADDRESS = 0x30
    BALANCE = 0x31
    ORIGIN = 0x32
    CALLER = 0x33
    CALLVALUE = 0x34
    CALLDATALOAD = 0x35
    CALLDATASIZE = 0x36
    CALLDATACOPY = 0x37
    CODESIZE = 0x38
    CODECOPY = 0x39
    GASPRICE = 0x3A
    EXTCODESIZE = 0x3B
    EXTCODECOPY = 0x3C
    RETURNDATASIZE = 0x3D
    RETURNDATACOPY = 0x3E
    EXTCODEHASH = 0x3F

    # Block environment (0x40-0x4A)
    BLOCKHASH = 0x40
    COINBASE = 0x41
    TIMESTAMP = 0x42
    NUMBER = 0x43
    PREVRANDAO = 0x44
    GASLIMIT = 0x45
    CHAINID = 0x46
    SELFBALANCE = 0x47
    BASEFEE = 0x48
    BLOBHASH = 0x49
    BLOBBASEFEE = 0x4A

    # Stack, memory, storage and flow (0x50-0x5F)
    POP = 0x50
    MLOAD = 0x51
    MSTORE = 0x52
    MSTORE8 = 0x53
    SLOAD = 0x54
    SSTORE = 0x55
    JUMP = 0x56
    JUMPI = 0x57
    PC = 0x58
    MSIZE = 0x59
    GAS = 0x5A
    JUMPDEST = 0x5B
    TLOAD = 0x5C
    TSTORE = 0x5D
    MCOPY = 0x5E
    PUSH0 = 0x5F

    # Push (0x60-0x7F)
    PUSH1 = 0x60
    PUSH2 = 0x61
    PUSH3 = 0x62
    PUSH4 = 0x63
    PUSH5 = 0x64
    PUSH6 = 0x65
    PUSH7 = 0x66
    PUSH8 = 0x67
    PUSH9 = 0x68
    PUSH10 = 0x69
    PUSH11 = 0x6A
    PUSH12 = 0x6B
    PUSH13 = 0x6C
    PUSH14 = 0x6D
    PUSH15 = 0x6E
    PUSH16 = 0x6F
    PUSH17 = 0x70
    PUSH18 = 0x71
    PUSH19 = 0x72
    PUSH20 = 0x73
    PUSH21 = 0x74
    PUSH22 = 0x75
    PUSH23 = 0x76
    PUSH24 = 0x77
    PUSH25 = 0x78
    PUSH26 = 0x79
    PUSH27 = 0x7A
    PUSH28 = 0x7B
    PUSH29 = 0x7C
    PUSH30 = 0x7D
    PUSH31 = 0x7E
    PUSH32 = 0x7F

    # Duplication (0x80-0x8F)
    DUP1 = 0x80
    DUP2 = 0x81
    DUP3 = 0x82
    DUP4 = 0x83
    DUP5 = 0x84
    DUP6 = 0x85
    DUP7 = 0x86
    DUP8 = 0x87
    DUP9 = 0x88
    DUP10 = 0x89
    DUP11 = 0x8A
    DUP12 = 0x8B
    DUP13 = 0x8C
    DUP14 = 0x8D
    DUP15 = 0x8E
    DUP16 = 0x8F

    # Exchange (0x90-0x9F)
    SWAP1 = 0x90
    SWAP2 = 0x91
    SWAP3 = 0x92
    SWAP4 = 0x93
    SWAP5 = 0x94
    SWAP6 = 0x95
    SWAP7 = 0x96
    SWAP8 = 0x97
    SWAP9 = 0x98
    SWAP10 = 0x99
    SWAP11 = 0x9A
    SWAP12 = 0x9B
    SWAP13 = 0x9C
    SWAP14 = 0x9D
    SWAP15 = 0x9E
    SWAP16 = 0x9F

    # Logging (0xA0-0xA4)
    LOG0 = 0xA0
    LOG1 = 0xA1
    LOG2 = 0xA2
    LOG3 = 0xA3
    LOG4 = 0xA4

    # System (0xF0-0xFF)
    CREATE = 0xF0
    CALL = 0xF1
    CALLCODE = 0xF2
    RETURN = 0xF3
    DELEGATECALL = 0xF4
    CREATE2 = 0xF5
    STATICCALL = 0xFA
    REVERT = 0xFD
    INVALID = 0xFE
    SELFDESTRUCT = 0xFF


# Stack inputs/outputs for every opcode outside the regular PUSH/DUP/SWAP/LOG
# families, which are derived from their index below.
_STACK_EFFECTS: Dict[Opcode, Tuple[int, int]] = {
    Opcode.STOP: (0, 0),
    Opcode.ADD: (2, 1),
    Opcode.MUL: (2, 1),
    Opcode.SUB: (2, 1),
    Opcode.DIV: (2, 1),
    Opcode.SDIV: (2, 1),
    Opcode.MOD: (2, 1),
    Opcode.SMOD: (2, 1),
    Opcode.ADDMOD: (3, 1),
    Opcode.MULMOD: (3, 1),
    Opcode.EXP: (2, 1),
    Opcode.SIGNEXTEND: (2, 1),
    Opcode.LT: (2, 1),
    Opcode.GT: (2, 1),
    Opcode.SLT: (2, 1),
    Opcode.SGT: (2, 1),
    Opcode.EQ: (2, 1),
    Opcode.ISZERO: (1, 1),
    Opcode.AND: (2, 1),
    Opcode.OR: (2, 1),
    Opcode.XOR: (2, 1),
    Opcode.NOT: (1, 1),
    Opcode.BYTE: (2, 1),
    Opcode.SHL: (2, 1),
    Opcode.SHR: (2, 1),
    Opcode.SAR: (2, 1),
    Opcode.KECCAK256: (2, 1),
    Opcode.ADDRESS: (0, 1),
    Opcode.BALANCE: (1, 1),
    Opcode.ORIGIN: (0, 1),
    Opcode.CALLER: (0, 1),
    Opcode.CALLVALUE: (0, 1),
    Opcode.CALLDATALOAD: (1, 1),
    Opcode.CALLDATASIZE: (0, 1),
    Opcode.CALLDATACOPY: (3, 0),
    Opcode.CODESIZE: (0, 1),
    Opcode.CODECOPY: (3, 0),
    Opcode.GASPRICE: (0, 1),
    Opcode.EXTCODESIZE: (1, 1),
    Opcode.EXTCODECOPY: (4, 0),
    Opcode.RETURNDATASIZE: (0, 1),
    Opcode.RETURNDATACOPY: (3, 0),
    Opcode.EXTCODEHASH: (1, 1),
    Opcode.BLOCKHASH: (1, 1),
    Opcode.COINBASE: (0, 1),
    Opcode.TIMESTAMP: (0, 1),
    Opcode.NUMBER: (0, 1),
    Opcode.PREVRANDAO: (0, 1),
    Opcode.GASLIMIT: (0, 1),
    Opcode.CHAINID: (0, 1),
    Opcode.SELFBALANCE: (0, 1),
    Opcode.BASEFEE: (0, 1),
    Opcode.BLOBHASH: (1, 1),
    Opcode.BLOBBASEFEE: (0, 1),
    Opcode.POP: (1, 0),
    Opcode.MLOAD: (1, 1),
    Opcode.MSTORE: (2, 0),
    Opcode.MSTORE8: (2, 0),
    Opcode.SLOAD: (1, 1),
    Opcode.SSTORE: (2, 0),
    Opcode.JUMP: (1, 0),
    Opcode.JUMPI: (2, 0),
    Opcode.PC: (0, 1),
    Opcode.MSIZE: (0, 1),
    Opcode.GAS: (0, 1),
    Opcode.JUMPDEST: (0, 0),
    Opcode.TLOAD: (1, 1),
    Opcode.TSTORE: (2, 0),
    Opcode.MCOPY: (3, 0),
    Opcode.PUSH0: (0, 1),
    Opcode.CREATE: (3, 1),
    Opcode.CALL: (7, 1),
    Opcode.CALLCODE: (7, 1),
    Opcode.RETURN: (2, 0),
    Opcode.DELEGATECALL: (6, 1),
    Opcode.CREATE2: (4, 1),
    Opcode.STATICCALL: (6, 1),
    Opcode.REVERT: (2, 0),
    Opcode.INVALID: (0, 0),
    Opcode.SELFDESTRUCT: (1, 0),
}


# =============================================================================
# OPERATION
# =============================================================================

@dataclass(frozen=True)
class Operation:
    """Decoded form of a single code byte."""
    byte: int
    name: str
    immediate_size: int = 0
    stack_in: int = 0
    stack_out: int = 0
    defined: bool = True

    @property
    def width(self) -> int:
        """Encoded size in the code buffer, including immediate data."""
        return 1 + self.immediate_size

    @property
    def opcode(self) -> Opcode:
        if not self.defined:
            raise ValueError(f"{self.name} has no assigned opcode")
        return Opcode(self.byte)

    def __str__(self) -> str:
        return self.name


def _describe(byte: int) -> Operation:
    try:
        opcode = Opcode(byte)
    except ValueError:
        return Operation(byte=byte, name=f"UNDEFINED_0x{byte:02X}", defined=False)

    if Opcode.PUSH1 <= opcode <= Opcode.PUSH32:
        size = opcode - Opcode.PUSH1 + 1
        return Operation(byte, opcode.name, immediate_size=size, stack_in=0, stack_out=1)
    if Opcode.DUP1 <= opcode <= Opcode.DUP16:
        depth = opcode - Opcode.DUP1 + 1
        return Operation(byte, opcode.name, stack_in=depth, stack_out=depth + 1)
    if Opcode.SWAP1 <= opcode <= Opcode.SWAP16:
        depth = opcode - Opcode.SWAP1 + 1
        return Operation(byte, opcode.name, stack_in=depth + 1, stack_out=depth + 1)
    if Opcode.LOG0 <= opcode <= Opcode.LOG4:
        topics = opcode - Opcode.LOG0
        return Operation(byte, opcode.name, stack_in=topics + 2, stack_out=0)

    stack_in, stack_out = _STACK_EFFECTS[opcode]
    return Operation(byte, opcode.name, stack_in=stack_in, stack_out=stack_out)


CATALOG: Tuple[Operation, ...] = tuple(_describe(b) for b in range(256))


def decode(byte: int) -> Operation:
    """Decode a code byte. Total over 0x00-0xFF."""
    if not 0 <= byte <= 0xFF:
        raise ValueError(f"Opcode byte out of range: {byte}")
    return CATALOG[byte]


def is_push(byte: int) -> bool:
    """True for PUSH1-PUSH32 (PUSH0 carries no immediate)."""
    return Opcode.PUSH1 <= byte <= Opcode.PUSH32


def push_size(byte: int) -> int:
    """Immediate size in bytes for a PUSH opcode, 0 for anything else."""
    if is_push(byte):
        return byte - Opcode.PUSH1 + 1
    return 0


def by_name(mnemonic: str) -> Operation:
    """Look up an Operation by mnemonic (case-insensitive)."""
    return CATALOG[Opcode[mnemonic.upper()]]
