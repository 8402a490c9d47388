"""
evmcore Instruction Handlers

One function per opcode, each a transition over an ExecutionContext. A
handler pops its operands (the engine has already checked arity), computes,
pushes results and may touch memory or storage. Only control-flow handlers
move the program counter, and only through ExecutionContext.jump().

Operand order follows the EVM: the first item popped (top of stack) is the
left-hand operand, so `PUSH 1, PUSH 5, SUB` leaves 5 - 1 = 4.

Handler Groups:

    Arithmetic    ADD SUB MUL DIV SDIV MOD SMOD ADDMOD MULMOD EXP SIGNEXTEND
    Logic         LT GT SLT SGT EQ ISZERO AND OR XOR NOT BYTE SHL SHR SAR
    Hashing       KECCAK256
    Environment   ADDRESS ... EXTCODEHASH, BLOCKHASH ... BASEFEE
    Memory        POP MLOAD MSTORE MSTORE8 MSIZE MCOPY
    Storage       SLOAD SSTORE TLOAD TSTORE
    Control       STOP JUMP JUMPI JUMPDEST PC RETURN REVERT
    Stack         PUSH0 PUSH1-32 DUP1-16 SWAP1-16

Copyright (c) 2026 Momentum. All rights reserved.
Contact: engineering@momentum.inc
"""

from __future__ import annotations

from typing import Callable, Dict

from eth_hash.auto import keccak

from evmcore.context import ExecutionContext, ExitStatus
from evmcore.opcodes import Opcode
from evmcore.word import (
    ADDRESS_MASK,
    INT256_MIN,
    UINT256_MAX,
    sign_extend,
    to_signed,
    to_unsigned,
    word_from_bytes,
)

Handler = Callable[[ExecutionContext], None]

HANDLERS: Dict[int, Handler] = {}


def handles(*opcodes: Opcode) -> Callable[[Handler], Handler]:
    """Register a handler for one or more opcodes."""
    def register(func: Handler) -> Handler:
        for opcode in opcodes:
            HANDLERS[int(opcode)] = func
        return func
    return register


def _padded(data: bytes, offset: int, size: int) -> bytes:
    """data[offset:offset + size], right-padded with zeros."""
    if offset >= len(data):
        return bytes(size)
    chunk = data[offset:offset + size]
    return chunk + bytes(size - len(chunk))


def _bool(value: bool) -> int:
    return 1 if value else 0


# =============================================================================
# ARITHMETIC
# =============================================================================

@handles(Opcode.ADD)
def op_add(ctx: ExecutionContext) -> None:
    a, b = ctx.stack.pop_n(2)
    ctx.stack.push((a + b) & UINT256_MAX)


@handles(Opcode.MUL)
def op_mul(ctx: ExecutionContext) -> None:
    a, b = ctx.stack.pop_n(2)
    ctx.stack.push((a * b) & UINT256_MAX)


@handles(Opcode.SUB)
def op_sub(ctx: ExecutionContext) -> None:
    a, b = ctx.stack.pop_n(2)
    ctx.stack.push((a - b) & UINT256_MAX)


@handles(Opcode.DIV)
def op_div(ctx: ExecutionContext) -> None:
    a, b = ctx.stack.pop_n(2)
    ctx.stack.push(0 if b == 0 else a // b)


@handles(Opcode.SDIV)
def op_sdiv(ctx: ExecutionContext) -> None:
    a, b = (to_signed(v) for v in ctx.stack.pop_n(2))
    if b == 0:
        result = 0
    elif a == INT256_MIN and b == -1:
        # Overflow wraps back to the minimum value.
        result = INT256_MIN
    else:
        sign = -1 if (a < 0) != (b < 0) else 1
        result = sign * (abs(a) // abs(b))
    ctx.stack.push(to_unsigned(result))


@handles(Opcode.MOD)
def op_mod(ctx: ExecutionContext) -> None:
    a, b = ctx.stack.pop_n(2)
    ctx.stack.push(0 if b == 0 else a % b)


@handles(Opcode.SMOD)
def op_smod(ctx: ExecutionContext) -> None:
    a, b = (to_signed(v) for v in ctx.stack.pop_n(2))
    if b == 0:
        result = 0
    else:
        # Result takes the sign of the dividend.
        sign = -1 if a < 0 else 1
        result = sign * (abs(a) % abs(b))
    ctx.stack.push(to_unsigned(result))


@handles(Opcode.ADDMOD)
def op_addmod(ctx: ExecutionContext) -> None:
    a, b, n = ctx.stack.pop_n(3)
    ctx.stack.push(0 if n == 0 else (a + b) % n)


@handles(Opcode.MULMOD)
def op_mulmod(ctx: ExecutionContext) -> None:
    a, b, n = ctx.stack.pop_n(3)
    ctx.stack.push(0 if n == 0 else (a * b) % n)


@handles(Opcode.EXP)
def op_exp(ctx: ExecutionContext) -> None:
    base, exponent = ctx.stack.pop_n(2)
    ctx.stack.push(pow(base, exponent, UINT256_MAX + 1))


@handles(Opcode.SIGNEXTEND)
def op_signextend(ctx: ExecutionContext) -> None:
    byte_index, value = ctx.stack.pop_n(2)
    ctx.stack.push(sign_extend(byte_index, value))


# =============================================================================
# COMPARISON & BITWISE LOGIC
# =============================================================================

@handles(Opcode.LT)
def op_lt(ctx: ExecutionContext) -> None:
    a, b = ctx.stack.pop_n(2)
    ctx.stack.push(_bool(a < b))


@handles(Opcode.GT)
def op_gt(ctx: ExecutionContext) -> None:
    a, b = ctx.stack.pop_n(2)
    ctx.stack.push(_bool(a > b))


@handles(Opcode.SLT)
def op_slt(ctx: ExecutionContext) -> None:
    a, b = ctx.stack.pop_n(2)
    ctx.stack.push(_bool(to_signed(a) < to_signed(b)))


@handles(Opcode.SGT)
def op_sgt(ctx: ExecutionContext) -> None:
    a, b = ctx.stack.pop_n(2)
    ctx.stack.push(_bool(to_signed(a) > to_signed(b)))


@handles(Opcode.EQ)
def op_eq(ctx: ExecutionContext) -> None:
    a, b = ctx.stack.pop_n(2)
    ctx.stack.push(_bool(a == b))


@handles(Opcode.ISZERO)
def op_iszero(ctx: ExecutionContext) -> None:
    ctx.stack.push(_bool(ctx.stack.pop() == 0))


@handles(Opcode.AND)
def op_and(ctx: ExecutionContext) -> None:
    a, b = ctx.stack.pop_n(2)
    ctx.stack.push(a & b)


@handles(Opcode.OR)
def op_or(ctx: ExecutionContext) -> None:
    a, b = ctx.stack.pop_n(2)
    ctx.stack.push(a | b)


@handles(Opcode.XOR)
def op_xor(ctx: ExecutionContext) -> None:
    a, b = ctx.stack.pop_n(2)
    ctx.stack.push(a ^ b)


@handles(Opcode.NOT)
def op_not(ctx: ExecutionContext) -> None:
    ctx.stack.push(UINT256_MAX ^ ctx.stack.pop())


@handles(Opcode.BYTE)
def op_byte(ctx: ExecutionContext) -> None:
    index, value = ctx.stack.pop_n(2)
    if index >= 32:
        ctx.stack.push(0)
    else:
        ctx.stack.push((value >> (248 - index * 8)) & 0xFF)


@handles(Opcode.SHL)
def op_shl(ctx: ExecutionContext) -> None:
    shift, value = ctx.stack.pop_n(2)
    ctx.stack.push(0 if shift >= 256 else (value << shift) & UINT256_MAX)


@handles(Opcode.SHR)
def op_shr(ctx: ExecutionContext) -> None:
    shift, value = ctx.stack.pop_n(2)
    ctx.stack.push(0 if shift >= 256 else value >> shift)


@handles(Opcode.SAR)
def op_sar(ctx: ExecutionContext) -> None:
    shift, value = ctx.stack.pop_n(2)
    signed = to_signed(value)
    if shift >= 256:
        ctx.stack.push(UINT256_MAX if signed < 0 else 0)
    else:
        ctx.stack.push(to_unsigned(signed >> shift))


# =============================================================================
# HASHING
# =============================================================================

@handles(Opcode.KECCAK256)
def op_keccak256(ctx: ExecutionContext) -> None:
    offset, size = ctx.stack.pop_n(2)
    data = ctx.memory.read(offset, size)
    ctx.stack.push(word_from_bytes(keccak(data)))


# =============================================================================
# TRANSACTION & ACCOUNT ENVIRONMENT
# =============================================================================

@handles(Opcode.ADDRESS)
def op_address(ctx: ExecutionContext) -> None:
    ctx.stack.push(ctx.address)


@handles(Opcode.BALANCE)
def op_balance(ctx: ExecutionContext) -> None:
    address = ctx.stack.pop() & ADDRESS_MASK
    ctx.stack.push(ctx.storage.balance_of(address))


@handles(Opcode.ORIGIN)
def op_origin(ctx: ExecutionContext) -> None:
    ctx.stack.push(ctx.tx.origin)


@handles(Opcode.CALLER)
def op_caller(ctx: ExecutionContext) -> None:
    ctx.stack.push(ctx.tx.sender)


@handles(Opcode.CALLVALUE)
def op_callvalue(ctx: ExecutionContext) -> None:
    ctx.stack.push(ctx.tx.value)


@handles(Opcode.CALLDATALOAD)
def op_calldataload(ctx: ExecutionContext) -> None:
    offset = ctx.stack.pop()
    ctx.stack.push(word_from_bytes(_padded(ctx.calldata, offset, 32)))


@handles(Opcode.CALLDATASIZE)
def op_calldatasize(ctx: ExecutionContext) -> None:
    ctx.stack.push(len(ctx.calldata))


@handles(Opcode.CALLDATACOPY)
def op_calldatacopy(ctx: ExecutionContext) -> None:
    dest, offset, size = ctx.stack.pop_n(3)
    ctx.memory.ensure(dest, size)
    ctx.memory.write(dest, _padded(ctx.calldata, offset, size))


@handles(Opcode.CODESIZE)
def op_codesize(ctx: ExecutionContext) -> None:
    ctx.stack.push(len(ctx.code))


@handles(Opcode.CODECOPY)
def op_codecopy(ctx: ExecutionContext) -> None:
    dest, offset, size = ctx.stack.pop_n(3)
    ctx.memory.ensure(dest, size)
    ctx.memory.write(dest, _padded(ctx.code, offset, size))


@handles(Opcode.GASPRICE)
def op_gasprice(ctx: ExecutionContext) -> None:
    ctx.stack.push(ctx.tx.gas_price)


@handles(Opcode.EXTCODESIZE)
def op_extcodesize(ctx: ExecutionContext) -> None:
    address = ctx.stack.pop() & ADDRESS_MASK
    ctx.stack.push(len(ctx.storage.code_of(address)))


@handles(Opcode.EXTCODECOPY)
def op_extcodecopy(ctx: ExecutionContext) -> None:
    address, dest, offset, size = ctx.stack.pop_n(4)
    ctx.memory.ensure(dest, size)
    code = ctx.storage.code_of(address & ADDRESS_MASK)
    ctx.memory.write(dest, _padded(code, offset, size))


@handles(Opcode.EXTCODEHASH)
def op_extcodehash(ctx: ExecutionContext) -> None:
    address = ctx.stack.pop() & ADDRESS_MASK
    if not ctx.storage.has_account(address):
        ctx.stack.push(0)
    else:
        ctx.stack.push(word_from_bytes(keccak(ctx.storage.code_of(address))))


@handles(Opcode.SELFBALANCE)
def op_selfbalance(ctx: ExecutionContext) -> None:
    ctx.stack.push(ctx.storage.balance_of(ctx.address))


# =============================================================================
# BLOCK ENVIRONMENT
# =============================================================================

@handles(Opcode.BLOCKHASH)
def op_blockhash(ctx: ExecutionContext) -> None:
    number = ctx.stack.pop()
    ctx.stack.push(ctx.block.block_hash(number))


@handles(Opcode.COINBASE)
def op_coinbase(ctx: ExecutionContext) -> None:
    ctx.stack.push(ctx.block.coinbase)


@handles(Opcode.TIMESTAMP)
def op_timestamp(ctx: ExecutionContext) -> None:
    ctx.stack.push(ctx.block.timestamp)


@handles(Opcode.NUMBER)
def op_number(ctx: ExecutionContext) -> None:
    ctx.stack.push(ctx.block.number)


@handles(Opcode.PREVRANDAO)
def op_prevrandao(ctx: ExecutionContext) -> None:
    ctx.stack.push(ctx.block.prevrandao)


@handles(Opcode.GASLIMIT)
def op_gaslimit(ctx: ExecutionContext) -> None:
    ctx.stack.push(ctx.block.gas_limit)


@handles(Opcode.CHAINID)
def op_chainid(ctx: ExecutionContext) -> None:
    ctx.stack.push(ctx.block.chain_id)


@handles(Opcode.BASEFEE)
def op_basefee(ctx: ExecutionContext) -> None:
    ctx.stack.push(ctx.block.base_fee)


# =============================================================================
# MEMORY
# =============================================================================

@handles(Opcode.POP)
def op_pop(ctx: ExecutionContext) -> None:
    ctx.stack.pop()


@handles(Opcode.MLOAD)
def op_mload(ctx: ExecutionContext) -> None:
    offset = ctx.stack.pop()
    ctx.stack.push(ctx.memory.load_word(offset))


@handles(Opcode.MSTORE)
def op_mstore(ctx: ExecutionContext) -> None:
    offset, value = ctx.stack.pop_n(2)
    ctx.memory.store_word(offset, value)


@handles(Opcode.MSTORE8)
def op_mstore8(ctx: ExecutionContext) -> None:
    offset, value = ctx.stack.pop_n(2)
    ctx.memory.store_byte(offset, value)


@handles(Opcode.MSIZE)
def op_msize(ctx: ExecutionContext) -> None:
    ctx.stack.push(len(ctx.memory))


@handles(Opcode.MCOPY)
def op_mcopy(ctx: ExecutionContext) -> None:
    dest, src, size = ctx.stack.pop_n(3)
    ctx.memory.copy(src, dest, size)


# =============================================================================
# STORAGE
# =============================================================================

@handles(Opcode.SLOAD)
def op_sload(ctx: ExecutionContext) -> None:
    key = ctx.stack.pop()
    ctx.stack.push(ctx.storage.get(ctx.address, key))


@handles(Opcode.SSTORE)
def op_sstore(ctx: ExecutionContext) -> None:
    key, value = ctx.stack.pop_n(2)
    ctx.storage.set(ctx.address, key, value)


@handles(Opcode.TLOAD)
def op_tload(ctx: ExecutionContext) -> None:
    key = ctx.stack.pop()
    ctx.stack.push(ctx.transient.get(key, 0))


@handles(Opcode.TSTORE)
def op_tstore(ctx: ExecutionContext) -> None:
    key, value = ctx.stack.pop_n(2)
    if value == 0:
        ctx.transient.pop(key, None)
    else:
        ctx.transient[key] = value


# =============================================================================
# CONTROL FLOW
# =============================================================================

@handles(Opcode.STOP)
def op_stop(ctx: ExecutionContext) -> None:
    ctx.halt(ExitStatus.SUCCESS)


@handles(Opcode.JUMP)
def op_jump(ctx: ExecutionContext) -> None:
    ctx.jump(ctx.stack.pop())


@handles(Opcode.JUMPI)
def op_jumpi(ctx: ExecutionContext) -> None:
    destination, condition = ctx.stack.pop_n(2)
    if condition != 0:
        ctx.jump(destination)


@handles(Opcode.JUMPDEST)
def op_jumpdest(ctx: ExecutionContext) -> None:
    pass


@handles(Opcode.PC)
def op_pc(ctx: ExecutionContext) -> None:
    ctx.stack.push(ctx.pc)


@handles(Opcode.RETURN)
def op_return(ctx: ExecutionContext) -> None:
    offset, size = ctx.stack.pop_n(2)
    ctx.halt(ExitStatus.SUCCESS, return_data=ctx.memory.read(offset, size))


@handles(Opcode.REVERT)
def op_revert(ctx: ExecutionContext) -> None:
    offset, size = ctx.stack.pop_n(2)
    ctx.halt(ExitStatus.REVERTED, return_data=ctx.memory.read(offset, size))


# =============================================================================
# STACK: PUSH / DUP / SWAP
# =============================================================================

@handles(Opcode.PUSH0)
def op_push0(ctx: ExecutionContext) -> None:
    ctx.stack.push(0)


def _make_push(size: int) -> Handler:
    def op_push(ctx: ExecutionContext) -> None:
        start = ctx.pc + 1
        # Immediate bytes past the end of code read as zero.
        data = ctx.code[start:start + size]
        ctx.stack.push(int.from_bytes(data + bytes(size - len(data)), "big"))
    op_push.__name__ = op_push.__qualname__ = f"op_push{size}"
    return op_push


def _make_dup(depth: int) -> Handler:
    def op_dup(ctx: ExecutionContext) -> None:
        ctx.stack.dup(depth)
    op_dup.__name__ = op_dup.__qualname__ = f"op_dup{depth}"
    return op_dup


def _make_swap(depth: int) -> Handler:
    def op_swap(ctx: ExecutionContext) -> None:
        ctx.stack.swap(depth)
    op_swap.__name__ = op_swap.__qualname__ = f"op_swap{depth}"
    return op_swap


for _n in range(1, 33):
    handles(Opcode(Opcode.PUSH1 + _n - 1))(_make_push(_n))

for _n in range(1, 17):
    handles(Opcode(Opcode.DUP1 + _n - 1))(_make_dup(_n))
    handles(Opcode(Opcode.SWAP1 + _n - 1))(_make_swap(_n))

del _n
