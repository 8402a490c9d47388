"""
evmcore Execution Context

Read-only transaction and block inputs, the exit status state machine, and
the per-run mutable state that handlers operate on.

Copyright (c) 2026 Momentum. All rights reserved.
Contact: engineering@momentum.inc
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Set

from evmcore.hardening import (
    FailureReason,
    InvalidJumpDestination,
    InvariantChecker,
    Validators,
)
from evmcore.jumpdest import JumpDestinations, analyze
from evmcore.primitives import DEFAULT_MEMORY_LIMIT, MAX_STACK_DEPTH, Memory, Stack
from evmcore.storage import Storage


# =============================================================================
# EXTERNAL INPUTS
# =============================================================================

@dataclass(frozen=True)
class Transaction:
    """
    Transaction provider.

    A zero `to` address means contract creation: `data` is then the init
    code rather than calldata.
    """
    sender: int = 0
    to: int = 0
    value: int = 0
    data: bytes = b""
    gas_price: int = 0
    gas_limit: int = 0
    origin: Optional[int] = None

    def __post_init__(self):
        Validators.validate_address(self.sender, "sender")
        Validators.validate_address(self.to, "to")
        Validators.validate_uint(self.value, "value")
        Validators.validate_uint(self.gas_price, "gas_price")
        Validators.validate_uint(self.gas_limit, "gas_limit")
        object.__setattr__(self, "data", Validators.validate_bytes(self.data, "data"))
        if self.origin is None:
            object.__setattr__(self, "origin", self.sender)
        else:
            Validators.validate_address(self.origin, "origin")

    @property
    def is_create(self) -> bool:
        return self.to == 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sender": hex(self.sender),
            "to": hex(self.to),
            "origin": hex(self.origin),
            "value": self.value,
            "data": self.data.hex(),
            "gas_price": self.gas_price,
            "gas_limit": self.gas_limit,
        }


@dataclass(frozen=True)
class BlockEnv:
    """Block provider."""
    chain_id: int = 1
    number: int = 0
    timestamp: int = 0
    gas_limit: int = 30_000_000
    base_fee: int = 0
    coinbase: int = 0
    prevrandao: int = 0
    block_hashes: Dict[int, int] = field(default_factory=dict, compare=False)

    def __post_init__(self):
        for name in ("chain_id", "number", "timestamp", "gas_limit", "base_fee", "prevrandao"):
            Validators.validate_uint(getattr(self, name), name)
        Validators.validate_address(self.coinbase, "coinbase")
        for number, block_hash in self.block_hashes.items():
            Validators.validate_uint(number, "block_hashes")
            Validators.validate_uint(block_hash, f"block_hashes[{number}]")

    def block_hash(self, number: int) -> int:
        """Hash of one of the 256 most recent blocks, else zero."""
        if number >= self.number or number < self.number - 256:
            return 0
        return self.block_hashes.get(number, 0)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "chain_id": self.chain_id,
            "number": self.number,
            "timestamp": self.timestamp,
            "gas_limit": self.gas_limit,
            "base_fee": self.base_fee,
            "coinbase": hex(self.coinbase),
        }


# =============================================================================
# EXIT STATUS
# =============================================================================

class ExitStatus(Enum):
    """Run classification. RUNNING is the only non-terminal value."""
    RUNNING = "running"
    SUCCESS = "success"
    FAILURE = "failure"
    REVERTED = "reverted"

    @property
    def is_terminal(self) -> bool:
        return self is not ExitStatus.RUNNING


VALID_TRANSITIONS: Dict[Enum, Set[Enum]] = {
    ExitStatus.RUNNING: {ExitStatus.SUCCESS, ExitStatus.FAILURE, ExitStatus.REVERTED},
    ExitStatus.SUCCESS: set(),
    ExitStatus.FAILURE: set(),
    ExitStatus.REVERTED: set(),
}


# =============================================================================
# EXECUTION CONTEXT
# =============================================================================

class ExecutionContext:
    """
    Mutable state for one run.

    Handlers read operands from `stack`, touch `memory`/`storage`, and
    redirect control flow only through `jump()`.
    """

    def __init__(
        self,
        code: bytes,
        tx: Optional[Transaction] = None,
        block: Optional[BlockEnv] = None,
        storage: Optional[Storage] = None,
        stack_limit: int = MAX_STACK_DEPTH,
        memory_limit: int = DEFAULT_MEMORY_LIMIT,
    ):
        self.code: bytes = Validators.validate_bytes(code, "code")
        self.tx = tx if tx is not None else Transaction()
        self.block = block if block is not None else BlockEnv()
        self.storage = storage if storage is not None else Storage()
        self.stack = Stack(max_depth=stack_limit)
        self.memory = Memory(limit=memory_limit)
        self.transient: Dict[int, int] = {}
        self.jumpdests: JumpDestinations = analyze(self.code)

        self.pc = 0
        # Offset of the most recently dispatched instruction.
        self.last_pc: Optional[int] = None
        self.status = ExitStatus.RUNNING
        self.failure: Optional[FailureReason] = None
        self.error: Optional[str] = None
        self.return_data = b""
        self.next_pc: Optional[int] = None

    @property
    def address(self) -> int:
        """Address whose storage this run reads and writes."""
        return self.tx.to

    @property
    def calldata(self) -> bytes:
        # Init code is not calldata for a creation run.
        if self.tx.is_create:
            return b""
        return self.tx.data

    @property
    def is_running(self) -> bool:
        return self.status is ExitStatus.RUNNING

    def jump(self, destination: int) -> None:
        """Redirect the counter; suppresses the engine's default advance."""
        if not self.jumpdests.is_valid(destination):
            raise InvalidJumpDestination(f"Invalid jump destination: {destination}")
        self.next_pc = destination

    def halt(
        self,
        status: ExitStatus,
        return_data: bytes = b"",
        failure: Optional[FailureReason] = None,
        error: Optional[str] = None,
    ) -> None:
        """Move to a terminal status. Allowed once per run."""
        InvariantChecker.check_state_transition(self.status, status, VALID_TRANSITIONS)
        self.status = status
        if status is ExitStatus.FAILURE:
            self.failure = failure
            self.error = error
            self.return_data = b""
        else:
            self.return_data = return_data
