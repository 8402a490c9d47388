"""
evmcore Execution Engine

Fetch-decode-dispatch loop over an ExecutionContext.

State Machine:

    RUNNING ──► SUCCESS    STOP, RETURN, or running off the end of code
        │
        ├─────► REVERTED   REVERT
        │
        └─────► FAILURE    any VMError (stack, opcode, jump, resource)

One step:

    1. pc >= len(code)                 implicit STOP
    2. fetch byte, decode, look up handler
    3. arity check for assigned handlers (StackUnderflow / StackTooDeep)
    4. before-step hooks               (e.g. StepBudget)
    5. handler                         VMError -> stack restored, FAILURE
    6. pc += width unless redirected   halting leaves pc in place
    7. after-step hooks                (e.g. StepTracer); VMError -> FAILURE

Example:
    from evmcore import Assembler, execute

    code = Assembler.assemble([("PUSH1", 2), ("PUSH1", 3), ("ADD",)])
    result = execute(code)
    assert result.success and result.stack == [5]

Copyright (c) 2026 Momentum. All rights reserved.
Contact: engineering@momentum.inc
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional

from evmcore.config import EvmCoreConfig, get_config
from evmcore.context import BlockEnv, ExecutionContext, ExitStatus, Transaction
from evmcore.dispatch import DispatchTable, default_dispatch_table
from evmcore.hardening import (
    FailureReason,
    OutOfResource,
    StackTooDeep,
    StackUnderflow,
    VMError,
)
from evmcore.observability import Layer, LogLevel, get_logger, get_tracer
from evmcore.opcodes import Operation, decode
from evmcore.storage import Storage

StepHook = Callable[[ExecutionContext, Operation], None]


# =============================================================================
# EXECUTION RESULT
# =============================================================================

@dataclass
class ExecutionResult:
    """Outcome of a run."""
    status: ExitStatus
    failure: Optional[FailureReason] = None
    error: Optional[str] = None
    return_data: bytes = b""
    stack: List[int] = field(default_factory=list)
    memory_size: int = 0
    steps: int = 0
    storage_root: str = ""
    pc: int = 0

    @property
    def success(self) -> bool:
        return self.status is ExitStatus.SUCCESS

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "failure": self.failure.value if self.failure else None,
            "error": self.error,
            "return_data": self.return_data.hex(),
            "stack": [hex(v) for v in self.stack],
            "memory_size": self.memory_size,
            "steps": self.steps,
            "storage_root": self.storage_root,
            "pc": self.pc,
        }


# =============================================================================
# STEP HOOKS
# =============================================================================

class StepBudget:
    """
    Before-step hook bounding the number of executed instructions.

    An external meter (gas, wall-clock) plugs in the same way.
    """

    def __init__(self, max_steps: int):
        if max_steps <= 0:
            raise ValueError(f"max_steps must be positive, got {max_steps}")
        self.max_steps = max_steps
        self.used = 0

    def __call__(self, ctx: ExecutionContext, operation: Operation) -> None:
        if self.used >= self.max_steps:
            raise OutOfResource(
                f"Step budget of {self.max_steps} exhausted at pc={ctx.pc} ({operation.name})"
            )
        self.used += 1


@dataclass(frozen=True)
class TraceEntry:
    """State after one executed instruction."""
    pc: int
    name: str
    stack_depth: int
    memory_size: int


class StepTracer:
    """After-step hook recording a TraceEntry per instruction."""

    def __init__(self, log_steps: bool = True):
        self.entries: List[TraceEntry] = []
        self._log = get_logger("tracer", Layer.ENGINE) if log_steps else None

    def __call__(self, ctx: ExecutionContext, operation: Operation) -> None:
        entry = TraceEntry(
            pc=ctx.last_pc if ctx.last_pc is not None else ctx.pc,
            name=operation.name,
            stack_depth=len(ctx.stack),
            memory_size=len(ctx.memory),
        )
        self.entries.append(entry)
        if self._log is not None:
            self._log.debug(
                "step",
                pc=entry.pc,
                opcode=entry.name,
                stack_depth=entry.stack_depth,
                memory_size=entry.memory_size,
            )


# =============================================================================
# ENGINE
# =============================================================================

class Engine:
    """
    Drives one ExecutionContext to a terminal status.

    Hooks are called as hook(ctx, operation) and may raise any VMError to
    fail the run. An after-step VMError raised once the instruction has
    already halted the run is logged and the terminal status is kept.
    """

    def __init__(
        self,
        context: ExecutionContext,
        dispatch: Optional[DispatchTable] = None,
        before_step: Iterable[StepHook] = (),
        after_step: Iterable[StepHook] = (),
        config: Optional[EvmCoreConfig] = None,
    ):
        config = config or get_config()
        self.context = context
        self.dispatch = dispatch or default_dispatch_table()
        self.before_step: List[StepHook] = list(before_step)
        self.after_step: List[StepHook] = list(after_step)
        self.steps = 0

        step_limit = config.engine.step_limit.get()
        if step_limit > 0:
            self.before_step.append(StepBudget(step_limit))

        self.tracer: Optional[StepTracer] = None
        if config.engine.trace_steps.get():
            self.tracer = StepTracer()
            self.after_step.append(self.tracer)

        self._log = get_logger("engine", Layer.ENGINE)

    @classmethod
    def from_code(
        cls,
        code: bytes,
        tx: Optional[Transaction] = None,
        block: Optional[BlockEnv] = None,
        storage: Optional[Storage] = None,
        config: Optional[EvmCoreConfig] = None,
        **kwargs: Any,
    ) -> "Engine":
        """Build a context sized from the engine config and wrap it."""
        config = config or get_config()
        context = ExecutionContext(
            code,
            tx=tx,
            block=block,
            storage=storage,
            stack_limit=config.engine.stack_limit.get(),
            memory_limit=config.engine.memory_limit_bytes.get(),
        )
        return cls(context, config=config, **kwargs)

    @classmethod
    def for_transaction(
        cls,
        tx: Transaction,
        block: Optional[BlockEnv] = None,
        storage: Optional[Storage] = None,
        **kwargs: Any,
    ) -> "Engine":
        """
        Engine for a transaction.

        Contract creation (tx.to == 0) runs tx.data as init code; any other
        transaction runs the code deployed at tx.to.
        """
        storage = storage if storage is not None else Storage()
        code = tx.data if tx.is_create else storage.code_of(tx.to)
        return cls.from_code(code, tx=tx, block=block, storage=storage, **kwargs)

    def _check_arity(self, operation: Operation) -> None:
        stack = self.context.stack
        depth = len(stack)
        if depth < operation.stack_in:
            raise StackUnderflow(
                f"{operation.name} needs {operation.stack_in} items, stack has {depth}"
            )
        if depth - operation.stack_in + operation.stack_out > stack.max_depth:
            raise StackTooDeep(
                f"{operation.name} would exceed stack limit of {stack.max_depth}"
            )

    def step(self) -> ExitStatus:
        """Execute one instruction. A no-op once the run is terminal."""
        ctx = self.context
        if not ctx.is_running:
            return ctx.status

        if ctx.pc >= len(ctx.code):
            ctx.halt(ExitStatus.SUCCESS)
            return ctx.status

        operation = decode(ctx.code[ctx.pc])
        handler = self.dispatch.lookup(operation)
        checkpoint = ctx.stack.checkpoint(operation.stack_in)
        ctx.next_pc = None
        ctx.last_pc = ctx.pc

        try:
            if self.dispatch.is_assigned(operation):
                self._check_arity(operation)
            for hook in self.before_step:
                hook(ctx, operation)
            self.steps += 1
            handler(ctx)
        except VMError as exc:
            ctx.stack.restore(checkpoint)
            ctx.next_pc = None
            ctx.halt(ExitStatus.FAILURE, failure=exc.reason, error=str(exc))
            return ctx.status
        except Exception:
            self._log.error(
                "Unexpected error while executing instruction",
                error_code="internal_error",
                exc_info=True,
                pc=ctx.pc,
                opcode=operation.name,
            )
            raise

        if ctx.is_running:
            ctx.pc = ctx.next_pc if ctx.next_pc is not None else ctx.pc + operation.width
        ctx.next_pc = None

        try:
            for hook in self.after_step:
                hook(ctx, operation)
        except VMError as exc:
            if ctx.is_running:
                ctx.halt(ExitStatus.FAILURE, failure=exc.reason, error=str(exc))
            else:
                self._log.warning(
                    "After-step hook failed on a halted run",
                    error_code=exc.reason.value,
                    pc=ctx.pc,
                    status=ctx.status.value,
                    error=str(exc),
                )

        return ctx.status

    def run(self) -> ExecutionResult:
        """Step until terminal and collect the result."""
        ctx = self.context
        with get_tracer().span("engine.run", Layer.ENGINE, code_size=len(ctx.code)) as span:
            start = time.monotonic()
            if self._log.is_enabled_for(LogLevel.DEBUG):
                self._log.debug(
                    "Execution started",
                    operation="run",
                    code_size=len(ctx.code),
                    address=hex(ctx.address),
                    tx=ctx.tx.to_dict(),
                    block=ctx.block.to_dict(),
                )

            while ctx.is_running:
                self.step()

            result = self.result()
            duration_ms = (time.monotonic() - start) * 1000
            span.set_attribute("status", result.status.value)
            span.set_attribute("steps", result.steps)

            if result.status is ExitStatus.FAILURE:
                span.set_status("error", result.error or "")
                self._log.warning(
                    "Execution failed",
                    operation="run",
                    error_code=result.failure.value,
                    pc=result.pc,
                    error=result.error,
                )
            self._log.debug(
                "Execution completed",
                operation="run",
                duration_ms=duration_ms,
                status=result.status.value,
                steps=result.steps,
            )

        return result

    def result(self) -> ExecutionResult:
        """Snapshot of the context as an ExecutionResult."""
        ctx = self.context
        return ExecutionResult(
            status=ctx.status,
            failure=ctx.failure,
            error=ctx.error,
            return_data=ctx.return_data,
            stack=ctx.stack.as_list(),
            memory_size=len(ctx.memory),
            steps=self.steps,
            storage_root=ctx.storage.storage_root(),
            pc=ctx.pc,
        )


def execute(
    code: bytes,
    tx: Optional[Transaction] = None,
    block: Optional[BlockEnv] = None,
    storage: Optional[Storage] = None,
    **kwargs: Any,
) -> ExecutionResult:
    """Run code to completion in a fresh context."""
    return Engine.from_code(code, tx=tx, block=block, storage=storage, **kwargs).run()
