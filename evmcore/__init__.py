"""
evmcore: Stack Bytecode Execution Engine

A deterministic interpreter for EVM-style bytecode: 256-bit word stack,
word-aligned growable memory, per-address account storage, and a closed
catalog of single-byte opcodes dispatched through an immutable table.

Architecture
────────────

    ┌─────────────────────────────────────────────────────────────────────────┐
    │                        EXECUTION ENGINE                                  │
    │                                                                          │
    │  CONTROL                                                                 │
    │    engine.py      Fetch-decode-dispatch loop, step hooks, results       │
    │    dispatch.py    Immutable opcode -> handler table                      │
    │    handlers.py    One transition function per opcode                     │
    │                                                                          │
    │  STATE                                                                   │
    │    context.py     Transaction, block, exit status, per-run state        │
    │    primitives.py  Stack and memory                                       │
    │    storage.py     Account records and slot commitment                   │
    │    jumpdest.py    Jump-destination analysis                              │
    │                                                                          │
    │  FOUNDATION                                                              │
    │    opcodes.py     Total byte -> Operation catalog                        │
    │    word.py        256-bit integer semantics                              │
    │    hardening.py   Error taxonomy, validators, invariants                 │
    │    config.py      YAML / environment configuration                       │
    │    observability.py  Structured logging and tracing                      │
    │    assembler.py   Mnemonic assembler / disassembler                      │
    │                                                                          │
    └─────────────────────────────────────────────────────────────────────────┘

Design Principles
─────────────────

    Fail Closed: every byte decodes; anything without a handler traps with
    Failure(InvalidOpcode). Nothing is silently skipped.

    Atomic Instructions: a failing instruction leaves the stack exactly as
    it was, and memory never grows past its limit.

    Determinism: identical code and inputs give identical results,
    including the storage commitment.

Copyright (c) 2026 Momentum. All rights reserved.
Contact: engineering@momentum.inc
"""

__version__ = "0.1.0"


# Lazy imports to avoid circular dependencies
def __getattr__(name):
    """Lazy import evmcore modules on first access."""

    if name in ("Engine", "ExecutionResult", "StepBudget", "StepTracer",
                "TraceEntry", "execute"):
        from evmcore import engine
        return getattr(engine, name)

    if name in ("Transaction", "BlockEnv", "ExitStatus", "ExecutionContext"):
        from evmcore import context
        return getattr(context, name)

    if name in ("DispatchTable", "default_dispatch_table", "invalid_instruction"):
        from evmcore import dispatch
        return getattr(dispatch, name)

    if name in ("Opcode", "Operation", "CATALOG", "decode"):
        from evmcore import opcodes
        return getattr(opcodes, name)

    if name in ("Stack", "Memory"):
        from evmcore import primitives
        return getattr(primitives, name)

    if name in ("Storage", "AccountRecord"):
        from evmcore import storage
        return getattr(storage, name)

    if name in ("FailureReason", "VMError", "StackUnderflow", "StackTooDeep",
                "InvalidOpcode", "InvalidJumpDestination", "OutOfResource",
                "InvariantViolation", "ValidationError"):
        from evmcore import hardening
        return getattr(hardening, name)

    if name in ("Assembler", "AssemblyError"):
        from evmcore import assembler
        return getattr(assembler, name)

    if name in ("ConfigManager", "get_config", "get_config_manager"):
        from evmcore import config
        return getattr(config, name)

    raise AttributeError(f"module 'evmcore' has no attribute '{name}'")
