"""
Memory, storage, hashing and environment handler tests.
"""

import pytest
from eth_hash.auto import keccak

from evmcore.context import BlockEnv, Transaction
from evmcore.hardening import FailureReason, ValidationError
from evmcore.storage import Storage

CONTRACT = 0xC0FFEE
SENDER = 0xA11CE
EMPTY_KECCAK = int.from_bytes(keccak(b""), "big")


def make_tx(**overrides):
    fields = dict(sender=SENDER, to=CONTRACT, value=7, data=b"", gas_price=3, gas_limit=100_000)
    fields.update(overrides)
    return Transaction(**fields)


class TestMemoryHandlers:
    """Tests for MLOAD, MSTORE, MSTORE8, MSIZE and MCOPY."""

    def test_mstore_at_100(self, run):
        """MSTORE at offset 100 on empty memory grows it past 132 bytes."""
        result = run([("PUSH1", 0x42), ("PUSH1", 100), ("MSTORE",), ("MSIZE",)])
        assert result.stack == [160]
        assert result.memory_size == 160

    def test_mload_roundtrip(self, run):
        result = run([
            ("PUSH2", 0x1234),
            ("PUSH1", 64),
            ("MSTORE",),
            ("PUSH1", 64),
            ("MLOAD",),
        ])
        assert result.stack == [0x1234]

    def test_mload_unaligned(self, run):
        result = run([("PUSH1", 0xFF), ("PUSH0",), ("MSTORE8",), ("PUSH1", 1), ("MLOAD",)])
        assert result.stack == [0]
        assert result.memory_size == 64

    def test_mcopy(self, run):
        result = run([
            ("PUSH1", 0xAB),
            ("PUSH0",),
            ("MSTORE8",),
            ("PUSH1", 1),       # size
            ("PUSH0",),         # src
            ("PUSH1", 40),      # dst
            ("MCOPY",),
            ("PUSH1", 40),
            ("MLOAD",),
        ])
        assert result.stack == [0xAB << 248]

    def test_hostile_offset_fails_cleanly(self, run):
        result = run([("PUSH1", 1), ("PUSH32", 1 << 255), ("MSTORE",)])
        assert result.failure is FailureReason.OUT_OF_RESOURCE
        assert result.memory_size == 0
        assert result.stack == [1, 1 << 255]

    def test_zero_size_copy_at_hostile_offset(self, run):
        result = run([("PUSH0",), ("PUSH32", 1 << 255), ("PUSH32", 1 << 255), ("MCOPY",)])
        assert result.success
        assert result.memory_size == 0

    def test_memory_limit_from_config(self, run, fresh_config):
        fresh_config.set("engine.memory_limit_bytes", 64)
        result = run([("PUSH1", 1), ("PUSH1", 64), ("MSTORE",)])
        assert result.failure is FailureReason.OUT_OF_RESOURCE


class TestStorageHandlers:
    """Tests for SLOAD, SSTORE, TLOAD and TSTORE."""

    def test_sstore_sload(self, run):
        storage = Storage()
        result = run(
            [("PUSH1", 42), ("PUSH1", 1), ("SSTORE",), ("PUSH1", 1), ("SLOAD",)],
            tx=make_tx(),
            storage=storage,
        )
        assert result.stack == [42]
        assert storage.get(CONTRACT, 1) == 42
        assert result.storage_root == storage.storage_root()

    def test_sload_absent_is_zero(self, run):
        result = run([("PUSH1", 9), ("SLOAD",)], tx=make_tx())
        assert result.stack == [0]

    def test_transient_storage_is_per_run(self, run):
        storage = Storage()
        result = run(
            [("PUSH1", 5), ("PUSH1", 1), ("TSTORE",), ("PUSH1", 1), ("TLOAD",)],
            tx=make_tx(),
            storage=storage,
        )
        assert result.stack == [5]
        assert storage.get(CONTRACT, 1) == 0
        again = run([("PUSH1", 1), ("TLOAD",)], tx=make_tx(), storage=storage)
        assert again.stack == [0]


class TestHashing:
    """Tests for KECCAK256 and EXTCODEHASH."""

    def test_keccak_empty(self, run):
        result = run([("PUSH0",), ("PUSH0",), ("KECCAK256",)])
        assert result.stack == [EMPTY_KECCAK]
        assert result.memory_size == 0

    def test_keccak_memory(self, run):
        result = run([
            ("PUSH1", 0xFF),
            ("PUSH0",),
            ("MSTORE",),
            ("PUSH1", 32),
            ("PUSH0",),
            ("KECCAK256",),
        ])
        expected = int.from_bytes(keccak((0xFF).to_bytes(32, "big")), "big")
        assert result.stack == [expected]

    def test_extcodehash(self, run):
        storage = Storage()
        code = bytes([0x60, 0x01, 0x00])
        storage.deploy(0xDEAD, code)
        result = run(
            [("PUSH2", 0xDEAD), ("EXTCODEHASH",), ("PUSH2", 0xBEEF), ("EXTCODEHASH",)],
            storage=storage,
        )
        assert result.stack == [int.from_bytes(keccak(code), "big"), 0]


class TestTransactionEnvironment:
    """Tests for transaction and account environment handlers."""

    def test_identity_handlers(self, run):
        result = run(
            [("ADDRESS",), ("CALLER",), ("ORIGIN",), ("CALLVALUE",), ("GASPRICE",)],
            tx=make_tx(origin=0x0B),
        )
        assert result.stack == [CONTRACT, SENDER, 0x0B, 7, 3]

    def test_origin_defaults_to_sender(self):
        assert make_tx().origin == SENDER

    def test_calldata(self, run):
        data = bytes(range(1, 37))
        result = run(
            [("CALLDATASIZE",), ("PUSH1", 4), ("CALLDATALOAD",), ("PUSH1", 200), ("CALLDATALOAD",)],
            tx=make_tx(data=data),
        )
        assert result.stack[0] == 36
        assert result.stack[1] == int.from_bytes(data[4:36], "big")
        assert result.stack[2] == 0

    def test_calldataload_pads_right(self, run):
        result = run([("PUSH1", 34), ("CALLDATALOAD",)], tx=make_tx(data=bytes(range(1, 37))))
        assert result.stack == [int.from_bytes(bytes([35, 36]) + bytes(30), "big")]

    def test_calldatacopy(self, run):
        result = run(
            [
                ("PUSH1", 4),    # size
                ("PUSH1", 2),    # offset in calldata
                ("PUSH0",),      # memory destination
                ("CALLDATACOPY",),
                ("PUSH0",),
                ("MLOAD",),
            ],
            tx=make_tx(data=b"\x01\x02\x03\x04\x05"),
        )
        assert result.stack == [int.from_bytes(b"\x03\x04\x05\x00" + bytes(28), "big")]

    def test_codesize_codecopy(self, run):
        result = run([
            ("CODESIZE",),
            ("PUSH1", 1),
            ("PUSH0",),
            ("PUSH0",),
            ("CODECOPY",),
            ("PUSH0",),
            ("MLOAD",),
        ])
        assert result.stack == [8, 0x38 << 248]

    def test_balances(self, run):
        storage = Storage()
        storage.deploy(CONTRACT, b"", balance=500)
        storage.set_balance(0xB0B, 20)
        result = run(
            [("PUSH2", 0x0B0B), ("BALANCE",), ("SELFBALANCE",)],
            tx=make_tx(),
            storage=storage,
        )
        assert result.stack == [20, 500]

    def test_balance_masks_address(self, run):
        storage = Storage()
        storage.set_balance(0xB0B, 20)
        result = run([("PUSH32", (1 << 200) | 0xB0B), ("BALANCE",)], storage=storage)
        assert result.stack == [20]

    def test_extcode(self, run):
        storage = Storage()
        storage.deploy(0xDEAD, b"\xAA\xBB\xCC")
        result = run(
            [
                ("PUSH2", 0xDEAD),
                ("EXTCODESIZE",),
                ("PUSH1", 2),       # size
                ("PUSH1", 1),       # code offset
                ("PUSH0",),         # memory destination
                ("PUSH2", 0xDEAD),  # address
                ("EXTCODECOPY",),
                ("PUSH0",),
                ("MLOAD",),
            ],
            storage=storage,
        )
        assert result.stack == [3, int.from_bytes(b"\xBB\xCC" + bytes(30), "big")]

    def test_transaction_validation(self):
        with pytest.raises(ValidationError):
            Transaction(to=1 << 160)
        with pytest.raises(ValidationError):
            Transaction(value=-1)
        assert Transaction(data=bytearray(b"\x01")).data == b"\x01"


class TestBlockEnvironment:
    """Tests for block environment handlers."""

    def test_block_fields(self, run):
        block = BlockEnv(
            chain_id=10,
            number=1000,
            timestamp=1_700_000_000,
            gas_limit=25_000_000,
            base_fee=7,
            coinbase=0xC0,
            prevrandao=99,
        )
        result = run(
            [("CHAINID",), ("NUMBER",), ("TIMESTAMP",), ("GASLIMIT",), ("BASEFEE",),
             ("COINBASE",), ("PREVRANDAO",)],
            block=block,
        )
        assert result.stack == [10, 1000, 1_700_000_000, 25_000_000, 7, 0xC0, 99]

    def test_blockhash_window(self, run):
        block = BlockEnv(number=1000, block_hashes={999: 0xAA, 744: 0xBB, 743: 0xCC, 1000: 0xDD})
        result = run(
            [
                ("PUSH2", 999), ("BLOCKHASH",),
                ("PUSH2", 744), ("BLOCKHASH",),
                ("PUSH2", 743), ("BLOCKHASH",),
                ("PUSH2", 1000), ("BLOCKHASH",),
            ],
            block=block,
        )
        assert result.stack == [0xAA, 0xBB, 0, 0]

    def test_block_hashes_must_be_words(self):
        """Oversized or negative block hashes are rejected at construction."""
        with pytest.raises(ValidationError) as exc_info:
            BlockEnv(number=10, block_hashes={5: 1 << 300})
        assert exc_info.value.field == "block_hashes[5]"
        with pytest.raises(ValidationError):
            BlockEnv(number=10, block_hashes={-1: 1})
        with pytest.raises(ValidationError):
            BlockEnv(number=10, block_hashes={5: -1})

    def test_blockhash_max_word(self, run):
        block = BlockEnv(number=10, block_hashes={5: (1 << 256) - 1})
        result = run([("PUSH1", 5), ("BLOCKHASH",), ("STOP",)], block=block)
        assert result.success
        assert result.stack == [(1 << 256) - 1]
