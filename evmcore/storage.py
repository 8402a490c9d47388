"""
evmcore Account Storage

Per-address account records holding immutable code, a balance and a
persistent slot map. Reads never fail: an unknown address or an unset slot
resolves to zero (or to empty code).

Copyright (c) 2026 Momentum. All rights reserved.
Contact: engineering@momentum.inc
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Dict, Iterator, Optional

from evmcore.hardening import CryptoUtils, Validators
from evmcore.word import word_to_bytes


@dataclass(frozen=True)
class AccountRecord:
    """Code, balance and slots of one address."""
    code: bytes = b""
    balance: int = 0
    slots: Dict[int, int] = field(default_factory=dict, compare=False)


class Storage:
    """
    Mapping from address to AccountRecord.

    Example:
        storage = Storage()
        storage.deploy(0xC0DE, bytes([0x60, 0x01, 0x00]))
        storage.set(0xC0DE, 0, 42)
        assert storage.get(0xC0DE, 0) == 42
        assert storage.get(0xBEEF, 7) == 0
    """

    def __init__(self, accounts: Optional[Dict[int, AccountRecord]] = None):
        self._accounts: Dict[int, AccountRecord] = dict(accounts or {})

    def __contains__(self, address: int) -> bool:
        return address in self._accounts

    def __len__(self) -> int:
        return len(self._accounts)

    # -------------------------------------------------------------------------
    # Slots
    # -------------------------------------------------------------------------

    def get(self, address: int, key: int) -> int:
        """Slot value, zero when the address or key is absent."""
        record = self._accounts.get(address)
        if record is None:
            return 0
        return record.slots.get(key, 0)

    def set(self, address: int, key: int, value: int) -> None:
        """Write a slot, creating the account if needed. Zero clears it."""
        Validators.validate_address(address, "address")
        record = self._accounts.get(address)
        if record is None:
            record = AccountRecord()
            self._accounts[address] = record
        if value == 0:
            record.slots.pop(key, None)
        else:
            record.slots[key] = value

    # -------------------------------------------------------------------------
    # Accounts
    # -------------------------------------------------------------------------

    def deploy(self, address: int, code: bytes, balance: int = 0) -> AccountRecord:
        """Install code at an address, keeping any existing slots."""
        Validators.validate_address(address, "address")
        code = Validators.validate_bytes(code, "code")
        Validators.validate_uint(balance, "balance")
        existing = self._accounts.get(address)
        slots = existing.slots if existing is not None else {}
        record = AccountRecord(code=code, balance=balance, slots=slots)
        self._accounts[address] = record
        return record

    def account(self, address: int) -> Optional[AccountRecord]:
        return self._accounts.get(address)

    def has_account(self, address: int) -> bool:
        return address in self._accounts

    def code_of(self, address: int) -> bytes:
        """Code at an address, empty when unknown."""
        record = self._accounts.get(address)
        if record is None:
            return b""
        return record.code

    def balance_of(self, address: int) -> int:
        record = self._accounts.get(address)
        if record is None:
            return 0
        return record.balance

    def set_balance(self, address: int, amount: int) -> None:
        Validators.validate_address(address, "address")
        Validators.validate_uint(amount, "balance")
        record = self._accounts.get(address) or AccountRecord()
        self._accounts[address] = replace(record, balance=amount)

    def addresses(self) -> Iterator[int]:
        return iter(sorted(self._accounts))

    def copy(self) -> "Storage":
        """Independent copy; slot maps are not shared."""
        return Storage({
            address: replace(record, slots=dict(record.slots))
            for address, record in self._accounts.items()
        })

    # -------------------------------------------------------------------------
    # Commitment
    # -------------------------------------------------------------------------

    def storage_root(self) -> str:
        """Deterministic Merkle root over every (address, key, value) slot."""
        leaves = []
        for address in sorted(self._accounts):
            slots = self._accounts[address].slots
            for key in sorted(slots):
                leaf_data = address.to_bytes(20, "big") + word_to_bytes(key) + word_to_bytes(slots[key])
                leaves.append(CryptoUtils.hash_sha256(leaf_data))
        return CryptoUtils.merkle_root(leaves)
