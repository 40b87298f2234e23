"""Deposit ledger adapter — the bridge side of deposit/withdrawal reconciliation.

The bridge keeps a FIFO queue of pending deposit log hashes. A committed
block claims a prefix of that queue by supplying the rolling hash of the
first N entries; once the block is verified, the prefix is removed.
Withdrawal roots are published per block height so withdrawals can later
be proven against them.

Rolling hash of the first N pending entries:

    keccak256(entry_0 || entry_1 || ... || entry_{N-1})
    with its low 16 bits replaced by N (big-endian)
"""

from __future__ import annotations

from typing import Any, Optional, Protocol, runtime_checkable

from web3 import Web3

from settlement.errors import LedgerError
from settlement.models.address import to_checksum
from settlement.models.commitment import (
    DEPOSIT_COUNT_MASK,
    is_zero,
    to_hash32,
    with_deposit_count,
)


@runtime_checkable
class DepositLedger(Protocol):
    """Capability the proposer needs from the bridge."""

    address: str

    def rolling_hash_of(self, count: int) -> bytes:
        ...

    def publish_withdrawals(self, height: int, root: bytes) -> None:
        ...

    def remove_front(self, count: int) -> None:
        ...


def deposit_log_hash(
    to: str,
    recipient: str,
    amount: int,
    gas_limit: int,
    data: bytes = b"",
) -> bytes:
    """Hash a deposit the way the bridge logs it (packed ABI encoding)."""
    return bytes(
        Web3.solidity_keccak(
            ["address", "address", "uint256", "uint256", "bytes32"],
            [
                to_checksum(to),
                to_checksum(recipient),
                amount,
                gas_limit,
                Web3.keccak(data),
            ],
        )
    )


class InMemoryDepositLedger:
    """Process-local bridge ledger.

    Usage:
        ledger = InMemoryDepositLedger("0x...")
        ledger.deposit(deposit_log_hash(alice, alice, 10**18, 105_000))
        claimed = ledger.rolling_hash_of(1)
        ledger.remove_front(1)
    """

    def __init__(self, address: str) -> None:
        self.address = to_checksum(address)
        self._pending: list[bytes] = []
        self._withdrawal_roots: dict[int, bytes] = {}

    # ------------------------------------------------------------------
    # Deposits
    # ------------------------------------------------------------------

    def deposit(self, log_hash: bytes) -> int:
        """Enqueue a deposit log hash. Returns its position in the queue."""
        self._pending.append(to_hash32(log_hash))
        return len(self._pending) - 1

    def pending(self) -> list[bytes]:
        return list(self._pending)

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def rolling_hash_of(self, count: int) -> bytes:
        if count <= 0:
            raise LedgerError("Deposit count must be positive")
        if count > DEPOSIT_COUNT_MASK:
            raise LedgerError(f"Deposit count {count} exceeds {DEPOSIT_COUNT_MASK}")
        if count > len(self._pending):
            raise LedgerError(
                f"Requested {count} deposits but only {len(self._pending)} pending"
            )
        digest = bytes(Web3.keccak(b"".join(self._pending[:count])))
        return with_deposit_count(digest, count)

    def remove_front(self, count: int) -> None:
        if count <= 0:
            raise LedgerError("Deposit count must be positive")
        if count > len(self._pending):
            raise LedgerError(
                f"Cannot remove {count} deposits: only {len(self._pending)} pending"
            )
        del self._pending[:count]

    # ------------------------------------------------------------------
    # Withdrawals
    # ------------------------------------------------------------------

    def publish_withdrawals(self, height: int, root: bytes) -> None:
        if height <= 0:
            raise LedgerError(f"Invalid block height for withdrawals: {height}")
        if is_zero(root):
            raise LedgerError("Withdrawal root is zero")
        if height in self._withdrawal_roots:
            raise LedgerError(f"Withdrawals already published for block {height}")
        self._withdrawal_roots[height] = root

    def withdrawal_root(self, height: int) -> Optional[bytes]:
        return self._withdrawal_roots.get(height)

    # ------------------------------------------------------------------
    # Snapshots
    # ------------------------------------------------------------------

    def snapshot(self) -> tuple[list[bytes], dict[int, bytes]]:
        return list(self._pending), dict(self._withdrawal_roots)

    def restore(self, snapshot: tuple[list[bytes], dict[int, bytes]]) -> None:
        pending, roots = snapshot
        self._pending = list(pending)
        self._withdrawal_roots = dict(roots)

    def to_dict(self) -> dict[str, Any]:
        return {
            "address": self.address,
            "pending": ["0x" + h.hex() for h in self._pending],
            "withdrawal_roots": {
                str(height): "0x" + root.hex()
                for height, root in sorted(self._withdrawal_roots.items())
            },
        }

    @staticmethod
    def from_dict(data: dict[str, Any]) -> InMemoryDepositLedger:
        ledger = InMemoryDepositLedger(data["address"])
        ledger._pending = [to_hash32(h) for h in data.get("pending", [])]
        ledger._withdrawal_roots = {
            int(height): to_hash32(root)
            for height, root in data.get("withdrawal_roots", {}).items()
        }
        return ledger
