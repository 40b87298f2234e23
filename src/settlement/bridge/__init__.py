"""Bridge adapters — deposit queue and withdrawal publication."""

from settlement.bridge.ledger import DepositLedger, InMemoryDepositLedger, deposit_log_hash

__all__ = ["DepositLedger", "InMemoryDepositLedger", "deposit_log_hash"]
