"""State store — durable JSON snapshot of the proposer and bridge ledger.

The snapshot holds what is needed to resume after a restart: the
initialization record (as addresses), the counters, the retained
commitments, and the in-memory ledger's queue and withdrawal roots.
Writes go to a temporary file that then replaces the previous snapshot,
so a crash mid-write never leaves a truncated state file behind.
"""

from __future__ import annotations

import json
import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

from settlement.bridge.ledger import InMemoryDepositLedger
from settlement.engine.proposer import OnChainProposer, ProposerSnapshot
from settlement.models.proof import ProofBackend

STATE_VERSION = 1


@dataclass
class StoredState:
    proposer_address: str
    validium: bool
    dev_mode: bool
    snapshot: ProposerSnapshot
    initialized: bool = False
    bridge_address: Optional[str] = None
    verifiers: dict[ProofBackend, dict[str, Any]] = field(default_factory=dict)
    sequencers: list[str] = field(default_factory=list)
    ledger: Optional[InMemoryDepositLedger] = None


class StateStore:
    """Reads and writes the settlement state snapshot."""

    def __init__(self, storage_path: Path) -> None:
        self._storage_path = storage_path

    @property
    def storage_path(self) -> Path:
        return self._storage_path

    def save(
        self,
        proposer: OnChainProposer,
        ledger: Optional[InMemoryDepositLedger] = None,
    ) -> None:
        bridge = proposer.bridge
        document = {
            "version": STATE_VERSION,
            "proposer": {
                "address": proposer.address,
                "validium": proposer.validium,
                "dev_mode": proposer.dev_mode,
                "initialized": proposer.is_initialized,
                "bridge": bridge.address if bridge is not None else None,
                "verifiers": {b.backend.value: b.describe() for b in proposer.bindings},
                "sequencers": sorted(proposer.sequencers),
                "state": proposer.snapshot().to_dict(),
            },
            "ledger": ledger.to_dict() if ledger is not None else None,
        }
        self._write_atomic(json.dumps(document, indent=2, sort_keys=True))

    def load(self) -> Optional[StoredState]:
        """Load the snapshot, or None when no state has been saved yet."""
        if not self._storage_path.exists():
            return None
        document = json.loads(self._storage_path.read_text(encoding="utf-8"))
        version = document.get("version")
        if version != STATE_VERSION:
            raise ValueError(f"Unsupported state version: {version}")

        proposer = document["proposer"]
        ledger_data = document.get("ledger")
        return StoredState(
            proposer_address=proposer["address"],
            validium=bool(proposer["validium"]),
            dev_mode=bool(proposer["dev_mode"]),
            snapshot=ProposerSnapshot.from_dict(proposer["state"]),
            initialized=bool(proposer["initialized"]),
            bridge_address=proposer.get("bridge"),
            verifiers={
                ProofBackend(name): dict(binding)
                for name, binding in proposer.get("verifiers", {}).items()
            },
            sequencers=list(proposer.get("sequencers", [])),
            ledger=(
                InMemoryDepositLedger.from_dict(ledger_data)
                if ledger_data is not None
                else None
            ),
        )

    def _write_atomic(self, text: str) -> None:
        self._storage_path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            dir=self._storage_path.parent, prefix=".state-", suffix=".json"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(text)
            os.replace(tmp_name, self._storage_path)
        except BaseException:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise
