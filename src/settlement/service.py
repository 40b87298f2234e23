"""Settlement service — facade wiring the proposer to its collaborators.

This is the primary interface for operators and the CLI. It owns:
- the OnChainProposer state machine,
- the in-memory bridge ledger,
- verifier construction from configured addresses,
- persistence (event log, state store).

Operations return a ServiceResult. A failed operation carries the abort
reason in ``errors`` and is logged; nothing is persisted for it. Every
successful operation is appended to the event log before the state
snapshot is written; a snapshot that cannot be written is reported as a
failure carrying the operation's data.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping, Optional, Sequence

from web3 import HTTPProvider, Web3

from settlement.bridge.ledger import InMemoryDepositLedger
from settlement.config import ProposerSettings
from settlement.engine.proposer import OnChainProposer
from settlement.errors import ConfigError, SettlementError
from settlement.models.commitment import ZERO_HASH, HashLike, to_hash32
from settlement.models.proof import BACKEND_ORDER, ProofBackend, ProofPayload
from settlement.persistence.event_log import EventKind, EventLog
from settlement.persistence.state_store import StateStore
from settlement.verifiers.base import Verifier, VerifierBinding
from settlement.verifiers.contract import ContractVerifier

logger = logging.getLogger(__name__)

VerifierFactory = Callable[[ProofBackend, str], Verifier]


@dataclass(frozen=True)
class ServiceResult:
    """Result of a service operation."""
    success: bool
    errors: list[str] = field(default_factory=list)
    data: dict[str, Any] = field(default_factory=dict)


def contract_verifier_factory(rpc_url: Optional[str]) -> VerifierFactory:
    """Factory building ContractVerifiers that share one L1 connection."""
    w3: Optional[Web3] = None

    def build(backend: ProofBackend, address: str) -> Verifier:
        nonlocal w3
        if rpc_url is None:
            raise ConfigError(
                f"ETH_RPC_URL is required to reach the {backend.value} verifier"
            )
        if w3 is None:
            w3 = Web3(HTTPProvider(rpc_url))
        return ContractVerifier(backend, address, w3)

    return build


class SettlementService:
    """Unified settlement facade.

    Usage:
        settings = load_settings(Path(".env"))
        service = SettlementService.from_settings(settings)
        service.initialize()
        service.commit_block(committer, 1, state_root, diff_hash)
        service.verify_block(committer, 1, proofs)
    """

    def __init__(
        self,
        proposer: OnChainProposer,
        ledger: InMemoryDepositLedger,
        settings: Optional[ProposerSettings] = None,
        event_log: Optional[EventLog] = None,
        state_store: Optional[StateStore] = None,
        verifier_factory: Optional[VerifierFactory] = None,
    ) -> None:
        self._proposer = proposer
        self._ledger = ledger
        self._settings = settings
        self._event_log = event_log if event_log is not None else EventLog()
        self._state_store = state_store
        self._verifier_factory = verifier_factory or contract_verifier_factory(
            settings.eth_rpc_url if settings is not None else None
        )

    @classmethod
    def from_settings(
        cls,
        settings: ProposerSettings,
        verifier_factory: Optional[VerifierFactory] = None,
    ) -> SettlementService:
        """Create a service with durable persistence under settings.data_dir.

        Previously saved state is restored; it must belong to the
        configured proposer address.
        """
        settings.data_dir.mkdir(parents=True, exist_ok=True)
        event_log = EventLog(storage_path=settings.data_dir / "events.jsonl")
        state_store = StateStore(settings.data_dir / "state.json")
        factory = verifier_factory or contract_verifier_factory(settings.eth_rpc_url)

        stored = state_store.load()
        if stored is None:
            proposer = OnChainProposer(
                settings.proposer_address,
                validium=settings.validium,
                dev_mode=settings.dev_mode,
            )
            ledger = InMemoryDepositLedger(settings.bridge_address)
        else:
            if stored.proposer_address != settings.proposer_address:
                raise ConfigError(
                    f"State in {state_store.storage_path} belongs to proposer "
                    f"{stored.proposer_address}, not {settings.proposer_address}"
                )
            proposer = OnChainProposer(
                stored.proposer_address,
                validium=stored.validium,
                dev_mode=stored.dev_mode,
            )
            ledger = stored.ledger or InMemoryDepositLedger(settings.bridge_address)
            if stored.initialized:
                bindings = [
                    _binding(factory, backend, stored.verifiers.get(backend, {}))
                    for backend in BACKEND_ORDER
                ]
                proposer.restore(stored.snapshot, ledger, bindings, stored.sequencers)
            logger.info(
                "Restored proposer state: committed=%d verified=%d",
                proposer.last_committed_block, proposer.last_verified_block,
            )

        return cls(
            proposer,
            ledger,
            settings=settings,
            event_log=event_log,
            state_store=state_store,
            verifier_factory=factory,
        )

    @property
    def proposer(self) -> OnChainProposer:
        return self._proposer

    @property
    def ledger(self) -> InMemoryDepositLedger:
        return self._ledger

    @property
    def event_log(self) -> EventLog:
        return self._event_log

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def initialize(
        self,
        bindings: Optional[Sequence[VerifierBinding]] = None,
        sequencers: Optional[Sequence[str]] = None,
        actor_id: str = "deployer",
    ) -> ServiceResult:
        """Run the one-time proposer initialization.

        Bindings and sequencers default to the configured settings.
        """
        def run() -> dict[str, Any]:
            chosen_bindings = bindings
            chosen_sequencers = sequencers
            if chosen_bindings is None or chosen_sequencers is None:
                if self._settings is None:
                    raise ConfigError("No settings to initialize from")
                if chosen_bindings is None:
                    chosen_bindings = [
                        _binding(
                            self._verifier_factory,
                            v.backend,
                            {"address": v.address, "enabled": v.enabled},
                        )
                        for v in self._settings.verifiers
                    ]
                if chosen_sequencers is None:
                    chosen_sequencers = self._settings.sequencers
            event = self._proposer.initialize(self._ledger, chosen_bindings, chosen_sequencers)
            return self._record(EventKind.PROPOSER_INITIALIZED, actor_id, event.payload())

        return self._run("initialize", run)

    def deposit(self, log_hash: HashLike, actor_id: str = "bridge") -> ServiceResult:
        """Enqueue a pending deposit on the bridge ledger."""
        def run() -> dict[str, Any]:
            digest = to_hash32(log_hash)
            index = self._ledger.deposit(digest)
            return self._record(
                EventKind.DEPOSIT_ENQUEUED,
                actor_id,
                {"index": index, "log_hash": "0x" + digest.hex()},
            )

        return self._run("deposit", run)

    def deposit_rolling_hash(self, count: int) -> ServiceResult:
        """Rolling hash a sequencer would claim for the next ``count`` deposits."""
        def run() -> dict[str, Any]:
            return {"count": count, "rolling_hash": "0x" + self._ledger.rolling_hash_of(count).hex()}

        return self._run("deposit_rolling_hash", run, persist=False)

    def commit_block(
        self,
        caller: str,
        height: int,
        new_state_root: HashLike,
        state_diff_commitment: HashLike,
        withdrawals_root: HashLike = ZERO_HASH,
        deposit_logs_rolling_hash: HashLike = ZERO_HASH,
    ) -> ServiceResult:
        def run() -> dict[str, Any]:
            event = self._proposer.commit(
                caller,
                height,
                new_state_root,
                state_diff_commitment,
                withdrawals_root,
                deposit_logs_rolling_hash,
            )
            return self._record(EventKind.BLOCK_COMMITTED, caller, event.payload())

        return self._run("commit", run)

    def verify_block(
        self,
        caller: str,
        height: int,
        proofs: Mapping[ProofBackend, ProofPayload],
    ) -> ServiceResult:
        def run() -> dict[str, Any]:
            event = self._proposer.verify(caller, height, proofs)
            return self._record(EventKind.BLOCK_VERIFIED, caller, event.payload())

        return self._run("verify", run)

    def commitment(self, height: int) -> ServiceResult:
        record = self._proposer.commitment_at(height)
        if record is None:
            return ServiceResult(
                success=False,
                errors=[f"No commitment stored for block {height}"],
            )
        data = {"height": height, **record.to_dict(), "deposit_count": record.deposit_count}
        return ServiceResult(success=True, data=data)

    def status(self) -> dict[str, Any]:
        p = self._proposer
        return {
            "proposer": p.address,
            "initialized": p.is_initialized,
            "validium": p.validium,
            "dev_mode": p.dev_mode,
            "last_committed_block": p.last_committed_block,
            "last_verified_block": p.last_verified_block,
            "retained_commitments": p.committed_heights(),
            "verifiers": {b.backend.value: b.describe() for b in p.bindings},
            "sequencers": sorted(p.sequencers),
            "bridge": {
                "address": self._ledger.address,
                "pending_deposits": self._ledger.pending_count,
            },
            "events": self._event_log.count,
        }

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _run(
        self,
        action: str,
        fn: Callable[[], dict[str, Any]],
        persist: bool = True,
    ) -> ServiceResult:
        try:
            data = fn()
        except (SettlementError, ValueError) as exc:
            logger.error("%s failed: %s", action, exc)
            return ServiceResult(success=False, errors=[str(exc)])
        if persist and self._state_store is not None:
            try:
                self._state_store.save(self._proposer, self._ledger)
            except OSError as exc:
                # The operation itself took effect; only the snapshot is stale
                logger.error("%s applied but state was not saved: %s", action, exc)
                return ServiceResult(
                    success=False,
                    errors=[f"{action} applied but state was not saved: {exc}"],
                    data=data,
                )
        return ServiceResult(success=True, data=data)

    def _record(self, kind: EventKind, actor_id: str, payload: dict[str, Any]) -> dict[str, Any]:
        event = self._event_log.record(kind, actor_id, payload)
        return {"event_id": event.event_id, **payload}


def _binding(
    factory: VerifierFactory,
    backend: ProofBackend,
    described: Mapping[str, Any],
) -> VerifierBinding:
    if not described.get("enabled", True):
        return VerifierBinding.disabled(backend)
    address = described.get("address")
    if address is None:
        raise ConfigError(f"No address configured for enabled {backend.value} verifier")
    return VerifierBinding.live(factory(backend, address))
