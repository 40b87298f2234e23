"""On-chain proposer — the commit/verify state machine.

Each block height moves through:

    absent → committed → verified → pruned

``commit`` performs absent → committed, ``verify`` performs
committed → verified and prunes the predecessor. Counters only move
forward, one height at a time, and an existing commitment is never
overwritten.

Every public mutating call is atomic: it holds the proposer lock for its
whole duration and restores the prior state (including the bridge
ledger's, when the ledger supports snapshots) if anything raises.
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Iterable, Iterator, Optional, Sequence

from settlement.bridge.ledger import DepositLedger
from settlement.engine.access_control import AccessControl, AccessRecord
from settlement.engine.commitment_store import CommitmentStore
from settlement.errors import (
    DepositMismatch,
    DuplicateCommit,
    LedgerError,
    OutOfOrderCommit,
    OutOfOrderVerify,
    ProofRejected,
    Unauthorized,
    UncommittedBlock,
)
from settlement.models.commitment import (
    BlockCommitment,
    HashLike,
    deposit_count_of,
    is_zero,
    to_hash32,
)
from settlement.models.events import (
    BlockCommitted,
    BlockVerified,
    Initialized,
    ProposerEvent,
)
from settlement.models.proof import ProofBundle
from settlement.verifiers.base import VerifierBinding

logger = logging.getLogger(__name__)


@dataclass
class _Counters:
    last_committed_block: int = 0
    last_verified_block: int = 0


@dataclass
class ProposerSnapshot:
    """Restorable view of the proposer's mutable state."""
    last_committed_block: int
    last_verified_block: int
    commitments: dict[int, BlockCommitment] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "last_committed_block": self.last_committed_block,
            "last_verified_block": self.last_verified_block,
            "commitments": {
                str(h): c.to_dict() for h, c in sorted(self.commitments.items())
            },
        }

    @staticmethod
    def from_dict(data: dict[str, Any]) -> ProposerSnapshot:
        return ProposerSnapshot(
            last_committed_block=int(data["last_committed_block"]),
            last_verified_block=int(data["last_verified_block"]),
            commitments={
                int(h): BlockCommitment.from_dict(c)
                for h, c in data.get("commitments", {}).items()
            },
        )


class OnChainProposer:
    """Sequencing controller for rollup block commitments and proofs.

    Usage:
        proposer = OnChainProposer("0xProposer...", validium=False)
        proposer.initialize(ledger, bindings, sequencers=[committer])
        proposer.commit(committer, 1, state_root, diff_hash, ZERO_HASH, ZERO_HASH)
        proposer.verify(committer, 1, {ProofBackend.RISC0: payload, ...})
    """

    def __init__(
        self,
        address: str,
        validium: bool = False,
        dev_mode: bool = False,
    ) -> None:
        self._access = AccessControl(address, dev_mode=dev_mode)
        self._validium = validium
        self._store = CommitmentStore()
        self._counters = _Counters()
        self._events: list[ProposerEvent] = []
        self._lock = threading.RLock()

    # ------------------------------------------------------------------
    # Read surface
    # ------------------------------------------------------------------

    @property
    def address(self) -> str:
        return self._access.self_address

    @property
    def validium(self) -> bool:
        return self._validium

    @property
    def dev_mode(self) -> bool:
        return self._access.dev_mode

    @property
    def is_initialized(self) -> bool:
        return self._access.initialized

    @property
    def last_committed_block(self) -> int:
        return self._counters.last_committed_block

    @property
    def last_verified_block(self) -> int:
        return self._counters.last_verified_block

    @property
    def bridge(self) -> Optional[DepositLedger]:
        record = self._access.record
        return record.bridge if record is not None else None

    @property
    def bindings(self) -> tuple[VerifierBinding, ...]:
        record = self._access.record
        return record.bindings if record is not None else ()

    @property
    def sequencers(self) -> frozenset[str]:
        record = self._access.record
        return record.sequencers if record is not None else frozenset()

    def commitment_at(self, height: int) -> Optional[BlockCommitment]:
        """Commitment for ``height``; None if never committed or pruned."""
        return self._store.get(height)

    def committed_heights(self) -> list[int]:
        return list(self._store)

    def events(self) -> list[ProposerEvent]:
        return list(self._events)

    def snapshot(self) -> ProposerSnapshot:
        with self._lock:
            return ProposerSnapshot(
                last_committed_block=self._counters.last_committed_block,
                last_verified_block=self._counters.last_verified_block,
                commitments=self._store.snapshot(),
            )

    # ------------------------------------------------------------------
    # Initialization
    # ------------------------------------------------------------------

    def initialize(
        self,
        bridge: DepositLedger,
        bindings: Sequence[VerifierBinding],
        sequencers: Iterable[str],
    ) -> Initialized:
        """One-time installation of the bridge, verifiers and sequencers."""
        with self._lock:
            record = self._access.initialize(bridge, bindings, sequencers)
            event = Initialized(
                bridge=record.bridge.address,
                verifiers={b.backend.value: b.describe() for b in record.bindings},
                sequencers=tuple(sorted(record.sequencers)),
            )
            self._events.append(event)
            return event

    def restore(
        self,
        snapshot: ProposerSnapshot,
        bridge: DepositLedger,
        bindings: Sequence[VerifierBinding],
        sequencers: Iterable[str],
    ) -> None:
        """Rebuild a previously initialized proposer from persisted state."""
        with self._lock:
            if snapshot.last_verified_block > snapshot.last_committed_block:
                raise ValueError(
                    f"Corrupt snapshot: verified {snapshot.last_verified_block} "
                    f"> committed {snapshot.last_committed_block}"
                )
            self._access.initialize(bridge, bindings, sequencers)
            self._counters = _Counters(
                last_committed_block=snapshot.last_committed_block,
                last_verified_block=snapshot.last_verified_block,
            )
            self._store.restore(snapshot.commitments)

    # ------------------------------------------------------------------
    # Commit
    # ------------------------------------------------------------------

    def commit(
        self,
        caller: str,
        height: int,
        new_state_root: HashLike,
        state_diff_commitment: HashLike,
        withdrawals_root: HashLike,
        deposit_logs_rolling_hash: HashLike,
    ) -> BlockCommitted:
        """Commit block ``height``.

        Raises Unauthorized, OutOfOrderCommit, DuplicateCommit or
        DepositMismatch; ledger errors from withdrawal publication
        propagate unchanged. Hashes are normalised only after the caller
        is authorized, so a malformed hash from an outsider is still
        reported as Unauthorized.
        """
        with self._transaction() as record:
            if record is None or not self._access.is_authorized(caller):
                raise Unauthorized(caller)
            new_state_root = to_hash32(new_state_root)
            state_diff_commitment = to_hash32(state_diff_commitment)
            withdrawals_root = to_hash32(withdrawals_root)
            deposit_logs_rolling_hash = to_hash32(deposit_logs_rolling_hash)

            expected = self._counters.last_committed_block + 1
            if height != expected:
                if 0 < height < expected:
                    raise DuplicateCommit(height, expected)
                raise OutOfOrderCommit(height, expected)
            if height in self._store:
                raise DuplicateCommit(height)

            if not is_zero(deposit_logs_rolling_hash):
                self._check_deposits(record.bridge, deposit_logs_rolling_hash)

            if not is_zero(withdrawals_root):
                record.bridge.publish_withdrawals(height, withdrawals_root)

            self._store.put(
                height,
                BlockCommitment(
                    new_state_root=new_state_root,
                    state_diff_commitment=state_diff_commitment,
                    deposit_logs_rolling_hash=deposit_logs_rolling_hash,
                ),
            )
            self._counters.last_committed_block = height
            event = BlockCommitted(height=height, new_state_root=new_state_root)
            self._events.append(event)

        logger.info("Committed block %d (state root 0x%s)", height, new_state_root.hex())
        return event

    def _check_deposits(self, bridge: DepositLedger, supplied: bytes) -> None:
        count = deposit_count_of(supplied)
        try:
            expected = bridge.rolling_hash_of(count)
        except LedgerError as exc:
            raise DepositMismatch(supplied, None) from exc
        if expected != supplied:
            raise DepositMismatch(supplied, expected)

    # ------------------------------------------------------------------
    # Verify
    # ------------------------------------------------------------------

    def verify(self, caller: str, height: int, proofs: ProofBundle) -> BlockVerified:
        """Verify block ``height`` against every enabled backend.

        Check order is ordering, then existence, then authorization; a
        pruned height therefore reports OutOfOrderVerify rather than
        UncommittedBlock.
        """
        with self._transaction() as record:
            expected = self._counters.last_verified_block + 1
            if height != expected:
                raise OutOfOrderVerify(height, expected)
            commitment = self._store.get(height)
            if commitment is None:
                raise UncommittedBlock(height)
            if record is None or not self._access.is_authorized(caller):
                raise Unauthorized(caller)

            for binding in record.bindings:
                self._run_check(binding, proofs)

            self._counters.last_verified_block = height

            deposits = commitment.deposit_count
            if deposits > 0:
                record.bridge.remove_front(deposits)

            self._store.prune(height - 1)
            event = BlockVerified(height=height)
            self._events.append(event)

        logger.info("Verified block %d", height)
        return event

    def _run_check(self, binding: VerifierBinding, proofs: ProofBundle) -> None:
        backend = binding.backend.value
        if not binding.enabled:
            logger.warning("DEV MODE: skipping %s proof verification", backend)
            return

        payload = proofs.get(binding.backend)
        if payload is None:
            logger.error("No %s proof supplied", backend)
            raise ProofRejected(backend, "no proof supplied")

        try:
            result = binding.verifier.check(
                payload.program_id, payload.public_inputs, payload.proof
            )
        except Exception as exc:
            logger.error("%s verifier rejected proof: %s", backend, exc)
            raise ProofRejected(backend, str(exc)) from exc
        # A verifier that reports failure by return value is still a failure
        if result is False:
            logger.error("%s verifier returned false", backend)
            raise ProofRejected(backend, "verifier returned false")

    # ------------------------------------------------------------------
    # Atomicity
    # ------------------------------------------------------------------

    @contextmanager
    def _transaction(self) -> Iterator[Optional[AccessRecord]]:
        """Serialise the call and undo all of its effects if it raises."""
        with self._lock:
            record = self._access.record
            counters = _Counters(
                self._counters.last_committed_block,
                self._counters.last_verified_block,
            )
            commitments = self._store.snapshot()
            bridge = record.bridge if record is not None else None
            bridge_state = (
                bridge.snapshot()
                if bridge is not None and hasattr(bridge, "snapshot")
                else None
            )
            try:
                yield record
            except BaseException:
                self._counters = counters
                self._store.restore(commitments)
                if bridge_state is not None:
                    bridge.restore(bridge_state)
                raise
