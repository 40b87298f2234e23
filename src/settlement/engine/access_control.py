"""Access control — one-time initialization and sequencer authorization.

Initialization installs the bridge ledger, one verifier binding per
backend, and the authorized sequencer set. It runs exactly once.
Validation completes before anything is assigned, so a rejected
initialization leaves no trace.

Rules:
1. Every address (bridge, enabled verifiers, sequencers) is well formed,
   non-zero, and different from the proposer's own address.
2. Each backend is bound exactly once.
3. A disabled binding requires development mode.
4. The sequencer set is non-empty.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Optional, Sequence

from settlement.bridge.ledger import DepositLedger
from settlement.errors import AlreadyInitialized, BypassNotPermitted, InvalidAddress
from settlement.models.address import is_zero_address, to_checksum
from settlement.models.proof import BACKEND_ORDER, ProofBackend
from settlement.verifiers.base import VerifierBinding

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AccessRecord:
    """Everything fixed by initialization."""
    bridge: DepositLedger
    bindings: tuple[VerifierBinding, ...]  # in BACKEND_ORDER
    sequencers: frozenset[str]


class AccessControl:
    """Holds the initialization record and answers authorization queries."""

    def __init__(self, self_address: str, dev_mode: bool = False) -> None:
        self._self_address = to_checksum(self_address)
        self._dev_mode = dev_mode
        self._record: Optional[AccessRecord] = None

    @property
    def self_address(self) -> str:
        return self._self_address

    @property
    def dev_mode(self) -> bool:
        return self._dev_mode

    @property
    def initialized(self) -> bool:
        return self._record is not None

    @property
    def record(self) -> Optional[AccessRecord]:
        return self._record

    def is_authorized(self, caller: str) -> bool:
        if self._record is None:
            return False
        try:
            return to_checksum(caller) in self._record.sequencers
        except ValueError:
            return False

    def initialize(
        self,
        bridge: DepositLedger,
        bindings: Sequence[VerifierBinding],
        sequencers: Iterable[str],
    ) -> AccessRecord:
        """Validate and install the initialization record.

        Raises AlreadyInitialized, InvalidAddress or BypassNotPermitted.
        """
        if self._record is not None:
            raise AlreadyInitialized()

        self._check_address("bridge", getattr(bridge, "address", None))

        by_backend: dict[ProofBackend, VerifierBinding] = {}
        for binding in bindings:
            if binding.backend in by_backend:
                raise InvalidAddress(
                    f"{binding.backend.value}_verifier", binding.address, "bound twice"
                )
            by_backend[binding.backend] = binding

        ordered: list[VerifierBinding] = []
        for backend in BACKEND_ORDER:
            field = f"{backend.value}_verifier"
            binding = by_backend.get(backend)
            if binding is None:
                raise InvalidAddress(field, None, "not bound")
            if binding.enabled:
                if binding.verifier is None:
                    raise InvalidAddress(field, None, "enabled without a verifier")
                if binding.verifier.backend != backend:
                    raise InvalidAddress(
                        field, binding.address,
                        f"verifier is for {binding.verifier.backend.value}",
                    )
                self._check_address(field, binding.address)
            elif not self._dev_mode:
                raise BypassNotPermitted(backend.value)
            ordered.append(binding)

        members: set[str] = set()
        for sequencer in sequencers:
            members.add(self._check_address("sequencer", sequencer))
        if not members:
            raise InvalidAddress("sequencers", [], "at least one sequencer is required")

        record = AccessRecord(
            bridge=bridge,
            bindings=tuple(ordered),
            sequencers=frozenset(members),
        )
        self._record = record

        for binding in ordered:
            if not binding.enabled:
                logger.warning(
                    "DEV MODE: %s proof verification is DISABLED", binding.backend.value
                )
        logger.info(
            "Proposer %s initialized: bridge=%s sequencers=%d",
            self._self_address, record.bridge.address, len(members),
        )
        return record

    def _check_address(self, field: str, value: object) -> str:
        if not isinstance(value, str):
            raise InvalidAddress(field, value, "missing")
        try:
            checksummed = to_checksum(value)
        except ValueError:
            raise InvalidAddress(field, value, "malformed")
        if is_zero_address(checksummed):
            raise InvalidAddress(field, value, "zero address")
        if checksummed == self._self_address:
            raise InvalidAddress(field, value, "proposer's own address")
        return checksummed
