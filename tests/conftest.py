"""Shared fixtures: in-memory ledger, stub verifiers, and a wired-up proposer."""

from __future__ import annotations

import pytest

from settlement.bridge.ledger import InMemoryDepositLedger
from settlement.engine.proposer import OnChainProposer
from settlement.models.proof import ProofBackend
from settlement.verifiers.base import VerifierBinding

from helpers import BRIDGE, COMMITTER, PROPOSER, PROVER, StubVerifier


@pytest.fixture
def ledger() -> InMemoryDepositLedger:
    return InMemoryDepositLedger(BRIDGE)


@pytest.fixture
def verifiers() -> dict[ProofBackend, StubVerifier]:
    return {backend: StubVerifier(backend) for backend in ProofBackend}


@pytest.fixture
def live_bindings(verifiers: dict[ProofBackend, StubVerifier]) -> list[VerifierBinding]:
    return [VerifierBinding.live(v) for v in verifiers.values()]


@pytest.fixture
def proposer(
    ledger: InMemoryDepositLedger,
    live_bindings: list[VerifierBinding],
) -> OnChainProposer:
    """Initialized proposer with all three verifiers live."""
    p = OnChainProposer(PROPOSER)
    p.initialize(ledger, live_bindings, [COMMITTER, PROVER])
    return p
