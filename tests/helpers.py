"""Test helpers: addresses, hashes and stub verifiers shared across suites."""

from __future__ import annotations

from typing import Optional

from settlement.errors import VerificationFailed
from settlement.models.address import to_checksum
from settlement.models.proof import ProofBackend, ProofPayload


PROPOSER = to_checksum("0x" + "11" * 20)
BRIDGE = to_checksum("0x" + "22" * 20)
COMMITTER = to_checksum("0x" + "33" * 20)
PROVER = to_checksum("0x" + "44" * 20)
OUTSIDER = to_checksum("0x" + "55" * 20)
VERIFIER_ADDRESSES = {
    ProofBackend.RISC0: to_checksum("0x" + "a1" * 20),
    ProofBackend.SP1: to_checksum("0x" + "a2" * 20),
    ProofBackend.PICO: to_checksum("0x" + "a3" * 20),
}


def h(n: int) -> bytes:
    """Deterministic 32-byte test hash."""
    return n.to_bytes(32, "big")


class StubVerifier:
    """Verifier that accepts only proofs equal to ``b"valid"``.

    ``journal`` may be shared between stubs to observe dispatch order.
    """

    def __init__(
        self,
        backend: ProofBackend,
        address: str | None = None,
        journal: Optional[list[ProofBackend]] = None,
    ) -> None:
        self.backend = backend
        self.address = address or VERIFIER_ADDRESSES[backend]
        self.calls: list[tuple[bytes, bytes, bytes]] = []
        self.journal = journal

    def check(self, program_id: bytes, public_inputs: bytes, proof: bytes) -> None:
        self.calls.append((program_id, public_inputs, proof))
        if self.journal is not None:
            self.journal.append(self.backend)
        if proof != b"valid":
            raise VerificationFailed(f"{self.backend.value}: bad proof")


def valid_proofs() -> dict[ProofBackend, ProofPayload]:
    return {
        backend: ProofPayload(program_id=h(100), public_inputs=b"inputs", proof=b"valid")
        for backend in ProofBackend
    }
