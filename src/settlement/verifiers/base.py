"""Verifier capability and per-backend bindings.

A verifier either accepts a proof (returns) or aborts (raises). The
proposer holds exactly one binding per backend; a binding is either
live (carries a verifier) or explicitly disabled, which is only
permitted in development mode.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional, Protocol, runtime_checkable

from settlement.models.proof import ProofBackend


@runtime_checkable
class Verifier(Protocol):
    """Pass/abort proof check for a single backend."""

    backend: ProofBackend
    address: str

    def check(self, program_id: bytes, public_inputs: bytes, proof: bytes) -> Any:
        ...


@dataclass(frozen=True)
class VerifierBinding:
    """How the proposer treats one backend."""
    backend: ProofBackend
    verifier: Optional[Verifier]
    enabled: bool

    @staticmethod
    def live(verifier: Verifier) -> VerifierBinding:
        return VerifierBinding(backend=verifier.backend, verifier=verifier, enabled=True)

    @staticmethod
    def disabled(backend: ProofBackend) -> VerifierBinding:
        """Development-mode binding: proofs for this backend are not checked."""
        return VerifierBinding(backend=backend, verifier=None, enabled=False)

    @property
    def address(self) -> Optional[str]:
        return self.verifier.address if self.verifier is not None else None

    def describe(self) -> dict[str, Any]:
        return {"address": self.address, "enabled": self.enabled}
