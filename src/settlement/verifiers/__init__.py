"""Proof verifier adapters."""

from settlement.verifiers.base import Verifier, VerifierBinding
from settlement.verifiers.contract import ContractVerifier

__all__ = ["Verifier", "VerifierBinding", "ContractVerifier"]
