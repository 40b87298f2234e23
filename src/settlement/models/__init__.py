"""Core data models for the settlement layer."""

from settlement.models.address import ZERO_ADDRESS, to_checksum
from settlement.models.commitment import (
    ZERO_HASH,
    BlockCommitment,
    deposit_count_of,
    to_hash32,
)
from settlement.models.events import BlockCommitted, BlockVerified, Initialized
from settlement.models.proof import (
    BACKEND_ORDER,
    ProofBackend,
    ProofBundle,
    ProofPayload,
)

__all__ = [
    "ZERO_ADDRESS",
    "to_checksum",
    "ZERO_HASH",
    "BlockCommitment",
    "deposit_count_of",
    "to_hash32",
    "BlockCommitted",
    "BlockVerified",
    "Initialized",
    "BACKEND_ORDER",
    "ProofBackend",
    "ProofBundle",
    "ProofPayload",
]
