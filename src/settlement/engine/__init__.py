"""Settlement engine — commit/verify state machine and access control."""

from settlement.engine.access_control import AccessControl, AccessRecord
from settlement.engine.commitment_store import CommitmentStore
from settlement.engine.proposer import OnChainProposer, ProposerSnapshot

__all__ = [
    "AccessControl",
    "AccessRecord",
    "CommitmentStore",
    "OnChainProposer",
    "ProposerSnapshot",
]
