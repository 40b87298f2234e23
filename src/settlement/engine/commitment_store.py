"""Commitment store — block height to committed block metadata.

Append-only except for pruning. Presence is explicit: a height is
committed iff it has an entry, whatever the entry's state root is.
"""

from __future__ import annotations

from typing import Iterator, Optional

from settlement.errors import DuplicateCommit
from settlement.models.commitment import BlockCommitment


class CommitmentStore:

    def __init__(self) -> None:
        self._commitments: dict[int, BlockCommitment] = {}

    def __contains__(self, height: object) -> bool:
        return height in self._commitments

    def __iter__(self) -> Iterator[int]:
        return iter(sorted(self._commitments))

    def get(self, height: int) -> Optional[BlockCommitment]:
        return self._commitments.get(height)

    def put(self, height: int, commitment: BlockCommitment) -> None:
        """Store a commitment. Never overwrites an existing entry."""
        if height in self._commitments:
            raise DuplicateCommit(height)
        self._commitments[height] = commitment

    def prune(self, height: int) -> bool:
        """Delete the entry at ``height``. Returns whether one existed."""
        return self._commitments.pop(height, None) is not None

    def snapshot(self) -> dict[int, BlockCommitment]:
        return dict(self._commitments)

    def restore(self, snapshot: dict[int, BlockCommitment]) -> None:
        self._commitments = dict(snapshot)
