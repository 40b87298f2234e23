"""Notifications emitted by the proposer for external indexers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Union


@dataclass(frozen=True)
class Initialized:
    bridge: str
    verifiers: dict[str, Any]
    sequencers: tuple[str, ...]

    def payload(self) -> dict[str, Any]:
        return {
            "bridge": self.bridge,
            "verifiers": dict(self.verifiers),
            "sequencers": list(self.sequencers),
        }


@dataclass(frozen=True)
class BlockCommitted:
    height: int
    new_state_root: bytes

    def payload(self) -> dict[str, Any]:
        return {
            "height": self.height,
            "new_state_root": "0x" + self.new_state_root.hex(),
        }


@dataclass(frozen=True)
class BlockVerified:
    height: int

    def payload(self) -> dict[str, Any]:
        return {"height": self.height}


ProposerEvent = Union[Initialized, BlockCommitted, BlockVerified]
