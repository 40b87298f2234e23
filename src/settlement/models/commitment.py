"""Block commitment record model.

A commitment is the sequencer's claim about one rolled-up block: the
state root it produced, the versioned hash of its published state diff,
and the rolling hash of the deposits it consumed. The low 16 bits of a
non-zero deposit rolling hash carry the number of deposits processed.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Union

from web3 import Web3

HASH_SIZE = 32
ZERO_HASH = bytes(HASH_SIZE)
DEPOSIT_COUNT_MASK = 0xFFFF

HashLike = Union[bytes, bytearray, str]


def to_hash32(value: HashLike) -> bytes:
    """Normalise a 32-byte hash given as bytes or hex (with or without 0x)."""
    if isinstance(value, str):
        text = value if value.startswith(("0x", "0X")) else f"0x{value}"
        raw = Web3.to_bytes(hexstr=text)
    else:
        raw = bytes(value)
    if len(raw) != HASH_SIZE:
        raise ValueError(f"Expected {HASH_SIZE}-byte hash, got {len(raw)} bytes")
    return raw


def is_zero(value: bytes) -> bool:
    return value == ZERO_HASH


def deposit_count_of(rolling_hash: bytes) -> int:
    """Decode the deposit count from the low 16 bits of a rolling hash."""
    if is_zero(rolling_hash):
        return 0
    return int.from_bytes(rolling_hash[-2:], "big") & DEPOSIT_COUNT_MASK


def with_deposit_count(digest: bytes, count: int) -> bytes:
    """Replace the low 16 bits of ``digest`` with ``count``."""
    if not 0 < count <= DEPOSIT_COUNT_MASK:
        raise ValueError(f"Deposit count out of range: {count}")
    return digest[:-2] + count.to_bytes(2, "big")


@dataclass(frozen=True)
class BlockCommitment:
    """Metadata committed for a single rolled-up block height.

    Immutable once stored; a height is either committed with exactly
    this record or absent.
    """
    new_state_root: bytes
    state_diff_commitment: bytes
    deposit_logs_rolling_hash: bytes

    def __post_init__(self) -> None:
        for name in ("new_state_root", "state_diff_commitment", "deposit_logs_rolling_hash"):
            if len(getattr(self, name)) != HASH_SIZE:
                raise ValueError(f"{name} must be {HASH_SIZE} bytes")

    @property
    def deposit_count(self) -> int:
        return deposit_count_of(self.deposit_logs_rolling_hash)

    def to_dict(self) -> dict[str, str]:
        return {
            "new_state_root": "0x" + self.new_state_root.hex(),
            "state_diff_commitment": "0x" + self.state_diff_commitment.hex(),
            "deposit_logs_rolling_hash": "0x" + self.deposit_logs_rolling_hash.hex(),
        }

    @staticmethod
    def from_dict(data: dict[str, Any]) -> BlockCommitment:
        return BlockCommitment(
            new_state_root=to_hash32(data["new_state_root"]),
            state_diff_commitment=to_hash32(data["state_diff_commitment"]),
            deposit_logs_rolling_hash=to_hash32(data["deposit_logs_rolling_hash"]),
        )
