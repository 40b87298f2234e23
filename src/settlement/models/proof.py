"""Proof payload models for the three verifier backends.

Each backend receives the same three-part payload; what the parts mean
depends on the backend:

    backend   program_id        public_inputs        proof
    RISC0     image id          journal digest       seal
    SP1       program vkey      public values        proof bytes
    PICO      RISC-V vkey       public values        8 x uint256 words
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any, Mapping

from web3 import Web3


class ProofBackend(str, enum.Enum):
    """Proof systems accepted by the settlement layer."""
    RISC0 = "risc0"
    SP1 = "sp1"
    PICO = "pico"


# Fixed dispatch order for verification fan-out
BACKEND_ORDER: tuple[ProofBackend, ...] = (
    ProofBackend.RISC0,
    ProofBackend.SP1,
    ProofBackend.PICO,
)


@dataclass(frozen=True)
class ProofPayload:
    """One backend's proof for one block."""
    program_id: bytes
    public_inputs: bytes
    proof: bytes

    @staticmethod
    def from_dict(data: Mapping[str, Any]) -> ProofPayload:
        """Parse hex fields. Raises ValueError on any malformed shape."""
        if not isinstance(data, Mapping):
            raise ValueError(f"Proof payload must be an object, got {type(data).__name__}")
        if "program_id" not in data:
            raise ValueError("Proof payload is missing program_id")
        return ProofPayload(
            program_id=_hex_to_bytes("program_id", data["program_id"]),
            public_inputs=_hex_to_bytes("public_inputs", data.get("public_inputs", "0x")),
            proof=_hex_to_bytes("proof", data.get("proof", "0x")),
        )


ProofBundle = Mapping[ProofBackend, ProofPayload]


def proof_bundle_from_dict(data: Mapping[str, Any]) -> dict[ProofBackend, ProofPayload]:
    """Build a proof bundle from ``{"risc0": {...}, "sp1": {...}, ...}``.

    Unknown backend keys and malformed payloads raise ValueError.
    """
    if not isinstance(data, Mapping):
        raise ValueError(f"Proof bundle must be an object, got {type(data).__name__}")
    bundle: dict[ProofBackend, ProofPayload] = {}
    for key, payload in data.items():
        backend = ProofBackend(key)
        try:
            bundle[backend] = ProofPayload.from_dict(payload)
        except ValueError as exc:
            raise ValueError(f"{backend.value}: {exc}") from exc
    return bundle


def _hex_to_bytes(field: str, value: Any) -> bytes:
    if not isinstance(value, str):
        raise ValueError(f"{field} must be a hex string, got {type(value).__name__}")
    text = value if value.startswith(("0x", "0X")) else f"0x{value}"
    return Web3.to_bytes(hexstr=text)
