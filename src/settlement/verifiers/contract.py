"""L1 contract verifiers — checks proofs against deployed verifier contracts.

Each backend publishes a verifier contract whose entry point reverts on
an invalid proof and returns nothing otherwise. The adapter performs a
read-only ``eth_call``; a revert or a transport failure is an abort.
"""

from __future__ import annotations

import logging
from typing import Any

from web3 import Web3
from web3.exceptions import ContractLogicError, Web3Exception

from settlement.errors import VerificationFailed
from settlement.models.address import to_checksum
from settlement.models.proof import ProofBackend

logger = logging.getLogger(__name__)

PICO_PROOF_WORDS = 8
WORD_SIZE = 32


def _abi(name: str, inputs: list[tuple[str, str]]) -> list[dict[str, Any]]:
    return [
        {
            "type": "function",
            "name": name,
            "stateMutability": "view",
            "inputs": [{"name": n, "type": t} for n, t in inputs],
            "outputs": [],
        }
    ]


_ENTRY_POINTS: dict[ProofBackend, tuple[str, list[dict[str, Any]]]] = {
    ProofBackend.RISC0: (
        "verify",
        _abi("verify", [("seal", "bytes"), ("imageId", "bytes32"), ("journalDigest", "bytes32")]),
    ),
    ProofBackend.SP1: (
        "verifyProof",
        _abi(
            "verifyProof",
            [("programVKey", "bytes32"), ("publicValues", "bytes"), ("proofBytes", "bytes")],
        ),
    ),
    ProofBackend.PICO: (
        "verifyPicoProof",
        _abi(
            "verifyPicoProof",
            [("riscvVkey", "bytes32"), ("publicValues", "bytes"), ("proof", "uint256[8]")],
        ),
    ),
}


class ContractVerifier:
    """Verifier backed by an on-chain verifier contract.

    Usage:
        w3 = Web3(HTTPProvider(rpc_url))
        verifier = ContractVerifier(ProofBackend.SP1, "0x...", w3)
        verifier.check(program_vkey, public_values, proof_bytes)
    """

    def __init__(self, backend: ProofBackend, address: str, w3: Web3) -> None:
        self.backend = backend
        self.address = to_checksum(address)
        self._function_name, abi = _ENTRY_POINTS[backend]
        self._contract = w3.eth.contract(address=self.address, abi=abi)

    def check(self, program_id: bytes, public_inputs: bytes, proof: bytes) -> None:
        args = self._encode_args(program_id, public_inputs, proof)
        function = getattr(self._contract.functions, self._function_name)
        try:
            function(*args).call()
        except ContractLogicError as exc:
            raise VerificationFailed(f"{self.backend.value} verifier reverted: {exc}") from exc
        except (Web3Exception, OSError) as exc:
            raise VerificationFailed(
                f"{self.backend.value} verifier call failed: {exc}"
            ) from exc
        logger.debug("%s verifier at %s accepted proof", self.backend.value, self.address)

    def _encode_args(
        self, program_id: bytes, public_inputs: bytes, proof: bytes
    ) -> tuple[Any, ...]:
        if len(program_id) != WORD_SIZE:
            raise VerificationFailed(
                f"{self.backend.value} program id must be {WORD_SIZE} bytes, "
                f"got {len(program_id)}"
            )

        if self.backend == ProofBackend.RISC0:
            if len(public_inputs) != WORD_SIZE:
                raise VerificationFailed(
                    f"risc0 journal digest must be {WORD_SIZE} bytes, "
                    f"got {len(public_inputs)}"
                )
            # Contract order: seal, image id, journal digest
            return proof, program_id, public_inputs

        if self.backend == ProofBackend.PICO:
            return program_id, public_inputs, pico_proof_words(proof)

        return program_id, public_inputs, proof


def pico_proof_words(proof: bytes) -> list[int]:
    """Split a Pico proof into its eight big-endian uint256 words."""
    if len(proof) != PICO_PROOF_WORDS * WORD_SIZE:
        raise VerificationFailed(
            f"pico proof must be {PICO_PROOF_WORDS * WORD_SIZE} bytes, got {len(proof)}"
        )
    return [
        int.from_bytes(proof[i:i + WORD_SIZE], "big")
        for i in range(0, len(proof), WORD_SIZE)
    ]
