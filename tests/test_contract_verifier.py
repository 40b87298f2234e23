"""Tests for the L1 contract verifier adapter, against a fake web3 handle."""

from __future__ import annotations

from typing import Any, Optional

import pytest
from web3.exceptions import ContractLogicError

from settlement.errors import VerificationFailed
from settlement.models.proof import ProofBackend
from settlement.verifiers.base import Verifier
from settlement.verifiers.contract import ContractVerifier, pico_proof_words

from helpers import VERIFIER_ADDRESSES, h


class _FakeCall:
    def __init__(self, contract: "_FakeContract", name: str, args: tuple) -> None:
        self._contract = contract
        self._name = name
        self._args = args

    def call(self) -> None:
        self._contract.calls.append((self._name, self._args))
        if self._contract.error is not None:
            raise self._contract.error


class _FakeFunctions:
    def __init__(self, contract: "_FakeContract") -> None:
        self._contract = contract

    def __getattr__(self, name: str) -> Any:
        return lambda *args: _FakeCall(self._contract, name, args)


class _FakeContract:
    def __init__(self, address: str, abi: list[dict[str, Any]]) -> None:
        self.address = address
        self.abi = abi
        self.calls: list[tuple[str, tuple]] = []
        self.error: Optional[Exception] = None
        self.functions = _FakeFunctions(self)


class _FakeEth:
    def __init__(self) -> None:
        self.contracts: list[_FakeContract] = []

    def contract(self, address: str, abi: list[dict[str, Any]]) -> _FakeContract:
        contract = _FakeContract(address, abi)
        self.contracts.append(contract)
        return contract


class FakeWeb3:
    def __init__(self) -> None:
        self.eth = _FakeEth()


def _verifier(backend: ProofBackend) -> tuple[ContractVerifier, _FakeContract]:
    w3 = FakeWeb3()
    verifier = ContractVerifier(backend, VERIFIER_ADDRESSES[backend].lower(), w3)
    return verifier, w3.eth.contracts[0]


class TestConstruction:
    def test_address_checksummed(self) -> None:
        verifier, contract = _verifier(ProofBackend.SP1)
        assert verifier.address == VERIFIER_ADDRESSES[ProofBackend.SP1]
        assert contract.address == verifier.address

    def test_satisfies_protocol(self) -> None:
        verifier, _ = _verifier(ProofBackend.RISC0)
        assert isinstance(verifier, Verifier)

    @pytest.mark.parametrize("backend,name", [
        (ProofBackend.RISC0, "verify"),
        (ProofBackend.SP1, "verifyProof"),
        (ProofBackend.PICO, "verifyPicoProof"),
    ])
    def test_entry_point_abi(self, backend: ProofBackend, name: str) -> None:
        _, contract = _verifier(backend)
        assert [entry["name"] for entry in contract.abi] == [name]


class TestCalls:
    def test_risc0_argument_order(self) -> None:
        verifier, contract = _verifier(ProofBackend.RISC0)
        verifier.check(h(1), h(2), b"seal")
        assert contract.calls == [("verify", (b"seal", h(1), h(2)))]

    def test_sp1_arguments(self) -> None:
        verifier, contract = _verifier(ProofBackend.SP1)
        verifier.check(h(1), b"public", b"proof")
        assert contract.calls == [("verifyProof", (h(1), b"public", b"proof"))]

    def test_pico_proof_split_into_words(self) -> None:
        verifier, contract = _verifier(ProofBackend.PICO)
        proof = b"".join(h(n) for n in range(8))
        verifier.check(h(1), b"public", proof)
        name, args = contract.calls[0]
        assert name == "verifyPicoProof"
        assert args[2] == list(range(8))

    def test_revert_is_verification_failure(self) -> None:
        verifier, contract = _verifier(ProofBackend.SP1)
        contract.error = ContractLogicError("execution reverted: invalid proof")
        with pytest.raises(VerificationFailed, match="reverted"):
            verifier.check(h(1), b"public", b"proof")

    def test_transport_error_is_verification_failure(self) -> None:
        verifier, contract = _verifier(ProofBackend.SP1)
        contract.error = ConnectionError("node unreachable")
        with pytest.raises(VerificationFailed, match="call failed"):
            verifier.check(h(1), b"public", b"proof")


class TestEncoding:
    def test_short_program_id(self) -> None:
        verifier, contract = _verifier(ProofBackend.SP1)
        with pytest.raises(VerificationFailed, match="program id"):
            verifier.check(b"short", b"public", b"proof")
        assert contract.calls == []

    def test_risc0_journal_must_be_digest(self) -> None:
        verifier, _ = _verifier(ProofBackend.RISC0)
        with pytest.raises(VerificationFailed, match="journal digest"):
            verifier.check(h(1), b"not a digest", b"seal")

    def test_pico_wrong_length(self) -> None:
        with pytest.raises(VerificationFailed, match="256 bytes"):
            pico_proof_words(b"\x00" * 255)

    def test_pico_words_big_endian(self) -> None:
        proof = (1).to_bytes(32, "big") + bytes(224)
        assert pico_proof_words(proof)[0] == 1
