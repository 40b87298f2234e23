"""Tests for settings loading from the environment and .env files."""

import os
from pathlib import Path

import pytest

from settlement.config import DEFAULT_DATA_DIR, load_settings, parse_bool, settings_from_mapping
from settlement.errors import ConfigError
from settlement.models.proof import ProofBackend

from helpers import BRIDGE, COMMITTER, PROPOSER, PROVER, VERIFIER_ADDRESSES


def _env(**overrides: str) -> dict[str, str]:
    env = {
        "PROPOSER_L1_ADDRESS": PROPOSER.lower(),
        "BRIDGE_L1_ADDRESS": BRIDGE,
        "RISC0_VERIFIER_ADDRESS": VERIFIER_ADDRESSES[ProofBackend.RISC0],
        "SP1_VERIFIER_ADDRESS": VERIFIER_ADDRESSES[ProofBackend.SP1],
        "PICO_VERIFIER_ADDRESS": VERIFIER_ADDRESSES[ProofBackend.PICO],
        "COMMITTER_L1_ADDRESS": COMMITTER,
    }
    env.update(overrides)
    return env


class TestParseBool:
    @pytest.mark.parametrize("raw,expected", [
        ("true", True), ("TRUE", True), ("1", True),
        ("false", False), ("False", False), ("0", False),
    ])
    def test_accepted_values(self, raw: str, expected: bool) -> None:
        assert parse_bool("X", raw, not expected) is expected

    def test_missing_uses_default(self) -> None:
        assert parse_bool("X", None, True) is True
        assert parse_bool("X", "  ", False) is False

    def test_garbage_rejected(self) -> None:
        with pytest.raises(ConfigError, match="Invalid boolean string for X"):
            parse_bool("X", "yes", False)


class TestSettingsFromMapping:
    def test_defaults(self) -> None:
        settings = settings_from_mapping(_env())
        assert settings.proposer_address == PROPOSER
        assert settings.bridge_address == BRIDGE
        assert settings.sequencers == (COMMITTER,)
        assert not settings.validium
        assert not settings.dev_mode
        assert settings.eth_rpc_url is None
        assert settings.data_dir == DEFAULT_DATA_DIR
        assert all(v.enabled for v in settings.verifiers)
        assert settings.verifier(ProofBackend.PICO).address == VERIFIER_ADDRESSES[ProofBackend.PICO]

    def test_prover_added_as_sequencer(self) -> None:
        settings = settings_from_mapping(_env(PROVER_SERVER_L1_ADDRESS=PROVER))
        assert settings.sequencers == (COMMITTER, PROVER)

    def test_prover_equal_to_committer_not_duplicated(self) -> None:
        settings = settings_from_mapping(_env(PROVER_SERVER_L1_ADDRESS=COMMITTER.lower()))
        assert settings.sequencers == (COMMITTER,)

    def test_missing_required_address(self) -> None:
        env = _env()
        del env["BRIDGE_L1_ADDRESS"]
        with pytest.raises(ConfigError, match="BRIDGE_L1_ADDRESS not set"):
            settings_from_mapping(env)

    def test_malformed_address(self) -> None:
        with pytest.raises(ConfigError, match="Malformed COMMITTER_L1_ADDRESS"):
            settings_from_mapping(_env(COMMITTER_L1_ADDRESS="0x1234"))

    def test_disabled_verifier_requires_dev_mode(self) -> None:
        with pytest.raises(ConfigError, match="PROPOSER_DEV_MODE"):
            settings_from_mapping(_env(SP1_VERIFIER_ENABLED="false"))

    def test_disabled_verifier_in_dev_mode_needs_no_address(self) -> None:
        env = _env(SP1_VERIFIER_ENABLED="0", PROPOSER_DEV_MODE="true")
        del env["SP1_VERIFIER_ADDRESS"]
        settings = settings_from_mapping(env)
        sp1 = settings.verifier(ProofBackend.SP1)
        assert not sp1.enabled
        assert sp1.address is None
        assert settings.dev_mode

    def test_validium_and_paths(self) -> None:
        settings = settings_from_mapping(_env(
            PROPOSER_VALIDIUM="1",
            ETH_RPC_URL="http://localhost:8545",
            SETTLEMENT_DATA_DIR="/var/lib/settlement",
        ))
        assert settings.validium
        assert settings.eth_rpc_url == "http://localhost:8545"
        assert settings.data_dir == Path("/var/lib/settlement")


class TestLoadSettings:
    def test_reads_env_file(self, tmp_path, monkeypatch) -> None:
        monkeypatch.setattr(os, "environ", {})
        env_file = tmp_path / ".env"
        env_file.write_text(
            "\n".join(f"{k}={v}" for k, v in _env(PROPOSER_DEV_MODE="true").items()) + "\n",
            encoding="utf-8",
        )
        settings = load_settings(env_file)
        assert settings.proposer_address == PROPOSER
        assert settings.dev_mode

    def test_process_environment_wins(self, tmp_path, monkeypatch) -> None:
        monkeypatch.setattr(os, "environ", {"PROPOSER_VALIDIUM": "true"})
        env_file = tmp_path / ".env"
        env_file.write_text(
            "\n".join(f"{k}={v}" for k, v in _env(PROPOSER_VALIDIUM="false").items()) + "\n",
            encoding="utf-8",
        )
        assert load_settings(env_file).validium

    def test_missing_env_file(self, tmp_path) -> None:
        with pytest.raises(ConfigError, match="Env file not found"):
            load_settings(tmp_path / "absent.env")
