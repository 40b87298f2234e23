"""Tests for the settlement CLI — proves commands dispatch and report correctly."""

import json
import os

import pytest

from settlement.cli import build_parser, main

from helpers import BRIDGE, COMMITTER, OUTSIDER, PROPOSER, h


def _hex(n: int) -> str:
    return "0x" + h(n).hex()


@pytest.fixture
def env_file(tmp_path, monkeypatch):
    """Dev-mode settings with every verifier disabled, state under tmp_path."""
    monkeypatch.setattr(os, "environ", {})
    path = tmp_path / ".env"
    path.write_text(
        "\n".join([
            f"PROPOSER_L1_ADDRESS={PROPOSER}",
            f"BRIDGE_L1_ADDRESS={BRIDGE}",
            f"COMMITTER_L1_ADDRESS={COMMITTER}",
            "PROPOSER_DEV_MODE=true",
            "RISC0_VERIFIER_ENABLED=false",
            "SP1_VERIFIER_ENABLED=false",
            "PICO_VERIFIER_ENABLED=false",
            f"SETTLEMENT_DATA_DIR={tmp_path / 'data'}",
        ]) + "\n",
        encoding="utf-8",
    )
    return path


class TestCLIParsing:
    def test_status_command(self) -> None:
        args = build_parser().parse_args(["status"])
        assert args.command == "status"

    def test_commit_command(self) -> None:
        args = build_parser().parse_args([
            "commit", "--caller", COMMITTER, "--height", "3",
            "--state-root", _hex(1), "--state-diff", _hex(2),
        ])
        assert args.command == "commit"
        assert args.height == 3
        assert args.withdrawals_root == "0x" + "00" * 32
        assert args.deposits_hash == "0x" + "00" * 32

    def test_events_kind_choices(self) -> None:
        with pytest.raises(SystemExit):
            build_parser().parse_args(["events", "--kind", "nonsense"])


class TestCLIExecution:
    def test_no_command_shows_help(self, capsys) -> None:
        assert main([]) == 0
        assert "settlement" in capsys.readouterr().out

    def test_missing_settings_is_config_error(self, tmp_path, monkeypatch) -> None:
        monkeypatch.setattr(os, "environ", {})
        empty = tmp_path / "empty.env"
        empty.write_text("", encoding="utf-8")
        assert main(["--env-file", str(empty), "status"]) == 2

    def test_block_lifecycle(self, env_file, tmp_path, capsys) -> None:
        base = ["--env-file", str(env_file)]
        assert main(base + ["init"]) == 0
        assert main(base + ["deposit", "--log-hash", _hex(7)]) == 0
        capsys.readouterr()

        assert main(base + ["rolling-hash", "--count", "1"]) == 0
        rolling = json.loads(capsys.readouterr().out)["rolling_hash"]

        assert main(base + [
            "commit", "--caller", COMMITTER, "--height", "1",
            "--state-root", _hex(1), "--state-diff", _hex(2),
            "--deposits-hash", rolling,
        ]) == 0

        proofs = tmp_path / "proofs.json"
        proofs.write_text("{}", encoding="utf-8")
        assert main(base + [
            "verify", "--caller", COMMITTER, "--height", "1", "--proofs", str(proofs),
        ]) == 0
        capsys.readouterr()

        assert main(base + ["status"]) == 0
        status = json.loads(capsys.readouterr().out)
        assert status["last_committed_block"] == 1
        assert status["last_verified_block"] == 1
        assert status["bridge"]["pending_deposits"] == 0

        assert main(base + ["events", "--kind", "block_verified"]) == 0
        lines = capsys.readouterr().out.strip().splitlines()
        assert len(lines) == 1
        assert json.loads(lines[0])["payload"] == {"height": 1}

    def test_rejected_commit_exits_nonzero(self, env_file, capsys) -> None:
        base = ["--env-file", str(env_file)]
        assert main(base + ["init"]) == 0
        assert main(base + [
            "commit", "--caller", OUTSIDER, "--height", "1",
            "--state-root", _hex(1), "--state-diff", _hex(2),
        ]) == 1
        assert "not an authorized sequencer" in capsys.readouterr().err

    def test_unreadable_proofs_file(self, env_file, tmp_path, capsys) -> None:
        base = ["--env-file", str(env_file)]
        assert main(base + [
            "verify", "--caller", COMMITTER, "--height", "1",
            "--proofs", str(tmp_path / "missing.json"),
        ]) == 1
        assert "cannot read proofs" in capsys.readouterr().err

    @pytest.mark.parametrize("content", [
        '{"risc0": "0xabc"}',
        '{"risc0": {"program_id": 1}}',
        '["risc0"]',
        "not json",
    ])
    def test_malformed_proofs_file(self, env_file, tmp_path, capsys, content: str) -> None:
        proofs = tmp_path / "proofs.json"
        proofs.write_text(content, encoding="utf-8")
        assert main([
            "--env-file", str(env_file),
            "verify", "--caller", COMMITTER, "--height", "1", "--proofs", str(proofs),
        ]) == 1
        assert "cannot read proofs" in capsys.readouterr().err

    def test_unknown_commitment(self, env_file) -> None:
        assert main(["--env-file", str(env_file), "commitment", "--height", "4"]) == 1
