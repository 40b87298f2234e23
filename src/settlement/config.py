"""Settlement configuration — read from the environment and an optional .env file.

Variables:
    PROPOSER_L1_ADDRESS        proposer's own address (required)
    PROPOSER_VALIDIUM          validium mode (default: false)
    PROPOSER_DEV_MODE          allow disabled verifiers (default: false)
    BRIDGE_L1_ADDRESS          bridge ledger address (required)
    RISC0_VERIFIER_ADDRESS     \
    SP1_VERIFIER_ADDRESS        } verifier contracts (required when enabled)
    PICO_VERIFIER_ADDRESS      /
    RISC0_VERIFIER_ENABLED     \
    SP1_VERIFIER_ENABLED        } explicit enable flags (default: true)
    PICO_VERIFIER_ENABLED      /
    COMMITTER_L1_ADDRESS       sequencer allowed to commit/verify (required)
    PROVER_SERVER_L1_ADDRESS   additional sequencer (optional)
    ETH_RPC_URL                L1 endpoint for contract verifiers (optional)
    SETTLEMENT_DATA_DIR        event log and state directory (default: ./data)

Booleans accept true/1/false/0, case-insensitive.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from dotenv import load_dotenv

from settlement.errors import ConfigError
from settlement.models.address import to_checksum
from settlement.models.proof import BACKEND_ORDER, ProofBackend

DEFAULT_DATA_DIR = Path("data")


@dataclass(frozen=True)
class VerifierSettings:
    backend: ProofBackend
    address: Optional[str]
    enabled: bool = True


@dataclass(frozen=True)
class ProposerSettings:
    proposer_address: str
    bridge_address: str
    verifiers: tuple[VerifierSettings, ...]
    sequencers: tuple[str, ...]
    validium: bool = False
    dev_mode: bool = False
    eth_rpc_url: Optional[str] = None
    data_dir: Path = DEFAULT_DATA_DIR

    def verifier(self, backend: ProofBackend) -> VerifierSettings:
        for v in self.verifiers:
            if v.backend == backend:
                return v
        raise KeyError(backend)


def parse_bool(key: str, value: Optional[str], default: bool) -> bool:
    if value is None or value.strip() == "":
        return default
    match = value.strip().lower()
    if match in ("true", "1"):
        return True
    if match in ("false", "0"):
        return False
    raise ConfigError(f"Invalid boolean string for {key}: {value}")


def _address(env: Mapping[str, str], key: str, required: bool = True) -> Optional[str]:
    value = env.get(key)
    if value is None or value.strip() == "":
        if required:
            raise ConfigError(f"{key} not set")
        return None
    try:
        return to_checksum(value.strip())
    except ValueError as exc:
        raise ConfigError(f"Malformed {key}: {value}") from exc


def settings_from_mapping(env: Mapping[str, str]) -> ProposerSettings:
    """Build settings from an environment-like mapping."""
    dev_mode = parse_bool("PROPOSER_DEV_MODE", env.get("PROPOSER_DEV_MODE"), False)

    verifiers: list[VerifierSettings] = []
    for backend in BACKEND_ORDER:
        prefix = backend.value.upper()
        enabled_key = f"{prefix}_VERIFIER_ENABLED"
        enabled = parse_bool(enabled_key, env.get(enabled_key), True)
        if not enabled and not dev_mode:
            raise ConfigError(f"{enabled_key}=false requires PROPOSER_DEV_MODE=true")
        address = _address(env, f"{prefix}_VERIFIER_ADDRESS", required=enabled)
        verifiers.append(VerifierSettings(backend=backend, address=address, enabled=enabled))

    sequencers = [_address(env, "COMMITTER_L1_ADDRESS")]
    prover = _address(env, "PROVER_SERVER_L1_ADDRESS", required=False)
    if prover is not None and prover not in sequencers:
        sequencers.append(prover)

    rpc_url = env.get("ETH_RPC_URL") or None
    data_dir = env.get("SETTLEMENT_DATA_DIR")

    return ProposerSettings(
        proposer_address=_address(env, "PROPOSER_L1_ADDRESS"),
        bridge_address=_address(env, "BRIDGE_L1_ADDRESS"),
        verifiers=tuple(verifiers),
        sequencers=tuple(sequencers),
        validium=parse_bool("PROPOSER_VALIDIUM", env.get("PROPOSER_VALIDIUM"), False),
        dev_mode=dev_mode,
        eth_rpc_url=rpc_url,
        data_dir=Path(data_dir) if data_dir else DEFAULT_DATA_DIR,
    )


def load_settings(env_file: Optional[Path] = None) -> ProposerSettings:
    """Load settings from ``env_file`` (if given) layered under os.environ."""
    if env_file is not None:
        if not env_file.exists():
            raise ConfigError(f"Env file not found: {env_file}")
        load_dotenv(env_file)
    else:
        load_dotenv()
    return settings_from_mapping(os.environ)
