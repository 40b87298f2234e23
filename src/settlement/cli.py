"""Settlement CLI — operator interface to the proposer state.

Usage:
    settlement status
    settlement init
    settlement deposit --log-hash 0x...
    settlement rolling-hash --count 3
    settlement commit --caller 0x... --height 1 --state-root 0x... --state-diff 0x...
    settlement verify --caller 0x... --height 1 --proofs proofs.json
    settlement commitment --height 1
    settlement events --kind block_verified

Settings come from the environment and the file given with --env-file
(default: .env in the working directory).
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from settlement.config import load_settings
from settlement.errors import ConfigError
from settlement.models.commitment import ZERO_HASH
from settlement.models.proof import proof_bundle_from_dict
from settlement.persistence.event_log import EventKind
from settlement.service import ServiceResult, SettlementService

ZERO_HEX = "0x" + ZERO_HASH.hex()


def _make_service(args: argparse.Namespace) -> SettlementService:
    settings = load_settings(args.env_file)
    return SettlementService.from_settings(settings)


def _report(result: ServiceResult) -> int:
    if result.success:
        print(json.dumps(result.data, indent=2, sort_keys=True))
        return 0
    print(f"Failed: {'; '.join(result.errors)}", file=sys.stderr)
    return 1


def cmd_status(args: argparse.Namespace) -> int:
    service = _make_service(args)
    print(json.dumps(service.status(), indent=2))
    return 0


def cmd_init(args: argparse.Namespace) -> int:
    return _report(_make_service(args).initialize())


def cmd_deposit(args: argparse.Namespace) -> int:
    return _report(_make_service(args).deposit(args.log_hash))


def cmd_rolling_hash(args: argparse.Namespace) -> int:
    return _report(_make_service(args).deposit_rolling_hash(args.count))


def cmd_commit(args: argparse.Namespace) -> int:
    service = _make_service(args)
    result = service.commit_block(
        caller=args.caller,
        height=args.height,
        new_state_root=args.state_root,
        state_diff_commitment=args.state_diff,
        withdrawals_root=args.withdrawals_root,
        deposit_logs_rolling_hash=args.deposits_hash,
    )
    return _report(result)


def cmd_verify(args: argparse.Namespace) -> int:
    service = _make_service(args)
    try:
        proofs = proof_bundle_from_dict(json.loads(args.proofs.read_text(encoding="utf-8")))
    except (OSError, KeyError, ValueError) as exc:
        print(f"Failed: cannot read proofs from {args.proofs}: {exc}", file=sys.stderr)
        return 1
    return _report(service.verify_block(args.caller, args.height, proofs))


def cmd_commitment(args: argparse.Namespace) -> int:
    return _report(_make_service(args).commitment(args.height))


def cmd_events(args: argparse.Namespace) -> int:
    service = _make_service(args)
    kind = EventKind(args.kind) if args.kind else None
    for event in service.event_log.events(kind):
        print(json.dumps(event.to_dict(), sort_keys=True))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="settlement",
        description="Rollup settlement: block commitments and proof verification",
    )
    parser.add_argument(
        "--env-file",
        type=Path,
        default=None,
        help="Path to a .env file (default: .env in the working directory)",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    sub = parser.add_subparsers(dest="command")

    sub.add_parser("status", help="Show proposer and bridge status")
    sub.add_parser("init", help="Initialize the proposer from settings")

    p_dep = sub.add_parser("deposit", help="Enqueue a pending deposit log hash")
    p_dep.add_argument("--log-hash", required=True, help="32-byte deposit log hash")

    p_roll = sub.add_parser("rolling-hash", help="Rolling hash of the next N pending deposits")
    p_roll.add_argument("--count", type=int, required=True, help="Number of deposits")

    p_commit = sub.add_parser("commit", help="Commit a block")
    p_commit.add_argument("--caller", required=True, help="Sequencer address")
    p_commit.add_argument("--height", type=int, required=True, help="Block height")
    p_commit.add_argument("--state-root", required=True, help="New state root")
    p_commit.add_argument("--state-diff", required=True, help="State diff versioned hash")
    p_commit.add_argument("--withdrawals-root", default=ZERO_HEX, help="Withdrawals Merkle root")
    p_commit.add_argument("--deposits-hash", default=ZERO_HEX, help="Deposit logs rolling hash")

    p_verify = sub.add_parser("verify", help="Verify a committed block")
    p_verify.add_argument("--caller", required=True, help="Sequencer address")
    p_verify.add_argument("--height", type=int, required=True, help="Block height")
    p_verify.add_argument(
        "--proofs", type=Path, required=True,
        help='JSON file: {"risc0": {"program_id": ..., "public_inputs": ..., "proof": ...}, ...}',
    )

    p_show = sub.add_parser("commitment", help="Show the commitment stored for a block")
    p_show.add_argument("--height", type=int, required=True, help="Block height")

    p_events = sub.add_parser("events", help="Print the event log")
    p_events.add_argument("--kind", choices=[k.value for k in EventKind], help="Filter by kind")

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    commands = {
        "status": cmd_status,
        "init": cmd_init,
        "deposit": cmd_deposit,
        "rolling-hash": cmd_rolling_hash,
        "commit": cmd_commit,
        "verify": cmd_verify,
        "commitment": cmd_commitment,
        "events": cmd_events,
    }

    handler = commands.get(args.command)
    if handler is None:
        print(f"Unknown command: {args.command}", file=sys.stderr)
        return 1

    try:
        return handler(args)
    except ConfigError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
