"""
SafeHeart Ledger - Main Entry Point
Command-line access to the medical record chain.
"""

import argparse
import json
import logging
import sys
from dataclasses import replace
from pathlib import Path

from .blockchain.ledger import LedgerError
from .config import LedgerConfig
from .integration.record_ledger import MedicalRecord, RecordLedger


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="safeheart",
        description="Tamper-evident log of medical-device records",
    )
    parser.add_argument("--chain-file", type=Path, help="Path of the persisted chain")
    parser.add_argument("--difficulty", type=int, help="Proof of Work difficulty")

    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("status", help="Show chain length, difficulty and validity")

    add = sub.add_parser("add", help="Append a record")
    add.add_argument("--patient-id", required=True)
    add.add_argument("--ecg-status", required=True)
    add.add_argument("--ai-result")
    add.add_argument("--extra", help="Extra data as JSON")

    show = sub.add_parser("show", help="Print blocks as JSON")
    show.add_argument("--last", type=int, help="Only the last N blocks")

    sub.add_parser("validate", help="Validate the chain")
    return parser


def _print_json(data) -> None:
    print(json.dumps(data, indent=2, ensure_ascii=False))


def main(argv=None) -> int:
    """Main entry point for SafeHeart Ledger."""
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.command == "show" and args.last is not None and args.last < 1:
        parser.error("--last must be at least 1")

    try:
        config = LedgerConfig.from_env()
    except ValueError as e:
        parser.error(str(e))
    if args.chain_file is not None:
        config = replace(config, chain_file=args.chain_file)
    if args.difficulty is not None:
        config = replace(config, difficulty=args.difficulty)

    logging.basicConfig(
        level=getattr(logging, config.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        ledger = RecordLedger.from_config(config)

        if args.command == "status":
            latest = ledger.get_latest()
            result = ledger.validate_chain()
            _print_json({
                **ledger.describe(),
                'latest_hash': latest.hash,
                'valid': result.valid,
            })
            return 0

        if args.command == "add":
            extra = json.loads(args.extra) if args.extra else None
            record = MedicalRecord.from_dict({
                'patientId': args.patient_id,
                'ecgStatus': args.ecg_status,
                'aiResult': args.ai_result,
                'extra': extra,
            })
            block = ledger.append_record(record)
            _print_json({'message': 'Block added successfully', 'block': block.to_dict()})
            return 0

        if args.command == "show":
            blocks = ledger.get_chain()
            if args.last is not None:
                blocks = blocks[-args.last:]
            _print_json([block.to_dict() for block in blocks])
            return 0

        result = ledger.validate_chain()
        _print_json(result.to_dict())
        return 0 if result.valid else 1

    except (LedgerError, ValueError) as e:
        print(f"error: {e}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
