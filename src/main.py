import argparse
import logging
import sys
from typing import List, Optional

from csv_io import TransactionParseError, write_snapshots
from engine import PaymentsEngine


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="payments-ledger",
        description="Apply a CSV transaction log and print final account balances as CSV.",
    )
    parser.add_argument("input", help="path to the transactions CSV file")
    parser.add_argument(
        "--strict",
        action="store_true",
        help="abort on the first row that cannot be parsed instead of skipping it",
    )
    parser.add_argument(
        "--allow-locked-activity",
        action="store_true",
        help="keep applying transactions to accounts locked by a chargeback",
    )
    parser.add_argument(
        "--no-dispute-rejected-withdrawals",
        action="store_true",
        help="do not record withdrawals refused for insufficient funds, so they cannot be disputed",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="log more (-v for info, -vv for debug)",
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    level = logging.WARNING
    if args.verbose == 1:
        level = logging.INFO
    elif args.verbose > 1:
        level = logging.DEBUG
    logging.basicConfig(
        level=level,
        format="%(levelname)s: %(message)s",
        stream=sys.stderr,
    )

    engine = PaymentsEngine(
        freeze_locked_accounts=not args.allow_locked_activity,
        dispute_rejected_withdrawals=not args.no_dispute_rejected_withdrawals,
    )
    try:
        engine.process_file(args.input, strict=args.strict)
    except (OSError, UnicodeDecodeError, TransactionParseError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    write_snapshots(engine.snapshot(), sys.stdout)
    return 0


if __name__ == "__main__":
    sys.exit(main())
