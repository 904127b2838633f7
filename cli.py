"""Command-line entry point.

    payments-ledger transactions.csv > accounts.csv

Reads the transaction stream, applies it and writes one report row per
client to stdout. Rejected transactions are logged to stderr.
"""
import argparse
import csv
import sys
import structlog

from config import configure_logging, get_settings
from csv_io import read_transactions, write_reports
from repositories import InMemoryAccountRepository, InMemoryTransactionLog
from services import get_ledger_service

logger = structlog.get_logger()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="payments-ledger", description="Payments engine")
    parser.add_argument("input", help="CSV file with type,client,tx,amount columns")
    parser.add_argument("--log-level", default=None, help="Override the configured log level")
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    settings = get_settings()
    if args.log_level:
        settings = settings.model_copy(update={"log_level": args.log_level})
    configure_logging(settings)

    service = get_ledger_service(InMemoryAccountRepository(), InMemoryTransactionLog())

    try:
        f = open(args.input, newline="", encoding="utf-8")
    except OSError as e:
        logger.error("Cannot read input file", path=args.input, error=str(e))
        return 1

    exit_code = 0
    with f:
        try:
            service.process_stream(read_transactions(f))
        except (UnicodeDecodeError, csv.Error) as e:
            # Accounts keep what was applied before the unreadable line
            logger.error("Input stream aborted", path=args.input, error=str(e))
            exit_code = 1

    write_reports(sys.stdout, service.get_reports())
    return exit_code


if __name__ == "__main__":
    sys.exit(main())
