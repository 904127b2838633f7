"""CSV input reader and account report writer.

Input rows are ``type,client,tx,amount``; dispute, resolve and chargeback
rows may omit the trailing amount column entirely.
"""
import csv
from typing import IO, Iterable, Iterator
from pydantic import ValidationError
import structlog

from models import AccountReport, Transaction, truncate_amount

logger = structlog.get_logger()

INPUT_FIELDS = ("type", "client", "tx", "amount")
OUTPUT_FIELDS = ("client", "available", "held", "total", "locked")


def read_transactions(stream: IO[str]) -> Iterator[Transaction]:
    reader = csv.reader(stream, skipinitialspace=True)
    header = next(reader, None)
    if header is None:
        return

    columns = [name.strip().lower() for name in header]
    if columns[:3] != list(INPUT_FIELDS[:3]):
        logger.warning("Unexpected header, assuming default column order", header=header)
        columns = list(INPUT_FIELDS)
        # The first row was data, not a header
        yield from _parse_row(header, columns, reader.line_num)

    for row in reader:
        if not row or all(not cell.strip() for cell in row):
            continue
        yield from _parse_row(row, columns, reader.line_num)


def _parse_row(row, columns, line_num) -> Iterator[Transaction]:
    values = dict(zip(columns, (cell.strip() for cell in row)))
    try:
        yield Transaction(**values)
    except ValidationError as e:
        logger.warning(
            "Skipping malformed row",
            line=line_num,
            row=row,
            errors=[error["msg"] for error in e.errors()]
        )


def write_reports(stream: IO[str], reports: Iterable[AccountReport]) -> None:
    writer = csv.writer(stream, lineterminator="\n")
    writer.writerow(OUTPUT_FIELDS)
    for report in reports:
        writer.writerow([
            report.client,
            truncate_amount(report.available),
            truncate_amount(report.held),
            truncate_amount(report.total),
            "true" if report.locked else "false",
        ])
