"""CSV boundary of the payments engine.

``read_operations`` turns a ``type,client,tx,amount`` file into validated
``OperationRecord`` objects, lazily and in file order. Fields are
whitespace-trimmed, blank lines are skipped and rows may leave out the
trailing ``amount`` column. Any malformed row raises ``OperationParseError``.

``write_balances`` renders the final report with a fixed number of
fractional digits (banker's rounding) and lowercase booleans.
"""

import csv
from decimal import ROUND_HALF_EVEN, Decimal, localcontext
from typing import Iterable, Iterator, List, TextIO

from pydantic import ValidationError

from models import BalanceReport, OperationRecord

REQUIRED_COLUMNS = ("type", "client", "tx")
REPORT_HEADER = ["client", "available", "held", "total", "locked"]


class OperationParseError(ValueError):
    """Raised when the input feed cannot be parsed. Always fatal."""

    def __init__(self, message: str, line: int = 0):
        self.line = line
        if line:
            message = f"line {line}: {message}"
        super().__init__(message)


def _read_header(reader) -> List[str]:
    for row in reader:
        header = [name.strip().lower() for name in row]
        if not any(header):
            continue
        missing = [column for column in REQUIRED_COLUMNS if column not in header]
        if missing:
            raise OperationParseError(
                "missing required columns: " + ", ".join(missing),
                line=reader.line_num
            )
        return header
    raise OperationParseError("input has no header row")


def read_operations(stream: TextIO) -> Iterator[OperationRecord]:
    reader = csv.reader(stream)
    try:
        header = _read_header(reader)

        for row in reader:
            fields = [value.strip() for value in row]
            if not any(fields):
                continue

            # zip() drops trailing columns the row doesn't carry
            data = {name: value for name, value in zip(header, fields) if name}
            try:
                yield OperationRecord.model_validate(data)
            except ValidationError as e:
                raise OperationParseError(_describe(e), line=reader.line_num) from e
    except UnicodeDecodeError as e:
        # The failing line has not been counted by the reader yet
        raise OperationParseError(f"invalid text encoding: {e.reason}", line=reader.line_num + 1) from e


def _describe(error: ValidationError) -> str:
    problems = []
    for item in error.errors():
        location = ".".join(str(part) for part in item["loc"]) or "record"
        problems.append(f"{location}: {item['msg']}")
    return "; ".join(problems)


def format_decimal(value: Decimal, places: int = 4) -> str:
    quantum = Decimal(1).scaleb(-places)
    # Wide balances need more digits than the default context carries
    with localcontext() as ctx:
        ctx.prec = max(ctx.prec, value.adjusted() + places + 2)
        rounded = value.quantize(quantum, rounding=ROUND_HALF_EVEN)
        if rounded.is_zero():
            rounded = abs(rounded)
    return format(rounded, "f")


def write_balances(balances: Iterable[BalanceReport], stream: TextIO, places: int = 4) -> int:
    """Write the report header and one row per balance. Returns rows written.

    Every row is formatted before the first byte goes out, so a failure
    leaves ``stream`` untouched.
    """
    rows = [
        [
            balance.client,
            format_decimal(balance.available, places),
            format_decimal(balance.held, places),
            format_decimal(balance.total, places),
            "true" if balance.locked else "false",
        ]
        for balance in balances
    ]

    writer = csv.writer(stream, lineterminator="\n")
    writer.writerow(REPORT_HEADER)
    writer.writerows(rows)
    return len(rows)
