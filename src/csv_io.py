import csv
import logging
import re
from decimal import Decimal, getcontext
from typing import Callable, Dict, Iterable, Iterator, Optional, TextIO

from models import (
    MAX_CLIENT_ID,
    MAX_TRANSACTION_ID,
    AccountSnapshot,
    Transaction,
    TransactionType,
)

logger = logging.getLogger(__name__)

OUTPUT_FIELDS = ["client", "available", "held", "total", "locked"]

# Plain ASCII digits only: no sign, underscores, exponent or non-ASCII numerals.
ID_PATTERN = re.compile(r"[0-9]+")
AMOUNT_PATTERN = re.compile(r"[0-9]+(\.[0-9]+)?")


class TransactionParseError(ValueError):
    """A CSV row could not be turned into a Transaction."""

    def __init__(self, message: str, line_number: Optional[int] = None):
        self.line_number = line_number
        if line_number is not None:
            message = f"line {line_number}: {message}"
        super().__init__(message)


def read_transactions(
    stream: TextIO,
    strict: bool = False,
    on_skip: Optional[Callable[[TransactionParseError], None]] = None,
) -> Iterator[Transaction]:
    """
    Lazily yield transactions from a CSV stream with a type,client,tx,amount header.

    In strict mode the first unparseable row raises TransactionParseError.
    Otherwise the row is logged, reported to on_skip and skipped. Rows the
    csv module itself cannot read (e.g. a field over the size limit) are
    treated the same way.
    """
    reader = csv.DictReader(stream)
    try:
        fieldnames = reader.fieldnames
    except csv.Error as e:
        raise TransactionParseError(f"unreadable header: {e}", line_number=reader.reader.line_num) from e
    if fieldnames is not None:
        reader.fieldnames = [name.strip() for name in fieldnames]

    while True:
        try:
            row = next(reader)
        except StopIteration:
            return
        except csv.Error as e:
            # DictReader.line_num is only updated on success.
            error = TransactionParseError(str(e), line_number=reader.reader.line_num)
            _reject(error, "unreadable row", strict, on_skip, e)
            continue

        try:
            transaction = parse_row(row)
        except TransactionParseError as e:
            error = TransactionParseError(str(e), line_number=reader.reader.line_num)
            _reject(error, f"row {row}", strict, on_skip, e)
            continue
        yield transaction


def _reject(
    error: TransactionParseError,
    description: str,
    strict: bool,
    on_skip: Optional[Callable[[TransactionParseError], None]],
    cause: Exception,
) -> None:
    if strict:
        raise error from cause
    logger.warning(f"Skipping {description}: {error}")
    if on_skip is not None:
        on_skip(error)


def parse_row(row: Dict[Optional[str], Optional[str]]) -> Transaction:
    """Parse a CSV row into Transaction. Whitespace around fields is ignored."""
    normalized = {k.strip(): (v or "").strip() for k, v in row.items() if isinstance(k, str)}

    try:
        transaction_type = TransactionType(normalized["type"])
        client_id = _parse_id(normalized["client"], "client", MAX_CLIENT_ID)
        transaction_id = _parse_id(normalized["tx"], "tx", MAX_TRANSACTION_ID)
    except KeyError as e:
        raise TransactionParseError(f"missing column {e}") from e
    except ValueError as e:
        raise TransactionParseError(str(e)) from e

    amount = None
    amount_str = normalized.get("amount", "")
    if amount_str:
        amount = _parse_amount(amount_str)

    return Transaction(
        transaction_type=transaction_type,
        client_id=client_id,
        transaction_id=transaction_id,
        amount=amount,
    )


def _parse_id(value: str, field: str, maximum: int) -> int:
    if not ID_PATTERN.fullmatch(value):
        raise ValueError(f"invalid {field} {value!r}")
    parsed = int(value)
    if parsed > maximum:
        raise ValueError(f"{field} {parsed} out of range 0..{maximum}")
    return parsed


def _parse_amount(value: str) -> Decimal:
    if not AMOUNT_PATTERN.fullmatch(value):
        raise TransactionParseError(f"invalid amount {value!r}")
    amount = Decimal(value)
    # Wider amounts would be rounded by the decimal context on every sum.
    if len(amount.as_tuple().digits) > getcontext().prec:
        raise TransactionParseError(f"amount {value!r} has more than {getcontext().prec} significant digits")
    return amount


def format_decimal(value: Decimal) -> str:
    """Render a decimal exactly, without trailing zeros or exponent."""
    if value.is_zero():
        return "0"
    normalized = value.normalize()
    return f"{normalized:f}"


def write_snapshots(snapshots: Iterable[AccountSnapshot], stream: TextIO) -> None:
    writer = csv.writer(stream, lineterminator="\n")
    writer.writerow(OUTPUT_FIELDS)
    for snapshot in snapshots:
        writer.writerow([
            snapshot.client,
            format_decimal(snapshot.available),
            format_decimal(snapshot.held),
            format_decimal(snapshot.total),
            str(snapshot.locked).lower(),
        ])
