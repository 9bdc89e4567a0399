import csv
import logging
from decimal import DecimalException
from typing import Dict, Iterator, Optional

from payment_errors import MalformedRecord, SourceExhaustedOrFailed
from payment_models import MONEY_CONTEXT, Transaction, TransactionType

logger = logging.getLogger(__name__)


def _parse_optional_int(value: str) -> Optional[int]:
    return int(value) if value else None


def parse_csv_row(row: Dict[Optional[str], Optional[str]]) -> Transaction:
    """
    Parse a CSV row into a Transaction.

    Empty client/tx columns are kept as None so the engine can reject the record.
    Values that are present but unparsable raise MalformedRecord, as do amounts
    that MONEY_CONTEXT cannot hold exactly (more than 34 digits, or 10**34 and up).
    """
    normalized = {k.strip(): (v or "").strip() for k, v in row.items() if k is not None}

    try:
        transaction_type = TransactionType.parse(normalized["type"])
        client_id = _parse_optional_int(normalized.get("client", ""))
        transaction_id = _parse_optional_int(normalized.get("tx", ""))

        amount = None
        amount_str = normalized.get("amount", "")
        if amount_str:
            amount = MONEY_CONTEXT.create_decimal(amount_str)
    except (KeyError, ValueError, DecimalException) as e:
        raise MalformedRecord(f"Failed to parse row {row}: {e!r}") from e

    if amount is not None and not amount.is_finite():
        raise MalformedRecord(f"Failed to parse row {row}: amount {amount_str!r} is not a finite number")

    return Transaction(
        transaction_type=transaction_type,
        client_id=client_id,
        transaction_id=transaction_id,
        amount=amount,
    )


class CsvTransactionSource:
    """
    Reads transactions from a `type, client, tx, amount` CSV file, in file order.
    Unparsable rows are logged, counted in `malformed` and skipped.
    Failure to open or read the file raises SourceExhaustedOrFailed.
    """

    def __init__(self, filepath: str):
        self._filepath = filepath
        self.malformed = 0

    def __iter__(self) -> Iterator[Transaction]:
        try:
            with open(self._filepath, "r", newline="", encoding="utf-8") as f:
                reader = csv.DictReader(f)
                for row in reader:
                    try:
                        transaction = parse_csv_row(row)
                    except MalformedRecord as e:
                        self.malformed += 1
                        logger.warning(f"Skipping line {reader.line_num}: {e}")
                        continue
                    yield transaction
        except (OSError, csv.Error, UnicodeDecodeError) as e:
            raise SourceExhaustedOrFailed(f"Failed to read transactions from {self._filepath}: {e}") from e
