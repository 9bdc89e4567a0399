import logging
from dataclasses import dataclass, field
from decimal import Context, Decimal, DivisionByZero, Inexact, InvalidOperation, Overflow
from enum import Enum
from typing import Dict, NamedTuple, Optional

logger = logging.getLogger(__name__)

MONEY_PRECISION = 34

# Balances and amounts stay below 10**34 and are never rounded: any operation
# whose exact result does not fit raises instead.
MONEY_CONTEXT = Context(
    prec=MONEY_PRECISION,
    Emax=MONEY_PRECISION - 1,
    traps=[InvalidOperation, DivisionByZero, Overflow, Inexact],
)


class TransactionType(Enum):
    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"
    DISPUTE = "dispute"
    RESOLVE = "resolve"
    CHARGEBACK = "chargeback"

    @classmethod
    def parse(cls, value: str) -> "TransactionType":
        """
        Parse a transaction kind string. Matching is exact and case-sensitive.

        Any unrecognized kind, including "Deposit" or " deposit", is treated as a
        dispute. This is a known quirk kept for compatibility with existing input
        files, not a validation rule.
        """
        try:
            return cls(value)
        except ValueError:
            logger.debug(f"Unrecognized transaction type {value!r}, treating as dispute")
            return cls.DISPUTE


class DisputeStatus(Enum):
    DISPUTED = "disputed"
    RESOLVED = "resolved"
    CHARGED_BACK = "charged_back"


class ProcessingResult(Enum):
    APPLIED = "applied"
    IGNORED = "ignored"


@dataclass
class Transaction:
    transaction_type: TransactionType
    client_id: Optional[int]
    transaction_id: Optional[int]
    amount: Optional[Decimal] = None

    def __repr__(self) -> str:
        return f"Transaction({self.transaction_type.value}, client={self.client_id}, tx={self.transaction_id}, amount={self.amount})"


@dataclass
class HistoryEntry:
    """Original kind and amount of a stored transaction plus its dispute state."""

    transaction_type: TransactionType
    amount: Decimal
    dispute_status: Optional[DisputeStatus] = None


class ClientSnapshot(NamedTuple):
    client_id: int
    available: Decimal
    held: Decimal
    total: Decimal
    locked: bool


@dataclass
class ClientAccount:
    """
    Balances are only changed through the methods below, which compute in
    MONEY_CONTEXT and assign nothing unless every result is exact.
    """

    client_id: int
    available: Decimal = Decimal("0")
    held: Decimal = Decimal("0")
    locked: bool = False
    history: Dict[int, HistoryEntry] = field(default_factory=dict)

    @property
    def total(self) -> Decimal:
        return MONEY_CONTEXT.add(self.available, self.held)

    def _update(self, available: Decimal, held: Decimal) -> None:
        # Raises a DecimalException if the new total is not exactly representable
        MONEY_CONTEXT.add(available, held)
        self.available = available
        self.held = held

    def credit(self, amount: Decimal) -> None:
        self._update(MONEY_CONTEXT.add(self.available, amount), self.held)

    def debit(self, amount: Decimal) -> None:
        self._update(MONEY_CONTEXT.subtract(self.available, amount), self.held)

    def hold(self, amount: Decimal) -> None:
        self._update(MONEY_CONTEXT.subtract(self.available, amount), MONEY_CONTEXT.add(self.held, amount))

    def release_hold(self, amount: Decimal) -> None:
        self._update(MONEY_CONTEXT.add(self.available, amount), MONEY_CONTEXT.subtract(self.held, amount))

    def remove_held(self, amount: Decimal) -> None:
        self._update(self.available, MONEY_CONTEXT.subtract(self.held, amount))

    def snapshot(self) -> ClientSnapshot:
        return ClientSnapshot(self.client_id, self.available, self.held, self.total, self.locked)


class ProcessingStats:
    """Counters for the end-of-run processing report."""

    def __init__(self):
        self.applied = 0
        self.ignored = 0
        self.malformed = 0

    def record(self, result: ProcessingResult) -> None:
        if result == ProcessingResult.APPLIED:
            self.applied += 1
        else:
            self.ignored += 1

    def record_malformed(self):
        self.malformed += 1

    def summary(self) -> str:
        return f"Applied: {self.applied}, Ignored: {self.ignored}, Malformed: {self.malformed}"
