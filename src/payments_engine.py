import logging
from typing import Dict, Iterable, List, Optional

from csv_source import CsvTransactionSource
from payment_errors import MalformedRecord
from ledger import Ledger
from payment_models import ClientAccount, ClientSnapshot, ProcessingResult, ProcessingStats, Transaction, TransactionType

logger = logging.getLogger(__name__)

CLIENT_ID_MAX = 0xFFFF
TRANSACTION_ID_MAX = 0xFFFFFFFF

DISPUTE_TRANSACTION_TYPES = frozenset({
    TransactionType.DISPUTE,
    TransactionType.RESOLVE,
    TransactionType.CHARGEBACK,
})


class PaymentsEngine:
    """
    Routes transactions to per-client ledgers, in the order they are delivered.
    Creates a ledger the first time a client id is seen.

    With create_on_reference=False, a dispute, resolve or chargeback for a client
    that has no account yet is skipped instead of creating an empty account.
    """

    def __init__(self, create_on_reference: bool = True):
        self._create_on_reference = create_on_reference
        self._ledgers: Dict[int, Ledger] = {}
        self._stats = ProcessingStats()

    @property
    def stats(self) -> ProcessingStats:
        return self._stats

    def route(self, transaction: Transaction) -> ProcessingResult:
        """
        Apply one transaction to its client's ledger.

        Raises MalformedRecord if the client or transaction id is missing or out of range.
        """
        client_id = transaction.client_id
        transaction_id = transaction.transaction_id

        if client_id is None or transaction_id is None:
            raise MalformedRecord(f"{transaction}: client and tx ids are required")
        if not 0 <= client_id <= CLIENT_ID_MAX:
            raise MalformedRecord(f"{transaction}: client id out of range")
        if not 0 <= transaction_id <= TRANSACTION_ID_MAX:
            raise MalformedRecord(f"{transaction}: tx id out of range")

        ledger = self._ledgers.get(client_id)
        if ledger is None:
            if not self._create_on_reference and transaction.transaction_type in DISPUTE_TRANSACTION_TYPES:
                logger.info(f"{transaction}: unknown client, skipping")
                return ProcessingResult.IGNORED

            ledger = Ledger(client_id)
            self._ledgers[client_id] = ledger

        return ledger.apply(transaction)

    def process(self, transactions: Iterable[Transaction]) -> ProcessingStats:
        """
        Route every transaction in order.
        Malformed records are logged and skipped; source failures propagate.
        """
        for transaction in transactions:
            try:
                result = self.route(transaction)
            except MalformedRecord as e:
                logger.warning(f"Skipping malformed record: {e}")
                self._stats.record_malformed()
                continue
            self._stats.record(result)

        return self._stats

    def process_file(self, filepath: str) -> Dict[int, ClientAccount]:
        """Process CSV file and return final account states."""
        logger.info(f"Processing transactions from {filepath}")

        source = CsvTransactionSource(filepath)
        self.process(source)
        self._stats.malformed += source.malformed

        logger.info(f"Processing complete. {self._stats.summary()}")
        return self.get_all_accounts()

    def get_account(self, client_id: int) -> Optional[ClientAccount]:
        ledger = self._ledgers.get(client_id)
        return ledger.account if ledger is not None else None

    def get_all_accounts(self) -> Dict[int, ClientAccount]:
        return {client_id: ledger.account for client_id, ledger in self._ledgers.items()}

    def snapshot_all(self) -> List[ClientSnapshot]:
        """One snapshot per known client. Order is unspecified; sort if you need it stable."""
        return [ledger.account.snapshot() for ledger in self._ledgers.values()]

    def snapshot_sorted(self) -> List[ClientSnapshot]:
        return sorted(self.snapshot_all(), key=lambda snapshot: snapshot.client_id)
