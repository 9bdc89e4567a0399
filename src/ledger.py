import logging
from decimal import Decimal, DecimalException

from payment_errors import MalformedRecord
from payment_models import (
    ClientAccount,
    DisputeStatus,
    HistoryEntry,
    ProcessingResult,
    Transaction,
    TransactionType,
)

logger = logging.getLogger(__name__)


class Ledger:
    """
    Per-client state machine.
    Owns one ClientAccount and applies transactions to its balances and history.
    Business-rule rejections are not errors: they leave the account untouched
    and return ProcessingResult.IGNORED.
    """

    def __init__(self, client_id: int):
        self.account = ClientAccount(client_id=client_id)

    def apply(self, transaction: Transaction) -> ProcessingResult:
        """
        Apply a single transaction to this client's account.

        Returns:
            APPLIED: Balances and/or history changed
            IGNORED: Precondition failed (insufficient funds, unknown tx, wrong dispute state, locked account)

        Raises MalformedRecord, leaving the account unchanged, if the amount
        cannot be applied exactly within MONEY_CONTEXT.
        """
        try:
            return self._dispatch(transaction)
        except DecimalException as e:
            raise MalformedRecord(f"{transaction}: amount cannot be applied exactly to client {self.account.client_id}: {e!r}") from e

    def _dispatch(self, transaction: Transaction) -> ProcessingResult:
        match transaction.transaction_type:
            case TransactionType.DEPOSIT:
                return self._handle_deposit(transaction)
            case TransactionType.WITHDRAWAL:
                return self._handle_withdrawal(transaction)
            case TransactionType.DISPUTE:
                return self._handle_dispute(transaction)
            case TransactionType.RESOLVE:
                return self._handle_resolve(transaction)
            case TransactionType.CHARGEBACK:
                return self._handle_chargeback(transaction)
            case _:
                return ProcessingResult.IGNORED

    def _amount(self, transaction: Transaction) -> Decimal:
        return transaction.amount if transaction.amount is not None else Decimal("0")

    def _handle_deposit(self, transaction: Transaction) -> ProcessingResult:
        amount = self._amount(transaction)
        if transaction.transaction_id in self.account.history:
            logger.warning(f"Deposit tx {transaction.transaction_id}: transaction id already used by client {self.account.client_id}, overwriting history entry")

        self.account.credit(amount)
        self.account.history[transaction.transaction_id] = HistoryEntry(TransactionType.DEPOSIT, amount)
        return ProcessingResult.APPLIED

    def _handle_withdrawal(self, transaction: Transaction) -> ProcessingResult:
        amount = self._amount(transaction)
        if self.account.locked:
            logger.info(f"Withdrawal tx {transaction.transaction_id}: account {self.account.client_id} is locked")
            return ProcessingResult.IGNORED

        # Strictly greater: withdrawing the whole available balance is rejected
        if not self.account.available > amount:
            logger.info(f"Withdrawal tx {transaction.transaction_id}: insufficient funds (available {self.account.available}, requested {amount})")
            return ProcessingResult.IGNORED

        self.account.debit(amount)
        self.account.history[transaction.transaction_id] = HistoryEntry(TransactionType.WITHDRAWAL, amount)
        return ProcessingResult.APPLIED

    def _handle_dispute(self, transaction: Transaction) -> ProcessingResult:
        original = self.account.history.get(transaction.transaction_id)

        if original is None:
            logger.info(f"Dispute for tx {transaction.transaction_id}: transaction not found for client {self.account.client_id}")
            return ProcessingResult.IGNORED

        if original.dispute_status is not None:
            logger.info(f"Dispute for tx {transaction.transaction_id}: transaction already {original.dispute_status.value}")
            return ProcessingResult.IGNORED

        self.account.hold(original.amount)
        original.dispute_status = DisputeStatus.DISPUTED
        return ProcessingResult.APPLIED

    def _handle_resolve(self, transaction: Transaction) -> ProcessingResult:
        original = self.account.history.get(transaction.transaction_id)

        if original is None or original.dispute_status != DisputeStatus.DISPUTED:
            logger.info(f"Resolve for tx {transaction.transaction_id}: transaction is not under dispute")
            return ProcessingResult.IGNORED

        if self.account.locked:
            logger.info(f"Resolve for tx {transaction.transaction_id}: account {self.account.client_id} is locked")
            return ProcessingResult.IGNORED

        self.account.release_hold(original.amount)
        original.dispute_status = DisputeStatus.RESOLVED
        return ProcessingResult.APPLIED

    def _handle_chargeback(self, transaction: Transaction) -> ProcessingResult:
        original = self.account.history.get(transaction.transaction_id)

        if original is None or original.dispute_status != DisputeStatus.DISPUTED:
            logger.info(f"Chargeback for tx {transaction.transaction_id}: transaction is not under dispute")
            return ProcessingResult.IGNORED

        account_was_locked = self.account.locked
        self.account.remove_held(original.amount)
        self.account.locked = True
        original.dispute_status = DisputeStatus.CHARGED_BACK
        if not account_was_locked:
            logger.warning(f"Chargeback for tx {transaction.transaction_id}: account {self.account.client_id} locked")
        return ProcessingResult.APPLIED
