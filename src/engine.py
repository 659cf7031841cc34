import logging
from decimal import Decimal
from typing import Dict, Iterable, Iterator, Optional

from account import Account
from csv_io import read_transactions
from models import (
    AccountSnapshot,
    ProcessingResult,
    ProcessingStats,
    Transaction,
    TransactionType,
)

logger = logging.getLogger(__name__)


class PaymentsEngine:
    """
    Routes transactions to per-client accounts in input order.

    Accounts are created on the first deposit that references a client.
    Malformed transactions (wrong amount presence for the type, unknown
    type) are dropped without touching any account.

    Policy switches:
        freeze_locked_accounts: locked accounts reject every further mutation.
        dispute_rejected_withdrawals: a withdrawal refused for insufficient
            funds is still recorded in history, so a later dispute credits
            the attempted amount back.
    """

    def __init__(self, freeze_locked_accounts: bool = True, dispute_rejected_withdrawals: bool = True):
        self.accounts: Dict[int, Account] = {}
        self.stats = ProcessingStats()
        self._freeze_locked_accounts = freeze_locked_accounts
        self._dispute_rejected_withdrawals = dispute_rejected_withdrawals

    def process_file(self, filepath: str, strict: bool = False) -> Dict[int, Account]:
        """Process CSV file and return final account states."""
        logger.info(f"Processing {filepath}")
        with open(filepath, "r", encoding="utf-8", newline="") as f:
            transactions = read_transactions(
                f, strict=strict, on_skip=lambda _: self.stats.record_skipped_row()
            )
            self.process(transactions)
        logger.info(f"Processing complete. {self.stats}")
        return self.accounts

    def process(self, transactions: Iterable[Transaction]) -> None:
        for transaction in transactions:
            self.stats.record(self.apply(transaction))

    def apply(self, transaction: Transaction) -> ProcessingResult:
        """
        Apply a single transaction.

        Returns:
            APPLIED: account state changed
            IGNORED: well-formed but not legal right now (unknown client or tx,
                insufficient funds, wrong dispute state, locked account)
            MALFORMED: amount presence does not match the type
        """
        match (transaction.transaction_type, transaction.amount):
            case (TransactionType.DEPOSIT, Decimal() as amount):
                return self._handle_deposit(transaction.client_id, transaction.transaction_id, amount)
            case (TransactionType.WITHDRAWAL, Decimal() as amount):
                return self._handle_withdrawal(transaction.client_id, transaction.transaction_id, amount)
            case (TransactionType.DISPUTE, None):
                return self._delegate(transaction, Account.dispute)
            case (TransactionType.RESOLVE, None):
                return self._delegate(transaction, Account.resolve)
            case (TransactionType.CHARGEBACK, None):
                return self._delegate(transaction, Account.chargeback)
            case _:
                logger.debug(
                    f"Dropping malformed transaction tx {transaction.transaction_id}: "
                    f"type={transaction.transaction_type!r}, amount={transaction.amount}"
                )
                return ProcessingResult.MALFORMED

    def snapshot(self) -> Iterator[AccountSnapshot]:
        """Final balances of every account, in client order."""
        for client_id in sorted(self.accounts):
            account = self.accounts[client_id]
            held = account.held
            yield AccountSnapshot(
                client=client_id,
                available=account.available,
                held=held,
                total=account.available + held,
                locked=account.locked,
            )

    def _get_or_create_account(self, client_id: int) -> Account:
        if client_id not in self.accounts:
            self.accounts[client_id] = Account(client_id, freeze_when_locked=self._freeze_locked_accounts)
        return self.accounts[client_id]

    def _get_account(self, transaction: Transaction) -> Optional[Account]:
        account = self.accounts.get(transaction.client_id)
        if account is None:
            logger.debug(f"Ignoring {transaction}: client {transaction.client_id} has no account")
        return account

    def _handle_deposit(self, client_id: int, transaction_id: int, amount: Decimal) -> ProcessingResult:
        account = self._get_or_create_account(client_id)
        result = account.deposit(amount)
        if result == ProcessingResult.APPLIED:
            account.record(transaction_id, amount)
        return result

    def _handle_withdrawal(self, client_id: int, transaction_id: int, amount: Decimal) -> ProcessingResult:
        account = self.accounts.get(client_id)
        if account is None:
            logger.debug(f"Ignoring withdrawal tx {transaction_id}: client {client_id} has no account")
            return ProcessingResult.IGNORED

        # record() refuses on its own when the account is frozen.
        result = account.withdraw(amount)
        if result == ProcessingResult.APPLIED or self._dispute_rejected_withdrawals:
            account.record(transaction_id, -amount)
        return result

    def _delegate(self, transaction: Transaction, operation) -> ProcessingResult:
        account = self._get_account(transaction)
        if account is None:
            return ProcessingResult.IGNORED
        return operation(account, transaction.transaction_id)
