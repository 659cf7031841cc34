import logging
from decimal import Decimal
from typing import Dict

from models import LedgerEntry, ProcessingResult, TransactionState

logger = logging.getLogger(__name__)


class Account:
    """
    Ledger state for a single client.
    Every operation returns a ProcessingResult and never raises: illegal
    transitions (unknown tx, wrong dispute state, insufficient funds,
    frozen account) are reported as IGNORED and leave balances untouched.
    """

    def __init__(self, client_id: int, freeze_when_locked: bool = True):
        self.client_id = client_id
        self.available = Decimal("0")
        self.entries: Dict[int, LedgerEntry] = {}
        self.locked = False
        self._freeze_when_locked = freeze_when_locked

    @property
    def held_transactions(self) -> Dict[int, Decimal]:
        """Amounts of the transactions currently under dispute, by tx id."""
        return {
            transaction_id: entry.amount
            for transaction_id, entry in self.entries.items()
            if entry.state == TransactionState.DISPUTED
        }

    @property
    def held(self) -> Decimal:
        return sum(self.held_transactions.values(), Decimal("0"))

    @property
    def total(self) -> Decimal:
        return self.available + self.held

    @property
    def accepts_mutations(self) -> bool:
        return not (self.locked and self._freeze_when_locked)

    def deposit(self, amount: Decimal) -> ProcessingResult:
        if not self.accepts_mutations:
            return self._ignore("deposit", "account is locked")
        self.available += amount
        return ProcessingResult.APPLIED

    def withdraw(self, amount: Decimal) -> ProcessingResult:
        if not self.accepts_mutations:
            return self._ignore("withdrawal", "account is locked")
        if self.available < amount:
            return self._ignore("withdrawal", f"insufficient funds ({self.available} < {amount})")
        self.available -= amount
        return ProcessingResult.APPLIED

    def record(self, transaction_id: int, signed_amount: Decimal) -> ProcessingResult:
        """Remember the signed amount of a deposit/withdrawal for later disputes."""
        if not self.accepts_mutations:
            return self._ignore(f"record of tx {transaction_id}", "account is locked")

        existing = self.entries.get(transaction_id)
        if existing is not None and existing.state != TransactionState.POSTED:
            return self._ignore(f"record of tx {transaction_id}", f"tx is {existing.state.value}")

        self.entries[transaction_id] = LedgerEntry(amount=signed_amount)
        return ProcessingResult.APPLIED

    def dispute(self, transaction_id: int) -> ProcessingResult:
        if not self.accepts_mutations:
            return self._ignore(f"dispute of tx {transaction_id}", "account is locked")

        entry = self.entries.get(transaction_id)
        if entry is None:
            return self._ignore(f"dispute of tx {transaction_id}", "tx not found")
        if entry.state != TransactionState.POSTED:
            return self._ignore(f"dispute of tx {transaction_id}", f"tx is {entry.state.value}")

        # A withdrawal entry is negative, so this credits available.
        self.available -= entry.amount
        entry.state = TransactionState.DISPUTED
        return ProcessingResult.APPLIED

    def resolve(self, transaction_id: int) -> ProcessingResult:
        if not self.accepts_mutations:
            return self._ignore(f"resolve of tx {transaction_id}", "account is locked")

        entry = self._disputed_entry(transaction_id)
        if entry is None:
            return self._ignore(f"resolve of tx {transaction_id}", "tx is not disputed")

        self.available += entry.amount
        entry.state = TransactionState.POSTED
        return ProcessingResult.APPLIED

    def chargeback(self, transaction_id: int) -> ProcessingResult:
        if not self.accepts_mutations:
            return self._ignore(f"chargeback of tx {transaction_id}", "account is locked")

        entry = self._disputed_entry(transaction_id)
        if entry is None:
            return self._ignore(f"chargeback of tx {transaction_id}", "tx is not disputed")

        entry.state = TransactionState.CHARGED_BACK
        self.locked = True
        logger.info(f"Client {self.client_id}: chargeback of tx {transaction_id} locked the account")
        return ProcessingResult.APPLIED

    def _disputed_entry(self, transaction_id: int):
        entry = self.entries.get(transaction_id)
        if entry is None or entry.state != TransactionState.DISPUTED:
            return None
        return entry

    def _ignore(self, operation: str, reason: str) -> ProcessingResult:
        logger.debug(f"Client {self.client_id}: {operation} ignored, {reason}")
        return ProcessingResult.IGNORED

    def __repr__(self) -> str:
        return (
            f"Account(client={self.client_id}, available={self.available}, "
            f"held={self.held}, locked={self.locked})"
        )
