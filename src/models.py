from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Optional

MAX_CLIENT_ID = 2**16 - 1
MAX_TRANSACTION_ID = 2**32 - 1


class TransactionType(Enum):
    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"
    DISPUTE = "dispute"
    RESOLVE = "resolve"
    CHARGEBACK = "chargeback"


class ProcessingResult(Enum):
    APPLIED = "applied"
    IGNORED = "ignored"
    MALFORMED = "malformed"


class TransactionState(Enum):
    POSTED = "posted"
    DISPUTED = "disputed"
    CHARGED_BACK = "charged_back"


@dataclass
class Transaction:
    transaction_type: TransactionType
    client_id: int
    transaction_id: int
    amount: Optional[Decimal] = None

    def __repr__(self) -> str:
        return f"Transaction({self.transaction_type.value}, client={self.client_id}, tx={self.transaction_id}, amount={self.amount})"


@dataclass
class LedgerEntry:
    """Signed amount of a posted deposit (positive) or withdrawal (negative)."""

    amount: Decimal
    state: TransactionState = TransactionState.POSTED


@dataclass(frozen=True)
class AccountSnapshot:
    client: int
    available: Decimal
    held: Decimal
    total: Decimal
    locked: bool


class ProcessingStats:
    """Counters for tracking processing statistics."""

    def __init__(self):
        self.applied = 0
        self.ignored = 0
        self.malformed = 0
        self.skipped_rows = 0

    def record(self, result: ProcessingResult) -> None:
        if result == ProcessingResult.APPLIED:
            self.applied += 1
        elif result == ProcessingResult.IGNORED:
            self.ignored += 1
        else:
            self.malformed += 1

    def record_skipped_row(self) -> None:
        self.skipped_rows += 1

    def __repr__(self) -> str:
        return (
            f"Applied: {self.applied}, Ignored: {self.ignored}, "
            f"Malformed: {self.malformed}, Skipped rows: {self.skipped_rows}"
        )
