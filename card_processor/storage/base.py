"""
Storage interfaces the core depends on.

The orchestrator and the statement generator never touch a database or a
dict directly. They are handed a store implementing these interfaces, so
the same concurrency guarantees hold whichever backend is plugged in:

  - Directory:       read-mostly card/account lookups
  - Ledger:          transaction records + running balances, with an atomic
                     insert-if-absent and an atomic per-account increment
  - StatementStore:  reads and writes for the statement batch
  - Store:           all of the above plus the account-management writes
                     used by the admin API and seeding

Concrete implementations:
  - InMemoryStore (card_processor/storage/memory.py): tests and demos
  - SqlStore      (card_processor/storage/sql.py):    SQLAlchemy, durable

Failure contract:
  Any backend failure that leaves the outcome unknown must be raised as
  StoreUnavailableError. "Not found" is a None return, never an exception,
  for the lookup methods.
"""

from abc import ABC, abstractmethod
from datetime import datetime

from card_processor.domain import (
    AccountSnapshot,
    AccountStatus,
    CardSnapshot,
    CardStatus,
    InsertResult,
    StatementRecord,
    TransactionRecord,
    TransactionStatus,
)


class Directory(ABC):
    """Account and card lookups."""

    @abstractmethod
    async def find_card(self, card_id: str) -> CardSnapshot | None:
        ...

    @abstractmethod
    async def find_account(self, account_id: str) -> AccountSnapshot | None:
        ...


class Ledger(ABC):
    """Transaction records keyed by the upstream id, and per-account balances."""

    @abstractmethod
    async def find_transaction(self, transaction_id: str) -> TransactionRecord | None:
        ...

    @abstractmethod
    async def create_transaction_if_absent(self, record: TransactionRecord) -> InsertResult:
        """
        Insert `record` unless a record with the same id already exists.

        Atomic: of two concurrent calls with the same id, exactly one gets
        created=True; the other gets created=False and the winner's record.
        """

    @abstractmethod
    async def add_to_balance(self, account_id: str, amount_cents: int) -> AccountSnapshot:
        """
        Atomically add `amount_cents` to the account's current balance.

        Raises:
            AccountNotFoundError: If the account doesn't exist.
        """

    @abstractmethod
    async def record(self, record: TransactionRecord) -> InsertResult:
        """
        Insert-if-absent and, if the record is new and approved, add its
        amount to the account balance, as one unit.

        Nobody can observe the record without the balance change or the
        balance change without the record. If the record already exists,
        nothing is written and the existing record is returned.
        """


class StatementStore(ABC):
    """Reads and writes used by the statement batch."""

    @abstractmethod
    async def list_active_accounts(self) -> list[AccountSnapshot]:
        ...

    @abstractmethod
    async def find_latest_statement(self, account_id: str) -> StatementRecord | None:
        """The account's statement with the latest period_end, or None."""

    @abstractmethod
    async def list_approved_transactions(
        self,
        account_id: str,
        start: datetime,
        end: datetime,
    ) -> list[TransactionRecord]:
        """Approved transactions with start <= created_at <= end, oldest first."""

    @abstractmethod
    async def create_statement(self, statement: StatementRecord) -> StatementRecord:
        ...

    @abstractmethod
    async def list_statements(self, account_id: str) -> list[StatementRecord]:
        """All statements for an account, most recent period first."""


class Store(Directory, Ledger, StatementStore):
    """A complete backend: everything the core needs plus directory management."""

    async def initialize(self) -> None:
        """Prepare the backend (create tables, ...). Idempotent."""

    async def close(self) -> None:
        """Release connections or other resources."""

    @abstractmethod
    async def create_account(self, account: AccountSnapshot) -> AccountSnapshot:
        """
        Raises:
            DuplicateAccountError: If the id is already taken.
        """

    @abstractmethod
    async def set_account_status(self, account_id: str, status: AccountStatus) -> AccountSnapshot:
        """
        Raises:
            AccountNotFoundError: If the account doesn't exist.
        """

    @abstractmethod
    async def create_card(self, card: CardSnapshot) -> CardSnapshot:
        """
        Raises:
            AccountNotFoundError: If the owning account doesn't exist.
            DuplicateCardError: If the id is already taken.
        """

    @abstractmethod
    async def set_card_status(self, card_id: str, status: CardStatus) -> CardSnapshot:
        """
        Raises:
            CardNotFoundError: If the card doesn't exist.
        """

    @abstractmethod
    async def list_transactions(
        self,
        account_id: str | None = None,
        card_id: str | None = None,
        status: TransactionStatus | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[TransactionRecord]:
        """Transactions matching the filters, newest first."""
