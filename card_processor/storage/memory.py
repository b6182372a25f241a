"""
In-memory store: a complete Store backed by dicts.

Used by the test suite, by STORAGE_BACKEND=memory for local demos, and as
the reference for what every other backend must guarantee.

Atomicity:
  Every method awaits exactly once (the simulated I/O in `_io`) and then
  does all of its reads and writes synchronously. Under asyncio nothing
  else can run between two statements without an await, so each method's
  effects are atomic with respect to every other coroutine. In particular
  `record()` inserts the transaction and bumps the balance with no await
  in between.

Test hooks:
  - latency: seconds slept on every call. Even at 0 every call yields to
    the event loop, so concurrent submissions really do interleave.
  - fail(*operations) / recover(): make the named operations (or "*" for
    all) raise StoreUnavailableError, to simulate an unreachable backend.
"""

import asyncio
import dataclasses
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
    utcnow,
)
from card_processor.exceptions import (
    AccountNotFoundError,
    CardNotFoundError,
    DuplicateAccountError,
    DuplicateCardError,
    StoreUnavailableError,
)
from card_processor.storage.base import Store


class InMemoryStore(Store):
    def __init__(self, latency: float = 0.0):
        self.latency = latency
        self._failing: set[str] = set()
        self._accounts: dict[str, AccountSnapshot] = {}
        self._cards: dict[str, CardSnapshot] = {}
        self._transactions: dict[str, TransactionRecord] = {}
        self._statements: list[StatementRecord] = []

    # -----------------------------------------------------------------------
    # Test hooks
    # -----------------------------------------------------------------------

    def fail(self, *operations: str) -> None:
        """Make the given operations raise StoreUnavailableError ("*" = all)."""
        self._failing.update(operations or ("*",))

    def recover(self) -> None:
        self._failing.clear()

    async def _io(self, operation: str) -> None:
        if operation in self._failing or "*" in self._failing:
            raise StoreUnavailableError(operation)
        await asyncio.sleep(self.latency)

    # -----------------------------------------------------------------------
    # Directory
    # -----------------------------------------------------------------------

    async def find_card(self, card_id: str) -> CardSnapshot | None:
        await self._io("find_card")
        return self._cards.get(card_id)

    async def find_account(self, account_id: str) -> AccountSnapshot | None:
        await self._io("find_account")
        return self._accounts.get(account_id)

    # -----------------------------------------------------------------------
    # Ledger
    # -----------------------------------------------------------------------

    async def find_transaction(self, transaction_id: str) -> TransactionRecord | None:
        await self._io("find_transaction")
        return self._transactions.get(transaction_id)

    async def create_transaction_if_absent(self, record: TransactionRecord) -> InsertResult:
        await self._io("create_transaction_if_absent")
        return self._insert_if_absent(record)

    async def add_to_balance(self, account_id: str, amount_cents: int) -> AccountSnapshot:
        await self._io("add_to_balance")
        return self._increment(account_id, amount_cents)

    async def record(self, record: TransactionRecord) -> InsertResult:
        await self._io("record")
        existing = self._transactions.get(record.id)
        if existing is not None:
            return InsertResult(created=False, existing=existing)
        # Check before writing anything so a missing account can't leave
        # a record behind without its balance change.
        if record.approved and record.account_id not in self._accounts:
            raise AccountNotFoundError(record.account_id)
        self._transactions[record.id] = record
        if record.approved:
            self._increment(record.account_id, record.amount_cents)
        return InsertResult(created=True)

    def _insert_if_absent(self, record: TransactionRecord) -> InsertResult:
        existing = self._transactions.get(record.id)
        if existing is not None:
            return InsertResult(created=False, existing=existing)
        self._transactions[record.id] = record
        return InsertResult(created=True)

    def _increment(self, account_id: str, amount_cents: int) -> AccountSnapshot:
        account = self._accounts.get(account_id)
        if account is None:
            raise AccountNotFoundError(account_id)
        updated = dataclasses.replace(
            account,
            current_balance_cents=account.current_balance_cents + amount_cents,
            updated_at=utcnow(),
        )
        self._accounts[account_id] = updated
        return updated

    # -----------------------------------------------------------------------
    # Statements
    # -----------------------------------------------------------------------

    async def list_active_accounts(self) -> list[AccountSnapshot]:
        await self._io("list_active_accounts")
        return [a for a in self._accounts.values() if a.status == AccountStatus.ACTIVE]

    async def find_latest_statement(self, account_id: str) -> StatementRecord | None:
        await self._io("find_latest_statement")
        statements = [s for s in self._statements if s.account_id == account_id]
        if not statements:
            return None
        return max(statements, key=lambda s: (s.period_end, s.created_at))

    async def list_approved_transactions(
        self,
        account_id: str,
        start: datetime,
        end: datetime,
    ) -> list[TransactionRecord]:
        await self._io("list_approved_transactions")
        matches = [
            tx for tx in self._transactions.values()
            if tx.account_id == account_id
            and tx.status == TransactionStatus.APPROVED
            and start <= tx.created_at <= end
        ]
        return sorted(matches, key=lambda tx: tx.created_at)

    async def create_statement(self, statement: StatementRecord) -> StatementRecord:
        await self._io("create_statement")
        self._statements.append(statement)
        return statement

    async def list_statements(self, account_id: str) -> list[StatementRecord]:
        await self._io("list_statements")
        statements = [s for s in self._statements if s.account_id == account_id]
        return sorted(statements, key=lambda s: (s.period_end, s.created_at), reverse=True)

    # -----------------------------------------------------------------------
    # Directory management
    # -----------------------------------------------------------------------

    async def create_account(self, account: AccountSnapshot) -> AccountSnapshot:
        await self._io("create_account")
        if account.id in self._accounts:
            raise DuplicateAccountError(account.id)
        self._accounts[account.id] = account
        return account

    async def set_account_status(self, account_id: str, status: AccountStatus) -> AccountSnapshot:
        await self._io("set_account_status")
        account = self._accounts.get(account_id)
        if account is None:
            raise AccountNotFoundError(account_id)
        updated = dataclasses.replace(account, status=status, updated_at=utcnow())
        self._accounts[account_id] = updated
        return updated

    async def create_card(self, card: CardSnapshot) -> CardSnapshot:
        await self._io("create_card")
        if card.account_id not in self._accounts:
            raise AccountNotFoundError(card.account_id)
        if card.id in self._cards:
            raise DuplicateCardError(card.id)
        self._cards[card.id] = card
        return card

    async def set_card_status(self, card_id: str, status: CardStatus) -> CardSnapshot:
        await self._io("set_card_status")
        card = self._cards.get(card_id)
        if card is None:
            raise CardNotFoundError(card_id)
        updated = dataclasses.replace(card, status=status, updated_at=utcnow())
        self._cards[card_id] = updated
        return updated

    async def list_transactions(
        self,
        account_id: str | None = None,
        card_id: str | None = None,
        status: TransactionStatus | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[TransactionRecord]:
        await self._io("list_transactions")
        matches = [
            tx for tx in self._transactions.values()
            if (account_id is None or tx.account_id == account_id)
            and (card_id is None or tx.card_id == card_id)
            and (status is None or tx.status == status)
        ]
        matches.sort(key=lambda tx: tx.created_at, reverse=True)
        return matches[offset:offset + limit]
