"""
SQL store: the durable Store implementation on async SQLAlchemy.

Atomicity:
  Every method runs in its own session and its own database transaction,
  committed before the method returns. `record()` does the insert and the
  balance increment inside ONE database transaction: both land or neither
  does.

Insert-if-absent:
  The transaction id is the primary key. New records are written with
  `INSERT ... ON CONFLICT (id) DO NOTHING`; a rowcount of 0 means another
  writer recorded that id first, and the stored record is read back and
  returned. SAVEPOINT + IntegrityError would also work on PostgreSQL, but
  pysqlite-family drivers (aiosqlite included) commit the enclosing
  transaction on RELEASE SAVEPOINT, which would split record and balance.
  Supported dialects: sqlite, postgresql.

Balance increment:
  A single `UPDATE accounts SET current_balance_cents =
  current_balance_cents + :amount`, atomic per row in the database. The
  read-decide-write sequence around it is serialized by the orchestrator.

Failures:
  Connection, driver and pool errors are translated to
  StoreUnavailableError so the orchestrator can tell "unknown outcome"
  apart from "not found".
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import (
    DisconnectionError,
    IntegrityError,
    InterfaceError,
    OperationalError,
    TimeoutError as PoolTimeoutError,
)
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from card_processor.database import Base
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
from card_processor.models import Account, Card, Statement, Transaction
from card_processor.models.transaction import transaction_values
from card_processor.storage.base import Store


# Errors that mean "the database couldn't be reached or gave up mid-call"
UNAVAILABLE_ERRORS = (
    OperationalError,
    InterfaceError,
    DisconnectionError,
    PoolTimeoutError,
    OSError,
)


class SqlStore(Store):
    def __init__(
        self,
        engine: AsyncEngine,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
    ):
        self._engine = engine
        self._sessions = session_factory or async_sessionmaker(
            engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    @asynccontextmanager
    async def _guard(self, operation: str) -> AsyncIterator[None]:
        try:
            yield
        except UNAVAILABLE_ERRORS as exc:
            raise StoreUnavailableError(operation) from exc

    async def initialize(self) -> None:
        """
        Create all tables if they don't exist.

        Convenient for single-node deployments and tests. A multi-instance
        deployment would manage the schema with migrations instead.
        """
        async with self._guard("initialize"):
            async with self._engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)

    async def close(self) -> None:
        await self._engine.dispose()

    # -----------------------------------------------------------------------
    # Directory
    # -----------------------------------------------------------------------

    async def find_card(self, card_id: str) -> CardSnapshot | None:
        async with self._guard("find_card"), self._sessions() as session:
            card = await session.get(Card, card_id)
            return card.to_snapshot() if card else None

    async def find_account(self, account_id: str) -> AccountSnapshot | None:
        async with self._guard("find_account"), self._sessions() as session:
            account = await session.get(Account, account_id)
            return account.to_snapshot() if account else None

    # -----------------------------------------------------------------------
    # Ledger
    # -----------------------------------------------------------------------

    async def find_transaction(self, transaction_id: str) -> TransactionRecord | None:
        async with self._guard("find_transaction"), self._sessions() as session:
            txn = await session.get(Transaction, transaction_id)
            return txn.to_record() if txn else None

    async def create_transaction_if_absent(self, record: TransactionRecord) -> InsertResult:
        async with (
            self._guard("create_transaction_if_absent"),
            self._sessions() as session,
            session.begin(),
        ):
            if await self._insert_if_absent(session, record):
                return InsertResult(created=True)
            return await self._existing(session, record.id)

    async def add_to_balance(self, account_id: str, amount_cents: int) -> AccountSnapshot:
        async with self._guard("add_to_balance"), self._sessions() as session:
            async with session.begin():
                await self._increment(session, account_id, amount_cents)
            account = await session.get(Account, account_id, populate_existing=True)
            return account.to_snapshot()

    async def record(self, record: TransactionRecord) -> InsertResult:
        async with (
            self._guard("record"),
            self._sessions() as session,
            session.begin(),
        ):
            if not await self._insert_if_absent(session, record):
                return await self._existing(session, record.id)
            if record.approved:
                # Raising here rolls back the insert too
                await self._increment(session, record.account_id, record.amount_cents)
            return InsertResult(created=True)

    async def _insert_if_absent(self, session: AsyncSession, record: TransactionRecord) -> bool:
        dialect = self._engine.dialect.name
        if dialect == "sqlite":
            insert = sqlite_insert
        elif dialect == "postgresql":
            insert = postgresql_insert
        else:
            raise NotImplementedError(f"Insert-if-absent is not supported on {dialect}")

        stmt = (
            insert(Transaction)
            .values(**transaction_values(record))
            .on_conflict_do_nothing(index_elements=["id"])
        )
        result = await session.execute(stmt)
        return result.rowcount == 1

    async def _existing(self, session: AsyncSession, transaction_id: str) -> InsertResult:
        existing = await session.get(Transaction, transaction_id)
        return InsertResult(created=False, existing=existing.to_record())

    async def _increment(self, session: AsyncSession, account_id: str, amount_cents: int) -> None:
        result = await session.execute(
            update(Account)
            .where(Account.id == account_id)
            .values(
                current_balance_cents=Account.current_balance_cents + amount_cents,
                updated_at=utcnow(),
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise AccountNotFoundError(account_id)

    # -----------------------------------------------------------------------
    # Statements
    # -----------------------------------------------------------------------

    async def list_active_accounts(self) -> list[AccountSnapshot]:
        async with self._guard("list_active_accounts"), self._sessions() as session:
            result = await session.execute(
                select(Account)
                .where(Account.status == AccountStatus.ACTIVE)
                .order_by(Account.id)
            )
            return [account.to_snapshot() for account in result.scalars().all()]

    async def find_latest_statement(self, account_id: str) -> StatementRecord | None:
        async with self._guard("find_latest_statement"), self._sessions() as session:
            result = await session.execute(
                select(Statement)
                .where(Statement.account_id == account_id)
                .order_by(Statement.period_end.desc(), Statement.created_at.desc())
                .limit(1)
            )
            statement = result.scalar_one_or_none()
            return statement.to_record() if statement else None

    async def list_approved_transactions(
        self,
        account_id: str,
        start: datetime,
        end: datetime,
    ) -> list[TransactionRecord]:
        async with self._guard("list_approved_transactions"), self._sessions() as session:
            result = await session.execute(
                select(Transaction)
                .where(
                    Transaction.account_id == account_id,
                    Transaction.status == TransactionStatus.APPROVED,
                    Transaction.created_at >= start,
                    Transaction.created_at <= end,
                )
                .order_by(Transaction.created_at.asc())
            )
            return [txn.to_record() for txn in result.scalars().all()]

    async def create_statement(self, statement: StatementRecord) -> StatementRecord:
        async with self._guard("create_statement"), self._sessions() as session:
            async with session.begin():
                session.add(Statement.from_record(statement))
            return statement

    async def list_statements(self, account_id: str) -> list[StatementRecord]:
        async with self._guard("list_statements"), self._sessions() as session:
            result = await session.execute(
                select(Statement)
                .where(Statement.account_id == account_id)
                .order_by(Statement.period_end.desc(), Statement.created_at.desc())
            )
            return [statement.to_record() for statement in result.scalars().all()]

    # -----------------------------------------------------------------------
    # Directory management
    # -----------------------------------------------------------------------

    async def create_account(self, account: AccountSnapshot) -> AccountSnapshot:
        async with self._guard("create_account"), self._sessions() as session:
            try:
                async with session.begin():
                    if await session.get(Account, account.id) is not None:
                        raise DuplicateAccountError(account.id)
                    session.add(Account.from_snapshot(account))
            except IntegrityError as exc:
                raise DuplicateAccountError(account.id) from exc
            return account

    async def set_account_status(self, account_id: str, status: AccountStatus) -> AccountSnapshot:
        async with self._guard("set_account_status"), self._sessions() as session:
            async with session.begin():
                account = await session.get(Account, account_id)
                if account is None:
                    raise AccountNotFoundError(account_id)
                account.status = status
                account.updated_at = utcnow()
            return account.to_snapshot()

    async def create_card(self, card: CardSnapshot) -> CardSnapshot:
        async with self._guard("create_card"), self._sessions() as session:
            try:
                async with session.begin():
                    if await session.get(Account, card.account_id) is None:
                        raise AccountNotFoundError(card.account_id)
                    if await session.get(Card, card.id) is not None:
                        raise DuplicateCardError(card.id)
                    session.add(Card.from_snapshot(card))
            except IntegrityError as exc:
                raise DuplicateCardError(card.id) from exc
            return card

    async def set_card_status(self, card_id: str, status: CardStatus) -> CardSnapshot:
        async with self._guard("set_card_status"), self._sessions() as session:
            async with session.begin():
                card = await session.get(Card, card_id)
                if card is None:
                    raise CardNotFoundError(card_id)
                card.status = status
                card.updated_at = utcnow()
            return card.to_snapshot()

    async def list_transactions(
        self,
        account_id: str | None = None,
        card_id: str | None = None,
        status: TransactionStatus | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[TransactionRecord]:
        query = (
            select(Transaction)
            .order_by(Transaction.created_at.desc())
            .limit(limit)
            .offset(offset)
        )
        if account_id is not None:
            query = query.where(Transaction.account_id == account_id)
        if card_id is not None:
            query = query.where(Transaction.card_id == card_id)
        if status is not None:
            query = query.where(Transaction.status == status)

        async with self._guard("list_transactions"), self._sessions() as session:
            result = await session.execute(query)
            return [txn.to_record() for txn in result.scalars().all()]
