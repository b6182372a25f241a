"""
Tests for the SQL store against a real SQLite database.

Tests verify:
  - Directory round trips (timezone-aware timestamps, enum values)
  - Duplicate and missing-parent errors on directory writes
  - Insert-if-absent: one winner, the loser gets the winner's record
  - record(): insert and balance increment land together or not at all
  - Statement queries: inclusive ranges, ordering
  - Connection failures surface as StoreUnavailableError
  - The orchestrator runs unchanged on top of the SQL store
"""

import asyncio
from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio
from sqlalchemy import BigInteger, text
from sqlalchemy.ext.asyncio import create_async_engine

from conftest import ACCOUNT_ID, CARD_ID, MERCHANT_ADDRESS
from card_processor.domain import (
    AccountSnapshot,
    AccountStatus,
    CardSnapshot,
    CardStatus,
    DenialReason,
    StatementRecord,
    TransactionRecord,
    TransactionStatus,
)
from card_processor.exceptions import (
    AccountNotFoundError,
    CardNotFoundError,
    DuplicateAccountError,
    DuplicateCardError,
    StoreUnavailableError,
)
from card_processor.models import Account, Card, Statement, Transaction
from card_processor.services.statement_service import StatementGenerator
from card_processor.services.transaction_service import TransactionOrchestrator
from card_processor.storage.sql import SqlStore


def transaction(
    transaction_id: str,
    amount_cents: int = 1_000,
    status: TransactionStatus = TransactionStatus.APPROVED,
    account_id: str | None = ACCOUNT_ID,
    created_at: datetime | None = None,
) -> TransactionRecord:
    denied = status == TransactionStatus.DENIED
    return TransactionRecord(
        id=transaction_id,
        card_id=CARD_ID,
        account_id=account_id,
        amount_cents=amount_cents,
        currency="USD",
        merchant_category=5411,
        merchant_address=MERCHANT_ADDRESS,
        status=status,
        denial_reason=DenialReason.INSUFFICIENT_CREDIT if denied else None,
        created_at=created_at or datetime(2026, 9, 10, 12, 0, tzinfo=timezone.utc),
    )


@pytest_asyncio.fixture
async def seeded(sql_store):
    await sql_store.create_account(AccountSnapshot(id=ACCOUNT_ID, credit_limit_cents=100_000))
    await sql_store.create_card(CardSnapshot(id=CARD_ID, account_id=ACCOUNT_ID))
    return sql_store


class TestDirectory:
    async def test_account_round_trip(self, sql_store):
        created = await sql_store.create_account(
            AccountSnapshot(id=ACCOUNT_ID, credit_limit_cents=100_000, currency="EUR")
        )

        found = await sql_store.find_account(ACCOUNT_ID)

        assert found.credit_limit_cents == 100_000
        assert found.current_balance_cents == 0
        assert found.status == AccountStatus.ACTIVE
        assert found.currency == "EUR"
        assert found.created_at.tzinfo is not None
        assert found.created_at == created.created_at

    async def test_missing_lookups_return_none(self, sql_store):
        assert await sql_store.find_account("nope") is None
        assert await sql_store.find_card("nope") is None
        assert await sql_store.find_transaction("nope") is None

    async def test_duplicate_account(self, seeded):
        with pytest.raises(DuplicateAccountError):
            await seeded.create_account(AccountSnapshot(id=ACCOUNT_ID, credit_limit_cents=1))

    async def test_card_requires_account(self, sql_store):
        with pytest.raises(AccountNotFoundError):
            await sql_store.create_card(CardSnapshot(id=CARD_ID, account_id="missing"))

    async def test_duplicate_card(self, seeded):
        with pytest.raises(DuplicateCardError):
            await seeded.create_card(CardSnapshot(id=CARD_ID, account_id=ACCOUNT_ID))

    async def test_card_round_trip_with_limit(self, seeded):
        await seeded.create_card(
            CardSnapshot(id="C2", account_id=ACCOUNT_ID, spending_limit_cents=10_000)
        )
        card = await seeded.find_card("C2")
        assert card.spending_limit_cents == 10_000
        assert (await seeded.find_card(CARD_ID)).spending_limit_cents is None

    async def test_status_changes(self, seeded):
        account = await seeded.set_account_status(ACCOUNT_ID, AccountStatus.FROZEN)
        card = await seeded.set_card_status(CARD_ID, CardStatus.CANCELLED)

        assert account.status == AccountStatus.FROZEN
        assert card.status == CardStatus.CANCELLED
        assert (await seeded.find_account(ACCOUNT_ID)).status == AccountStatus.FROZEN
        assert await seeded.list_active_accounts() == []

    async def test_status_change_on_missing_rows(self, sql_store):
        with pytest.raises(AccountNotFoundError):
            await sql_store.set_account_status("nope", AccountStatus.CLOSED)
        with pytest.raises(CardNotFoundError):
            await sql_store.set_card_status("nope", CardStatus.FROZEN)

    async def test_enum_values_are_stored(self, seeded):
        """Rows hold the lowercase values so raw SQL and check constraints read naturally."""
        await seeded.record(transaction("T1", status=TransactionStatus.DENIED))

        async with seeded._engine.connect() as conn:
            row = (await conn.execute(
                text("SELECT status, denial_reason FROM transactions WHERE id = 'T1'")
            )).one()

        assert tuple(row) == ("denied", "insufficient_credit")


class TestLedger:
    async def test_insert_if_absent(self, seeded):
        first = await seeded.create_transaction_if_absent(transaction("T1", amount_cents=500))
        second = await seeded.create_transaction_if_absent(transaction("T1", amount_cents=900))

        assert first.created is True
        assert second.created is False
        assert second.existing.amount_cents == 500

    async def test_record_round_trip(self, seeded):
        original = transaction("T1")
        await seeded.record(original)

        assert await seeded.find_transaction("T1") == original

    async def test_record_approved_increments_balance(self, seeded):
        result = await seeded.record(transaction("T1", amount_cents=2_500))

        assert result.created is True
        assert (await seeded.find_account(ACCOUNT_ID)).current_balance_cents == 2_500

    async def test_record_denied_leaves_balance(self, seeded):
        await seeded.record(transaction("T1", amount_cents=2_500, status=TransactionStatus.DENIED))
        assert (await seeded.find_account(ACCOUNT_ID)).current_balance_cents == 0

    async def test_record_replay_is_a_no_op(self, seeded):
        await seeded.record(transaction("T1", amount_cents=2_500))
        result = await seeded.record(transaction("T1", amount_cents=2_500))

        assert result.created is False
        assert result.existing.id == "T1"
        assert (await seeded.find_account(ACCOUNT_ID)).current_balance_cents == 2_500

    async def test_record_rolls_back_when_account_is_missing(self, seeded):
        """The increment fails, so the insert must not survive either."""
        with pytest.raises(AccountNotFoundError):
            await seeded.record(transaction("T1", account_id="ghost"))

        assert await seeded.find_transaction("T1") is None

    async def test_card_not_found_record_has_no_account(self, seeded):
        record = TransactionRecord(
            id="T1",
            card_id="unknown",
            account_id=None,
            amount_cents=100,
            currency="USD",
            merchant_category=5411,
            merchant_address=MERCHANT_ADDRESS,
            status=TransactionStatus.DENIED,
            denial_reason=DenialReason.CARD_NOT_FOUND,
        )
        await seeded.record(record)
        assert (await seeded.find_transaction("T1")).account_id is None

    async def test_add_to_balance(self, seeded):
        account = await seeded.add_to_balance(ACCOUNT_ID, 1_234)
        assert account.current_balance_cents == 1_234

        with pytest.raises(AccountNotFoundError):
            await seeded.add_to_balance("ghost", 1)

    async def test_long_upstream_ids(self, seeded):
        """Transaction and card ids are stored at whatever length upstream sends."""
        long_id = "T" * 200
        await seeded.record(transaction(long_id))

        assert (await seeded.find_transaction(long_id)).id == long_id

    async def test_balances_beyond_32_bits(self, seeded):
        big = 3_000_000_000
        await seeded.add_to_balance(ACCOUNT_ID, big)
        await seeded.record(transaction("T1", amount_cents=big))

        assert (await seeded.find_account(ACCOUNT_ID)).current_balance_cents == 2 * big
        assert (await seeded.find_transaction("T1")).amount_cents == big

    def test_money_columns_are_64_bit(self):
        columns = [
            Account.__table__.c.credit_limit_cents,
            Account.__table__.c.current_balance_cents,
            Card.__table__.c.spending_limit_cents,
            Transaction.__table__.c.amount_cents,
            Statement.__table__.c.opening_balance_cents,
            Statement.__table__.c.closing_balance_cents,
            Statement.__table__.c.total_spent_cents,
            Statement.__table__.c.minimum_payment_cents,
        ]
        assert all(isinstance(column.type, BigInteger) for column in columns)

    async def test_concurrent_record_same_id(self, seeded):
        results = await asyncio.gather(
            *(seeded.record(transaction("T1", amount_cents=1_000)) for _ in range(5))
        )

        assert sum(1 for r in results if r.created) == 1
        assert (await seeded.find_account(ACCOUNT_ID)).current_balance_cents == 1_000

    async def test_list_transactions_filters_and_order(self, seeded):
        base = datetime(2026, 9, 1, tzinfo=timezone.utc)
        await seeded.record(transaction("old", created_at=base))
        await seeded.record(transaction("new", created_at=base + timedelta(days=1)))
        await seeded.record(
            transaction("denied", status=TransactionStatus.DENIED, created_at=base + timedelta(days=2))
        )

        newest_first = await seeded.list_transactions(account_id=ACCOUNT_ID)
        approved = await seeded.list_transactions(status=TransactionStatus.APPROVED)
        page = await seeded.list_transactions(card_id=CARD_ID, limit=1, offset=1)

        assert [r.id for r in newest_first] == ["denied", "new", "old"]
        assert [r.id for r in approved] == ["new", "old"]
        assert [r.id for r in page] == ["new"]


class TestStatementQueries:
    START = datetime(2026, 9, 1, tzinfo=timezone.utc)
    END = datetime(2026, 9, 30, 23, 59, 59, 999999, tzinfo=timezone.utc)

    async def test_approved_range_is_inclusive(self, seeded):
        await seeded.record(transaction("start", created_at=self.START))
        await seeded.record(transaction("end", created_at=self.END))
        await seeded.record(transaction("before", created_at=self.START - timedelta(microseconds=1)))
        await seeded.record(transaction("after", created_at=self.END + timedelta(microseconds=1)))
        await seeded.record(transaction("denied", status=TransactionStatus.DENIED))

        found = await seeded.list_approved_transactions(ACCOUNT_ID, self.START, self.END)

        assert [r.id for r in found] == ["start", "end"]

    async def test_latest_statement_and_listing(self, seeded):
        def statement(statement_id: str, month: int) -> StatementRecord:
            start = datetime(2026, month, 1, tzinfo=timezone.utc)
            return StatementRecord(
                id=statement_id,
                account_id=ACCOUNT_ID,
                period_start=start,
                period_end=start + timedelta(days=27),
                opening_balance_cents=0,
                closing_balance_cents=month * 100,
                total_spent_cents=month * 100,
                minimum_payment_cents=month * 100,
                due_date=start + timedelta(days=52),
            )

        await seeded.create_statement(statement("july", 7))
        await seeded.create_statement(statement("august", 8))

        latest = await seeded.find_latest_statement(ACCOUNT_ID)
        listed = await seeded.list_statements(ACCOUNT_ID)

        assert latest.id == "august"
        assert latest.closing_balance_cents == 800
        assert [s.id for s in listed] == ["august", "july"]
        assert await seeded.find_latest_statement("nobody") is None


class TestUnavailable:
    async def test_unreachable_database(self, tmp_path):
        """A database file in a directory that doesn't exist can't be opened."""
        engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'missing' / 'cards.db'}")
        store = SqlStore(engine)

        with pytest.raises(StoreUnavailableError) as exc_info:
            await store.find_card(CARD_ID)

        assert exc_info.value.operation == "find_card"
        await store.close()


class TestCoreOnSql:
    """The orchestrator and statement generator don't care which store they get."""

    async def test_reference_scenario(self, seeded, make_request):
        orchestrator = TransactionOrchestrator(directory=seeded, ledger=seeded)

        assert await orchestrator.submit(make_request("T1", amount_cents=50_000)) is True
        assert await orchestrator.submit(make_request("T1", amount_cents=50_000)) is True
        assert await orchestrator.submit(make_request("T2", amount_cents=60_000)) is False

        assert (await seeded.find_account(ACCOUNT_ID)).current_balance_cents == 50_000
        denied = await seeded.find_transaction("T2")
        assert denied.denial_reason == DenialReason.INSUFFICIENT_CREDIT

    async def test_same_account_race(self, seeded, make_request):
        orchestrator = TransactionOrchestrator(directory=seeded, ledger=seeded)

        results = await asyncio.gather(
            *(orchestrator.submit(make_request(f"T{i}", amount_cents=30_000)) for i in range(5))
        )

        assert results.count(True) == 3
        assert (await seeded.find_account(ACCOUNT_ID)).current_balance_cents == 90_000

    async def test_statement_generation(self, seeded):
        await seeded.record(transaction("T1", amount_cents=5_000))
        await seeded.record(transaction("T2", amount_cents=3_000))
        generator = StatementGenerator(seeded)

        statements = await generator.generate_monthly_statements(
            now=datetime(2026, 10, 2, tzinfo=timezone.utc)
        )

        assert len(statements) == 1
        assert statements[0].closing_balance_cents == 8_000
        assert await seeded.list_statements(ACCOUNT_ID) == statements
