"""
Tests for statement generation.

Tests verify:
  - Minimum payment: nothing owed, below floor, floor vs percentage, rounding up
  - Previous-month period calculation, including the year boundary
  - Opening/closing balance chaining from the previous statement
  - Inclusive period boundaries; denied transactions don't count
  - The monthly batch only bills active accounts
  - Re-running a covered period creates another statement (not prevented)
"""

from datetime import datetime, timedelta, timezone

import pytest

from conftest import ACCOUNT_ID, CARD_ID, MERCHANT_ADDRESS
from card_processor.domain import (
    AccountSnapshot,
    AccountStatus,
    DenialReason,
    StatementRecord,
    TransactionRecord,
    TransactionStatus,
)
from card_processor.exceptions import InvalidStatementPeriodError
from card_processor.services.statement_service import (
    StatementGenerator,
    calculate_minimum_payment,
    previous_month_period,
)

SEPT_START = datetime(2026, 9, 1, tzinfo=timezone.utc)
SEPT_END = datetime(2026, 9, 30, 23, 59, 59, 999999, tzinfo=timezone.utc)


async def record_transaction(
    store,
    transaction_id: str,
    amount_cents: int,
    created_at: datetime,
    status: TransactionStatus = TransactionStatus.APPROVED,
    account_id: str = ACCOUNT_ID,
):
    await store.record(
        TransactionRecord(
            id=transaction_id,
            card_id=CARD_ID,
            account_id=account_id,
            amount_cents=amount_cents,
            currency="USD",
            merchant_category=5411,
            merchant_address=MERCHANT_ADDRESS,
            status=status,
            denial_reason=(
                DenialReason.INSUFFICIENT_CREDIT
                if status == TransactionStatus.DENIED
                else None
            ),
            created_at=created_at,
        )
    )


async def prior_statement(store, closing_balance_cents: int, account_id: str = ACCOUNT_ID):
    """An August statement closing at the given balance."""
    statement = StatementRecord(
        id=f"prior-{account_id}",
        account_id=account_id,
        period_start=datetime(2026, 8, 1, tzinfo=timezone.utc),
        period_end=datetime(2026, 8, 31, 23, 59, 59, 999999, tzinfo=timezone.utc),
        opening_balance_cents=0,
        closing_balance_cents=closing_balance_cents,
        total_spent_cents=closing_balance_cents,
        minimum_payment_cents=calculate_minimum_payment(closing_balance_cents),
        due_date=datetime(2026, 9, 25, tzinfo=timezone.utc),
    )
    await store.create_statement(statement)
    return statement


class TestMinimumPayment:
    """Greater of 2% (rounded up) and the $25 floor, capped at the balance."""

    def test_nothing_owed(self):
        assert calculate_minimum_payment(0) == 0
        assert calculate_minimum_payment(-5_000) == 0

    def test_below_floor_pays_full_balance(self):
        assert calculate_minimum_payment(1_000) == 1_000
        assert calculate_minimum_payment(2_499) == 2_499

    def test_exactly_at_floor(self):
        assert calculate_minimum_payment(2_500) == 2_500

    def test_floor_beats_small_percentage(self):
        """2% of $480.00 is $9.60, so the $25 floor applies."""
        assert calculate_minimum_payment(48_000) == 2_500

    def test_percentage_and_floor_meet(self):
        assert calculate_minimum_payment(125_000) == 2_500

    def test_percentage_beats_floor(self):
        assert calculate_minimum_payment(200_000) == 4_000

    def test_percentage_rounds_up_to_next_cent(self):
        """2% of 125001 is 2500.02 cents, which rounds up to 2501."""
        assert calculate_minimum_payment(125_001) == 2_501

    def test_custom_floor_and_percent(self):
        assert calculate_minimum_payment(10_000, floor_cents=1_000, percent=5) == 1_000
        assert calculate_minimum_payment(100_000, floor_cents=1_000, percent=5) == 5_000


class TestPreviousMonthPeriod:
    def test_mid_month(self):
        start, end = previous_month_period(datetime(2026, 10, 17, 9, 30, tzinfo=timezone.utc))
        assert start == SEPT_START
        assert end == SEPT_END

    def test_year_boundary(self):
        start, end = previous_month_period(datetime(2026, 1, 5, tzinfo=timezone.utc))
        assert start == datetime(2025, 12, 1, tzinfo=timezone.utc)
        assert end == datetime(2025, 12, 31, 23, 59, 59, 999999, tzinfo=timezone.utc)

    def test_first_instant_of_month(self):
        start, _ = previous_month_period(datetime(2026, 3, 1, tzinfo=timezone.utc))
        assert start == datetime(2026, 2, 1, tzinfo=timezone.utc)

    def test_non_utc_reference_is_converted(self):
        """00:30 on Oct 1 in UTC+2 is still September in UTC."""
        plus_two = timezone(timedelta(hours=2))
        start, _ = previous_month_period(datetime(2026, 10, 1, 0, 30, tzinfo=plus_two))
        assert start == datetime(2026, 8, 1, tzinfo=timezone.utc)


class TestGenerateForAccount:
    async def test_reference_statement(self, scenario, generator):
        """Prior closing $400, then $50 + $30 approved: closing $480, minimum $25."""
        await prior_statement(scenario, 40_000)
        await record_transaction(scenario, "T1", 5_000, datetime(2026, 9, 3, tzinfo=timezone.utc))
        await record_transaction(scenario, "T2", 3_000, datetime(2026, 9, 20, tzinfo=timezone.utc))

        statement = await generator.generate_for_account(ACCOUNT_ID, SEPT_START, SEPT_END)

        assert statement.opening_balance_cents == 40_000
        assert statement.total_spent_cents == 8_000
        assert statement.closing_balance_cents == 48_000
        assert statement.minimum_payment_cents == 2_500
        assert statement.due_date == SEPT_END + timedelta(days=25)

    async def test_first_statement_opens_at_zero(self, scenario, generator):
        await record_transaction(scenario, "T1", 7_500, datetime(2026, 9, 3, tzinfo=timezone.utc))

        statement = await generator.generate_for_account(ACCOUNT_ID, SEPT_START, SEPT_END)

        assert statement.opening_balance_cents == 0
        assert statement.closing_balance_cents == 7_500

    async def test_period_is_inclusive(self, scenario, generator):
        await record_transaction(scenario, "start", 100, SEPT_START)
        await record_transaction(scenario, "end", 200, SEPT_END)
        await record_transaction(scenario, "before", 400, SEPT_START - timedelta(microseconds=1))
        await record_transaction(scenario, "after", 800, SEPT_END + timedelta(microseconds=1))

        statement = await generator.generate_for_account(ACCOUNT_ID, SEPT_START, SEPT_END)

        assert statement.total_spent_cents == 300

    async def test_denied_transactions_are_excluded(self, scenario, generator):
        when = datetime(2026, 9, 10, tzinfo=timezone.utc)
        await record_transaction(scenario, "T1", 1_000, when)
        await record_transaction(scenario, "T2", 9_000, when, status=TransactionStatus.DENIED)

        statement = await generator.generate_for_account(ACCOUNT_ID, SEPT_START, SEPT_END)

        assert statement.total_spent_cents == 1_000

    async def test_empty_period(self, scenario, generator):
        statement = await generator.generate_for_account(ACCOUNT_ID, SEPT_START, SEPT_END)

        assert statement.total_spent_cents == 0
        assert statement.closing_balance_cents == 0
        assert statement.minimum_payment_cents == 0

    async def test_statement_is_stored(self, scenario, generator):
        statement = await generator.generate_for_account(ACCOUNT_ID, SEPT_START, SEPT_END)
        assert await scenario.list_statements(ACCOUNT_ID) == [statement]

    async def test_period_ending_before_start_is_rejected(self, scenario, generator):
        with pytest.raises(InvalidStatementPeriodError):
            await generator.generate_for_account(ACCOUNT_ID, SEPT_END, SEPT_START)

    async def test_settings_drive_grace_and_minimum(self, scenario):
        generator = StatementGenerator(
            scenario, grace_days=10, minimum_payment_floor_cents=1_000, minimum_payment_percent=10
        )
        await record_transaction(scenario, "T1", 50_000, datetime(2026, 9, 3, tzinfo=timezone.utc))

        statement = await generator.generate_for_account(ACCOUNT_ID, SEPT_START, SEPT_END)

        assert statement.minimum_payment_cents == 5_000
        assert statement.due_date == SEPT_END + timedelta(days=10)


class TestMonthlyBatch:
    NOW = datetime(2026, 10, 1, 6, 0, tzinfo=timezone.utc)

    async def test_bills_every_active_account(self, scenario, generator):
        await scenario.create_account(AccountSnapshot(id="A2", credit_limit_cents=50_000))
        await scenario.create_account(
            AccountSnapshot(id="A3", credit_limit_cents=50_000, status=AccountStatus.FROZEN)
        )
        await record_transaction(scenario, "T1", 1_200, datetime(2026, 9, 15, tzinfo=timezone.utc))

        statements = await generator.generate_monthly_statements(now=self.NOW)

        billed = {s.account_id: s for s in statements}
        assert set(billed) == {ACCOUNT_ID, "A2"}
        assert billed[ACCOUNT_ID].closing_balance_cents == 1_200
        assert billed["A2"].closing_balance_cents == 0
        assert all(s.period_start == SEPT_START and s.period_end == SEPT_END for s in statements)

    async def test_no_accounts(self, store, generator):
        assert await generator.generate_monthly_statements(now=self.NOW) == []

    async def test_rerun_creates_another_statement(self, scenario, generator):
        """A covered period isn't guarded; the second run chains from the first."""
        await record_transaction(scenario, "T1", 3_000, datetime(2026, 9, 15, tzinfo=timezone.utc))

        first = (await generator.generate_monthly_statements(now=self.NOW))[0]
        second = (await generator.generate_monthly_statements(now=self.NOW))[0]

        assert second.id != first.id
        assert second.opening_balance_cents == first.closing_balance_cents
        assert len(await scenario.list_statements(ACCOUNT_ID)) == 2
