"""
Statement service: billing-period statement generation.

Generates a statement for an account and period by:
  1. Taking the opening balance from the account's latest statement
     (its closing balance), or 0 if there is none
  2. Summing the approved transactions with created_at in
     [period_start, period_end], both ends inclusive
  3. closing = opening + total spent (payments are not modeled yet; once
     they are, they get subtracted here)
  4. Computing the minimum payment and the due date

The monthly batch runs this for every active account over the previous
calendar month. In production it would be triggered by a scheduler; here
it's exposed as POST /admin/generate-statements.

Duplicate periods:
  Nothing stops the batch from being re-run for a period that already has
  a statement; doing so creates a second statement. This is logged as a
  warning (statement_period_already_covered) but NOT prevented. See
  "Duplicate statement periods" in DESIGN.md.
"""

import uuid
from datetime import datetime, timedelta, timezone

from card_processor.config import Settings
from card_processor.domain import StatementRecord, utcnow
from card_processor.exceptions import InvalidStatementPeriodError
from card_processor.logging import get_logger
from card_processor.storage.base import StatementStore

logger = get_logger(__name__)

DEFAULT_GRACE_DAYS = 25
DEFAULT_MINIMUM_PAYMENT_FLOOR_CENTS = 2500  # $25
DEFAULT_MINIMUM_PAYMENT_PERCENT = 2


def calculate_minimum_payment(
    balance_cents: int,
    floor_cents: int = DEFAULT_MINIMUM_PAYMENT_FLOOR_CENTS,
    percent: int = DEFAULT_MINIMUM_PAYMENT_PERCENT,
) -> int:
    """
    Minimum payment due on a closing balance.

    Standard credit card rules:
      - Nothing owed (balance <= 0): 0
      - Balance below the floor: the full balance
      - Otherwise: the greater of `percent`% of the balance (rounded up to
        the next cent) and the floor

    Integer arithmetic only: ceil(balance * percent / 100) is computed as
    a negated floor division, never through a float.
    """
    if balance_cents <= 0:
        return 0

    if balance_cents < floor_cents:
        return balance_cents

    percentage_payment = -(-balance_cents * percent // 100)
    return max(percentage_payment, floor_cents)


def previous_month_period(now: datetime) -> tuple[datetime, datetime]:
    """
    The calendar month before `now`, as an inclusive UTC range.

    Returns (first instant of the month, last microsecond of the month).
    """
    now = now.astimezone(timezone.utc)
    this_month_start = datetime(now.year, now.month, 1, tzinfo=timezone.utc)
    period_end = this_month_start - timedelta(microseconds=1)
    period_start = datetime(period_end.year, period_end.month, 1, tzinfo=timezone.utc)
    return period_start, period_end


class StatementGenerator:
    """Builds and stores statements. Doesn't touch live decision-making."""

    def __init__(
        self,
        store: StatementStore,
        grace_days: int = DEFAULT_GRACE_DAYS,
        minimum_payment_floor_cents: int = DEFAULT_MINIMUM_PAYMENT_FLOOR_CENTS,
        minimum_payment_percent: int = DEFAULT_MINIMUM_PAYMENT_PERCENT,
    ):
        self._store = store
        self.grace_days = grace_days
        self.minimum_payment_floor_cents = minimum_payment_floor_cents
        self.minimum_payment_percent = minimum_payment_percent

    @classmethod
    def from_settings(cls, store: StatementStore, settings: Settings) -> "StatementGenerator":
        return cls(
            store,
            grace_days=settings.STATEMENT_GRACE_DAYS,
            minimum_payment_floor_cents=settings.MINIMUM_PAYMENT_FLOOR_CENTS,
            minimum_payment_percent=settings.MINIMUM_PAYMENT_PERCENT,
        )

    async def generate_for_account(
        self,
        account_id: str,
        period_start: datetime,
        period_end: datetime,
    ) -> StatementRecord:
        """
        Generate and store the statement for one account and period.

        Args:
            account_id: The account to bill.
            period_start: First instant of the period (inclusive).
            period_end: Last instant of the period (inclusive).

        Returns:
            The stored StatementRecord.

        Raises:
            InvalidStatementPeriodError: If period_end is before period_start.
            StoreUnavailableError: If the store fails.
        """
        if period_end < period_start:
            raise InvalidStatementPeriodError(
                f"Statement period ends ({period_end.isoformat()}) "
                f"before it starts ({period_start.isoformat()})"
            )

        last_statement = await self._store.find_latest_statement(account_id)
        opening_balance = last_statement.closing_balance_cents if last_statement else 0

        if last_statement is not None and last_statement.period_end >= period_start:
            logger.warning(
                "statement_period_already_covered",
                account_id=account_id,
                period_start=period_start.isoformat(),
                period_end=period_end.isoformat(),
                existing_statement_id=last_statement.id,
            )

        transactions = await self._store.list_approved_transactions(
            account_id, period_start, period_end
        )
        total_spent = sum(tx.amount_cents for tx in transactions)
        closing_balance = opening_balance + total_spent

        statement = StatementRecord(
            id=str(uuid.uuid4()),
            account_id=account_id,
            period_start=period_start,
            period_end=period_end,
            opening_balance_cents=opening_balance,
            closing_balance_cents=closing_balance,
            total_spent_cents=total_spent,
            minimum_payment_cents=calculate_minimum_payment(
                closing_balance,
                floor_cents=self.minimum_payment_floor_cents,
                percent=self.minimum_payment_percent,
            ),
            due_date=period_end + timedelta(days=self.grace_days),
            created_at=utcnow(),
        )
        await self._store.create_statement(statement)

        logger.info(
            "statement_generated",
            account_id=account_id,
            statement_id=statement.id,
            transaction_count=len(transactions),
            closing_balance_cents=closing_balance,
            minimum_payment_cents=statement.minimum_payment_cents,
        )
        return statement

    async def generate_monthly_statements(self, now: datetime | None = None) -> list[StatementRecord]:
        """
        Generate last calendar month's statement for every active account.

        Args:
            now: Reference time (defaults to the current UTC time). The
                 period billed is the calendar month before it.
        """
        period_start, period_end = previous_month_period(now or utcnow())

        accounts = await self._store.list_active_accounts()
        statements = []
        for account in accounts:
            statement = await self.generate_for_account(account.id, period_start, period_end)
            statements.append(statement)

        logger.info(
            "statements_generated",
            count=len(statements),
            period_start=period_start.isoformat(),
            period_end=period_end.isoformat(),
        )
        return statements
