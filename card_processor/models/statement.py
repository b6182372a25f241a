"""
Statement model: a billing-period summary for one account.

Statements are written once by the statement generator and never updated.
Balances are copied in, not recomputed on read, so a statement keeps
showing what the customer was billed even if later data changes.

There is no unique constraint on (account_id, period_start,
period_end): re-running the batch for a covered period creates a second
statement. See "Duplicate statement periods" in DESIGN.md.
"""

from datetime import datetime

from sqlalchemy import BigInteger, String, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column

from card_processor.database import Base, UTCDateTime
from card_processor.domain import StatementRecord, utcnow


class Statement(Base):
    __tablename__ = "statements"

    id: Mapped[str] = mapped_column(
        String(64),
        primary_key=True,
    )

    account_id: Mapped[str] = mapped_column(
        ForeignKey("accounts.id"),
        nullable=False,
        index=True,
    )

    # Billing period, inclusive on both ends
    period_start: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    period_end: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, index=True)

    opening_balance_cents: Mapped[int] = mapped_column(BigInteger, nullable=False)
    closing_balance_cents: Mapped[int] = mapped_column(BigInteger, nullable=False)
    total_spent_cents: Mapped[int] = mapped_column(BigInteger, nullable=False)
    minimum_payment_cents: Mapped[int] = mapped_column(BigInteger, nullable=False)

    due_date: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime,
        default=utcnow,
        nullable=False,
    )

    @classmethod
    def from_record(cls, record: StatementRecord) -> "Statement":
        return cls(
            id=record.id,
            account_id=record.account_id,
            period_start=record.period_start,
            period_end=record.period_end,
            opening_balance_cents=record.opening_balance_cents,
            closing_balance_cents=record.closing_balance_cents,
            total_spent_cents=record.total_spent_cents,
            minimum_payment_cents=record.minimum_payment_cents,
            due_date=record.due_date,
            created_at=record.created_at,
        )

    def to_record(self) -> StatementRecord:
        return StatementRecord(
            id=self.id,
            account_id=self.account_id,
            period_start=self.period_start,
            period_end=self.period_end,
            opening_balance_cents=self.opening_balance_cents,
            closing_balance_cents=self.closing_balance_cents,
            total_spent_cents=self.total_spent_cents,
            minimum_payment_cents=self.minimum_payment_cents,
            due_date=self.due_date,
            created_at=self.created_at,
        )
