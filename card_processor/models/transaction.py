"""
Transaction model: the recorded outcome of one card-transaction event.

Key fields:
  - id: Supplied by the upstream event source. It is the idempotency key,
    so it is the primary key. The SQL store inserts with ON CONFLICT DO
    NOTHING and reads back whichever row got there first.
  - account_id: Denormalized from the card for statement queries. NULL
    when the card could not be resolved (card_not_found denials).
  - amount_cents: Never negative.
  - status: "approved" or "denied". Terminal, set exactly once.
  - denial_reason: Set iff status is "denied". Kept for audit and for
    idempotent replay; it is never returned to the webhook caller.

Rows are immutable once inserted: there is no updated_at column and no
code path that updates a transaction.
"""

from datetime import datetime

from sqlalchemy import BigInteger, String, Integer, ForeignKey, CheckConstraint, Index
from sqlalchemy.orm import Mapped, mapped_column

from card_processor.database import Base, UTCDateTime, enum_column
from card_processor.domain import (
    DenialReason,
    MerchantAddress,
    TransactionRecord,
    TransactionStatus,
    utcnow,
)


class Transaction(Base):
    __tablename__ = "transactions"

    __table_args__ = (
        CheckConstraint("amount_cents >= 0", name="ck_transactions_non_negative_amount"),
        CheckConstraint(
            "(status = 'denied') = (denial_reason IS NOT NULL)",
            name="ck_transactions_reason_iff_denied",
        ),
        # Statement queries: one account's approved transactions in a date range
        Index("ix_transactions_account_status_created", "account_id", "status", "created_at"),
    )

    id: Mapped[str] = mapped_column(
        String,
        primary_key=True,
    )

    # No FK: a card_not_found denial still records the card id it was sent
    card_id: Mapped[str] = mapped_column(
        String,
        nullable=False,
        index=True,
    )

    account_id: Mapped[str | None] = mapped_column(
        ForeignKey("accounts.id"),
        nullable=True,
    )

    amount_cents: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
    )

    currency: Mapped[str] = mapped_column(
        String,
        nullable=False,
    )

    # Merchant category code (MCC)
    merchant_category: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
    )

    merchant_line_1: Mapped[str] = mapped_column(String, nullable=False)
    merchant_line_2: Mapped[str | None] = mapped_column(String, nullable=True)
    merchant_city: Mapped[str] = mapped_column(String, nullable=False)
    merchant_state: Mapped[str] = mapped_column(String, nullable=False)
    merchant_country: Mapped[str] = mapped_column(String, nullable=False)

    status: Mapped[TransactionStatus] = mapped_column(
        enum_column(TransactionStatus, 16),
        nullable=False,
    )

    denial_reason: Mapped[DenialReason | None] = mapped_column(
        enum_column(DenialReason, 32),
        nullable=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime,
        default=utcnow,
        nullable=False,
    )

    @classmethod
    def from_record(cls, record: TransactionRecord) -> "Transaction":
        return cls(**transaction_values(record))

    def to_record(self) -> TransactionRecord:
        return TransactionRecord(
            id=self.id,
            card_id=self.card_id,
            account_id=self.account_id,
            amount_cents=self.amount_cents,
            currency=self.currency,
            merchant_category=self.merchant_category,
            merchant_address=MerchantAddress(
                line_1=self.merchant_line_1,
                line_2=self.merchant_line_2,
                city=self.merchant_city,
                state=self.merchant_state,
                country=self.merchant_country,
            ),
            status=TransactionStatus(self.status),
            denial_reason=DenialReason(self.denial_reason) if self.denial_reason else None,
            created_at=self.created_at,
        )


def transaction_values(record: TransactionRecord) -> dict:
    """Column values for a record, usable with both the ORM and Core inserts."""
    address = record.merchant_address
    return {
        "id": record.id,
        "card_id": record.card_id,
        "account_id": record.account_id,
        "amount_cents": record.amount_cents,
        "currency": record.currency,
        "merchant_category": record.merchant_category,
        "merchant_line_1": address.line_1,
        "merchant_line_2": address.line_2,
        "merchant_city": address.city,
        "merchant_state": address.state,
        "merchant_country": address.country,
        "status": record.status,
        "denial_reason": record.denial_reason,
        "created_at": record.created_at,
    }
