"""
Card model: a payment card that charges against an account.

An account may have many cards; every card belongs to exactly one account.
A card never acts independently of its account: the rule chain checks the
card's status first and then the account's.

spending_limit_cents is an optional per-card cap on a single transaction's
amount. NULL means no per-card cap (only the account's credit limit applies).
"""

from datetime import datetime

from sqlalchemy import BigInteger, String, ForeignKey, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column

from card_processor.database import Base, UTCDateTime, enum_column
from card_processor.domain import CardSnapshot, CardStatus, utcnow


class Card(Base):
    __tablename__ = "cards"

    __table_args__ = (
        CheckConstraint(
            "spending_limit_cents IS NULL OR spending_limit_cents >= 0",
            name="ck_cards_non_negative_spending_limit",
        ),
    )

    id: Mapped[str] = mapped_column(
        String,
        primary_key=True,
    )

    # Many cards per account
    account_id: Mapped[str] = mapped_column(
        ForeignKey("accounts.id"),
        nullable=False,
        index=True,
    )

    status: Mapped[CardStatus] = mapped_column(
        enum_column(CardStatus, 16),
        nullable=False,
        default=CardStatus.ACTIVE,
    )

    spending_limit_cents: Mapped[int | None] = mapped_column(
        BigInteger,
        nullable=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime,
        default=utcnow,
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime,
        default=utcnow,
        onupdate=utcnow,
        nullable=False,
    )

    @classmethod
    def from_snapshot(cls, snapshot: CardSnapshot) -> "Card":
        return cls(
            id=snapshot.id,
            account_id=snapshot.account_id,
            status=snapshot.status,
            spending_limit_cents=snapshot.spending_limit_cents,
            created_at=snapshot.created_at,
            updated_at=snapshot.updated_at,
        )

    def to_snapshot(self) -> CardSnapshot:
        return CardSnapshot(
            id=self.id,
            account_id=self.account_id,
            status=CardStatus(self.status),
            spending_limit_cents=self.spending_limit_cents,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )
