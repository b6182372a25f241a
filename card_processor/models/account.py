"""
Account model: a credit account that one or more cards charge against.

Each account has:
  - A credit limit in integer cents
  - A current balance in integer cents (the amount owed)
  - A status: "active", "frozen" or "closed"
  - A currency code (single currency per account, ISO 4217)

Balance management:
  `current_balance_cents` is only ever changed by the orchestrator's
  approved-transaction path, in the same database transaction that inserts
  the transaction record. It always equals the sum of approved transaction
  amounts (payments are not modeled).

  The increment is a single `UPDATE ... SET current_balance_cents =
  current_balance_cents + :amount`, so it's atomic per row even without an
  application-level lock.

Why integer cents?
  Floating-point numbers introduce rounding errors (0.1 + 0.2 != 0.3 in
  IEEE 754). A credit-limit comparison done in floats can approve a charge
  that should be denied, or the reverse. Integers are exact.
"""

from datetime import datetime

from sqlalchemy import BigInteger, String, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column

from card_processor.database import Base, UTCDateTime, enum_column
from card_processor.domain import AccountSnapshot, AccountStatus, utcnow


class Account(Base):
    __tablename__ = "accounts"

    __table_args__ = (
        CheckConstraint(
            "credit_limit_cents >= 0",
            name="ck_accounts_non_negative_credit_limit",
        ),
    )

    # Assigned by the account-management side, not by the core
    id: Mapped[str] = mapped_column(
        String(64),
        primary_key=True,
    )

    credit_limit_cents: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
    )

    # Amount owed, in cents. Updated atomically with each approved transaction.
    current_balance_cents: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
        default=0,
    )

    status: Mapped[AccountStatus] = mapped_column(
        enum_column(AccountStatus, 16),
        nullable=False,
        default=AccountStatus.ACTIVE,
        index=True,
    )

    # ISO 4217 currency code
    currency: Mapped[str] = mapped_column(
        String(3),
        nullable=False,
        default="USD",
    )

    # Audit timestamps
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
    def from_snapshot(cls, snapshot: AccountSnapshot) -> "Account":
        return cls(
            id=snapshot.id,
            credit_limit_cents=snapshot.credit_limit_cents,
            current_balance_cents=snapshot.current_balance_cents,
            status=snapshot.status,
            currency=snapshot.currency,
            created_at=snapshot.created_at,
            updated_at=snapshot.updated_at,
        )

    def to_snapshot(self) -> AccountSnapshot:
        return AccountSnapshot(
            id=self.id,
            credit_limit_cents=self.credit_limit_cents,
            current_balance_cents=self.current_balance_cents,
            status=AccountStatus(self.status),
            currency=self.currency,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )
