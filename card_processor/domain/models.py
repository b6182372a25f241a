"""
Domain models: plain dataclasses shared by the core and every store.

The decision engine and the orchestrator only ever see these types, never
ORM rows, so they stay independent of how (or whether) data is persisted.
Each store converts its own representation into these snapshots.

All monetary fields are integer minor currency units (cents). There is no
float anywhere in the money path.
"""

import enum
from dataclasses import dataclass, field
from datetime import datetime, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------

class AccountStatus(str, enum.Enum):
    """
    Lifecycle state of a credit account.

    Inherits from str so values serialize naturally to JSON and can be
    stored as plain strings.
    """
    ACTIVE = "active"
    FROZEN = "frozen"
    CLOSED = "closed"


class CardStatus(str, enum.Enum):
    ACTIVE = "active"
    FROZEN = "frozen"
    CANCELLED = "cancelled"


class TransactionStatus(str, enum.Enum):
    """Terminal outcome of a transaction, set exactly once."""
    APPROVED = "approved"
    DENIED = "denied"


class DenialReason(str, enum.Enum):
    """Why the rule chain denied a transaction, in rule-chain order."""
    CARD_NOT_FOUND = "card_not_found"
    CARD_NOT_ACTIVE = "card_not_active"
    ACCOUNT_NOT_FOUND = "account_not_found"
    ACCOUNT_NOT_ACTIVE = "account_not_active"
    INSUFFICIENT_CREDIT = "insufficient_credit"
    EXCEEDS_CARD_LIMIT = "exceeds_card_limit"


# ---------------------------------------------------------------------------
# Directory snapshots
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class AccountSnapshot:
    """A point-in-time view of a credit account."""

    id: str
    credit_limit_cents: int
    current_balance_cents: int = 0
    status: AccountStatus = AccountStatus.ACTIVE
    currency: str = "USD"
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)


@dataclass(frozen=True)
class CardSnapshot:
    """A point-in-time view of a card. spending_limit_cents=None means no per-card limit."""

    id: str
    account_id: str
    status: CardStatus = CardStatus.ACTIVE
    spending_limit_cents: int | None = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)


# ---------------------------------------------------------------------------
# Requests and outcomes
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class MerchantAddress:
    line_1: str
    city: str
    state: str
    country: str
    line_2: str | None = None


@dataclass(frozen=True)
class TransactionRequest:
    """
    A card-transaction event as handed to the core by the transport layer.

    `id` comes from the upstream event source and is the idempotency key.
    """

    id: str
    card_id: str
    amount_cents: int
    currency: str
    merchant_category: int
    merchant_address: MerchantAddress


@dataclass(frozen=True)
class Verdict:
    """
    Output of the decision engine.

    reason is set iff approved is False. card and account are the resolved
    snapshots on approval, so callers don't have to look them up again.
    """

    approved: bool
    reason: DenialReason | None = None
    card: CardSnapshot | None = None
    account: AccountSnapshot | None = None


@dataclass(frozen=True)
class TransactionRecord:
    """
    The persisted, immutable outcome of one transaction request.

    account_id is denormalized from the card; it is None when the card
    could not be resolved (a card_not_found denial).
    """

    id: str
    card_id: str
    account_id: str | None
    amount_cents: int
    currency: str
    merchant_category: int
    merchant_address: MerchantAddress
    status: TransactionStatus
    denial_reason: DenialReason | None = None
    created_at: datetime = field(default_factory=utcnow)

    @property
    def approved(self) -> bool:
        return self.status == TransactionStatus.APPROVED


@dataclass(frozen=True)
class InsertResult:
    """
    Result of an insert-if-absent.

    created=False means another writer got there first; `existing` is the
    record that won.
    """

    created: bool
    existing: TransactionRecord | None = None


@dataclass(frozen=True)
class StatementRecord:
    """A billing-period summary for one account. Never mutated after creation."""

    id: str
    account_id: str
    period_start: datetime
    period_end: datetime
    opening_balance_cents: int
    closing_balance_cents: int
    total_spent_cents: int
    minimum_payment_cents: int
    due_date: datetime
    created_at: datetime = field(default_factory=utcnow)
