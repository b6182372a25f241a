"""
Domain types for the card transaction processor.

Re-exported here so callers can import from card_processor.domain directly.
"""

from card_processor.domain.models import (  # noqa: F401
    AccountSnapshot,
    AccountStatus,
    CardSnapshot,
    CardStatus,
    DenialReason,
    InsertResult,
    MerchantAddress,
    StatementRecord,
    TransactionRecord,
    TransactionRequest,
    TransactionStatus,
    Verdict,
    utcnow,
)
