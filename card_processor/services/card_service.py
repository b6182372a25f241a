"""
Card service: issuing cards against accounts and changing their status.

A card always belongs to exactly one account; an account can hold any
number of cards. The optional spending limit is a per-transaction cap,
separate from the account's credit limit.
"""

import uuid

from card_processor.domain import (
    CardSnapshot,
    CardStatus,
    TransactionRecord,
    TransactionStatus,
    utcnow,
)
from card_processor.exceptions import CardNotFoundError
from card_processor.logging import get_logger
from card_processor.storage.base import Store

logger = get_logger(__name__)


async def issue_card(
    store: Store,
    account_id: str,
    spending_limit_cents: int | None = None,
    card_id: str | None = None,
) -> CardSnapshot:
    """
    Issue a new active card for an existing account.

    Args:
        store: The backing store.
        account_id: The owning account.
        spending_limit_cents: Optional per-transaction cap in cents.
        card_id: Explicit id; a UUID is generated when omitted.

    Returns:
        The stored CardSnapshot.

    Raises:
        AccountNotFoundError: If the account doesn't exist.
        DuplicateCardError: If the explicit id is already taken.
    """
    now = utcnow()
    card = CardSnapshot(
        id=card_id or str(uuid.uuid4()),
        account_id=account_id,
        status=CardStatus.ACTIVE,
        spending_limit_cents=spending_limit_cents,
        created_at=now,
        updated_at=now,
    )
    card = await store.create_card(card)
    logger.info("card_issued", card_id=card.id, account_id=account_id)
    return card


async def get_card(store: Store, card_id: str) -> CardSnapshot:
    card = await store.find_card(card_id)
    if card is None:
        raise CardNotFoundError(card_id)
    return card


async def update_status(store: Store, card_id: str, status: CardStatus) -> CardSnapshot:
    card = await store.set_card_status(card_id, status)
    logger.info("card_status_changed", card_id=card_id, status=status.value)
    return card


async def list_card_transactions(
    store: Store,
    card_id: str,
    status_filter: TransactionStatus | None = None,
    limit: int = 50,
    offset: int = 0,
) -> list[TransactionRecord]:
    """
    List transactions submitted against a card, newest first.

    Includes denials recorded before the card existed (card_not_found),
    since records are keyed by the card id the network sent.
    """
    await get_card(store, card_id)
    return await store.list_transactions(
        card_id=card_id,
        status=status_filter,
        limit=limit,
        offset=offset,
    )
