"""
Account service: directory management for credit accounts.

Accounts are created and frozen/closed by operators through the admin API
(or by demo seeding). The balance is never set here: it only moves through
approved transactions recorded by the ledger.
"""

import uuid

from card_processor.domain import (
    AccountSnapshot,
    AccountStatus,
    TransactionRecord,
    TransactionStatus,
    utcnow,
)
from card_processor.exceptions import AccountNotFoundError
from card_processor.logging import get_logger
from card_processor.storage.base import Store

logger = get_logger(__name__)


async def create_account(
    store: Store,
    credit_limit_cents: int,
    currency: str = "USD",
    account_id: str | None = None,
) -> AccountSnapshot:
    """
    Open a new active account with a zero balance.

    Args:
        store: The backing store.
        credit_limit_cents: Credit limit in cents.
        currency: ISO 4217 code.
        account_id: Explicit id; a UUID is generated when omitted.

    Returns:
        The stored AccountSnapshot.

    Raises:
        DuplicateAccountError: If the explicit id is already taken.
    """
    now = utcnow()
    account = AccountSnapshot(
        id=account_id or str(uuid.uuid4()),
        credit_limit_cents=credit_limit_cents,
        current_balance_cents=0,
        status=AccountStatus.ACTIVE,
        currency=currency.upper(),
        created_at=now,
        updated_at=now,
    )
    account = await store.create_account(account)
    logger.info(
        "account_created",
        account_id=account.id,
        credit_limit_cents=account.credit_limit_cents,
    )
    return account


async def get_account(store: Store, account_id: str) -> AccountSnapshot:
    """
    Raises:
        AccountNotFoundError: If the account doesn't exist.
    """
    account = await store.find_account(account_id)
    if account is None:
        raise AccountNotFoundError(account_id)
    return account


async def update_status(
    store: Store,
    account_id: str,
    status: AccountStatus,
) -> AccountSnapshot:
    """Freeze, close or reactivate an account. Takes effect on the next decision."""
    account = await store.set_account_status(account_id, status)
    logger.info("account_status_changed", account_id=account_id, status=status.value)
    return account


async def list_account_transactions(
    store: Store,
    account_id: str,
    status_filter: TransactionStatus | None = None,
    limit: int = 50,
    offset: int = 0,
) -> list[TransactionRecord]:
    """List an account's transactions, newest first."""
    await get_account(store, account_id)
    return await store.list_transactions(
        account_id=account_id,
        status=status_filter,
        limit=limit,
        offset=offset,
    )
