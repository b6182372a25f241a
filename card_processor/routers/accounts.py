"""
Accounts router: credit account management.

All endpoints require the admin key (X-Admin-Key).

Endpoints:
  POST   /accounts                                   Open a new account
  GET    /accounts/{account_id}                      Get an account and its balance
  PATCH  /accounts/{account_id}/status               Freeze, close or reactivate
  GET    /accounts/{account_id}/transactions         List the account's transactions
"""

from fastapi import APIRouter, Depends, Query, status

from card_processor.dependencies import get_store, require_admin_key
from card_processor.domain import TransactionStatus
from card_processor.schemas.account import (
    AccountCreateRequest,
    AccountResponse,
    AccountStatusUpdate,
)
from card_processor.schemas.transaction import TransactionResponse
from card_processor.services import account_service
from card_processor.storage.base import Store

router = APIRouter(dependencies=[Depends(require_admin_key)])


@router.post(
    "",
    response_model=AccountResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Open a new credit account",
)
async def create_account(
    request: AccountCreateRequest,
    store: Store = Depends(get_store),
):
    """
    Open an active account with a zero balance.

    Returns 409 if an explicit id is given and already taken.
    """
    return await account_service.create_account(
        store=store,
        credit_limit_cents=request.credit_limit_cents,
        currency=request.currency,
        account_id=request.id,
    )


@router.get(
    "/{account_id}",
    response_model=AccountResponse,
    summary="Get account details",
)
async def get_account(
    account_id: str,
    store: Store = Depends(get_store),
):
    """Current balance, credit limit and available credit, read live."""
    return await account_service.get_account(store, account_id)


@router.patch(
    "/{account_id}/status",
    response_model=AccountResponse,
    summary="Change an account's status",
)
async def update_account_status(
    account_id: str,
    request: AccountStatusUpdate,
    store: Store = Depends(get_store),
):
    return await account_service.update_status(store, account_id, request.status)


@router.get(
    "/{account_id}/transactions",
    response_model=list[TransactionResponse],
    summary="List an account's transactions",
)
async def list_account_transactions(
    account_id: str,
    status: TransactionStatus | None = Query(None, description="Filter by status"),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    store: Store = Depends(get_store),
):
    """
    Newest first, approvals and denials alike (denial reasons included).
    Transactions for unknown cards have no account and don't show up here.
    """
    return await account_service.list_account_transactions(
        store=store,
        account_id=account_id,
        status_filter=status,
        limit=limit,
        offset=offset,
    )
