"""
Cards router: issuing cards and changing their status.

All endpoints require the admin key (X-Admin-Key).

Endpoints:
  POST   /cards                                      Issue a card against an account
  GET    /cards/{card_id}                            Get card details
  PATCH  /cards/{card_id}/status                     Freeze, cancel or reactivate
  GET    /cards/{card_id}/transactions               List transactions on the card
"""

from fastapi import APIRouter, Depends, Query, status

from card_processor.dependencies import get_store, require_admin_key
from card_processor.domain import TransactionStatus
from card_processor.schemas.card import CardCreateRequest, CardResponse, CardStatusUpdate
from card_processor.schemas.transaction import TransactionResponse
from card_processor.services import card_service
from card_processor.storage.base import Store

router = APIRouter(dependencies=[Depends(require_admin_key)])


@router.post(
    "",
    response_model=CardResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Issue a card",
)
async def issue_card(
    request: CardCreateRequest,
    store: Store = Depends(get_store),
):
    """
    Issue an active card for an existing account.

    Returns 404 if the account doesn't exist and 409 if an explicit card
    id is already taken.
    """
    return await card_service.issue_card(
        store=store,
        account_id=request.account_id,
        spending_limit_cents=request.spending_limit_cents,
        card_id=request.id,
    )


@router.get(
    "/{card_id}",
    response_model=CardResponse,
    summary="Get card details",
)
async def get_card(
    card_id: str,
    store: Store = Depends(get_store),
):
    return await card_service.get_card(store, card_id)


@router.patch(
    "/{card_id}/status",
    response_model=CardResponse,
    summary="Change a card's status",
)
async def update_card_status(
    card_id: str,
    request: CardStatusUpdate,
    store: Store = Depends(get_store),
):
    """A frozen or cancelled card is denied with card_not_active from the next decision on."""
    return await card_service.update_status(store, card_id, request.status)


@router.get(
    "/{card_id}/transactions",
    response_model=list[TransactionResponse],
    summary="List transactions on a card",
)
async def list_card_transactions(
    card_id: str,
    status: TransactionStatus | None = Query(None, description="Filter by status"),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    store: Store = Depends(get_store),
):
    return await card_service.list_card_transactions(
        store=store,
        card_id=card_id,
        status_filter=status,
        limit=limit,
        offset=offset,
    )
