"""
Transactions router: read access to recorded decisions.

Endpoint:
  GET    /transactions/{transaction_id}              Get one transaction, denial reason included

Transactions are only ever created through the webhook; there is no write
endpoint here.
"""

from fastapi import APIRouter, Depends

from card_processor.dependencies import get_store, require_admin_key
from card_processor.schemas.transaction import TransactionResponse
from card_processor.services import transaction_service
from card_processor.storage.base import Store

router = APIRouter(dependencies=[Depends(require_admin_key)])


@router.get(
    "/{transaction_id}",
    response_model=TransactionResponse,
    summary="Get a transaction by its upstream id",
)
async def get_transaction(
    transaction_id: str,
    store: Store = Depends(get_store),
):
    return await transaction_service.get_transaction(store, transaction_id)
