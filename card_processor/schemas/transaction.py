"""
Pydantic schemas for reading recorded transactions (admin side).

Unlike the webhook response, these include the denial reason: they're for
operators auditing decisions, not for the payment network.
"""

from datetime import datetime

from pydantic import BaseModel

from card_processor.domain import DenialReason, TransactionStatus


class MerchantAddressResponse(BaseModel):
    line_1: str
    line_2: str | None
    city: str
    state: str
    country: str

    model_config = {"from_attributes": True}


class TransactionResponse(BaseModel):
    """Public representation of a recorded transaction."""
    id: str
    card_id: str
    account_id: str | None
    amount_cents: int
    currency: str
    merchant_category: int
    merchant_address: MerchantAddressResponse
    status: TransactionStatus
    denial_reason: DenialReason | None
    created_at: datetime

    model_config = {"from_attributes": True}
