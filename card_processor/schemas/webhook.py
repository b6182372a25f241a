"""
Pydantic schemas for the transaction webhook.

The payload shape is the payment network's (snake_case, `amount` in integer
cents, merchant data nested). It is converted to a TransactionRequest
before it reaches the core.

The response is only {"approved": bool}. Denial reasons stay on the stored
record and never cross this boundary.
"""

from pydantic import BaseModel, Field

from card_processor.domain import MerchantAddress, TransactionRequest


class MerchantAddressPayload(BaseModel):
    line_1: str = Field(min_length=1)
    line_2: str | None = None
    city: str = Field(min_length=1)
    state: str = Field(min_length=1)
    country: str = Field(min_length=1)


class MerchantDataPayload(BaseModel):
    category: int = Field(ge=0, description="Merchant category code (MCC)")
    address: MerchantAddressPayload


class TransactionWebhookPayload(BaseModel):
    """Request body for POST /webhooks/transactions."""
    # Upstream owns the id format; only emptiness is rejected
    id: str = Field(min_length=1, description="Upstream id; the idempotency key")
    card_id: str = Field(min_length=1)
    # strict: 12.5 or "1250" is a malformed amount, not something to coerce
    amount: int = Field(ge=0, strict=True, description="Amount in cents (non-negative)")
    currency: str = Field(min_length=1, description="Currency code, normally ISO 4217")
    merchant_data: MerchantDataPayload

    def to_request(self) -> TransactionRequest:
        address = self.merchant_data.address
        return TransactionRequest(
            id=self.id,
            card_id=self.card_id,
            amount_cents=self.amount,
            currency=self.currency.upper(),
            merchant_category=self.merchant_data.category,
            merchant_address=MerchantAddress(
                line_1=address.line_1,
                line_2=address.line_2,
                city=address.city,
                state=address.state,
                country=address.country,
            ),
        )


class WebhookResponse(BaseModel):
    """Response to the payment network."""
    approved: bool
