"""
Pydantic schemas for card management endpoints.
"""

from datetime import datetime

from pydantic import BaseModel, Field

from card_processor.domain import CardStatus


class CardCreateRequest(BaseModel):
    """Request body for POST /cards."""
    id: str | None = Field(
        None, min_length=1,
        description="Optional explicit id; a UUID is generated if omitted",
    )
    account_id: str = Field(min_length=1, max_length=64)
    spending_limit_cents: int | None = Field(
        None, ge=0, description="Optional per-transaction cap in cents"
    )


class CardStatusUpdate(BaseModel):
    """Request body for PATCH /cards/{id}/status."""
    status: CardStatus


class CardResponse(BaseModel):
    """Public representation of a card."""
    id: str
    account_id: str
    status: CardStatus
    spending_limit_cents: int | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
