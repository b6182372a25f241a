"""
Pydantic schemas for account management endpoints.

All monetary amounts are in integer cents (e.g., $10.50 = 1050).
"""

from datetime import datetime

from pydantic import BaseModel, Field, computed_field

from card_processor.domain import AccountStatus


class AccountCreateRequest(BaseModel):
    """Request body for POST /accounts."""
    id: str | None = Field(
        None, min_length=1, max_length=64,
        description="Optional explicit id; a UUID is generated if omitted",
    )
    credit_limit_cents: int = Field(ge=0, description="Credit limit in cents")
    currency: str = Field("USD", min_length=3, max_length=3, description="ISO 4217 code")


class AccountStatusUpdate(BaseModel):
    """Request body for PATCH /accounts/{id}/status."""
    status: AccountStatus


class AccountResponse(BaseModel):
    """Public representation of an account."""
    id: str
    credit_limit_cents: int
    current_balance_cents: int
    status: AccountStatus
    currency: str
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}

    @computed_field
    @property
    def available_credit_cents(self) -> int:
        return self.credit_limit_cents - self.current_balance_cents
