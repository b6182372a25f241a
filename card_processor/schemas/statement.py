"""
Pydantic schemas for statement endpoints.

All monetary amounts are in integer cents. Periods are inclusive on both
ends; naive datetimes in requests are taken to be UTC.
"""

from datetime import datetime, timezone

from pydantic import BaseModel, field_validator, model_validator


class StatementGenerateRequest(BaseModel):
    """Request body for POST /admin/accounts/{id}/statements."""
    period_start: datetime
    period_end: datetime

    @field_validator("period_start", "period_end")
    @classmethod
    def assume_utc(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    @model_validator(mode="after")
    def period_must_be_ordered(self):
        """A period can't end before it starts."""
        if self.period_end < self.period_start:
            raise ValueError("period_end must not be before period_start")
        return self


class StatementResponse(BaseModel):
    """A generated billing statement."""
    id: str
    account_id: str
    period_start: datetime
    period_end: datetime
    opening_balance_cents: int
    total_spent_cents: int
    closing_balance_cents: int
    minimum_payment_cents: int
    due_date: datetime
    created_at: datetime

    model_config = {"from_attributes": True}


class StatementSummary(BaseModel):
    """Per-account line of a batch run."""
    id: str
    account_id: str
    closing_balance_cents: int
    minimum_payment_cents: int
    due_date: datetime

    model_config = {"from_attributes": True}


class StatementBatchResponse(BaseModel):
    """Response body for POST /admin/generate-statements."""
    success: bool
    count: int
    statements: list[StatementSummary]
