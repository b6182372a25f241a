"""
Admin router: statement generation and history.

All endpoints require the admin key (X-Admin-Key).

Endpoints:
  POST   /admin/generate-statements                  Bill last month for every active account
  POST   /admin/accounts/{account_id}/statements     Bill one account for an explicit period
  GET    /admin/accounts/{account_id}/statements     List an account's statements

In production the monthly batch would be triggered by a scheduler on the
first of the month; the endpoint exists so an operator (or the scheduler)
can kick it off over HTTP.
"""

from fastapi import APIRouter, Depends, status

from card_processor.dependencies import get_statement_generator, get_store, require_admin_key
from card_processor.schemas.statement import (
    StatementBatchResponse,
    StatementGenerateRequest,
    StatementResponse,
    StatementSummary,
)
from card_processor.services import account_service
from card_processor.services.statement_service import StatementGenerator
from card_processor.storage.base import Store

router = APIRouter(dependencies=[Depends(require_admin_key)])


@router.post(
    "/generate-statements",
    response_model=StatementBatchResponse,
    summary="[Admin] Generate last month's statements",
)
async def generate_statements(
    generator: StatementGenerator = Depends(get_statement_generator),
):
    """
    Generate a statement for every active account covering the previous
    calendar month (UTC).

    Re-running for a month that's already billed creates another statement
    per account; the duplicate is logged, not prevented.
    """
    statements = await generator.generate_monthly_statements()
    return StatementBatchResponse(
        success=True,
        count=len(statements),
        statements=[StatementSummary.model_validate(s) for s in statements],
    )


@router.post(
    "/accounts/{account_id}/statements",
    response_model=StatementResponse,
    status_code=status.HTTP_201_CREATED,
    summary="[Admin] Generate a statement for one account",
)
async def generate_account_statement(
    account_id: str,
    request: StatementGenerateRequest,
    store: Store = Depends(get_store),
    generator: StatementGenerator = Depends(get_statement_generator),
):
    """
    Generate a statement for an explicit period, both ends inclusive.

    The account doesn't have to be active: frozen and closed accounts can
    still be billed by hand.
    """
    await account_service.get_account(store, account_id)
    return await generator.generate_for_account(
        account_id, request.period_start, request.period_end
    )


@router.get(
    "/accounts/{account_id}/statements",
    response_model=list[StatementResponse],
    summary="[Admin] List an account's statements",
)
async def list_account_statements(
    account_id: str,
    store: Store = Depends(get_store),
):
    """Most recent period first."""
    await account_service.get_account(store, account_id)
    return await store.list_statements(account_id)
