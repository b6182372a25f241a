"""
FastAPI dependencies shared by the routers.

Runtime collaborators live on `app.state`, installed once at startup by
`install_store()` in main.py:

  get_store                (Request -> Store)
  get_orchestrator         (Request -> TransactionOrchestrator)
  get_statement_generator  (Request -> StatementGenerator)

Access control:
  The webhook is open to the payment network. Everything else (directory
  management, transaction lookups, statements) requires the shared admin
  key in the X-Admin-Key header.
"""

import secrets

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import APIKeyHeader

from card_processor.config import settings
from card_processor.services.statement_service import StatementGenerator
from card_processor.services.transaction_service import TransactionOrchestrator
from card_processor.storage.base import Store


# auto_error=False so a missing header gets the same 401 as a wrong one
admin_key_header = APIKeyHeader(name="X-Admin-Key", auto_error=False)


def get_store(request: Request) -> Store:
    return request.app.state.store


def get_orchestrator(request: Request) -> TransactionOrchestrator:
    return request.app.state.orchestrator


def get_statement_generator(request: Request) -> StatementGenerator:
    return request.app.state.statement_generator


async def require_admin_key(
    api_key: str | None = Depends(admin_key_header),
) -> None:
    """
    Require the configured admin key on the request.

    The comparison is constant-time so the key can't be recovered by
    timing responses.

    Raises:
        HTTPException 401: If the header is missing or doesn't match.
    """
    if api_key is None or not secrets.compare_digest(
        api_key.encode(), settings.ADMIN_API_KEY.encode()
    ):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or missing admin key",
        )
