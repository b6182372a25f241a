"""
Custom exception classes and FastAPI exception handlers.

Service and storage code raise domain-specific errors without importing
HTTP concepts; the handlers registered here translate them into consistent
JSON responses: {"detail": "...", "error_type": "..."}.

Rule denials (insufficient credit, inactive card, ...) are NOT exceptions.
They are ordinary verdicts recorded on the transaction. The errors below
cover lookups, contract violations and collaborator failures.

Exception hierarchy:
    CardProcessorError (base)
    ├── AccountNotFoundError         requested account doesn't exist
    ├── CardNotFoundError            requested card doesn't exist
    ├── TransactionNotFoundError     requested transaction doesn't exist
    ├── DuplicateAccountError        explicit account id already taken
    ├── DuplicateCardError           explicit card id already taken
    ├── MalformedTransactionError    request violates the core's contract
    ├── InvalidStatementPeriodError  statement period ends before it starts
    └── StoreUnavailableError        storage collaborator failed; outcome unknown
"""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse


# ---------------------------------------------------------------------------
# Base exception
# ---------------------------------------------------------------------------

class CardProcessorError(Exception):
    """Base exception for all card processor domain errors."""

    status_code = 400
    error_type = "card_processor_error"

    def __init__(self, detail: str = "An error occurred"):
        self.detail = detail
        super().__init__(self.detail)


# ---------------------------------------------------------------------------
# Lookup errors
# ---------------------------------------------------------------------------

class AccountNotFoundError(CardProcessorError):
    """Raised when a requested account does not exist."""

    status_code = 404
    error_type = "account_not_found"

    def __init__(self, account_id: str):
        self.account_id = account_id
        super().__init__(f"Account {account_id} not found")


class CardNotFoundError(CardProcessorError):
    """Raised when a requested card does not exist."""

    status_code = 404
    error_type = "card_not_found"

    def __init__(self, card_id: str):
        self.card_id = card_id
        super().__init__(f"Card {card_id} not found")


class TransactionNotFoundError(CardProcessorError):
    status_code = 404
    error_type = "transaction_not_found"

    def __init__(self, transaction_id: str):
        self.transaction_id = transaction_id
        super().__init__(f"Transaction {transaction_id} not found")


class DuplicateAccountError(CardProcessorError):
    status_code = 409
    error_type = "duplicate_account"

    def __init__(self, account_id: str):
        self.account_id = account_id
        super().__init__(f"Account {account_id} already exists")


class DuplicateCardError(CardProcessorError):
    status_code = 409
    error_type = "duplicate_card"

    def __init__(self, card_id: str):
        self.card_id = card_id
        super().__init__(f"Card {card_id} already exists")


# ---------------------------------------------------------------------------
# Core errors
# ---------------------------------------------------------------------------

class MalformedTransactionError(CardProcessorError):
    """
    Raised when a transaction request reaches the core in a shape the
    transport layer should have rejected (empty id, negative amount, ...).
    """

    status_code = 422
    error_type = "malformed_transaction"


class InvalidStatementPeriodError(CardProcessorError):
    status_code = 422
    error_type = "invalid_statement_period"


class StoreUnavailableError(CardProcessorError):
    """
    Raised when the storage collaborator cannot be reached or fails mid-call.

    The outcome of the operation is unknown. Callers must never treat this
    as a denial; the webhook boundary reports it as "not approved" without
    creating a transaction record.

    Attributes:
        operation: The storage operation that failed (e.g. "find_card").
    """

    status_code = 503
    error_type = "store_unavailable"

    def __init__(self, operation: str, detail: str = "Storage is unavailable"):
        self.operation = operation
        super().__init__(f"{detail} during {operation}")


# ---------------------------------------------------------------------------
# FastAPI exception handlers
# ---------------------------------------------------------------------------

def register_exception_handlers(app: FastAPI) -> None:
    """
    Register custom exception handlers with the FastAPI application.

    Every CardProcessorError subclass carries its own status code and
    error_type, so a single handler covers the whole hierarchy.

    This is called once during app startup in main.py.
    """

    @app.exception_handler(CardProcessorError)
    async def card_processor_error_handler(
        request: Request, exc: CardProcessorError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.detail, "error_type": exc.error_type},
        )
