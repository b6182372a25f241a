"""
Webhook router: the payment network's entry point.

Endpoint:
  POST   /webhooks/transactions                      Decide a card transaction in real time

The payment network treats anything other than {"approved": true} as a
decline, and retries on timeouts or errors. So this endpoint:

  - Always answers 200 with {"approved": bool}
  - Fails closed: a malformed payload, an unknown error or an unreachable
    store all produce {"approved": false}
  - Never leaks why a transaction was denied

A failure before the decision is recorded leaves no transaction record,
so when the network retries with the same id the transaction is decided
fresh. A retry after a recorded decision gets the same answer as before.
"""

from fastapi import APIRouter, Depends, Request
from pydantic import ValidationError

from card_processor.dependencies import get_orchestrator
from card_processor.exceptions import CardProcessorError
from card_processor.logging import get_logger
from card_processor.schemas.webhook import TransactionWebhookPayload, WebhookResponse
from card_processor.services.transaction_service import TransactionOrchestrator

logger = get_logger(__name__)

router = APIRouter()


@router.post(
    "/transactions",
    response_model=WebhookResponse,
    summary="Decide a card transaction",
)
async def receive_transaction(
    request: Request,
    orchestrator: TransactionOrchestrator = Depends(get_orchestrator),
):
    """
    Approve or deny a transaction submitted by the payment network.

    The body is parsed by hand instead of through a typed parameter:
    FastAPI would answer a bad payload with 422, and the network must get
    {"approved": false} instead.
    """
    raw = await request.body()
    try:
        payload = TransactionWebhookPayload.model_validate_json(raw)
    except ValidationError as exc:
        logger.warning(
            "transaction_rejected",
            errors=exc.error_count(),
            detail=_first_error(exc),
        )
        return WebhookResponse(approved=False)

    logger.info(
        "transaction_received",
        transaction_id=payload.id,
        card_id=payload.card_id,
        amount_cents=payload.amount,
    )

    try:
        approved = await orchestrator.submit(payload.to_request())
    except CardProcessorError as exc:
        logger.error(
            "transaction_undetermined",
            transaction_id=payload.id,
            error_type=exc.error_type,
            detail=exc.detail,
        )
        return WebhookResponse(approved=False)
    except Exception:
        logger.exception("transaction_undetermined", transaction_id=payload.id)
        return WebhookResponse(approved=False)

    return WebhookResponse(approved=approved)


def _first_error(exc: ValidationError) -> str:
    error = exc.errors(include_url=False, include_input=False)[0]
    location = ".".join(str(part) for part in error["loc"])
    return f"{location}: {error['msg']}" if location else error["msg"]
