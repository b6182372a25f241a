"""
Transaction service: the orchestrator around the decision engine.

THIS IS THE MOST CRITICAL FILE IN THE PROJECT. It owns:
  - The idempotency protocol (one record per upstream transaction id)
  - Atomic record-and-mutate (record + balance change as one unit)
  - Per-account serialization of "read balance → decide → write balance"

Flow for one request:
  1. Fast path: a record with this id already exists → return its verdict.
     No rules re-run, no balance change.
  2. Take the per-id lock, then re-check (another submission of the same id
     may have finished while we waited).
  3. Look up the card, take the per-account lock, read the account.
  4. Run the decision engine on those snapshots.
  5. ledger.record(): insert-if-absent + balance increment in one unit.
     If the insert lost a race anyway (another process, a store shared with
     other writers), return the winner's verdict. Never decide twice.

Lock ordering:
  Always transaction id first, then account. No code path takes them in
  the other order, so the two lock tables can't deadlock.

Failure semantics:
  StoreUnavailableError from any collaborator propagates unchanged. It is
  never turned into a denial, and since ledger.record() is atomic no
  partial record is left behind. The webhook boundary decides what the
  caller sees (fail closed).
"""

from contextlib import nullcontext

from card_processor.domain import (
    CardSnapshot,
    TransactionRecord,
    TransactionRequest,
    TransactionStatus,
    Verdict,
    utcnow,
)
from card_processor.exceptions import MalformedTransactionError, TransactionNotFoundError
from card_processor.logging import get_logger
from card_processor.services.decision_engine import evaluate
from card_processor.services.locks import KeyedLock
from card_processor.storage.base import Directory, Ledger

logger = get_logger(__name__)


def validate_request(request: TransactionRequest) -> None:
    """
    Reject requests the transport layer should never have let through.

    Raises:
        MalformedTransactionError: On an empty id/card id or a non-integer
                                   or negative amount.
    """
    if not request.id:
        raise MalformedTransactionError("Transaction id is required")
    if not request.card_id:
        raise MalformedTransactionError("Card id is required")
    # bool is an int subclass; True is not an amount
    if not isinstance(request.amount_cents, int) or isinstance(request.amount_cents, bool):
        raise MalformedTransactionError("Amount must be an integer number of cents")
    if request.amount_cents < 0:
        raise MalformedTransactionError("Amount must not be negative")


def build_record(
    request: TransactionRequest,
    card: CardSnapshot | None,
    verdict: Verdict,
) -> TransactionRecord:
    """Turn a verdict into the immutable record that will be persisted."""
    return TransactionRecord(
        id=request.id,
        card_id=request.card_id,
        account_id=card.account_id if card is not None else None,
        amount_cents=request.amount_cents,
        currency=request.currency,
        merchant_category=request.merchant_category,
        merchant_address=request.merchant_address,
        status=TransactionStatus.APPROVED if verdict.approved else TransactionStatus.DENIED,
        denial_reason=verdict.reason,
        created_at=utcnow(),
    )


async def get_transaction(ledger: Ledger, transaction_id: str) -> TransactionRecord:
    """
    Look up a recorded transaction, denial reason included.

    Raises:
        TransactionNotFoundError: If no transaction has this id.
    """
    record = await ledger.find_transaction(transaction_id)
    if record is None:
        raise TransactionNotFoundError(transaction_id)
    return record


class TransactionOrchestrator:
    """
    Single entry point the transport layer uses to submit transactions.

    One instance must be shared by every request in the process: the lock
    tables live on the instance.
    """

    def __init__(self, directory: Directory, ledger: Ledger):
        self._directory = directory
        self._ledger = ledger
        self._transaction_locks = KeyedLock()
        self._account_locks = KeyedLock()

    async def submit(self, request: TransactionRequest) -> bool:
        """
        Decide and record a transaction; return only whether it was approved.

        The denial reason is stored on the record but not returned:
        callers across the boundary only learn approved or not.

        Raises:
            MalformedTransactionError: If the request violates the contract.
            StoreUnavailableError: If a collaborator failed; outcome unknown.
        """
        record = await self.process(request)
        return record.approved

    async def process(self, request: TransactionRequest) -> TransactionRecord:
        """
        Like submit(), but returns the full record (including denial reason).

        For internal callers and tests; the webhook uses submit().
        """
        validate_request(request)

        existing = await self._ledger.find_transaction(request.id)
        if existing is not None:
            self._log_replay(existing)
            return existing

        async with self._transaction_locks.hold(request.id):
            existing = await self._ledger.find_transaction(request.id)
            if existing is not None:
                self._log_replay(existing)
                return existing

            card = await self._directory.find_card(request.card_id)
            account_lock = (
                self._account_locks.hold(card.account_id)
                if card is not None
                else nullcontext()
            )

            async with account_lock:
                account = (
                    await self._directory.find_account(card.account_id)
                    if card is not None
                    else None
                )
                verdict = evaluate(request, card, account)
                record = build_record(request, card, verdict)
                result = await self._ledger.record(record)

        if not result.created:
            logger.warning(
                "transaction_race_lost",
                transaction_id=request.id,
                approved=result.existing.approved,
            )
            return result.existing

        logger.info(
            "transaction_decided",
            transaction_id=record.id,
            card_id=record.card_id,
            account_id=record.account_id,
            amount_cents=record.amount_cents,
            approved=record.approved,
            reason=record.denial_reason.value if record.denial_reason else None,
        )
        return record

    @staticmethod
    def _log_replay(existing: TransactionRecord) -> None:
        logger.info(
            "transaction_replayed",
            transaction_id=existing.id,
            approved=existing.approved,
        )
