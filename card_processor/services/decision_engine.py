"""
Decision engine: the ordered approval rule chain.

This is a pure function: no I/O, no mutation. Given a transaction request
and the current card/account snapshots (or None when they don't exist) it
returns a Verdict. The orchestrator does all lookups and writes.

Rule order is a contract. The chain short-circuits on the first failure,
so the same malformed situation must always report the same reason:

  1. Card exists                        → card_not_found
  2. Card is active                     → card_not_active
  3. Account (from the card) exists     → account_not_found
  4. Account is active                  → account_not_active
  5. balance + amount <= credit limit   → insufficient_credit
  6. amount <= card spending limit      → exceeds_card_limit (skipped for None or 0)
  7. Approve, returning both snapshots

Integer cents only. Landing exactly on the credit limit is allowed; only
going strictly over it is denied.
"""

from card_processor.domain import (
    AccountSnapshot,
    AccountStatus,
    CardSnapshot,
    CardStatus,
    DenialReason,
    TransactionRequest,
    Verdict,
)


def deny(reason: DenialReason) -> Verdict:
    return Verdict(approved=False, reason=reason)


def evaluate(
    request: TransactionRequest,
    card: CardSnapshot | None,
    account: AccountSnapshot | None,
) -> Verdict:
    """
    Run the rule chain for one request.

    Args:
        request: The incoming transaction request.
        card: Snapshot of request.card_id, or None if no such card.
        account: Snapshot of card.account_id, or None if no such account.
                 Ignored when the card is missing or inactive.

    Returns:
        An approving Verdict carrying the card and account, or a denying
        Verdict carrying the first failed rule's reason.
    """
    if card is None:
        return deny(DenialReason.CARD_NOT_FOUND)

    if card.status != CardStatus.ACTIVE:
        return deny(DenialReason.CARD_NOT_ACTIVE)

    if account is None:
        return deny(DenialReason.ACCOUNT_NOT_FOUND)

    if account.status != AccountStatus.ACTIVE:
        return deny(DenialReason.ACCOUNT_NOT_ACTIVE)

    new_balance = account.current_balance_cents + request.amount_cents
    if new_balance > account.credit_limit_cents:
        return deny(DenialReason.INSUFFICIENT_CREDIT)

    # 0 and None both mean no per-transaction cap
    if card.spending_limit_cents and request.amount_cents > card.spending_limit_cents:
        return deny(DenialReason.EXCEEDS_CARD_LIMIT)

    return Verdict(approved=True, card=card, account=account)
