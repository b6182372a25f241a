#!/usr/bin/env python3
"""
Local demo: create account A1 with two cards, then push the four
reference webhook events through a running server and print the verdicts.

Only for local use. Ids are fixed and the events are fake.

    ADMIN_API_KEY=... python demo/seed.py
    python demo/seed.py --base-url http://localhost:9000 --admin-key secret
    python demo/seed.py --reset        # delete data/cards.db and exit

Seeded directory:
    A1  account, $1,000.00 credit limit
    C1  card on A1, no per-transaction limit
    C2  card on A1, $100.00 per-transaction limit

Events and expected verdicts:
    T1  C1  $500.00   approved, balance $500.00
    T1  C1  $500.00   approved again as a replay, balance unchanged
    T2  C1  $600.00   denied, insufficient credit
    T3  C2  $150.00   denied, exceeds card limit
"""

import argparse
import asyncio
import os
import sys
from pathlib import Path

import httpx

DEFAULT_BASE_URL = "http://localhost:8000"
DATABASE_FILE = Path(__file__).resolve().parent.parent / "data" / "cards.db"

ACCOUNTS = [
    {"id": "A1", "credit_limit_cents": 100_000},
]

CARDS = [
    {"id": "C1", "account_id": "A1"},
    {"id": "C2", "account_id": "A1", "spending_limit_cents": 10_000},
]

# (transaction id, card id, amount in cents, expected verdict)
EVENTS = [
    ("T1", "C1", 50_000, True),
    ("T1", "C1", 50_000, True),
    ("T2", "C1", 60_000, False),
    ("T3", "C2", 15_000, False),
]

MERCHANT_DATA = {
    "category": 5812,
    "address": {
        "line_1": "500 Howard St",
        "city": "San Francisco",
        "state": "CA",
        "country": "US",
    },
}


def dollars(cents: int) -> str:
    return f"${cents / 100:,.2f}"


async def ensure_created(client: httpx.AsyncClient, path: str, body: dict) -> None:
    """POST a directory entry, treating 409 as already seeded."""
    response = await client.post(path, json=body)
    if response.status_code == 409:
        print(f"  {body['id']}: exists")
        return
    response.raise_for_status()
    print(f"  {body['id']}: created")


async def send_event(client: httpx.AsyncClient, transaction_id: str, card_id: str, amount: int) -> bool:
    payload = {
        "id": transaction_id,
        "card_id": card_id,
        "amount": amount,
        "currency": "USD",
        "merchant_data": MERCHANT_DATA,
    }
    response = await client.post("/webhooks/transactions", json=payload)
    response.raise_for_status()
    return response.json()["approved"]


async def fetch(client: httpx.AsyncClient, path: str) -> dict:
    response = await client.get(path)
    response.raise_for_status()
    return response.json()


async def run(base_url: str, admin_key: str) -> int:
    """Seed and replay; returns the number of verdicts that differ from the table above."""
    async with httpx.AsyncClient(
        base_url=base_url, timeout=30.0, headers={"X-Admin-Key": admin_key}
    ) as client:
        try:
            await fetch(client, "/health")
        except httpx.HTTPError as exc:
            print(f"Server at {base_url} is not reachable ({exc.__class__.__name__}).")
            print("Start it with: uvicorn card_processor.main:app --reload")
            return -1

        print("Directory:")
        for account in ACCOUNTS:
            await ensure_created(client, "/accounts", account)
        for card in CARDS:
            await ensure_created(client, "/cards", card)

        print("Events:")
        unexpected = 0
        for transaction_id, card_id, amount, expected in EVENTS:
            approved = await send_event(client, transaction_id, card_id, amount)
            if approved:
                verdict = "approved"
            else:
                record = await fetch(client, f"/transactions/{transaction_id}")
                verdict = f"denied ({record['denial_reason']})"
            flag = "" if approved == expected else "  [unexpected]"
            unexpected += approved != expected
            print(f"  {transaction_id}  {card_id}  {dollars(amount):>10}  {verdict}{flag}")

        account = await fetch(client, "/accounts/A1")
        print(f"A1 balance: {dollars(account['current_balance_cents'])}")

    return unexpected


def reset_database() -> None:
    if not DATABASE_FILE.exists():
        print(f"Nothing to delete at {DATABASE_FILE}")
        return
    DATABASE_FILE.unlink()
    print(f"Removed {DATABASE_FILE}; tables are recreated on the next server start.")


def main() -> None:
    parser = argparse.ArgumentParser(description="Seed the local card processor and replay demo events.")
    parser.add_argument("--base-url", default=DEFAULT_BASE_URL, help=f"API root (default: {DEFAULT_BASE_URL})")
    parser.add_argument(
        "--admin-key",
        default=os.environ.get("ADMIN_API_KEY"),
        help="value for the X-Admin-Key header (default: $ADMIN_API_KEY)",
    )
    parser.add_argument("--reset", action="store_true", help="delete the SQLite file and exit")
    args = parser.parse_args()

    if args.reset:
        reset_database()
        return
    if not args.admin_key:
        parser.error("an admin key is required (--admin-key or ADMIN_API_KEY)")

    unexpected = asyncio.run(run(args.base_url, args.admin_key))
    if unexpected < 0:
        sys.exit(1)
    if unexpected:
        print(f"{unexpected} verdict(s) differ from the expected ones. Try --reset and restart the server.")
        sys.exit(1)


if __name__ == "__main__":
    main()
