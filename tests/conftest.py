"""
Test fixtures for the card processor test suite.

This module provides shared fixtures used across all test files:

  - store: Fresh in-memory store for each test
  - sql_store: SQL store on a throwaway SQLite file (real SQL semantics)
  - orchestrator / generator: Core services wired to `store`
  - scenario: The reference directory (A1, C1, C2) seeded into `store`
  - client: Async HTTP test client (no admin key)
  - admin_client: Test client sending the admin key
  - make_request: Factory for TransactionRequest objects

Key design decisions:
  - ADMIN_API_KEY is required by Settings, so it's set in the environment
    before anything imports card_processor.config.
  - ASGITransport doesn't run the app's lifespan, so the client fixture
    installs the test store on the app itself with install_store(), exactly
    as startup would.
  - The SQL store uses a file database in tmp_path rather than
    sqlite+aiosqlite:// so separate sessions see the same data.
"""

import os

os.environ.setdefault("ADMIN_API_KEY", "test-admin-key")

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine

from card_processor.config import settings
from card_processor.domain import (
    AccountSnapshot,
    CardSnapshot,
    MerchantAddress,
    TransactionRequest,
)
from card_processor.main import app, install_store
from card_processor.services.statement_service import StatementGenerator
from card_processor.services.transaction_service import TransactionOrchestrator
from card_processor.storage.memory import InMemoryStore
from card_processor.storage.sql import SqlStore


ACCOUNT_ID = "A1"
CARD_ID = "C1"
LIMITED_CARD_ID = "C2"
CREDIT_LIMIT = 100_000  # $1,000.00
CARD_SPENDING_LIMIT = 10_000  # $100.00

MERCHANT_ADDRESS = MerchantAddress(
    line_1="1 Market St",
    city="San Francisco",
    state="CA",
    country="US",
)


def webhook_payload(transaction_id: str, card_id: str = CARD_ID, amount: int = 1_000) -> dict:
    """A well-formed webhook body as the payment network would send it."""
    return {
        "id": transaction_id,
        "card_id": card_id,
        "amount": amount,
        "currency": "USD",
        "merchant_data": {
            "category": 5411,
            "address": {
                "line_1": "1 Market St",
                "city": "San Francisco",
                "state": "CA",
                "country": "US",
            },
        },
    }


@pytest.fixture
def make_request():
    """Factory for TransactionRequest with sensible defaults."""

    def _make(transaction_id: str, card_id: str = CARD_ID, amount_cents: int = 1_000):
        return TransactionRequest(
            id=transaction_id,
            card_id=card_id,
            amount_cents=amount_cents,
            currency="USD",
            merchant_category=5411,
            merchant_address=MERCHANT_ADDRESS,
        )

    return _make


@pytest.fixture
def store():
    """A fresh in-memory store for each test."""
    return InMemoryStore()


@pytest_asyncio.fixture
async def scenario(store):
    """
    Seed the reference directory:
      A1: active, limit $1,000.00, balance 0
      C1: active card on A1, no spending limit
      C2: active card on A1, spending limit $100.00
    """
    await store.create_account(AccountSnapshot(id=ACCOUNT_ID, credit_limit_cents=CREDIT_LIMIT))
    await store.create_card(CardSnapshot(id=CARD_ID, account_id=ACCOUNT_ID))
    await store.create_card(
        CardSnapshot(
            id=LIMITED_CARD_ID,
            account_id=ACCOUNT_ID,
            spending_limit_cents=CARD_SPENDING_LIMIT,
        )
    )
    return store


@pytest.fixture
def orchestrator(store):
    return TransactionOrchestrator(directory=store, ledger=store)


@pytest.fixture
def generator(store):
    return StatementGenerator(store)


@pytest_asyncio.fixture
async def sql_store(tmp_path):
    """A SQL store on a fresh SQLite file, with all tables created."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'cards.db'}")
    sql_store = SqlStore(engine)
    await sql_store.initialize()
    yield sql_store
    await sql_store.close()


@pytest_asyncio.fixture
async def client(store):
    """
    Async HTTP test client backed by the test store.

    Requests carry no admin key; use admin_client for directory and
    statement endpoints.
    """
    install_store(app, store)

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


@pytest_asyncio.fixture
async def admin_client(client):
    """Test client that sends the configured admin key on every request."""
    client.headers["X-Admin-Key"] = settings.ADMIN_API_KEY
    return client
