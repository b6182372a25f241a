"""
Application factory for the card processor.

On startup the lifespan configures structlog, opens the store chosen by
STORAGE_BACKEND and wires the orchestrator and statement generator onto
`app.state`. Routers for webhooks, the admin-key protected directory and
statements are mounted below, plus an unauthenticated `/health`.

    uvicorn card_processor.main:app --reload
"""

from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.engine import make_url

from card_processor.config import settings
from card_processor.database import AsyncSessionLocal, engine
from card_processor.domain import utcnow
from card_processor.exceptions import register_exception_handlers
from card_processor.logging import get_logger, setup_logging
from card_processor.routers import accounts, admin, cards, transactions, webhooks
from card_processor.services.statement_service import StatementGenerator
from card_processor.services.transaction_service import TransactionOrchestrator
from card_processor.storage.base import Store
from card_processor.storage.memory import InMemoryStore
from card_processor.storage.sql import SqlStore

logger = get_logger(__name__)


def install_store(app: FastAPI, store: Store) -> None:
    """
    Wire a store and the services built on it into `app.state`.

    The orchestrator holds the per-transaction and per-account lock tables,
    so there must be exactly one per process; route dependencies read it
    from here. Tests call this directly with their own store.
    """
    app.state.store = store
    app.state.orchestrator = TransactionOrchestrator(directory=store, ledger=store)
    app.state.statement_generator = StatementGenerator.from_settings(store, settings)


def build_store() -> Store:
    """Select the backend configured by STORAGE_BACKEND."""
    if settings.STORAGE_BACKEND == "memory":
        return InMemoryStore()

    # SQLite won't create the directory holding the database file
    url = make_url(settings.DATABASE_URL)
    if url.get_backend_name() == "sqlite" and url.database and url.database != ":memory:":
        Path(url.database).parent.mkdir(parents=True, exist_ok=True)

    return SqlStore(engine, AsyncSessionLocal)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open the store for the life of the process; close it on shutdown."""
    setup_logging(settings)
    store = build_store()
    # Schema is created in place; a PostgreSQL deployment would run migrations
    await store.initialize()
    install_store(app, store)
    logger.info(
        "application_started",
        version=settings.APP_VERSION,
        storage_backend=settings.STORAGE_BACKEND,
    )
    yield
    await store.close()


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Real-time card transaction decisions, balances and monthly statements",
    lifespan=lifespan,
)

# ---------------------------------------------------------------------------
# Middleware
# ---------------------------------------------------------------------------

# Origins for the admin frontend; the webhook caller is server to server
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ---------------------------------------------------------------------------
# Exception handlers
# ---------------------------------------------------------------------------

register_exception_handlers(app)

# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------

app.include_router(webhooks.router, prefix="/webhooks", tags=["Webhooks"])
app.include_router(accounts.router, prefix="/accounts", tags=["Accounts"])
app.include_router(cards.router, prefix="/cards", tags=["Cards"])
app.include_router(transactions.router, prefix="/transactions", tags=["Transactions"])
app.include_router(admin.router, prefix="/admin", tags=["Admin"])


# ---------------------------------------------------------------------------
# Health check
# ---------------------------------------------------------------------------

@app.get("/health", tags=["Health"])
async def health_check():
    """Liveness probe. Does not touch the store."""
    return {
        "status": "ok",
        "version": settings.APP_VERSION,
        "timestamp": utcnow().isoformat(),
    }
