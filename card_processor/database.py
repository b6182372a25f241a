"""
Database engine, session factory, and base model class.

This module sets up SQLAlchemy 2.0 with async support. Key components:

  - engine: The async database engine (connection pool for production DBs)
  - AsyncSessionLocal: Factory for creating async database sessions
  - Base: Declarative base class that all ORM models inherit from
  - UTCDateTime: Column type that always round-trips timezone-aware UTC

Architecture note:
  We use async SQLAlchemy (with aiosqlite for SQLite) so webhook requests
  don't block each other on I/O. When migrating to PostgreSQL, only the
  DATABASE_URL needs to change (to use the asyncpg driver).

Session lifecycle:
  Sessions are owned by the SQL store (card_processor/storage/sql.py), not
  by request handlers. Each store operation opens its own session and
  commits before returning, so a transaction record and its balance change
  are durable before the orchestrator releases its locks.
"""

import enum
from datetime import datetime, timezone

from sqlalchemy import DateTime, Enum
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.types import TypeDecorator

from card_processor.config import settings


# Create the async engine.
# echo=True in debug mode logs all SQL statements.
engine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.DEBUG,
)

# expire_on_commit=False prevents lazy-load errors after commit. Without
# it, reading attributes on a committed object triggers a synchronous
# refresh, which fails in async context.
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy ORM models.

    All models inherit from this class, which provides metadata tracking
    for table creation and migrations.
    """
    pass


class UTCDateTime(TypeDecorator):
    """
    DateTime that is always stored as UTC and always read back tz-aware.

    SQLite has no native timezone support and hands back naive datetimes,
    which can't be compared with the aware datetimes used everywhere else.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    def process_result_value(self, value: datetime | None, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


def enum_column(enum_cls: type[enum.Enum], length: int) -> Enum:
    """
    String-backed enum column that stores each member's value ("denied"),
    not its name ("DENIED"), so raw SQL and check constraints read naturally.
    """
    return Enum(
        enum_cls,
        native_enum=False,
        length=length,
        values_callable=lambda members: [member.value for member in members],
    )
