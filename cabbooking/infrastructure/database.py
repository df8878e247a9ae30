"""
Async SQLAlchemy engine and session factory.

Production runs on PostgreSQL through ``asyncpg``.  The booking request and
every settlement unit open their own short-lived session, so the pool has
to cover request concurrency plus ``settlement_max_concurrency``.
"""

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from cabbooking.config import settings


class Base(DeclarativeBase):
    """Declarative base for riders, drivers, vehicles, bookings and payments."""


def build_session_factory(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    # Views are projected after commit; keep loaded attributes readable.
    return async_sessionmaker(bind, class_=AsyncSession, expire_on_commit=False)


engine = create_async_engine(
    settings.database_url,
    echo=False,
    pool_size=settings.db_pool_size,
    max_overflow=settings.db_max_overflow,
    pool_pre_ping=True,
)

async_session_factory = build_session_factory(engine)
