"""Async engine, session factory and declarative base."""

from collections.abc import AsyncGenerator, AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy import Connection, inspect, text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from ezhil.config import get_settings

settings = get_settings()

REQUIRED_TABLES = ("reports", "chat_messages", "contributors")

engine = create_async_engine(
    settings.database_url,
    echo=settings.debug,
    pool_pre_ping=True,
)

async_session_maker = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    """Declarative base shared by all Ezhil models."""

    pass


@asynccontextmanager
async def session_scope() -> AsyncIterator[AsyncSession]:
    """
    Session for work outside a request.

    Used by background classification, the scheduler and WebSocket snapshots.
    Callers commit their own writes; anything left open is rolled back on
    error.
    """
    async with async_session_maker() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Request-scoped session, committed when the handler returns."""
    async with session_scope() as session:
        yield session
        await session.commit()


def _missing_tables(sync_conn: Connection) -> list[str]:
    existing = set(inspect(sync_conn).get_table_names())
    return [name for name in REQUIRED_TABLES if name not in existing]


async def check_db_ready() -> None:
    """Fail fast when the database is unreachable or not migrated."""
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))
        missing = await conn.run_sync(_missing_tables)

    if missing:
        raise RuntimeError(
            f"Database schema is missing tables: {', '.join(missing)} "
            "(run alembic upgrade head)."
        )
