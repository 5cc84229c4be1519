"""Async engine, session factory and request-scoped sessions."""
from typing import AsyncGenerator
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import declarative_base

from portfolio_analytics.core.config import settings

# Portfolio tables live in the "app" schema
engine = create_async_engine(
    settings.async_database_url,
    pool_size=settings.database_pool_size,
    max_overflow=settings.database_max_overflow,
    echo=settings.debug,
    future=True,
    connect_args={
        "server_settings": {"search_path": "app, public"}
    }
)

# Trade results read ORM attributes after commit, so instances must not expire
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)

Base = declarative_base()


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency yielding one session per request.

    The analytics and trading services are built on top of it in
    ``api.dependencies``; the session commits when the request succeeds and
    rolls back when it raises.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


async def check_database_async() -> None:
    """Run ``SELECT 1``; raises whatever the driver raises when the database is unreachable."""
    async with AsyncSessionLocal() as session:
        result = await session.execute(text("SELECT 1"))
        result.scalar()
