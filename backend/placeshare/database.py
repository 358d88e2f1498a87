"""
PlaceShare Backend — Database Engine & Session Factory
=======================================================

What:  Async SQLAlchemy engine, session factory and declarative base.
How:   Creates an async engine with connection pooling; the SQL resource
       store opens one session per store call or transaction from the factory.
Who:   placeshare.store.sql, Alembic, the lifespan handler.
When:  Engine is created at module import; sessions are created per call.

Connection Pooling:
    pool_size=20, max_overflow=10 → at most 30 connections per worker.
    pool_pre_ping validates pooled connections before use.
    pool_recycle=3600 recycles connections hourly.
"""

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from placeshare.config import settings


def build_engine(url: str) -> AsyncEngine:
    """Create an async engine for `url` using the configured pool settings."""
    pool_options = {}
    if not url.startswith("sqlite"):
        pool_options = {
            "pool_size": settings.db_pool_size,
            "max_overflow": settings.db_max_overflow,
            "pool_recycle": 3600,
        }
    return create_async_engine(
        url,
        pool_pre_ping=settings.db_pool_pre_ping,
        # SQL echo only in DEBUG; it is very noisy otherwise
        echo=settings.log_level == "DEBUG",
        **pool_options,
    )


def build_session_factory(bind: AsyncEngine) -> async_sessionmaker:
    # expire_on_commit=False: records are read after the transaction closes
    return async_sessionmaker(bind, class_=AsyncSession, expire_on_commit=False)


engine = build_engine(settings.database_url)
async_session_factory = build_session_factory(engine)


class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy ORM models.

    Shares one metadata object between the models and Alembic.
    """
    pass


async def create_tables(bind: AsyncEngine) -> None:
    """
    Create every table known to Base.metadata.

    For tests and throwaway local databases; real deployments run
    `alembic upgrade head` instead.
    """
    # Models must be imported so they register with Base.metadata
    from placeshare.models import place, user  # noqa: F401

    async with bind.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def dispose_engine() -> None:
    """Close all pooled connections. Called from the lifespan shutdown."""
    await engine.dispose()
