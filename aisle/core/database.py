"""
Async SQLAlchemy plumbing for the planner store.

One engine per process. Every API request runs inside `session_scope`,
which commits once on the way out and rolls back on any exception.
Handlers that want to drop a soft failure call `session.rollback()`
themselves before the scope ends.
"""

import importlib
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from .config import get_settings

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    pass


# Model modules that must be imported before create_all sees their tables
MODEL_MODULES = ("tenant", "kernel", "conversation", "decision", "page")

_engine: Optional[AsyncEngine] = None
_session_factory: Optional[async_sessionmaker[AsyncSession]] = None


def _async_url(url: str) -> str:
    """Point plain postgres URLs at the asyncpg driver."""
    for prefix in ("postgres://", "postgresql://"):
        if url.startswith(prefix):
            return "postgresql+asyncpg://" + url[len(prefix):]
    return url


def _engine_kwargs(url: str, echo: bool = False) -> dict:
    kwargs = {"echo": echo}
    if not url.startswith("sqlite"):
        # Page writes are short; a modest pool with liveness checks is enough
        kwargs.update(pool_size=10, max_overflow=5, pool_pre_ping=True)
    return kwargs


def get_engine() -> AsyncEngine:
    global _engine
    if _engine is None:
        settings = get_settings()
        url = _async_url(settings.database_url)
        _engine = create_async_engine(url, **_engine_kwargs(url, settings.debug))
        logger.info("Planner store engine ready (%s)", _engine.dialect.name)
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    global _session_factory
    if _session_factory is None:
        # Tool results are serialized after commit, so keep attributes loaded
        _session_factory = async_sessionmaker(bind=get_engine(), expire_on_commit=False)
    return _session_factory


@asynccontextmanager
async def session_scope(
    factory: Optional[async_sessionmaker[AsyncSession]] = None,
) -> AsyncIterator[AsyncSession]:
    """Session for one unit of work. Commit on success, roll back on error."""
    factory = factory or get_session_factory()
    async with factory() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            logger.debug("Rolled back planner session after error")
            raise
        await session.commit()


async def get_db() -> AsyncIterator[AsyncSession]:
    async with session_scope() as session:
        yield session


async def init_db() -> None:
    """Create missing tables. Runs at startup."""
    for name in MODEL_MODULES:
        importlib.import_module(f"..models.{name}", __package__)

    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Planner tables ready: %s", ", ".join(sorted(Base.metadata.tables)))


async def close_db() -> None:
    global _engine, _session_factory
    if _engine is not None:
        await _engine.dispose()
        logger.info("Planner store engine disposed")
    _engine = None
    _session_factory = None
