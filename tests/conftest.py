"""
Shared fixtures: a throwaway SQLite database per test and a scripted model.
"""

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

import aisle.models  # noqa: F401  (registers tables)
from aisle.core import rate_limit
from aisle.core.config import get_settings
from aisle.core.database import Base
from aisle.core.errors import UpstreamModelFailure
from aisle.core.flags import get_flags
from aisle.services import llm
from aisle.tools.results import ToolContext

TENANT = "tenant-emma-james"


@pytest.fixture(autouse=True)
def clean_settings(monkeypatch):
    """Fresh settings/flags per test; no Redis, no shared rate-limit window."""
    monkeypatch.setenv("FF_USE_REDIS", "false")
    monkeypatch.setenv("FF_USE_RATE_LIMIT", "false")
    monkeypatch.delenv("FUZZY_MATCH_POLICY", raising=False)
    get_settings.cache_clear()
    get_flags.cache_clear()
    monkeypatch.setattr(rate_limit, "_local", None)
    yield
    get_settings.cache_clear()
    get_flags.cache_clear()


@pytest_asyncio.fixture
async def engine(tmp_path):
    eng = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'aisle.db'}")
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def ctx():
    return ToolContext(tenant_id=TENANT, user_id="user-1")


class ScriptedModel:
    """Stands in for llm.chat_text. Replies are consumed in order."""

    def __init__(self):
        self.replies: list = []
        self.calls: list[dict] = []

    def queue(self, *replies):
        self.replies.extend(replies)
        return self

    async def __call__(self, messages, system="", max_tokens=None):
        self.calls.append({"messages": list(messages), "system": system})
        if not self.replies:
            raise AssertionError("model called more times than scripted")
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply


@pytest.fixture
def model(monkeypatch):
    scripted = ScriptedModel()
    monkeypatch.setattr(llm, "chat_text", scripted)
    return scripted


@pytest.fixture
def model_down(model):
    return model.queue(UpstreamModelFailure("The model call timed out."))
