"""
Tests for the store and event plumbing: session scopes and tenant events.
"""

import json

import pytest
from sqlalchemy import func, select

from aisle.core import redis as redis_module
from aisle.core.database import _async_url, session_scope
from aisle.models.page import PlannerPage
from aisle.services import realtime
from aisle.tools.pages import get_or_create_page

TENANT = "tenant-emma-james"


class FakeRedis:
    def __init__(self, fail=False):
        self.sent = []
        self.fail = fail

    async def publish(self, channel, payload):
        if self.fail:
            raise ConnectionError("redis is down")
        self.sent.append((channel, json.loads(payload)))


@pytest.fixture
def fake_redis(monkeypatch):
    fake = FakeRedis()

    async def get_fake():
        return fake

    monkeypatch.setattr(redis_module, "get_redis", get_fake)
    return fake


def use_redis(monkeypatch):
    monkeypatch.setenv("FF_USE_REDIS", "true")
    redis_module.get_flags.cache_clear()


# ── Events ───────────────────────────────────────────────────────────

def test_event_envelope():
    event = redis_module.build_event("planner.updated", TENANT, {"tool": "add_guest"})

    assert set(event) == {"type", "tenantId", "data", "sentAt"}
    assert event["tenantId"] == TENANT
    assert event["data"] == {"tool": "add_guest"}
    assert redis_module.build_event("kernel.updated", TENANT)["data"] == {}


@pytest.mark.asyncio
async def test_publish_is_off_without_the_flag(fake_redis):
    await realtime.planner_updated(TENANT, "add_guest")

    assert await redis_module.notify_tenant(TENANT, "planner.updated") is False
    assert fake_redis.sent == []


@pytest.mark.asyncio
async def test_planner_update_goes_to_the_tenant_channel(monkeypatch, fake_redis):
    use_redis(monkeypatch)

    await realtime.planner_updated(TENANT, "add_guest")

    [(channel, event)] = fake_redis.sent
    assert channel == f"tenant:{TENANT}"
    assert event["type"] == "planner.updated"
    assert event["data"] == {"tool": "add_guest"}


@pytest.mark.asyncio
async def test_publish_failure_is_dropped(monkeypatch, fake_redis):
    use_redis(monkeypatch)
    fake_redis.fail = True

    sent = await redis_module.notify_tenant(TENANT, "planner.updated")

    assert sent is False


# ── Sessions ─────────────────────────────────────────────────────────

@pytest.mark.parametrize("url, expected", [
    ("postgresql://u:p@db/aisle", "postgresql+asyncpg://u:p@db/aisle"),
    ("postgres://u:p@db/aisle", "postgresql+asyncpg://u:p@db/aisle"),
    ("sqlite+aiosqlite:///aisle.db", "sqlite+aiosqlite:///aisle.db"),
])
def test_database_url_uses_async_driver(url, expected):
    assert _async_url(url) == expected


async def page_count(session_factory):
    async with session_factory() as check:
        return await check.scalar(select(func.count()).select_from(PlannerPage))


@pytest.mark.asyncio
async def test_session_scope_commits_on_success(session_factory):
    async with session_scope(session_factory) as session:
        await get_or_create_page(session, TENANT, "budget")

    assert await page_count(session_factory) == 1


@pytest.mark.asyncio
async def test_session_scope_rolls_back_on_error(session_factory):
    with pytest.raises(RuntimeError):
        async with session_scope(session_factory) as session:
            await get_or_create_page(session, TENANT, "budget")
            await session.flush()
            raise RuntimeError("tool blew up")

    assert await page_count(session_factory) == 0
