"""
Redis access for planner events and the shared rate-limit window.

Events go out on `tenant:{tenant_id}` as a JSON envelope:

    {"type": "planner.updated", "tenantId": "...", "data": {...}, "sentAt": "..."}

Everything here is gated by FF_USE_REDIS. With the flag off, publishing
is a no-op and the rate limiter keeps its window in process.
"""

import json
import logging
from datetime import datetime, timezone
from typing import Any, Optional

import redis.asyncio as aioredis

from .config import get_settings
from .flags import get_flags

logger = logging.getLogger(__name__)

_client: Optional[aioredis.Redis] = None


def tenant_channel(tenant_id: str) -> str:
    return f"tenant:{tenant_id}"


def build_event(event_type: str, tenant_id: str, data: Any = None) -> dict:
    return {
        "type": event_type,
        "tenantId": tenant_id,
        "data": data if data is not None else {},
        "sentAt": datetime.now(timezone.utc).isoformat(),
    }


async def get_redis() -> aioredis.Redis:
    global _client
    if _client is None:
        _client = aioredis.from_url(
            get_settings().redis_url,
            decode_responses=True,
            socket_connect_timeout=5,
        )
    return _client


async def publish(channel: str, event: dict) -> bool:
    """Send one event. Returns False when nothing went out."""
    if not get_flags().use_redis:
        return False

    try:
        client = await get_redis()
        await client.publish(channel, json.dumps(event, default=str))
    except Exception as e:
        # The change is already committed; a lost event only delays the UI
        logger.warning("Dropped %s event on %s: %s", event.get("type"), channel, e)
        return False
    return True


async def notify_tenant(tenant_id: str, event_type: str, data: Any = None) -> bool:
    return await publish(tenant_channel(tenant_id), build_event(event_type, tenant_id, data))


async def close_redis() -> None:
    global _client
    if _client is not None:
        await _client.aclose()
        logger.info("Redis connection closed")
    _client = None
