"""
Realtime notifications. Thin wrapper around core.redis.
Sent only after the change is committed.
"""

from ..core import redis as _redis


# ── Onboarding events ────────────────────────────────────────────────

async def kernel_updated(tenant_id: str, learned: list[str], step: int):
    await _redis.notify_tenant(
        tenant_id, "kernel.updated", {"fields": learned, "onboarding_step": step}
    )


async def onboarding_completed(tenant_id: str, conversation_id: str):
    await _redis.notify_tenant(
        tenant_id, "onboarding.completed", {"conversation_id": conversation_id}
    )


# ── Planner events ───────────────────────────────────────────────────

async def planner_updated(tenant_id: str, tool_name: str):
    await _redis.notify_tenant(tenant_id, "planner.updated", {"tool": tool_name})
