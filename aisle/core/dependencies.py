"""
FastAPI dependencies. Injected into route handlers.

Identity comes from the upstream gateway as X-Tenant-Id / X-User-Id headers.
"""

from dataclasses import dataclass

from fastapi import Depends, Header, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from .database import get_db as _get_db
from .errors import RateLimited
from .rate_limit import check_rate_limit


@dataclass
class Identity:
    tenant_id: str
    user_id: str = ""


async def get_db() -> AsyncSession:
    """Yields an async DB session per request."""
    async for session in _get_db():
        yield session


async def require_tenant(
    x_tenant_id: str = Header(default=""),
    x_user_id: str = Header(default=""),
) -> Identity:
    tenant_id = x_tenant_id.strip()
    if not tenant_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing X-Tenant-Id header",
        )
    return Identity(tenant_id=tenant_id, user_id=x_user_id.strip())


async def enforce_rate_limit(
    request: Request,
    identity: Identity = Depends(require_tenant),
) -> Identity:
    """Sliding-window limit per tenant, shared by every mutating endpoint."""
    result = await check_rate_limit(f"tenant:{identity.tenant_id}")
    if not result.allowed:
        raise RateLimited(
            f"Too many requests. Try again in {result.retry_after}s.",
            retry_after=result.retry_after,
        )
    request.state.rate_limit_remaining = result.remaining
    return identity
