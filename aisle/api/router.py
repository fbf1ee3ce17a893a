"""
Main API router. Mounts all sub-routers.
"""

from fastapi import APIRouter, Depends

from ..core.dependencies import require_tenant

router = APIRouter()


# ── Health (no auth) ─────────────────────────────────────────────────

@router.get("/health")
async def health():
    return {"status": "ok", "service": "aisle"}


# ── V1 routes (tenant required) ─────────────────────────────────────

from .onboarding import onboarding_router
from .tools import tools_router
from .planning import planning_router

router.include_router(onboarding_router, prefix="/v1", dependencies=[Depends(require_tenant)])
router.include_router(tools_router, prefix="/v1", dependencies=[Depends(require_tenant)])
router.include_router(planning_router, prefix="/v1", dependencies=[Depends(require_tenant)])
