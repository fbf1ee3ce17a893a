"""
Planning API. Read-only views.

GET /v1/decisions        Checklist with progress
GET /v1/planning/gaps    Essential categories still unbooked
GET /v1/planning/report  Full readout (gaps, warnings, wins)
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.dependencies import Identity, get_db, require_tenant
from ..services.decisions import get_all_decisions, get_decision_progress
from ..services.gaps import analyze_planning_gaps, build_planning_report

planning_router = APIRouter(tags=["planning"])


@planning_router.get("/decisions")
async def list_decisions(
    identity: Identity = Depends(require_tenant),
    db: AsyncSession = Depends(get_db),
):
    decisions = await get_all_decisions(db, identity.tenant_id)
    progress = await get_decision_progress(db, identity.tenant_id)
    return {
        "decisions": [d.to_dict() for d in decisions],
        "progress": progress.to_dict(),
    }


@planning_router.get("/planning/gaps")
async def planning_gaps(
    identity: Identity = Depends(require_tenant),
    db: AsyncSession = Depends(get_db),
):
    gaps = await analyze_planning_gaps(db, identity.tenant_id)
    return [g.to_dict() for g in gaps]


@planning_router.get("/planning/report")
async def planning_report(
    identity: Identity = Depends(require_tenant),
    db: AsyncSession = Depends(get_db),
):
    report = await build_planning_report(db, identity.tenant_id)
    return {**report.to_dict(), "message": report.message}
