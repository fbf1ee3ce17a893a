"""
Planner page storage. Budget, guests, vendors, tasks and the day-of timeline
each live as a list inside one page's `fields` blob.

Writers read the page, change a deep copy of the blob, and assign it back.
The page's version column turns a write based on a stale read into
StaleDataError at flush time (handled by the executor).
"""

import copy
import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.page import PlannerPage, TEMPLATE_TITLES, default_fields

logger = logging.getLogger(__name__)

# template_id → key of the item list inside fields
LIST_KEYS = {
    "budget": "items",
    "guest-list": "guests",
    "vendor-contacts": "vendors",
    "day-of-schedule": "events",
    "task-board": "tasks",
}


async def load_page(db: AsyncSession, tenant_id: str, template_id: str) -> Optional[PlannerPage]:
    """Read-only lookup. Never inserts."""
    result = await db.execute(
        select(PlannerPage).where(
            PlannerPage.tenant_id == tenant_id,
            PlannerPage.template_id == template_id,
        )
    )
    return result.scalar_one_or_none()


async def get_or_create_page(db: AsyncSession, tenant_id: str, template_id: str) -> PlannerPage:
    page = await load_page(db, tenant_id, template_id)
    if page is None:
        page = PlannerPage(
            tenant_id=tenant_id,
            template_id=template_id,
            title=TEMPLATE_TITLES.get(template_id, template_id),
            position=list(TEMPLATE_TITLES).index(template_id) if template_id in TEMPLATE_TITLES else 0,
            fields=default_fields(template_id),
        )
        db.add(page)
        await db.flush()
        logger.info("Created %s page for tenant=%s", template_id, tenant_id)
    return page


def read_fields(page: Optional[PlannerPage], template_id: str = "") -> dict:
    """A private copy of the blob, with template defaults filled in."""
    if page is None:
        return default_fields(template_id)
    fields = default_fields(page.template_id)
    fields.update(copy.deepcopy(page.fields or {}))
    return fields


def read_items(page: Optional[PlannerPage], template_id: str) -> list[dict]:
    items = read_fields(page, template_id).get(LIST_KEYS[template_id]) or []
    return [i for i in items if isinstance(i, dict)]


def save_fields(page: PlannerPage, fields: dict) -> None:
    """Replace the blob. The UPDATE is version-checked when the session flushes."""
    page.fields = fields
