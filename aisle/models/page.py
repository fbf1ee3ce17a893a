"""
Planner pages. Each page holds a schemaless `fields` blob for one template
(budget items, guests, vendors, tasks, day-of events).

The `version` column is SQLAlchemy's optimistic concurrency counter: every
UPDATE is issued as `... WHERE id = :id AND version = :seen`, so a writer
holding a stale read fails with StaleDataError instead of discarding a
concurrent change.
"""

from sqlalchemy import String, Integer, JSON, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from .base import TenantBase

TEMPLATE_TITLES = {
    "budget": "Budget",
    "guest-list": "Guest List",
    "vendor-contacts": "Vendors",
    "day-of-schedule": "Day-Of Timeline",
    "task-board": "Tasks",
}


def default_fields(template_id: str) -> dict:
    defaults = {
        "budget": {"totalBudget": 0, "items": []},
        "guest-list": {"guests": []},
        "vendor-contacts": {"vendors": []},
        "day-of-schedule": {"events": []},
        "task-board": {"tasks": []},
    }
    return dict(defaults.get(template_id, {}))


class PlannerPage(TenantBase):
    __tablename__ = "planner_pages"
    __table_args__ = (
        UniqueConstraint("tenant_id", "template_id", name="uq_planner_pages_tenant_template"),
    )

    template_id: Mapped[str] = mapped_column(String, nullable=False)
    title: Mapped[str] = mapped_column(String, nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    fields: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}
