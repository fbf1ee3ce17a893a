"""
Planning gap analysis. Read-only: looks at pages, kernel and decisions,
never creates any of them.
"""

import logging
import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from ..tools.pages import load_page, read_fields
from .decisions import get_decision_progress, DecisionProgress
from .kernel import load_kernel, BOOKED_STATUSES

logger = logging.getLogger(__name__)

ESSENTIAL_CATEGORIES = ("venue", "photographer", "caterer", "officiant")

RSVP_WARNING_DAYS = 60
OVER_ALLOCATION_WARNING_PERCENT = 90


@dataclass
class Gap:
    category: str
    issue: str
    suggested_action: str
    priority: str = "low"  # high, medium, low

    def to_dict(self) -> dict:
        return {
            "category": self.category,
            "issue": self.issue,
            "suggestedAction": self.suggested_action,
            "priority": self.priority,
        }


@dataclass
class PlanningReport:
    days_until: Optional[int]
    progress: DecisionProgress
    gaps: list[Gap] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    wins: list[str] = field(default_factory=list)
    summary: dict = field(default_factory=dict)
    message: str = ""

    def to_dict(self) -> dict:
        return {
            "daysUntil": self.days_until,
            "progress": self.progress.to_dict(),
            "gaps": [g.to_dict() for g in self.gaps],
            "warnings": list(self.warnings),
            "wins": list(self.wins),
            "summary": dict(self.summary),
        }


# ── Helpers ──────────────────────────────────────────────────────────

def _aware(dt: Optional[datetime]) -> Optional[datetime]:
    # SQLite hands back naive datetimes
    if dt is None:
        return None
    return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)


def days_until(wedding_date: Optional[datetime], now: Optional[datetime] = None) -> Optional[int]:
    wedding_date = _aware(wedding_date)
    if wedding_date is None:
        return None
    now = _aware(now) or datetime.now(timezone.utc)
    return math.ceil((wedding_date - now).total_seconds() / 86400)


def urgency(days: Optional[int]) -> str:
    if days is not None and days < 180:
        return "high"
    if days is not None and days < 365:
        return "medium"
    return "low"


def _norm(value) -> str:
    return str(value or "").strip().lower()


def booked_categories(vendors: list[dict], kernel_decisions: Optional[dict] = None) -> set[str]:
    """Categories with a booked-like vendor or a locked kernel decision."""
    booked = {
        _norm(v.get("category"))
        for v in vendors
        if _norm(v.get("status")) in BOOKED_STATUSES
    }
    for category, value in (kernel_decisions or {}).items():
        if isinstance(value, dict) and value.get("locked"):
            booked.add(_norm(category))
    return booked


def _vendor_suggestion(category: str) -> str:
    if category == "venue":
        return "Venues book up fast, start touring and comparing soon"
    return f"Reach out to a few {category}s and compare quotes"


# ── Analysis ─────────────────────────────────────────────────────────

async def analyze_planning_gaps(
    db: AsyncSession, tenant_id: str, now: Optional[datetime] = None,
) -> list[Gap]:
    """One gap per essential vendor category that is not booked yet."""
    kernel = await load_kernel(db, tenant_id)
    vendors = read_fields(await load_page(db, tenant_id, "vendor-contacts"), "vendor-contacts")["vendors"]

    booked = booked_categories(vendors, kernel.decisions if kernel else None)
    priority = urgency(days_until(kernel.wedding_date if kernel else None, now))

    return [
        Gap(
            category=category,
            issue=f"No {category} booked yet",
            suggested_action=_vendor_suggestion(category),
            priority=priority,
        )
        for category in ESSENTIAL_CATEGORIES
        if category not in booked
    ]


async def build_planning_report(
    db: AsyncSession, tenant_id: str, now: Optional[datetime] = None,
) -> PlanningReport:
    """Full readout: foundation and vendor gaps, warnings, wins and a summary message."""
    now = _aware(now) or datetime.now(timezone.utc)
    kernel = await load_kernel(db, tenant_id)
    budget = read_fields(await load_page(db, tenant_id, "budget"), "budget")
    guests = read_fields(await load_page(db, tenant_id, "guest-list"), "guest-list")["guests"]
    vendors = read_fields(await load_page(db, tenant_id, "vendor-contacts"), "vendor-contacts")["vendors"]
    tasks = read_fields(await load_page(db, tenant_id, "task-board"), "task-board")["tasks"]
    progress = await get_decision_progress(db, tenant_id)

    wedding_date = kernel.wedding_date if kernel else None
    days = days_until(wedding_date, now)
    report = PlanningReport(days_until=days, progress=progress)

    # Foundation
    if wedding_date is None:
        report.gaps.append(Gap(
            "foundation", "No wedding date set",
            "Setting a date helps plan everything else around it", "high",
        ))
    total_budget = int(budget.get("totalBudget") or 0) or int((kernel.budget_total if kernel else 0) or 0)
    if total_budget == 0:
        report.gaps.append(Gap(
            "budget", "No total budget set",
            "Set a budget to help prioritize spending", "high",
        ))

    report.gaps.extend(await analyze_planning_gaps(db, tenant_id, now))

    # Guests
    if not guests:
        report.gaps.append(Gap(
            "guests", "Guest list is empty",
            "Start adding guests to help with venue capacity and catering numbers", "medium",
        ))
    else:
        pending = sum(1 for g in guests if _norm(g.get("rsvp")) == "pending")
        if pending and days is not None and days < RSVP_WARNING_DAYS:
            report.warnings.append(
                f"{pending} guests haven't RSVP'd yet and the wedding is in {days} days"
            )

    # Budget
    allocated = sum(int(item.get("totalCost") or 0) for item in budget.get("items") or [])
    if total_budget > 0:
        percent_used = allocated / total_budget * 100
        if percent_used > 100:
            report.warnings.append(f"You're {percent_used - 100:.0f}% over budget")
        elif percent_used > OVER_ALLOCATION_WARNING_PERCENT:
            report.warnings.append(f"You've allocated {percent_used:.0f}% of your budget")

    # Tasks
    overdue = 0
    for task in tasks:
        if _norm(task.get("status")) == "done" or not task.get("dueDate"):
            continue
        try:
            due = _aware(datetime.fromisoformat(str(task["dueDate"]).replace("Z", "+00:00")))
        except ValueError:
            continue
        if due < now:
            overdue += 1
    if overdue:
        report.warnings.append(f"{overdue} overdue task{'s' if overdue > 1 else ''}")

    # Wins
    booked_vendors = [v for v in vendors if _norm(v.get("status")) in BOOKED_STATUSES]
    if booked_vendors:
        n = len(booked_vendors)
        report.wins.append(f"{n} vendor{'s' if n > 1 else ''} booked")
    if progress.locked:
        report.wins.append(f"{progress.locked} decision{'s' if progress.locked > 1 else ''} locked in")
    confirmed = sum(1 for g in guests if _norm(g.get("rsvp")) == "yes")
    if confirmed:
        report.wins.append(f"{confirmed} guest{'s' if confirmed > 1 else ''} confirmed")

    report.summary = {
        "guestsCount": len(guests),
        "vendorsBooked": len(booked_vendors),
        "budgetAllocated": round(allocated / total_budget * 100) if total_budget > 0 else 0,
        "tasksRemaining": sum(1 for t in tasks if _norm(t.get("status")) != "done"),
    }
    report.message = _summary_message(report)
    return report


def _summary_message(report: PlanningReport) -> str:
    lines = []
    if report.days_until is not None:
        lines.append(f"**{report.days_until} days until your wedding!**\n")

    high = [g for g in report.gaps if g.priority == "high"]
    if not report.gaps and not report.warnings:
        lines.append("You're in great shape! All the essentials are covered.")
    elif high:
        lines.append(f"**{len(high)} high-priority item{'s' if len(high) > 1 else ''} to address:**")
        lines.extend(f"- {g.issue}" for g in high)
        lines.append("")

    if report.wins:
        lines.append(f"**What's going well:** {', '.join(report.wins)}")
    return "\n".join(lines).strip()
