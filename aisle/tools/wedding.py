"""
Kernel and analysis tools: wedding details, style preferences, gap
analysis and read-only artifacts for the UI.
"""

import logging
from typing import Literal, Optional

from pydantic import Field

from ..services.gaps import build_planning_report, days_until
from ..services.kernel import (
    get_or_create_kernel, get_or_create_tenant, load_kernel, parse_wedding_date, union,
)
from .pages import load_page, read_fields
from .registry import tool, ToolName, ToolParams, ToolRisk
from .results import ErrorKind, ToolResult

logger = logging.getLogger(__name__)


class UpdateWeddingDetailsParams(ToolParams):
    wedding_date: Optional[str] = Field(default=None, description="YYYY-MM-DD")
    ceremony_time: Optional[str] = None
    reception_time: Optional[str] = None
    guest_count: Optional[int] = Field(default=None, ge=0)
    venue_name: Optional[str] = None
    venue_address: Optional[str] = None


class UpdatePreferencesParams(ToolParams):
    vibe: Optional[list[str]] = None
    color_palette: Optional[list[str]] = None
    must_haves: Optional[list[str]] = None
    dealbreakers: Optional[list[str]] = None


ArtifactType = Literal[
    "budget_overview",
    "budget_category",
    "guest_list",
    "guest_stats",
    "timeline",
    "vendor_list",
    "vendor_comparison",
    "checklist",
    "countdown",
    "wedding_summary",
    "planning_gaps",
]


class ShowArtifactParams(ToolParams):
    type: ArtifactType
    filter: Optional[str] = Field(default=None, description="Category or status to narrow the view")


@tool(
    name=ToolName.UPDATE_WEDDING_DETAILS,
    description=(
        "Update core facts about the day: date, ceremony and reception times, guest count, venue. "
        "\n\nSetting a venue marks the venue decision as locked."
    ),
    params=UpdateWeddingDetailsParams,
    category="kernel",
)
async def update_wedding_details(params: UpdateWeddingDetailsParams, ctx, db) -> ToolResult:
    kernel = await get_or_create_kernel(db, ctx.tenant_id)
    changed: dict = {}

    if params.wedding_date:
        wedding_date = parse_wedding_date(params.wedding_date)
        if wedding_date is None:
            return ToolResult.fail(
                ErrorKind.VALIDATION, f"Couldn't read '{params.wedding_date}' as a date. Use YYYY-MM-DD.",
            )
        kernel.wedding_date = wedding_date
        tenant = await get_or_create_tenant(db, ctx.tenant_id)
        tenant.wedding_date = wedding_date
        changed["weddingDate"] = wedding_date.isoformat()

    if params.ceremony_time:
        kernel.ceremony_time = changed["ceremonyTime"] = params.ceremony_time
    if params.reception_time:
        kernel.reception_time = changed["receptionTime"] = params.reception_time
    if params.guest_count is not None:
        kernel.guest_count = changed["guestCount"] = params.guest_count

    if params.venue_name or params.venue_address:
        decisions = dict(kernel.decisions or {})
        venue = dict(decisions.get("venue") or {})
        if params.venue_name:
            venue["name"] = params.venue_name
        if params.venue_address:
            venue["address"] = params.venue_address
        venue["locked"] = True
        decisions["venue"] = venue
        kernel.decisions = decisions
        kernel.vendors_booked = union(kernel.vendors_booked or [], ["venue"])
        changed["venue"] = venue

    if not changed:
        return ToolResult.fail(ErrorKind.VALIDATION, "Nothing to update. Pass at least one detail.")
    return ToolResult.ok("Wedding details updated", data=changed)


@tool(
    name=ToolName.UPDATE_PREFERENCES,
    description="Add to the couple's vibe, color palette, must-haves or dealbreakers. Existing entries are kept.",
    params=UpdatePreferencesParams,
    category="kernel",
)
async def update_preferences(params: UpdatePreferencesParams, ctx, db) -> ToolResult:
    kernel = await get_or_create_kernel(db, ctx.tenant_id)
    changed: dict = {}

    for attr, key in (
        ("vibe", "vibe"),
        ("color_palette", "colorPalette"),
        ("must_haves", "mustHaves"),
        ("dealbreakers", "dealbreakers"),
    ):
        incoming = [v.strip() for v in getattr(params, attr) or [] if v and v.strip()]
        if incoming:
            merged = union(getattr(kernel, attr) or [], incoming)
            setattr(kernel, attr, merged)
            changed[key] = merged

    if not changed:
        return ToolResult.fail(ErrorKind.VALIDATION, "Nothing to update. Pass at least one preference.")
    return ToolResult.ok("Preferences updated", data=changed)


@tool(
    name=ToolName.ANALYZE_PLANNING_GAPS,
    description=(
        "Review the whole plan: what's missing, what's at risk, and what's going well. "
        "\n\nWhen to use: 'what should we do next?', 'are we on track?'"
    ),
    risk=ToolRisk.READ,
    category="analysis",
)
async def analyze_planning_gaps(params, ctx, db) -> ToolResult:
    report = await build_planning_report(db, ctx.tenant_id)
    return ToolResult.ok(
        report.message,
        data=report.to_dict(),
        artifact={"type": "planning_gaps", "data": report.to_dict()},
        changed=False,
    )


@tool(
    name=ToolName.SHOW_ARTIFACT,
    description=(
        "Show a visual summary in the chat: budget_overview, budget_category, guest_list, "
        "guest_stats, timeline, vendor_list, vendor_comparison, checklist, countdown, "
        "wedding_summary or planning_gaps."
    ),
    params=ShowArtifactParams,
    risk=ToolRisk.READ,
    category="analysis",
)
async def show_artifact(params: ShowArtifactParams, ctx, db) -> ToolResult:
    tenant_id = ctx.tenant_id
    kind = params.type

    if kind == "planning_gaps":
        return await analyze_planning_gaps(params, ctx, db)

    if kind in ("budget_overview", "budget_category"):
        fields = read_fields(await load_page(db, tenant_id, "budget"), "budget")
        data = {"totalBudget": fields["totalBudget"], "items": fields["items"], "filter": params.filter}

    elif kind in ("guest_list", "guest_stats"):
        guests = read_fields(await load_page(db, tenant_id, "guest-list"), "guest-list")["guests"]
        data = {
            "guests": guests,
            "stats": {
                "total": len(guests),
                "confirmed": sum(1 for g in guests if g.get("rsvp") == "yes"),
                "declined": sum(1 for g in guests if g.get("rsvp") == "no"),
                "pending": sum(1 for g in guests if g.get("rsvp") == "pending"),
            },
        }

    elif kind == "timeline":
        data = {"events": read_fields(await load_page(db, tenant_id, "day-of-schedule"), "day-of-schedule")["events"]}

    elif kind in ("vendor_list", "vendor_comparison"):
        vendors = read_fields(await load_page(db, tenant_id, "vendor-contacts"), "vendor-contacts")["vendors"]
        data = {"vendors": vendors, "filter": params.filter}

    elif kind == "checklist":
        data = {"tasks": read_fields(await load_page(db, tenant_id, "task-board"), "task-board")["tasks"]}

    elif kind == "countdown":
        kernel = await load_kernel(db, tenant_id)
        wedding_date = kernel.wedding_date if kernel else None
        data = {
            "weddingDate": wedding_date.isoformat() if wedding_date else None,
            "daysUntil": days_until(wedding_date),
        }

    else:  # wedding_summary
        kernel = await load_kernel(db, tenant_id)
        budget = read_fields(await load_page(db, tenant_id, "budget"), "budget")
        guests = read_fields(await load_page(db, tenant_id, "guest-list"), "guest-list")["guests"]
        snapshot = kernel.snapshot() if kernel else {}
        if snapshot.get("wedding_date"):
            snapshot["wedding_date"] = snapshot["wedding_date"].isoformat()
        data = {
            "kernel": snapshot,
            "budget": {"total": budget["totalBudget"], "items": budget["items"]},
            "guests": guests,
        }

    return ToolResult.ok(f"Showing {kind}", artifact={"type": kind, "data": data}, changed=False)
