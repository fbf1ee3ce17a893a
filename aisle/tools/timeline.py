"""
Day-of timeline. Events are kept sorted by start time.
"""

import re
from typing import Optional

from pydantic import Field

from ..models.base import new_uuid
from .pages import get_or_create_page, read_fields, save_fields
from .registry import tool, ToolName, ToolParams
from .results import ToolResult

TEMPLATE = "day-of-schedule"

_CLOCK_RE = re.compile(r"(\d{1,2})(?::(\d{2}))?\s*([ap])?\.?m?\.?", re.IGNORECASE)


def minutes_since_midnight(value: str) -> int:
    """'4:30 PM' → 990, '16:30' → 990. Unreadable times sort last."""
    match = _CLOCK_RE.search(value or "")
    if not match:
        return 24 * 60
    hour = int(match.group(1)) % 24
    minute = int(match.group(2) or 0)
    meridiem = (match.group(3) or "").lower()
    if meridiem == "p" and hour < 12:
        hour += 12
    elif meridiem == "a" and hour == 12:
        hour = 0
    return hour * 60 + minute


class AddDayOfEventParams(ToolParams):
    time: str = Field(min_length=1, description="Start time, e.g. '4:30 PM' or '16:30'")
    event: str = Field(min_length=1, description="What happens, e.g. 'Ceremony'")
    duration: Optional[str] = Field(default=None, description="e.g. '30 minutes'")
    location: Optional[str] = None
    notes: Optional[str] = None


@tool(
    name=ToolName.ADD_DAY_OF_EVENT,
    description="Add an entry to the wedding day schedule. The schedule stays in time order.",
    params=AddDayOfEventParams,
    category="timeline",
)
async def add_day_of_event(params: AddDayOfEventParams, ctx, db) -> ToolResult:
    page = await get_or_create_page(db, ctx.tenant_id, TEMPLATE)
    fields = read_fields(page)

    event = {
        "id": new_uuid(),
        "time": params.time,
        "event": params.event,
        "duration": params.duration,
        "location": params.location or "",
        "notes": params.notes or "",
    }
    events = fields["events"] + [event]
    events.sort(key=lambda e: minutes_since_midnight(str(e.get("time") or "")))
    fields["events"] = events
    save_fields(page, fields)

    return ToolResult.ok(f'Added "{params.event}" at {params.time} to day-of timeline', data=event)
