"""
Guest list tools. Every change resyncs kernel.guest_count with the list length.
"""

import logging
from typing import Literal, Optional

from pydantic import Field, model_validator

from ..models.base import new_uuid, utcnow
from ..services.kernel import get_or_create_kernel
from .matching import EntityId, resolve_item
from .pages import get_or_create_page, read_fields, save_fields
from .registry import tool, ToolName, ToolParams, ToolRisk
from .results import ToolResult

logger = logging.getLogger(__name__)

TEMPLATE = "guest-list"

Side = Literal["partner1", "partner2", "both"]
Rsvp = Literal["pending", "yes", "no"]


class AddGuestParams(ToolParams):
    name: str = Field(min_length=1)
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    side: Side = "both"
    group: Optional[str] = Field(default=None, description="e.g. 'college friends', 'family'")
    plus_one: bool = False


class UpdateGuestParams(ToolParams):
    guest_id: EntityId = None
    guest_name: Optional[str] = Field(default=None, description="Full or partial name to find the guest by")
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    side: Optional[Side] = None
    group: Optional[str] = None
    plus_one: Optional[bool] = None
    rsvp: Optional[Rsvp] = None

    @model_validator(mode="after")
    def _needs_target(self):
        if not self.guest_id and not self.guest_name:
            raise ValueError("Provide guestId or guestName to say which guest to update")
        return self


class DeleteGuestParams(ToolParams):
    guest_id: EntityId = None
    guest_name: Optional[str] = Field(default=None, description="Full or partial guest name")

    @model_validator(mode="after")
    def _needs_target(self):
        if not self.guest_id and not self.guest_name:
            raise ValueError("Provide guestId or guestName to say which guest to remove")
        return self


class AddGuestGroupParams(ToolParams):
    guests: list[str] = Field(min_length=1, description="Guest names")
    side: Side = "both"
    group: Optional[str] = None
    plus_ones: bool = False


_GUEST_UPDATABLE = {
    "name": "name",
    "email": "email",
    "phone": "phone",
    "address": "address",
    "side": "side",
    "group": "group",
    "plus_one": "plusOne",
    "rsvp": "rsvp",
}


def _new_guest(name: str, **extra) -> dict:
    return {
        "id": new_uuid(),
        "name": name,
        "email": extra.get("email") or "",
        "phone": extra.get("phone") or "",
        "address": extra.get("address") or "",
        "side": extra.get("side") or "both",
        "group": extra.get("group") or "",
        "plusOne": bool(extra.get("plus_one")),
        "rsvp": "pending",
        "createdAt": utcnow().isoformat(),
    }


async def _sync_guest_count(db, tenant_id: str, guests: list) -> None:
    kernel = await get_or_create_kernel(db, tenant_id)
    kernel.guest_count = len(guests)


@tool(
    name=ToolName.ADD_GUEST,
    description="Add one guest to the guest list. RSVP starts as pending.",
    params=AddGuestParams,
    category="guests",
)
async def add_guest(params: AddGuestParams, ctx, db) -> ToolResult:
    page = await get_or_create_page(db, ctx.tenant_id, TEMPLATE)
    fields = read_fields(page)
    guest = _new_guest(params.name, **params.model_dump(exclude={"name"}))
    fields["guests"].append(guest)
    save_fields(page, fields)
    await _sync_guest_count(db, ctx.tenant_id, fields["guests"])

    return ToolResult.ok(f"Added {params.name} to guest list", data=guest)


@tool(
    name=ToolName.UPDATE_GUEST,
    description=(
        "Update a guest's details or RSVP (pending, yes, no). "
        "Find the guest by guestId or by a full or partial guestName."
    ),
    params=UpdateGuestParams,
    category="guests",
)
async def update_guest(params: UpdateGuestParams, ctx, db) -> ToolResult:
    page = await get_or_create_page(db, ctx.tenant_id, TEMPLATE)
    fields = read_fields(page)

    found = resolve_item(fields["guests"], params.guest_id, params.guest_name, ("name",), "guest")
    if not found.found:
        return ToolResult.fail(found.error_kind, found.message)

    guest = found.item
    for attr, key in _GUEST_UPDATABLE.items():
        value = getattr(params, attr)
        if value is not None:
            guest[key] = value
    save_fields(page, fields)

    return ToolResult.ok(f"Updated guest: {guest.get('name')}", data=guest)


@tool(
    name=ToolName.DELETE_GUEST,
    description="Remove a guest. Find them by guestId or by a full or partial guestName.",
    params=DeleteGuestParams,
    risk=ToolRisk.DANGEROUS,
    category="guests",
)
async def delete_guest(params: DeleteGuestParams, ctx, db) -> ToolResult:
    page = await get_or_create_page(db, ctx.tenant_id, TEMPLATE)
    fields = read_fields(page)
    guests = fields["guests"]

    found = resolve_item(guests, params.guest_id, params.guest_name, ("name",), "guest")
    if not found.found:
        return ToolResult.fail(found.error_kind, found.message)

    removed = guests.pop(found.index)
    save_fields(page, fields)
    await _sync_guest_count(db, ctx.tenant_id, guests)

    return ToolResult.ok(f"Removed {removed.get('name')} from guest list", data=removed)


@tool(
    name=ToolName.ADD_GUEST_GROUP,
    description="Add several guests at once, e.g. a family or a friend group, sharing side and group.",
    params=AddGuestGroupParams,
    category="guests",
)
async def add_guest_group(params: AddGuestGroupParams, ctx, db) -> ToolResult:
    page = await get_or_create_page(db, ctx.tenant_id, TEMPLATE)
    fields = read_fields(page)

    names = [n.strip() for n in params.guests if n and n.strip()]
    added = [
        _new_guest(name, side=params.side, group=params.group, plus_one=params.plus_ones)
        for name in names
    ]
    fields["guests"].extend(added)
    save_fields(page, fields)
    await _sync_guest_count(db, ctx.tenant_id, fields["guests"])

    return ToolResult.ok(f"Added {len(added)} guests to the list", data=added)
