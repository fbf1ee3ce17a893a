"""
Vendor tools. Status changes are mirrored into the kernel's decisions map
so the gap analyzer and the prompt summary see bookings made here.
"""

import logging
from typing import Optional

from pydantic import Field, model_validator

from ..models.base import new_uuid, utcnow
from ..services.kernel import (
    BOOKED_STATUSES, dollars_to_cents, get_or_create_kernel, record_kernel_decision,
)
from .matching import EntityId, resolve_item
from .pages import get_or_create_page, read_fields, save_fields
from .registry import tool, ToolName, ToolParams, ToolRisk
from .results import ToolResult

logger = logging.getLogger(__name__)

TEMPLATE = "vendor-contacts"


class AddVendorParams(ToolParams):
    category: str = Field(min_length=1, description="venue, photographer, caterer, officiant, florist...")
    name: str = Field(min_length=1)
    contact_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    status: str = Field(default="researching", description="researching, contacted, booked, confirmed...")
    price: Optional[float] = Field(default=None, ge=0, description="Quoted price in dollars")
    notes: Optional[str] = None


class UpdateVendorStatusParams(ToolParams):
    vendor_id: EntityId = None
    vendor_name: Optional[str] = Field(default=None, description="Full or partial vendor name")
    status: str = Field(min_length=1)
    deposit_paid: Optional[bool] = None
    contract_signed: Optional[bool] = None

    @model_validator(mode="after")
    def _needs_target(self):
        if not self.vendor_id and not self.vendor_name:
            raise ValueError("Provide vendorId or vendorName to say which vendor to update")
        return self


class DeleteVendorParams(ToolParams):
    vendor_id: EntityId = None
    vendor_name: Optional[str] = Field(default=None, description="Full or partial vendor name")

    @model_validator(mode="after")
    def _needs_target(self):
        if not self.vendor_id and not self.vendor_name:
            raise ValueError("Provide vendorId or vendorName to say which vendor to remove")
        return self


def _is_booked(status: str) -> bool:
    return (status or "").strip().lower() in BOOKED_STATUSES


def _release_category(kernel, vendors: list, category: str, fallback: dict) -> None:
    """
    A booked vendor stopped being booked. Keep the category locked if another
    booked vendor still covers it, otherwise unlock it with `fallback`.
    """
    key = (category or "").strip().lower()
    still_booked = next(
        (
            v for v in vendors
            if (v.get("category") or "").strip().lower() == key and _is_booked(v.get("status"))
        ),
        None,
    )
    if still_booked is not None:
        record_kernel_decision(kernel, category, {
            "status": still_booked.get("status"),
            "name": still_booked.get("name"),
            "locked": True,
        })
    else:
        record_kernel_decision(kernel, category, {**fallback, "locked": False})


@tool(
    name=ToolName.ADD_VENDOR,
    description=(
        "Add a vendor the couple is considering or has booked. "
        "\n\nA booked or confirmed status also marks the category as decided."
    ),
    params=AddVendorParams,
    category="vendors",
)
async def add_vendor(params: AddVendorParams, ctx, db) -> ToolResult:
    page = await get_or_create_page(db, ctx.tenant_id, TEMPLATE)
    fields = read_fields(page)

    vendor = {
        "id": new_uuid(),
        "category": params.category,
        "name": params.name,
        "contactName": params.contact_name or "",
        "email": params.email or "",
        "phone": params.phone or "",
        "status": params.status,
        "price": dollars_to_cents(params.price) if params.price is not None else None,
        "notes": params.notes or "",
        "depositPaid": False,
        "contractSigned": False,
        "createdAt": utcnow().isoformat(),
    }
    fields["vendors"].append(vendor)
    save_fields(page, fields)

    kernel = await get_or_create_kernel(db, ctx.tenant_id)
    mirror = {"status": params.status, "name": params.name}
    if _is_booked(params.status):
        mirror["locked"] = True
    record_kernel_decision(kernel, params.category, mirror)

    return ToolResult.ok(f"Added {params.name} ({params.category}) to vendors", data=vendor)


@tool(
    name=ToolName.UPDATE_VENDOR_STATUS,
    description=(
        "Change a vendor's status, and optionally record a paid deposit or signed contract. "
        "Find the vendor by vendorId or by a full or partial vendorName."
    ),
    params=UpdateVendorStatusParams,
    category="vendors",
)
async def update_vendor_status(params: UpdateVendorStatusParams, ctx, db) -> ToolResult:
    page = await get_or_create_page(db, ctx.tenant_id, TEMPLATE)
    fields = read_fields(page)

    found = resolve_item(fields["vendors"], params.vendor_id, params.vendor_name, ("name",), "vendor")
    if not found.found:
        return ToolResult.fail(found.error_kind, found.message)

    vendor = found.item
    was_booked = _is_booked(vendor.get("status"))
    vendor["status"] = params.status
    if params.deposit_paid is not None:
        vendor["depositPaid"] = params.deposit_paid
    if params.contract_signed is not None:
        vendor["contractSigned"] = params.contract_signed
    save_fields(page, fields)

    kernel = await get_or_create_kernel(db, ctx.tenant_id)
    category = vendor.get("category") or ""
    mirror = {"status": params.status, "name": vendor.get("name")}
    if _is_booked(params.status):
        record_kernel_decision(kernel, category, {**mirror, "locked": True})
    elif was_booked:
        _release_category(kernel, fields["vendors"], category, mirror)
    else:
        record_kernel_decision(kernel, category, mirror)

    return ToolResult.ok(f"Updated {vendor.get('name')} status to {params.status}", data=vendor)


@tool(
    name=ToolName.DELETE_VENDOR,
    description="Remove a vendor. Find it by vendorId or by a full or partial vendorName.",
    params=DeleteVendorParams,
    risk=ToolRisk.DANGEROUS,
    category="vendors",
)
async def delete_vendor(params: DeleteVendorParams, ctx, db) -> ToolResult:
    page = await get_or_create_page(db, ctx.tenant_id, TEMPLATE)
    fields = read_fields(page)
    vendors = fields["vendors"]

    found = resolve_item(vendors, params.vendor_id, params.vendor_name, ("name",), "vendor")
    if not found.found:
        return ToolResult.fail(found.error_kind, found.message)

    removed = vendors.pop(found.index)
    save_fields(page, fields)

    if _is_booked(removed.get("status")):
        kernel = await get_or_create_kernel(db, ctx.tenant_id)
        _release_category(kernel, vendors, removed.get("category") or "", {
            "status": "removed",
            "name": removed.get("name"),
        })

    return ToolResult.ok(f"Removed {removed.get('name')} from vendor list", data=removed)
