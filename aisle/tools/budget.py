"""
Budget tools: line items and the overall budget.
Amounts arrive in dollars and are stored in cents.
"""

import logging
from typing import Optional

from pydantic import Field, model_validator

from ..models.base import new_uuid, utcnow
from ..services.kernel import (
    dollars_to_cents, format_cents, get_or_create_kernel, record_kernel_decision,
)
from .matching import EntityId, resolve_item
from .pages import get_or_create_page, read_fields, save_fields
from .registry import tool, ToolName, ToolParams, ToolRisk
from .results import ToolResult

logger = logging.getLogger(__name__)

TEMPLATE = "budget"


class AddBudgetItemParams(ToolParams):
    category: str = Field(min_length=1, description="Budget category, e.g. 'venue', 'flowers'")
    vendor: Optional[str] = Field(default=None, description="Vendor name if known")
    estimated_cost: float = Field(ge=0, description="Estimated cost in dollars")
    amount_paid: float = Field(default=0, ge=0, description="Amount already paid in dollars")
    notes: Optional[str] = None


class UpdateBudgetItemParams(ToolParams):
    item_id: EntityId = Field(default=None, description="Exact item id, if known")
    category: Optional[str] = Field(default=None, description="Category or vendor name to find the item by")
    estimated_cost: Optional[float] = Field(default=None, ge=0)
    amount_paid: Optional[float] = Field(default=None, ge=0)
    vendor: Optional[str] = None
    notes: Optional[str] = None

    @model_validator(mode="after")
    def _needs_target(self):
        if not self.item_id and not self.category:
            raise ValueError("Provide itemId or category to say which budget item to update")
        return self


class DeleteBudgetItemParams(ToolParams):
    item_id: EntityId = Field(default=None, description="Exact item id, if known")
    vendor: Optional[str] = Field(default=None, description="Full or partial vendor name")
    category: Optional[str] = Field(default=None, description="Full or partial category")

    @model_validator(mode="after")
    def _needs_target(self):
        if not (self.item_id or self.vendor or self.category):
            raise ValueError("Provide itemId, vendor or category to say which budget item to remove")
        return self


class SetTotalBudgetParams(ToolParams):
    amount: float = Field(ge=0, description="Total budget in dollars")


@tool(
    name=ToolName.ADD_BUDGET_ITEM,
    description=(
        "Add a line item to the couple's budget. "
        "\n\nWhen to use: they mention a cost for a category or vendor. "
        "\n\nAmounts are in dollars. Returns the created item."
    ),
    params=AddBudgetItemParams,
    category="budget",
)
async def add_budget_item(params: AddBudgetItemParams, ctx, db) -> ToolResult:
    page = await get_or_create_page(db, ctx.tenant_id, TEMPLATE)
    fields = read_fields(page)

    item = {
        "id": new_uuid(),
        "category": params.category,
        "vendor": params.vendor or "",
        "totalCost": dollars_to_cents(params.estimated_cost),
        "amountPaid": dollars_to_cents(params.amount_paid),
        "notes": params.notes or "",
        "createdAt": utcnow().isoformat(),
    }
    fields["items"].append(item)
    save_fields(page, fields)

    kernel = await get_or_create_kernel(db, ctx.tenant_id)
    record_kernel_decision(kernel, params.category, {"status": "budgeted", "amount": item["totalCost"]})

    return ToolResult.ok(
        f"Added {params.category} to budget: {format_cents(item['totalCost'])}", data=item,
    )


@tool(
    name=ToolName.UPDATE_BUDGET_ITEM,
    description=(
        "Change the cost, amount paid, vendor or notes of an existing budget item. "
        "Find it by itemId, or by category / vendor name."
    ),
    params=UpdateBudgetItemParams,
    category="budget",
)
async def update_budget_item(params: UpdateBudgetItemParams, ctx, db) -> ToolResult:
    page = await get_or_create_page(db, ctx.tenant_id, TEMPLATE)
    fields = read_fields(page)
    items = fields["items"]

    found = resolve_item(items, params.item_id, params.category, ("category", "vendor"), "budget item")
    if not found.found:
        return ToolResult.fail(found.error_kind, found.message)

    item = found.item
    if params.estimated_cost is not None:
        item["totalCost"] = dollars_to_cents(params.estimated_cost)
    if params.amount_paid is not None:
        item["amountPaid"] = dollars_to_cents(params.amount_paid)
    if params.vendor is not None:
        item["vendor"] = params.vendor
    if params.notes is not None:
        item["notes"] = params.notes
    save_fields(page, fields)

    return ToolResult.ok(f"Updated {item.get('category') or 'budget item'}", data=item)


@tool(
    name=ToolName.DELETE_BUDGET_ITEM,
    description=(
        "Remove a budget item. Find it by itemId, or by a full or partial vendor "
        "or category name ('bloom' finds 'Bloom & Co')."
    ),
    params=DeleteBudgetItemParams,
    risk=ToolRisk.DANGEROUS,
    category="budget",
)
async def delete_budget_item(params: DeleteBudgetItemParams, ctx, db) -> ToolResult:
    page = await get_or_create_page(db, ctx.tenant_id, TEMPLATE)
    fields = read_fields(page)
    items = fields["items"]

    descriptor = params.vendor or params.category
    search_fields = ("vendor", "category") if params.vendor else ("category", "vendor")
    found = resolve_item(items, params.item_id, descriptor, search_fields, "budget item")
    if not found.found:
        return ToolResult.fail(found.error_kind, found.message)

    removed = items.pop(found.index)
    save_fields(page, fields)

    label = removed.get("vendor") or removed.get("category") or "item"
    return ToolResult.ok(
        f"Removed {label} ({format_cents(int(removed.get('totalCost') or 0))}) from budget",
        data=removed,
    )


@tool(
    name=ToolName.SET_TOTAL_BUDGET,
    description="Set the couple's overall wedding budget, in dollars.",
    params=SetTotalBudgetParams,
    category="budget",
)
async def set_total_budget(params: SetTotalBudgetParams, ctx, db) -> ToolResult:
    page = await get_or_create_page(db, ctx.tenant_id, TEMPLATE)
    fields = read_fields(page)
    amount = dollars_to_cents(params.amount)
    fields["totalBudget"] = amount
    save_fields(page, fields)

    kernel = await get_or_create_kernel(db, ctx.tenant_id)
    kernel.budget_total = amount

    return ToolResult.ok(f"Total budget set to {format_cents(amount)}", data={"totalBudget": amount})
