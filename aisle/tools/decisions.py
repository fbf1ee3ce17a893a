"""
Decision checklist tools. Each one seeds the tenant's catalog first, so the
model can call them from the very first planning turn.
"""

from typing import Literal, Optional

from pydantic import Field

from ..models.decision import LockReason
from ..services import decisions as tracker
from ..services.kernel import dollars_to_cents, get_or_create_kernel, record_kernel_decision
from .registry import tool, ToolName, ToolParams
from .results import ErrorKind, ToolResult


class DecisionNameParams(ToolParams):
    decision_name: str = Field(min_length=1, description="e.g. 'venue', 'photographer', 'wedding_date'")


class UpdateDecisionParams(DecisionNameParams):
    status: Optional[Literal["undecided", "decided"]] = None
    choice_name: Optional[str] = Field(default=None, description="What they chose, e.g. 'The Grand Ballroom'")
    choice_amount: Optional[float] = Field(default=None, ge=0, description="Cost in dollars")
    notes: Optional[str] = None


class LockDecisionParams(DecisionNameParams):
    reason: LockReason
    details: Optional[str] = Field(default=None, description="e.g. 'Paid $5000 deposit on 3/15'")


class ShowChecklistParams(ToolParams):
    category: Optional[Literal["foundation", "venue", "vendors", "attire", "details"]] = None


class AddCustomDecisionParams(ToolParams):
    display_name: str = Field(min_length=1)
    category: Literal["foundation", "venue", "vendors", "attire", "details"] = "details"


def _from_update(result: tracker.DecisionUpdateResult) -> ToolResult:
    data = result.decision.to_dict() if result.decision is not None else None
    if result.success:
        return ToolResult.ok(result.message, data=data)
    if result.was_locked:
        return ToolResult.fail(ErrorKind.VALIDATION, result.message, data=data)
    if result.not_found:
        return ToolResult.fail(ErrorKind.NOT_FOUND, result.message)
    return ToolResult.fail(ErrorKind.VALIDATION, result.message)


@tool(
    name=ToolName.UPDATE_DECISION,
    description=(
        "Record progress on a planning decision: what they picked, how much it costs, or that "
        "it's decided. Locked decisions can't be changed."
    ),
    params=UpdateDecisionParams,
    category="decisions",
)
async def update_decision(params: UpdateDecisionParams, ctx, db) -> ToolResult:
    await tracker.initialize_decisions_for_tenant(db, ctx.tenant_id)
    result = await tracker.update_decision(
        db, ctx.tenant_id, params.decision_name,
        status=params.status,
        choice_name=params.choice_name,
        choice_amount=dollars_to_cents(params.choice_amount) if params.choice_amount is not None else None,
        choice_notes=params.notes,
    )
    return _from_update(result)


@tool(
    name=ToolName.LOCK_DECISION,
    description=(
        "Lock a decision once it's final: deposit_paid, contract_signed, full_payment, "
        "date_passed or user_confirmed. Locked decisions count as booked."
    ),
    params=LockDecisionParams,
    category="decisions",
)
async def lock_decision(params: LockDecisionParams, ctx, db) -> ToolResult:
    await tracker.initialize_decisions_for_tenant(db, ctx.tenant_id)
    result = await tracker.lock_decision(
        db, ctx.tenant_id, params.decision_name, params.reason.value, params.details,
    )
    if result.success and result.decision is not None and not result.was_locked:
        kernel = await get_or_create_kernel(db, ctx.tenant_id)
        update = {"locked": True}
        if result.decision.choice_name:
            update["name"] = result.decision.choice_name
        record_kernel_decision(kernel, result.decision.name, update)
    return _from_update(result)


@tool(
    name=ToolName.SKIP_DECISION,
    description="Mark a decision as not applying to this wedding (e.g. no videographer).",
    params=DecisionNameParams,
    category="decisions",
)
async def skip_decision(params: DecisionNameParams, ctx, db) -> ToolResult:
    await tracker.initialize_decisions_for_tenant(db, ctx.tenant_id)
    return _from_update(await tracker.skip_decision(db, ctx.tenant_id, params.decision_name))


@tool(
    name=ToolName.GET_DECISION_STATUS,
    description="Look up where one decision stands, including whether it's locked and why.",
    params=DecisionNameParams,
    category="decisions",
)
async def get_decision_status(params: DecisionNameParams, ctx, db) -> ToolResult:
    await tracker.initialize_decisions_for_tenant(db, ctx.tenant_id)
    decision = await tracker.get_decision(db, ctx.tenant_id, params.decision_name)
    if decision is None:
        return ToolResult.fail(ErrorKind.NOT_FOUND, f'Decision "{params.decision_name}" not found')

    message = f"{decision.display_name}: {decision.status}"
    if decision.choice_name:
        message += f" ({decision.choice_name})"
    if decision.is_locked:
        message += " - LOCKED"
    return ToolResult.ok(message, data=decision.to_dict(), changed=False)


@tool(
    name=ToolName.SHOW_CHECKLIST,
    description="Show the decision checklist with progress, optionally for one category.",
    params=ShowChecklistParams,
    category="decisions",
)
async def show_checklist(params: ShowChecklistParams, ctx, db) -> ToolResult:
    await tracker.initialize_decisions_for_tenant(db, ctx.tenant_id)
    if params.category:
        decisions = await tracker.get_decisions_by_category(db, ctx.tenant_id, params.category)
    else:
        decisions = await tracker.get_all_decisions(db, ctx.tenant_id)
    progress = await tracker.get_decision_progress(db, ctx.tenant_id)

    return ToolResult.ok(
        f"{progress.decided} of {progress.total} decisions made ({progress.percent_complete}% complete)",
        artifact={
            "type": "checklist_full",
            "data": {
                "progress": progress.to_dict(),
                "decisions": [d.to_dict() for d in decisions],
            },
        },
        changed=False,
    )


@tool(
    name=ToolName.ADD_CUSTOM_DECISION,
    description="Add a decision that isn't on the standard checklist, e.g. 'Photo booth'.",
    params=AddCustomDecisionParams,
    category="decisions",
)
async def add_custom_decision(params: AddCustomDecisionParams, ctx, db) -> ToolResult:
    await tracker.initialize_decisions_for_tenant(db, ctx.tenant_id)
    return _from_update(
        await tracker.add_custom_decision(db, ctx.tenant_id, params.display_name, params.category)
    )
