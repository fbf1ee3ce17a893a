"""
Tests for tool dispatch: validation, fuzzy lookup, kernel sync and write races.
"""

import pytest
from sqlalchemy import func, select

from aisle.models.decision import WeddingDecision
from aisle.services.kernel import load_kernel
from aisle.tools.executor import execute_tool_call
from aisle.tools.pages import load_page, read_items
from aisle.tools.registry import ToolName, ToolRisk, get_tool, get_tools_for_llm
from aisle.tools.results import ErrorKind, ToolContext

TENANT = "tenant-emma-james"


async def run(db, ctx, name, params=None):
    return await execute_tool_call(name, params, ctx, db)


async def seed_budget(db, ctx):
    await run(db, ctx, "add_budget_item", {"category": "flowers", "vendor": "Bloom & Co", "estimatedCost": 1800})
    await run(db, ctx, "add_budget_item", {"category": "cake", "vendor": "The Cake Shop", "estimatedCost": 650})
    await db.commit()


async def budget_vendors(db):
    page = await load_page(db, TENANT, "budget")
    return [item["vendor"] for item in read_items(page, "budget")]


# ── Dispatch and validation ─────────────────────────────────────────

@pytest.mark.asyncio
async def test_unknown_tool(db, ctx):
    result = await run(db, ctx, "book_honeymoon", {"destination": "Lisbon"})

    assert not result.success
    assert result.error_kind == ErrorKind.UNKNOWN_TOOL
    assert result.to_dict()["errorKind"] == "unknown_tool"


@pytest.mark.asyncio
@pytest.mark.parametrize("params", [
    {"category": "venue"},
    {"category": "venue", "estimatedCost": -100},
    {"category": "venue", "estimatedCost": "a lot"},
    {"category": "", "estimatedCost": 100},
])
async def test_invalid_params_are_reported_not_raised(db, ctx, params):
    result = await run(db, ctx, "add_budget_item", params)

    assert not result.success
    assert result.error_kind == ErrorKind.VALIDATION
    assert result.message.startswith("Invalid parameters for add_budget_item")
    assert await load_page(db, TENANT, "budget") is None


@pytest.mark.asyncio
async def test_params_must_be_an_object(db, ctx):
    result = await run(db, ctx, "add_guest", ["Aunt May"])

    assert result.error_kind == ErrorKind.VALIDATION


@pytest.mark.asyncio
async def test_snake_case_params_are_accepted(db, ctx):
    result = await run(db, ctx, "add_budget_item", {"category": "venue", "estimated_cost": 12000.5})

    assert result.success
    assert result.data["totalCost"] == 1200050


def test_every_tool_is_described_for_the_model():
    definitions = get_tools_for_llm()
    names = {d["function"]["name"] for d in definitions}

    assert names == {n.value for n in ToolName}
    add_budget = next(d for d in definitions if d["function"]["name"] == "add_budget_item")
    params = add_budget["function"]["parameters"]
    assert params["type"] == "object"
    assert "estimatedCost" in params["properties"]
    assert "estimatedCost" in params["required"]


# ── Fuzzy lookup ─────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_partial_vendor_name_deletes_budget_item(db, ctx):
    await seed_budget(db, ctx)

    result = await run(db, ctx, "delete_budget_item", {"vendor": "bloom"})
    await db.commit()

    assert result.success
    assert result.data["vendor"] == "Bloom & Co"
    assert "$1,800" in result.message
    assert await budget_vendors(db) == ["The Cake Shop"]


@pytest.mark.asyncio
async def test_undefined_id_alone_is_a_validation_error(db, ctx):
    await seed_budget(db, ctx)

    result = await run(db, ctx, "delete_budget_item", {"itemId": "undefined"})

    assert result.error_kind == ErrorKind.VALIDATION
    assert await budget_vendors(db) == ["Bloom & Co", "The Cake Shop"]


@pytest.mark.asyncio
async def test_undefined_id_falls_back_to_descriptor(db, ctx):
    await seed_budget(db, ctx)

    result = await run(db, ctx, "delete_budget_item", {"itemId": "undefined", "vendor": "cake shop"})

    assert result.success
    assert await budget_vendors(db) == ["Bloom & Co"]


@pytest.mark.asyncio
async def test_exact_id_wins(db, ctx):
    await seed_budget(db, ctx)
    page = await load_page(db, TENANT, "budget")
    cake_id = read_items(page, "budget")[1]["id"]

    result = await run(db, ctx, "delete_budget_item", {"itemId": cake_id, "vendor": "bloom"})

    assert result.data["id"] == cake_id


@pytest.mark.asyncio
async def test_unknown_id_without_descriptor_is_not_found(db, ctx):
    await seed_budget(db, ctx)

    result = await run(db, ctx, "delete_budget_item", {"itemId": "no-such-id"})

    assert result.error_kind == ErrorKind.NOT_FOUND


@pytest.mark.asyncio
async def test_no_match_is_not_found(db, ctx):
    await seed_budget(db, ctx)

    result = await run(db, ctx, "delete_budget_item", {"vendor": "photo"})

    assert result.error_kind == ErrorKind.NOT_FOUND
    assert len(await budget_vendors(db)) == 2


@pytest.mark.asyncio
async def test_first_policy_takes_first_of_several_matches(db, ctx):
    await run(db, ctx, "add_guest_group", {"guests": ["Ann Lee", "Anna Park"], "group": "college"})

    result = await run(db, ctx, "delete_guest", {"guestName": "ann"})

    assert result.success
    assert result.data["name"] == "Ann Lee"


@pytest.mark.asyncio
async def test_unique_policy_reports_ambiguity(db, ctx, monkeypatch):
    from aisle.core.config import get_settings

    monkeypatch.setenv("FUZZY_MATCH_POLICY", "unique")
    get_settings.cache_clear()
    await run(db, ctx, "add_guest_group", {"guests": ["Ann Lee", "Anna Park", "Ann"]})

    single = await run(db, ctx, "delete_guest", {"guestName": "anna"})
    exact = await run(db, ctx, "delete_guest", {"guestName": "Ann"})

    assert single.success
    assert single.data["name"] == "Anna Park"
    assert exact.success
    assert exact.data["name"] == "Ann"

    again = await run(db, ctx, "add_guest_group", {"guests": ["Sam Ray", "Sam Roe"]})
    assert again.success
    unresolved = await run(db, ctx, "update_guest", {"guestName": "sam", "rsvp": "yes"})
    assert unresolved.error_kind == ErrorKind.AMBIGUOUS
    assert "Sam Ray" in unresolved.message and "Sam Roe" in unresolved.message


# ── Kernel sync ──────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_guest_changes_resync_guest_count(db, ctx):
    await run(db, ctx, "add_guest_group", {"guests": ["Aunt May", "Uncle Ben", " "], "side": "partner1"})
    await run(db, ctx, "add_guest", {"name": "Mary Jane", "plusOne": True})
    await run(db, ctx, "delete_guest", {"guestName": "uncle"})

    kernel = await load_kernel(db, TENANT)
    guests = read_items(await load_page(db, TENANT, "guest-list"), "guest-list")

    assert kernel.guest_count == 2 == len(guests)
    assert guests[1]["plusOne"] is True
    assert all(g["rsvp"] == "pending" for g in guests)


@pytest.mark.asyncio
async def test_booked_vendor_is_mirrored_into_kernel(db, ctx):
    await run(db, ctx, "add_vendor", {"category": "Photographer", "name": "Lens & Light", "status": "contacted"})
    kernel = await load_kernel(db, TENANT)
    assert "photographer" not in (kernel.vendors_booked or [])

    result = await run(db, ctx, "update_vendor_status", {"vendorName": "lens", "status": "Booked", "depositPaid": True})

    assert result.success
    assert result.data["depositPaid"] is True
    assert kernel.vendors_booked == ["photographer"]
    assert kernel.decisions["photographer"] == {"status": "Booked", "name": "Lens & Light", "locked": True}


@pytest.mark.asyncio
async def test_unbooking_a_vendor_releases_the_category(db, ctx):
    await run(db, ctx, "add_vendor", {"category": "venue", "name": "The Barn", "status": "booked"})
    kernel = await load_kernel(db, TENANT)
    assert kernel.vendors_booked == ["venue"]

    result = await run(db, ctx, "update_vendor_status", {"vendorName": "barn", "status": "cancelled"})

    assert result.success
    assert kernel.vendors_booked == []
    assert kernel.decisions["venue"] == {"status": "cancelled", "name": "The Barn", "locked": False}


@pytest.mark.asyncio
async def test_another_booked_vendor_keeps_the_category_booked(db, ctx):
    await run(db, ctx, "add_vendor", {"category": "photographer", "name": "Lens & Light", "status": "booked"})
    await run(db, ctx, "add_vendor", {"category": "Photographer", "name": "Second Shooter", "status": "confirmed"})

    result = await run(db, ctx, "delete_vendor", {"vendorName": "lens"})

    kernel = await load_kernel(db, TENANT)
    assert result.success
    assert kernel.vendors_booked == ["photographer"]
    assert kernel.decisions["photographer"] == {"status": "confirmed", "name": "Second Shooter", "locked": True}


@pytest.mark.asyncio
async def test_unbooked_vendor_does_not_unlock_a_decided_category(db, ctx):
    await run(db, ctx, "update_wedding_details", {"venueName": "The Barn"})
    await run(db, ctx, "add_vendor", {"category": "venue", "name": "Backup Hall", "status": "researching"})
    await run(db, ctx, "delete_vendor", {"vendorName": "backup"})

    kernel = await load_kernel(db, TENANT)
    assert kernel.decisions["venue"]["locked"] is True
    assert kernel.vendors_booked == ["venue"]


@pytest.mark.asyncio
async def test_total_budget_is_stored_in_cents_on_page_and_kernel(db, ctx):
    result = await run(db, ctx, "set_total_budget", {"amount": 35000})

    kernel = await load_kernel(db, TENANT)
    page = await load_page(db, TENANT, "budget")

    assert result.message == "Total budget set to $35,000"
    assert kernel.budget_total == 3_500_000
    assert page.fields["totalBudget"] == 3_500_000


@pytest.mark.asyncio
async def test_wedding_details_anchor_date_and_lock_venue(db, ctx):
    result = await run(db, ctx, "update_wedding_details", {"weddingDate": "2025-06-14", "venueName": "The Barn"})

    kernel = await load_kernel(db, TENANT)
    assert result.success
    assert kernel.wedding_date.hour == 12
    assert kernel.decisions["venue"] == {"name": "The Barn", "locked": True}
    assert "venue" in kernel.vendors_booked


@pytest.mark.asyncio
async def test_wedding_details_need_something(db, ctx):
    assert (await run(db, ctx, "update_wedding_details", {})).error_kind == ErrorKind.VALIDATION
    bad_date = await run(db, ctx, "update_wedding_details", {"weddingDate": "june-ish"})
    assert bad_date.error_kind == ErrorKind.VALIDATION


@pytest.mark.asyncio
async def test_preferences_union(db, ctx):
    await run(db, ctx, "update_preferences", {"vibe": ["rustic"], "colorPalette": ["sage"]})
    result = await run(db, ctx, "update_preferences", {"vibe": ["rustic", "candlelit"]})

    assert result.data == {"vibe": ["rustic", "candlelit"]}


# ── Other planners ───────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_day_of_timeline_stays_sorted(db, ctx):
    for time, event in [("4:30 PM", "Ceremony"), ("11:00 AM", "Hair & makeup"), ("18:00", "Dinner"), ("12 PM", "Photos")]:
        assert (await run(db, ctx, "add_day_of_event", {"time": time, "event": event})).success

    events = read_items(await load_page(db, TENANT, "day-of-schedule"), "day-of-schedule")

    assert [e["event"] for e in events] == ["Hair & makeup", "Photos", "Ceremony", "Dinner"]


@pytest.mark.asyncio
async def test_task_lifecycle(db, ctx):
    await run(db, ctx, "add_task", {"title": "Send save the dates", "dueDate": "2025-01-15", "priority": "high"})
    done = await run(db, ctx, "complete_task", {"taskTitle": "save the"})
    removed = await run(db, ctx, "delete_task", {"taskId": done.data["id"]})

    assert done.data["status"] == "done"
    assert removed.success
    assert read_items(await load_page(db, TENANT, "task-board"), "task-board") == []


@pytest.mark.asyncio
async def test_decision_tools_seed_and_lock(db, ctx):
    status = await run(db, ctx, "get_decision_status", {"decisionName": "venue"})
    assert status.success and status.changed is False

    await run(db, ctx, "update_decision", {"decisionName": "venue", "choiceName": "The Barn", "choiceAmount": 9000})
    locked = await run(db, ctx, "lock_decision", {"decisionName": "venue", "reason": "deposit_paid"})
    refused = await run(db, ctx, "update_decision", {"decisionName": "venue", "status": "undecided"})
    missing = await run(db, ctx, "skip_decision", {"decisionName": "fireworks"})
    bad_reason = await run(db, ctx, "lock_decision", {"decisionName": "cake", "reason": "vibes"})

    assert locked.success and locked.data["choiceAmount"] == 900000
    assert refused.error_kind == ErrorKind.VALIDATION
    assert missing.error_kind == ErrorKind.NOT_FOUND
    assert bad_reason.error_kind == ErrorKind.VALIDATION
    kernel = await load_kernel(db, TENANT)
    assert kernel.decisions["venue"] == {"locked": True, "name": "The Barn"}


@pytest.mark.asyncio
async def test_checklist_artifact(db, ctx):
    result = await run(db, ctx, "show_checklist", {"category": "attire"})

    assert result.artifact["type"] == "checklist_full"
    assert [d["name"] for d in result.artifact["data"]["decisions"]] == ["wedding_dress", "suits"]
    assert result.message == "0 of 17 decisions made (0% complete)"


@pytest.mark.asyncio
async def test_read_tools_do_not_seed_the_checklist(db, ctx):
    result = await run(db, ctx, "analyze_planning_gaps")

    assert result.success
    assert await db.scalar(select(func.count()).select_from(WeddingDecision)) == 0
    assert get_tool(ToolName.ANALYZE_PLANNING_GAPS).risk == ToolRisk.READ
    # These two create the catalog on first use
    assert get_tool(ToolName.GET_DECISION_STATUS).risk == ToolRisk.WRITE
    assert get_tool(ToolName.SHOW_CHECKLIST).risk == ToolRisk.WRITE


@pytest.mark.asyncio
async def test_show_artifact_is_read_only(db, ctx):
    result = await run(db, ctx, "show_artifact", {"type": "guest_stats"})

    assert result.success
    assert result.artifact == {
        "type": "guest_stats",
        "data": {"guests": [], "stats": {"total": 0, "confirmed": 0, "declined": 0, "pending": 0}},
    }
    assert await load_page(db, TENANT, "guest-list") is None

    unknown = await run(db, ctx, "show_artifact", {"type": "seating_chart"})
    assert unknown.error_kind == ErrorKind.VALIDATION


# ── Write races ──────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_stale_page_write_is_a_conflict(session_factory):
    ctx = ToolContext(tenant_id=TENANT, user_id="user-1")
    async with session_factory() as setup:
        await seed_budget(setup, ctx)

    async with session_factory() as first, session_factory() as second:
        # Both sessions read the page at the same version
        page_first = await load_page(first, TENANT, "budget")
        page_second = await load_page(second, TENANT, "budget")
        assert page_first.version == page_second.version

        removed = await run(first, ctx, "delete_budget_item", {"vendor": "bloom"})
        await first.commit()
        assert removed.success

        stale = await run(second, ctx, "delete_budget_item", {"vendor": "cake"})
        assert not stale.success
        assert stale.error_kind == ErrorKind.CONFLICT

    async with session_factory() as check:
        assert await budget_vendors(check) == ["The Cake Shop"]
