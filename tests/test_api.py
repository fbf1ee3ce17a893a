"""
HTTP surface tests. The app runs in-process against the per-test SQLite database.
"""

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import func, select

from aisle.core.config import get_settings
from aisle.core.database import session_scope
from aisle.core.dependencies import get_db
from aisle.core.flags import get_flags
from aisle.factory import create_app
from aisle.models.page import PlannerPage

TENANT = "tenant-emma-james"
HEADERS = {"X-Tenant-Id": TENANT, "X-User-Id": "user-1"}


@pytest_asyncio.fixture
async def client(session_factory):
    app = create_app()

    async def override_get_db():
        async with session_scope(session_factory) as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.mark.asyncio
async def test_health(client):
    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok", "service": "aisle"}


@pytest.mark.asyncio
async def test_tenant_header_is_required(client):
    response = await client.get("/v1/onboarding/state")

    assert response.status_code == 401


@pytest.mark.asyncio
async def test_onboarding_chat_round_trip(client, model):
    model.queue(
        "Hi! Who's getting married?",
        'Lovely to meet you both!<extract>{"names": ["Emma", "James"], "moveToNextStep": true}</extract>',
    )

    first = await client.post("/v1/onboarding/chat", json={}, headers=HEADERS)
    body = first.json()
    second = await client.post(
        "/v1/onboarding/chat",
        json={"message": "We're Emma and James", "conversationId": body["conversationId"]},
        headers=HEADERS,
    )
    state = await client.get("/v1/onboarding/state", headers=HEADERS)

    assert first.status_code == 200
    assert body["onboardingStep"] == 0
    assert second.json() == {
        "message": "Lovely to meet you both!",
        "conversationId": body["conversationId"],
        "onboardingStep": 1,
        "isOnboardingComplete": False,
    }
    assert state.json()["displayName"] == "Emma & James"


@pytest.mark.asyncio
async def test_model_failure_is_502_and_saves_nothing(client, model_down):
    response = await client.post("/v1/onboarding/chat", json={"message": "Hello!"}, headers=HEADERS)
    state = await client.get("/v1/onboarding/state", headers=HEADERS)

    assert response.status_code == 502
    assert response.json() == {"error": "Failed to get response"}
    assert state.json()["conversationId"] is None


@pytest.mark.asyncio
async def test_overlong_message_is_400(client, model):
    response = await client.post("/v1/onboarding/chat", json={"message": "x" * 5000}, headers=HEADERS)

    assert response.status_code == 400
    assert model.calls == []


@pytest.mark.asyncio
async def test_tool_failures_are_results_not_errors(client):
    unknown = await client.post("/v1/tools/book_honeymoon", json={}, headers=HEADERS)
    invalid = await client.post("/v1/tools/add_budget_item", json={"category": "venue"}, headers=HEADERS)

    assert unknown.status_code == 200
    assert unknown.json()["success"] is False
    assert unknown.json()["errorKind"] == "unknown_tool"
    assert invalid.status_code == 200
    assert invalid.json()["errorKind"] == "validation"


@pytest.mark.asyncio
async def test_failed_tool_call_leaves_no_empty_page(client, session_factory):
    missing = await client.post("/v1/tools/delete_vendor", json={"vendorName": "barn"}, headers=HEADERS)

    assert missing.status_code == 200
    assert missing.json()["errorKind"] == "not_found"
    async with session_factory() as check:
        assert await check.scalar(select(func.count()).select_from(PlannerPage)) == 0


@pytest.mark.asyncio
async def test_tool_call_commits(client):
    added = await client.post(
        "/v1/tools/add_budget_item",
        json={"category": "flowers", "vendor": "Bloom & Co", "estimatedCost": 1800},
        headers=HEADERS,
    )
    shown = await client.post("/v1/tools/show_artifact", json={"type": "budget_overview"}, headers=HEADERS)

    assert added.json()["success"] is True
    items = shown.json()["artifact"]["data"]["items"]
    assert [i["vendor"] for i in items] == ["Bloom & Co"]


@pytest.mark.asyncio
async def test_tool_definitions(client):
    response = await client.get("/v1/tools", headers=HEADERS)

    assert len(response.json()["tools"]) == 25

    budget = await client.get("/v1/tools", params={"category": "budget"}, headers=HEADERS)
    names = [t["function"]["name"] for t in budget.json()["tools"]]
    assert names == ["add_budget_item", "update_budget_item", "delete_budget_item", "set_total_budget"]


@pytest.mark.asyncio
async def test_planning_endpoints(client):
    decisions = await client.get("/v1/decisions", headers=HEADERS)
    gaps = await client.get("/v1/planning/gaps", headers=HEADERS)

    assert decisions.status_code == 200
    assert gaps.status_code == 200


@pytest.mark.asyncio
async def test_rate_limit_is_429_with_retry_after(client, monkeypatch):
    monkeypatch.setenv("FF_USE_RATE_LIMIT", "true")
    monkeypatch.setenv("RATE_LIMIT_REQUESTS", "1")
    get_settings.cache_clear()
    get_flags.cache_clear()

    first = await client.post("/v1/tools/get_decision_status", json={"decisionName": "venue"}, headers=HEADERS)
    second = await client.post("/v1/tools/get_decision_status", json={"decisionName": "venue"}, headers=HEADERS)

    assert first.status_code == 200
    assert second.status_code == 429
    assert int(second.headers["Retry-After"]) >= 1
