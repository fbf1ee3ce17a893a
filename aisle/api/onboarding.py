"""
Onboarding API.

POST /v1/onboarding/chat   One onboarding turn (no message on first open)
GET  /v1/onboarding/state  Current step, completion and what we know
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.dependencies import Identity, enforce_rate_limit, get_db, require_tenant
from ..orchestrator.onboarding import handle_turn, get_onboarding_state
from ..services import realtime

logger = logging.getLogger(__name__)

onboarding_router = APIRouter(prefix="/onboarding", tags=["onboarding"])


class OnboardingChatRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    message: Optional[str] = None
    conversation_id: Optional[str] = None


@onboarding_router.post("/chat")
async def onboarding_chat(
    request: OnboardingChatRequest,
    identity: Identity = Depends(enforce_rate_limit),
    db: AsyncSession = Depends(get_db),
):
    result = await handle_turn(
        db,
        identity.tenant_id,
        message=request.message,
        conversation_id=request.conversation_id,
        user_id=identity.user_id,
    )
    await db.commit()

    if result.learned:
        await realtime.kernel_updated(identity.tenant_id, result.learned, result.onboarding_step)
    if result.completed_now:
        await realtime.onboarding_completed(identity.tenant_id, result.conversation_id)

    return result.to_dict()


@onboarding_router.get("/state")
async def onboarding_state(
    identity: Identity = Depends(require_tenant),
    db: AsyncSession = Depends(get_db),
):
    state = await get_onboarding_state(db, identity.tenant_id)
    return state.to_dict()
