"""
Onboarding conversation orchestrator.

One call per turn:
  1. Guardrail the user's message
  2. Read kernel + transcript (no writes yet)
  3. Call the model with the step and kernel summary in the system prompt
  4. Parse the extraction block, merge it into the kernel, advance the step
  5. Seed decisions, record any named ones, append the transcript

Steps 4-5 run in the caller's transaction. If the model call fails nothing
has been written, and a store error in 4-5 rolls all of them back together.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import get_settings
from ..core.errors import InputRejected, PersistenceFailure
from ..core.guardrails import check_input, check_output
from ..models.kernel import FINAL_ONBOARDING_STEP
from ..models.tenant import Tenant
from ..services import llm
from ..services import decisions as tracker
from ..services.extraction import parse_extraction, ExtractionStatus
from ..services.kernel import (
    apply_kernel_updates,
    apply_tenant_updates,
    get_or_create_kernel,
    get_or_create_tenant,
    load_kernel,
    merge_extraction,
    summarize_kernel,
)
from ..services.profiling import analyze_user_message
from .prompts import FIRST_TURN_DIRECTIVE, build_system_prompt
from .state import add_message, build_history, create_conversation, find_conversation, get_messages

logger = logging.getLogger(__name__)


@dataclass
class TurnResult:
    reply_text: str
    conversation_id: str
    onboarding_step: int
    is_complete: bool
    extraction_status: ExtractionStatus = ExtractionStatus.ABSENT
    learned: list[str] = field(default_factory=list)
    completed_now: bool = False

    def to_dict(self) -> dict:
        return {
            "message": self.reply_text,
            "conversationId": self.conversation_id,
            "onboardingStep": self.onboarding_step,
            "isOnboardingComplete": self.is_complete,
        }


@dataclass
class OnboardingState:
    onboarding_step: int
    is_complete: bool
    summary: str
    display_name: Optional[str] = None
    conversation_id: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "onboardingStep": self.onboarding_step,
            "isOnboardingComplete": self.is_complete,
            "summary": self.summary,
            "displayName": self.display_name,
            "conversationId": self.conversation_id,
        }


def next_step(current: int, ready: bool) -> int:
    """Advance by one only on model-declared readiness. Never backwards, never past the end."""
    current = max(0, min(current or 0, FINAL_ONBOARDING_STEP))
    if ready:
        return min(current + 1, FINAL_ONBOARDING_STEP)
    return current


async def handle_turn(
    db: AsyncSession,
    tenant_id: str,
    message: Optional[str] = None,
    conversation_id: Optional[str] = None,
    user_id: str = "",
) -> TurnResult:
    if message is not None and not message.strip():
        message = None
    if message is not None:
        check = check_input(message, tenant_id)
        if not check.allowed:
            raise InputRejected(check.reason)
        message = message.strip()

    # ── Read phase (no writes before the model answers) ──────────
    kernel = await load_kernel(db, tenant_id)
    snapshot = kernel.snapshot() if kernel else {}
    current_step = snapshot.get("onboarding_step", 0)

    convo = await find_conversation(db, tenant_id, conversation_id)
    if conversation_id and convo is None:
        logger.info("Conversation %s not found for tenant=%s, starting a new one", conversation_id, tenant_id)
    history = build_history(await get_messages(db, convo))

    if message is None and history:
        raise InputRejected("Message is empty.")

    if message is not None:
        history.append({"role": "user", "content": message})
    to_send = history or [{"role": "user", "content": FIRST_TURN_DIRECTIVE}]

    system_prompt = build_system_prompt(current_step, summarize_kernel(snapshot))

    # ── Model call (raises UpstreamModelFailure, never retried) ──
    raw = await llm.chat_text(
        to_send, system=system_prompt, max_tokens=get_settings().onboarding_max_tokens,
    )

    extraction = parse_extraction(raw)
    if extraction.status == ExtractionStatus.MALFORMED:
        logger.warning(
            "Malformed extraction (tenant=%s conversation=%s): %s",
            tenant_id, convo.id if convo else "new", extraction.error,
        )
    reply = extraction.display_text
    out = check_output(reply)
    if out.modified is not None:
        reply = out.modified

    # ── Write phase (one transaction, committed by the caller) ────
    try:
        tenant = await get_or_create_tenant(db, tenant_id)
        kernel = await get_or_create_kernel(db, tenant_id)
        snapshot = kernel.snapshot()
        was_complete = bool(tenant.onboarding_complete)

        merged = merge_extraction(snapshot, extraction.fields)
        updates = dict(merged.kernel_updates)
        if message is not None:
            updates.update(analyze_user_message(message, snapshot))
        apply_kernel_updates(kernel, updates)

        step = max(kernel.onboarding_step or 0, next_step(current_step, extraction.ready))
        kernel.onboarding_step = step
        is_complete = step >= FINAL_ONBOARDING_STEP

        tenant_updates = dict(merged.tenant_updates)
        if is_complete:
            tenant_updates["onboarding_complete"] = True
        apply_tenant_updates(tenant, tenant_updates)

        await tracker.initialize_decisions_for_tenant(db, tenant_id)
        await _record_named_decisions(db, tenant_id, extraction.fields.get("decisions"))

        if convo is None:
            convo = await create_conversation(db, tenant_id, user_id)
        if message is not None:
            await add_message(db, convo, "user", message)
        await add_message(db, convo, "assistant", reply, metadata={
            "onboarding_step": step,
            "extraction": extraction.status.value,
            "learned": sorted(merged.kernel_updates),
        })
        await db.flush()
    except SQLAlchemyError as e:
        logger.error("Onboarding turn failed to persist (tenant=%s): %s", tenant_id, e)
        raise PersistenceFailure("Couldn't save this turn.") from e

    logger.info(
        "Onboarding turn tenant=%s step %d→%d extraction=%s learned=%s",
        tenant_id, current_step, step, extraction.status.value, ",".join(sorted(merged.kernel_updates)) or "-",
    )

    return TurnResult(
        reply_text=reply,
        conversation_id=convo.id,
        onboarding_step=step,
        is_complete=is_complete,
        extraction_status=extraction.status,
        learned=sorted(merged.kernel_updates),
        completed_now=is_complete and not was_complete,
    )


async def _record_named_decisions(db: AsyncSession, tenant_id: str, decisions) -> None:
    """Mirror {"venue": {"name": ..., "locked": true}} into the decision checklist."""
    if not isinstance(decisions, dict):
        return
    for category, value in decisions.items():
        if not isinstance(value, dict):
            continue
        decision = await tracker.get_decision(db, tenant_id, str(category))
        if decision is None or decision.is_locked:
            continue
        name = value.get("name")
        if isinstance(name, str) and name.strip():
            await tracker.update_decision(db, tenant_id, decision.name, choice_name=name.strip())
        if value.get("locked") is True:
            await tracker.lock_decision(
                db, tenant_id, decision.name, "user_confirmed", "Mentioned during onboarding",
            )


async def get_onboarding_state(db: AsyncSession, tenant_id: str) -> OnboardingState:
    """Read-only snapshot for the client. Creates nothing."""
    kernel = await load_kernel(db, tenant_id)
    tenant = await db.get(Tenant, tenant_id)
    convo = await find_conversation(db, tenant_id)
    step = kernel.onboarding_step if kernel else 0
    return OnboardingState(
        onboarding_step=step,
        is_complete=step >= FINAL_ONBOARDING_STEP,
        summary=summarize_kernel(kernel.snapshot() if kernel else None),
        display_name=tenant.display_name if tenant else None,
        conversation_id=convo.id if convo else None,
    )
