"""
Decision tracker: the fixed checklist of planning decisions per couple.

Each tenant gets the catalog below seeded once. Decisions move
undecided → decided → locked. Locked decisions (deposit paid, contract
signed...) are frozen; skipped ones drop out of progress.
"""

import logging
import re
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.base import utcnow
from ..models.decision import WeddingDecision, DecisionStatus, LockReason

logger = logging.getLogger(__name__)

# (name, display_name, category, is_required)
DECISION_CATALOG: list[tuple[str, str, str, bool]] = [
    # Foundation
    ("wedding_date", "Wedding Date", "foundation", True),
    ("budget", "Overall Budget", "foundation", True),
    ("guest_count", "Guest Count", "foundation", True),
    ("wedding_party", "Wedding Party", "foundation", False),
    # Venue
    ("venue", "Wedding Venue", "venue", True),
    # Vendors
    ("photographer", "Photographer", "vendors", True),
    ("caterer", "Caterer", "vendors", True),
    ("officiant", "Officiant", "vendors", True),
    ("florist", "Florist", "vendors", False),
    ("dj_band", "DJ or Band", "vendors", False),
    ("videographer", "Videographer", "vendors", False),
    ("cake", "Wedding Cake", "vendors", False),
    ("hair_makeup", "Hair & Makeup", "vendors", False),
    # Attire
    ("wedding_dress", "Wedding Dress", "attire", False),
    ("suits", "Suits & Tuxedos", "attire", False),
    # Details
    ("invitations", "Invitations", "details", False),
    ("rings", "Wedding Rings", "details", False),
]

CATEGORIES = ("foundation", "venue", "vendors", "attire", "details")


@dataclass
class DecisionProgress:
    total: int
    decided: int
    locked: int
    percent_complete: int

    def to_dict(self) -> dict:
        return {
            "total": self.total,
            "decided": self.decided,
            "locked": self.locked,
            "percentComplete": self.percent_complete,
        }


@dataclass
class DecisionUpdateResult:
    success: bool
    message: str
    was_locked: bool = False
    not_found: bool = False
    decision: Optional[WeddingDecision] = None


def normalize_decision_name(name: str) -> str:
    """'Hair & Makeup' → 'hair_makeup'."""
    return re.sub(r"[^a-z0-9]+", "_", (name or "").strip().lower()).strip("_")


def round_half_up_percent(part: int, whole: int) -> int:
    if whole <= 0:
        return 0
    return (part * 200 + whole) // (whole * 2)


# ── Seeding ──────────────────────────────────────────────────────────

async def initialize_decisions_for_tenant(db: AsyncSession, tenant_id: str) -> bool:
    """
    Seed the catalog if the tenant has no decisions yet.
    Returns True when rows were created. Safe to call on every turn.
    """
    count = await db.scalar(
        select(func.count()).select_from(WeddingDecision).where(WeddingDecision.tenant_id == tenant_id)
    )
    if count:
        return False

    try:
        # Savepoint: a concurrent seed hits the unique constraint and only
        # this nested block is rolled back.
        async with db.begin_nested():
            db.add_all([
                WeddingDecision(
                    tenant_id=tenant_id,
                    name=name,
                    display_name=display_name,
                    category=category,
                    is_required=required,
                    status=DecisionStatus.UNDECIDED.value,
                    position=i,
                )
                for i, (name, display_name, category, required) in enumerate(DECISION_CATALOG)
            ])
    except IntegrityError:
        logger.info("Decisions for tenant=%s already seeded concurrently", tenant_id)
        return False

    logger.info("Seeded %d decisions for tenant=%s", len(DECISION_CATALOG), tenant_id)
    return True


# ── Reads ────────────────────────────────────────────────────────────

async def get_all_decisions(db: AsyncSession, tenant_id: str) -> list[WeddingDecision]:
    result = await db.execute(
        select(WeddingDecision)
        .where(WeddingDecision.tenant_id == tenant_id)
        .order_by(WeddingDecision.position)
    )
    return list(result.scalars().all())


async def get_decisions_by_category(
    db: AsyncSession, tenant_id: str, category: str,
) -> list[WeddingDecision]:
    result = await db.execute(
        select(WeddingDecision)
        .where(
            WeddingDecision.tenant_id == tenant_id,
            WeddingDecision.category == category.strip().lower(),
        )
        .order_by(WeddingDecision.position)
    )
    return list(result.scalars().all())


async def get_decision(db: AsyncSession, tenant_id: str, name: str) -> Optional[WeddingDecision]:
    result = await db.execute(
        select(WeddingDecision).where(
            WeddingDecision.tenant_id == tenant_id,
            WeddingDecision.name == normalize_decision_name(name),
        )
    )
    return result.scalar_one_or_none()


async def get_decision_progress(db: AsyncSession, tenant_id: str) -> DecisionProgress:
    decisions = [d for d in await get_all_decisions(db, tenant_id) if not d.is_skipped]
    total = len(decisions)
    locked = sum(1 for d in decisions if d.status == DecisionStatus.LOCKED.value)
    decided = sum(
        1 for d in decisions
        if d.status in (DecisionStatus.DECIDED.value, DecisionStatus.LOCKED.value)
    )
    return DecisionProgress(
        total=total,
        decided=decided,
        locked=locked,
        percent_complete=round_half_up_percent(decided, total),
    )


# ── Mutations ────────────────────────────────────────────────────────

async def update_decision(
    db: AsyncSession,
    tenant_id: str,
    name: str,
    status: Optional[str] = None,
    choice_name: Optional[str] = None,
    choice_amount: Optional[int] = None,
    choice_notes: Optional[str] = None,
) -> DecisionUpdateResult:
    """Change status or choice. Locked decisions are never modified."""
    decision = await get_decision(db, tenant_id, name)
    if decision is None:
        return DecisionUpdateResult(False, f'Decision "{name}" not found', not_found=True)

    if decision.is_locked:
        return DecisionUpdateResult(
            False,
            f"{decision.display_name} is locked ({decision.lock_reason or 'confirmed'}). "
            "It can't be changed.",
            was_locked=True,
            decision=decision,
        )

    if status is not None:
        if status not in (DecisionStatus.UNDECIDED.value, DecisionStatus.DECIDED.value):
            return DecisionUpdateResult(
                False, f"Status must be 'undecided' or 'decided', got '{status}'. Use lock_decision to lock."
            )
        decision.status = status
    if choice_name is not None:
        decision.choice_name = choice_name
        if decision.status == DecisionStatus.UNDECIDED.value and status is None:
            decision.status = DecisionStatus.DECIDED.value
    if choice_amount is not None:
        decision.choice_amount = choice_amount
    if choice_notes is not None:
        decision.choice_notes = choice_notes

    if decision.status == DecisionStatus.DECIDED.value and decision.decided_at is None:
        decision.decided_at = utcnow()
    decision.is_skipped = False

    await db.flush()
    label = f" ({decision.choice_name})" if decision.choice_name else ""
    return DecisionUpdateResult(True, f"{decision.display_name}: {decision.status}{label}", decision=decision)


async def lock_decision(
    db: AsyncSession,
    tenant_id: str,
    name: str,
    reason: str,
    details: Optional[str] = None,
) -> DecisionUpdateResult:
    decision = await get_decision(db, tenant_id, name)
    if decision is None:
        return DecisionUpdateResult(False, f'Decision "{name}" not found', not_found=True)

    try:
        lock_reason = LockReason(reason)
    except ValueError:
        allowed = ", ".join(r.value for r in LockReason)
        return DecisionUpdateResult(False, f"Unknown lock reason '{reason}'. Use one of: {allowed}")

    if decision.is_locked:
        return DecisionUpdateResult(
            True, f"{decision.display_name} is already locked", was_locked=True, decision=decision,
        )

    now = utcnow()
    decision.status = DecisionStatus.LOCKED.value
    decision.lock_reason = lock_reason.value
    decision.lock_details = details
    decision.locked_at = now
    decision.decided_at = decision.decided_at or now
    decision.is_skipped = False

    await db.flush()
    logger.info("Locked decision %s for tenant=%s (%s)", decision.name, tenant_id, lock_reason.value)
    return DecisionUpdateResult(True, f"{decision.display_name} is locked in", decision=decision)


async def skip_decision(db: AsyncSession, tenant_id: str, name: str) -> DecisionUpdateResult:
    decision = await get_decision(db, tenant_id, name)
    if decision is None:
        return DecisionUpdateResult(False, f'Decision "{name}" not found', not_found=True)
    if decision.is_locked:
        return DecisionUpdateResult(
            False, f"{decision.display_name} is locked and can't be skipped", was_locked=True, decision=decision,
        )

    decision.is_skipped = True
    await db.flush()
    return DecisionUpdateResult(True, f"Skipped {decision.display_name}", decision=decision)


async def add_custom_decision(
    db: AsyncSession, tenant_id: str, display_name: str, category: str,
) -> DecisionUpdateResult:
    name = normalize_decision_name(display_name)
    if not name:
        return DecisionUpdateResult(False, "A decision needs a name")

    category = (category or "details").strip().lower()
    if category not in CATEGORIES:
        category = "details"

    if await get_decision(db, tenant_id, name) is not None:
        return DecisionUpdateResult(False, f'"{display_name}" is already on your checklist')

    last = await db.scalar(
        select(func.max(WeddingDecision.position)).where(WeddingDecision.tenant_id == tenant_id)
    )
    decision = WeddingDecision(
        tenant_id=tenant_id,
        name=name,
        display_name=display_name.strip(),
        category=category,
        is_required=False,
        status=DecisionStatus.UNDECIDED.value,
        position=(last or 0) + 1,
    )
    db.add(decision)
    await db.flush()
    return DecisionUpdateResult(True, f'Added "{decision.display_name}" to your checklist', decision=decision)
