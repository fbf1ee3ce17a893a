"""
Kernel merge engine.

Reconciles the fields the model extracted in one turn with the facts already
stored for the couple. The merge itself is a pure function over plain dicts;
the async helpers at the bottom load and write the WeddingKernel row.

Field classes:
  - scalars      overwrite only when a usable value arrives, omission never clears
  - names        ordered union; two or more names give the tenant a display name
  - wedding date date-only strings pinned to 12:00 UTC
  - set fields   ordered union, exact-match dedupe
  - decisions    per-category shallow merge
  - stress       negative emotional markers and repeated family mentions feed stressors
"""

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.kernel import WeddingKernel, TONES, PLANNING_PHASES
from ..models.tenant import Tenant

logger = logging.getLogger(__name__)

TEXT_SCALARS = (
    "location",
    "how_they_met",
    "engagement_story",
    "biggest_concern",
    "ceremony_time",
    "reception_time",
)
INT_SCALARS = ("guest_count", "budget_total")
SET_FIELDS = (
    "occupations",
    "vibe",
    "priorities",
    "stressors",
    "color_palette",
    "must_haves",
    "dealbreakers",
)

NEGATIVE_MARKERS = {"frustrated", "overwhelmed", "anxious", "stressed", "worried"}
FAMILY_STRESSOR = "family"
FAMILY_MENTION_THRESHOLD = 2

# Statuses that mean a vendor category is taken care of
BOOKED_STATUSES = {"booked", "confirmed", "contracted", "deposit_paid", "paid", "hired"}

_DATE_ONLY_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


@dataclass
class KernelMerge:
    """Partial updates produced by one merge. Empty dicts mean nothing changed."""
    kernel_updates: dict = field(default_factory=dict)
    tenant_updates: dict = field(default_factory=dict)

    @property
    def changed(self) -> bool:
        return bool(self.kernel_updates or self.tenant_updates)


@dataclass
class StressSignals:
    inferred_stress_level: Optional[int] = None  # 1-5
    family_mentions: list = field(default_factory=list)
    emotional_markers: list = field(default_factory=list)
    tone: Optional[str] = None


# ── Coercion helpers ─────────────────────────────────────────────────

def as_int(value: Any) -> Optional[int]:
    """Accept ints, integral floats and digit strings ("15,000" included)."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value >= 0 else None
    if isinstance(value, float):
        return int(value) if value.is_integer() and value >= 0 else None
    if isinstance(value, str):
        cleaned = value.strip().replace(",", "")
        if cleaned.isdigit():
            return int(cleaned)
    return None


def as_text(value: Any) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def as_str_list(value: Any) -> list[str]:
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, (list, tuple)):
        return []
    return [v.strip() for v in value if isinstance(v, str) and v.strip()]


def union(existing: list, incoming: list) -> list:
    """Ordered union. Existing entries keep their position."""
    out = list(existing or [])
    for item in incoming:
        if item not in out:
            out.append(item)
    return out


def parse_wedding_date(value: Any) -> Optional[datetime]:
    """
    "2025-06-14" → 2025-06-14 12:00 UTC. Anchoring at noon keeps the calendar
    day intact under any UTC offset between -12 and +11. Strings with a time
    part are taken as given (naive ones are read as UTC).
    """
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if not isinstance(value, str) or not value.strip():
        return None

    text = value.strip()
    try:
        if _DATE_ONLY_RE.match(text):
            year, month, day = (int(p) for p in text.split("-"))
            return datetime(year, month, day, 12, 0, tzinfo=timezone.utc)
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


# ── Merge ────────────────────────────────────────────────────────────

def merge_extraction(kernel: dict, fields: dict) -> KernelMerge:
    """
    Compute the kernel and tenant updates for one turn's extracted fields.

    `kernel` is the current snapshot (see WeddingKernel.snapshot()); it is
    not modified. Unknown keys and values of the wrong type are ignored.
    """
    kernel = kernel or {}
    fields = fields or {}
    result = KernelMerge()
    updates = result.kernel_updates

    # Scalars
    for key in TEXT_SCALARS:
        text = as_text(fields.get(key))
        if text is not None:
            updates[key] = text
    for key in INT_SCALARS:
        number = as_int(fields.get(key))
        if number is not None:
            updates[key] = number

    phase = as_text(fields.get("planning_phase"))
    if phase and phase.lower() in PLANNING_PHASES:
        updates["planning_phase"] = phase.lower()

    tone = as_text(fields.get("tone"))
    if tone and tone.lower() in TONES:
        updates["tone"] = tone.lower()

    # Names
    incoming_names = as_str_list(fields.get("names"))
    if incoming_names:
        names = union(kernel.get("names") or [], incoming_names)
        if names != (kernel.get("names") or []):
            updates["names"] = names
        if len(names) >= 2:
            result.tenant_updates["display_name"] = f"{names[0]} & {names[1]}"

    # Wedding date
    if "wedding_date" in fields:
        wedding_date = parse_wedding_date(fields["wedding_date"])
        if wedding_date is not None:
            updates["wedding_date"] = wedding_date
            result.tenant_updates["wedding_date"] = wedding_date
        else:
            logger.debug("Ignoring unparseable wedding date: %r", fields["wedding_date"])

    # Set-union fields
    for key in SET_FIELDS:
        incoming = as_str_list(fields.get(key))
        if incoming:
            merged = union(kernel.get(key) or [], incoming)
            if merged != (kernel.get(key) or []):
                updates[key] = merged

    # Decisions map
    incoming_decisions = fields.get("decisions")
    if isinstance(incoming_decisions, dict):
        decisions = dict(kernel.get("decisions") or {})
        for category, value in incoming_decisions.items():
            if not isinstance(value, dict):
                continue
            key = str(category).strip().lower()
            decisions[key] = {**(decisions.get(key) or {}), **value}
        if decisions != (kernel.get("decisions") or {}):
            updates["decisions"] = decisions

    # Stress signals
    signals = extract_stress_signals(fields)
    stressors = updates.get("stressors", list(kernel.get("stressors") or []))
    negative = [m.lower() for m in signals.emotional_markers if m.lower() in NEGATIVE_MARKERS]
    if negative:
        stressors = union(stressors, negative)
    if len(signals.family_mentions) >= FAMILY_MENTION_THRESHOLD:
        stressors = union(stressors, [FAMILY_STRESSOR])
    if stressors != (kernel.get("stressors") or []):
        updates["stressors"] = stressors

    return result


def extract_stress_signals(fields: dict) -> StressSignals:
    """Typed view of the stress-related keys in an extraction."""
    level = fields.get("inferred_stress_level")
    if isinstance(level, bool) or not isinstance(level, (int, float)):
        level = None
    tone = as_text(fields.get("tone"))
    return StressSignals(
        inferred_stress_level=int(level) if level is not None else None,
        family_mentions=as_str_list(fields.get("family_mentions")),
        emotional_markers=as_str_list(fields.get("emotional_markers")),
        tone=tone.lower() if tone and tone.lower() in TONES else None,
    )


def summarize_kernel(kernel: Optional[dict]) -> str:
    """Compact fact summary for the system prompt."""
    if not kernel:
        return "Nothing yet, this is the start."

    parts = []
    if kernel.get("names"):
        parts.append(f"Names: {' & '.join(kernel['names'])}")
    if kernel.get("wedding_date"):
        parts.append(f"Wedding date: {kernel['wedding_date'].date().isoformat()}")
    if kernel.get("location"):
        parts.append(f"Location: {kernel['location']}")
    if kernel.get("guest_count"):
        parts.append(f"Guest count: ~{kernel['guest_count']}")
    if kernel.get("budget_total"):
        parts.append(f"Budget: {format_cents(kernel['budget_total'])}")
    if kernel.get("vibe"):
        parts.append(f"Vibe: {', '.join(kernel['vibe'])}")

    booked = [
        f"{category}: {value['name']}"
        for category, value in (kernel.get("decisions") or {}).items()
        if isinstance(value, dict) and value.get("name")
    ]
    if booked:
        parts.append(f"Already booked: {', '.join(booked)}")
    if kernel.get("stressors"):
        parts.append(f"Worried about: {', '.join(kernel['stressors'])}")

    return "\n".join(parts) if parts else "Nothing yet, this is the start."


def format_cents(cents: int) -> str:
    if cents % 100:
        return f"${cents / 100:,.2f}"
    return f"${cents // 100:,}"


def dollars_to_cents(dollars: float) -> int:
    """Tools take dollar amounts from the model; everything is stored in cents."""
    return int(round(dollars * 100))


# ── Persistence helpers ──────────────────────────────────────────────

async def load_kernel(db: AsyncSession, tenant_id: str) -> Optional[WeddingKernel]:
    """Read-only lookup. Never creates a row."""
    result = await db.execute(
        select(WeddingKernel).where(WeddingKernel.tenant_id == tenant_id)
    )
    return result.scalar_one_or_none()


async def get_or_create_kernel(db: AsyncSession, tenant_id: str) -> WeddingKernel:
    kernel = await load_kernel(db, tenant_id)
    if kernel is None:
        kernel = WeddingKernel(tenant_id=tenant_id, onboarding_step=0)
        db.add(kernel)
        await db.flush()
        logger.info("Created wedding kernel for tenant=%s", tenant_id)
    return kernel


def apply_kernel_updates(kernel: WeddingKernel, updates: dict) -> None:
    """Copy a partial update onto the row. Lists and dicts are replaced, never mutated in place."""
    for key, value in updates.items():
        setattr(kernel, key, value)


def record_kernel_decision(kernel: WeddingKernel, category: str, update: dict) -> None:
    """
    Mirror a vendor or budget change into kernel.decisions. A locked or
    booked-like status adds the category to vendors_booked; an explicit
    `locked: False` with a non-booked status takes it out again. Updates
    without a `locked` key leave vendors_booked alone.
    """
    key = (category or "").strip().lower()
    if not key:
        return

    decisions = dict(kernel.decisions or {})
    decisions[key] = {**(decisions.get(key) or {}), **update}
    kernel.decisions = decisions

    status = str(update.get("status") or "").lower()
    if update.get("locked") or status in BOOKED_STATUSES:
        kernel.vendors_booked = union(kernel.vendors_booked or [], [key])
    elif update.get("locked") is False:
        kernel.vendors_booked = [c for c in (kernel.vendors_booked or []) if c != key]


async def get_or_create_tenant(db: AsyncSession, tenant_id: str) -> Tenant:
    tenant = await db.get(Tenant, tenant_id)
    if tenant is None:
        tenant = Tenant(id=tenant_id, onboarding_complete=False)
        db.add(tenant)
        await db.flush()
    return tenant


def apply_tenant_updates(tenant: Tenant, updates: dict) -> None:
    """onboarding_complete is one-way: a False in `updates` never clears it."""
    for key, value in updates.items():
        if key == "onboarding_complete":
            tenant.onboarding_complete = bool(tenant.onboarding_complete or value)
        else:
            setattr(tenant, key, value)
