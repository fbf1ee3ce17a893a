"""
Wedding kernel: the canonical per-tenant fact record.

Built up turn by turn from the model's extraction blocks and from tool calls.
Exactly one row per tenant, created lazily on first successful turn.
List columns hold set-like values in first-seen order.
"""

from datetime import datetime

from sqlalchemy import String, Text, Integer, Boolean, DateTime, JSON
from sqlalchemy.orm import Mapped, mapped_column

from .base import TenantBase

TONES = ("excited", "anxious", "overwhelmed", "calm", "frustrated")
PLANNING_PHASES = ("dreaming", "early", "mid", "final", "week_of")

FINAL_ONBOARDING_STEP = 7


class WeddingKernel(TenantBase):
    __tablename__ = "wedding_kernels"

    tenant_id: Mapped[str] = mapped_column(String, nullable=False, unique=True, index=True)

    # ── The couple ───────────────────────────────────────────────────
    names: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    location: Mapped[str] = mapped_column(String, nullable=True)
    occupations: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    how_they_met: Mapped[str] = mapped_column(Text, nullable=True)
    engagement_story: Mapped[str] = mapped_column(Text, nullable=True)

    # ── The day ──────────────────────────────────────────────────────
    # Stored at 12:00 UTC so the calendar date survives any timezone shift
    wedding_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=True)
    guest_count: Mapped[int] = mapped_column(Integer, nullable=True)
    budget_total: Mapped[int] = mapped_column(Integer, nullable=True)  # cents
    ceremony_time: Mapped[str] = mapped_column(String, nullable=True)
    reception_time: Mapped[str] = mapped_column(String, nullable=True)

    # ── The vibe ─────────────────────────────────────────────────────
    vibe: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    color_palette: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    must_haves: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    dealbreakers: Mapped[list] = mapped_column(JSON, nullable=False, default=list)

    # ── Planning state ───────────────────────────────────────────────
    planning_phase: Mapped[str] = mapped_column(String, nullable=True)
    # { "venue": {"name": "...", "locked": true}, ... }
    decisions: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    vendors_booked: Mapped[list] = mapped_column(JSON, nullable=False, default=list)

    # ── Concerns ─────────────────────────────────────────────────────
    priorities: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    stressors: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    biggest_concern: Mapped[str] = mapped_column(Text, nullable=True)

    # ── Communication profile ────────────────────────────────────────
    tone: Mapped[str] = mapped_column(String, nullable=True)
    uses_emojis: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    uses_swearing: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    message_length: Mapped[str] = mapped_column(String, nullable=True)  # short, medium, long

    onboarding_step: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    def snapshot(self) -> dict:
        """Plain dict of the fact columns, used by merge and prompt building."""
        return {
            "names": list(self.names or []),
            "location": self.location,
            "occupations": list(self.occupations or []),
            "how_they_met": self.how_they_met,
            "engagement_story": self.engagement_story,
            "wedding_date": self.wedding_date,
            "guest_count": self.guest_count,
            "budget_total": self.budget_total,
            "ceremony_time": self.ceremony_time,
            "reception_time": self.reception_time,
            "vibe": list(self.vibe or []),
            "color_palette": list(self.color_palette or []),
            "must_haves": list(self.must_haves or []),
            "dealbreakers": list(self.dealbreakers or []),
            "planning_phase": self.planning_phase,
            "decisions": dict(self.decisions or {}),
            "vendors_booked": list(self.vendors_booked or []),
            "priorities": list(self.priorities or []),
            "stressors": list(self.stressors or []),
            "biggest_concern": self.biggest_concern,
            "tone": self.tone,
            "uses_emojis": bool(self.uses_emojis),
            "uses_swearing": bool(self.uses_swearing),
            "message_length": self.message_length,
            "onboarding_step": self.onboarding_step or 0,
        }
