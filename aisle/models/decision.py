"""
Wedding decisions: one row per planning decision and its lock state.
"""

from datetime import datetime
from enum import Enum

from sqlalchemy import String, Text, Integer, Boolean, DateTime, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from .base import TenantBase


class DecisionStatus(str, Enum):
    UNDECIDED = "undecided"
    DECIDED = "decided"
    LOCKED = "locked"


class LockReason(str, Enum):
    DEPOSIT_PAID = "deposit_paid"
    CONTRACT_SIGNED = "contract_signed"
    FULL_PAYMENT = "full_payment"
    DATE_PASSED = "date_passed"
    USER_CONFIRMED = "user_confirmed"


class WeddingDecision(TenantBase):
    __tablename__ = "wedding_decisions"
    __table_args__ = (
        UniqueConstraint("tenant_id", "name", name="uq_wedding_decisions_tenant_name"),
    )

    name: Mapped[str] = mapped_column(String, nullable=False)          # "venue", "wedding_date"
    display_name: Mapped[str] = mapped_column(String, nullable=False)  # "Wedding Venue"
    category: Mapped[str] = mapped_column(String, nullable=False)      # foundation, venue, vendors, attire, details
    status: Mapped[str] = mapped_column(
        String, nullable=False, default=DecisionStatus.UNDECIDED.value
    )
    is_required: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_skipped: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    choice_name: Mapped[str] = mapped_column(String, nullable=True)   # "The Grand Ballroom"
    choice_amount: Mapped[int] = mapped_column(Integer, nullable=True)  # cents
    choice_notes: Mapped[str] = mapped_column(Text, nullable=True)

    lock_reason: Mapped[str] = mapped_column(String, nullable=True)
    lock_details: Mapped[str] = mapped_column(Text, nullable=True)    # "Paid $5000 deposit on 3/15"
    locked_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=True)
    decided_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=True)

    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    @property
    def is_locked(self) -> bool:
        return self.status == DecisionStatus.LOCKED.value

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "displayName": self.display_name,
            "category": self.category,
            "status": self.status,
            "isRequired": self.is_required,
            "isSkipped": self.is_skipped,
            "choiceName": self.choice_name,
            "choiceAmount": self.choice_amount,
            "choiceNotes": self.choice_notes,
            "isLocked": self.is_locked,
            "lockReason": self.lock_reason,
            "lockDetails": self.lock_details,
        }
