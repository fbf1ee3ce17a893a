"""
Concierge conversations and their messages.
Messages are append-only rows ordered by sequence_number.
"""

from sqlalchemy import String, Text, Integer, JSON, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import TenantBase


class Conversation(TenantBase):
    __tablename__ = "conversations"

    user_id: Mapped[str] = mapped_column(String, nullable=True)
    kind: Mapped[str] = mapped_column(String, nullable=False, default="onboarding")  # onboarding, planning
    title: Mapped[str] = mapped_column(String, nullable=True)

    messages: Mapped[list["Message"]] = relationship(
        back_populates="conversation",
        cascade="all, delete-orphan",
        order_by="Message.sequence_number",
    )


class Message(TenantBase):
    __tablename__ = "messages"

    conversation_id: Mapped[str] = mapped_column(
        String, ForeignKey("conversations.id", ondelete="CASCADE"), nullable=False, index=True
    )
    role: Mapped[str] = mapped_column(String, nullable=False)  # user, assistant
    content: Mapped[str] = mapped_column(Text, nullable=True)
    sequence_number: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    metadata_: Mapped[dict] = mapped_column(
        "metadata", JSON, nullable=True, default=dict
    )
    # Stores: onboarding_step, extraction status, fields learned this turn

    conversation: Mapped["Conversation"] = relationship(back_populates="messages")
