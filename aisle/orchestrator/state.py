"""
Transcript storage. Conversations are found by id (tenant-checked) and
messages are appended with increasing sequence numbers, never rewritten.
"""

import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.conversation import Conversation, Message

logger = logging.getLogger(__name__)

ONBOARDING = "onboarding"


async def find_conversation(
    db: AsyncSession,
    tenant_id: str,
    conversation_id: Optional[str] = None,
    kind: str = ONBOARDING,
) -> Optional[Conversation]:
    """By id when given, else the tenant's latest conversation of this kind. Read-only."""
    query = select(Conversation).where(Conversation.tenant_id == tenant_id)
    if conversation_id:
        query = query.where(Conversation.id == conversation_id)
    else:
        query = query.where(Conversation.kind == kind).order_by(Conversation.created_at.desc())
    result = await db.execute(query.limit(1))
    return result.scalar_one_or_none()


async def create_conversation(
    db: AsyncSession,
    tenant_id: str,
    user_id: str = "",
    kind: str = ONBOARDING,
    title: str = "Getting started",
) -> Conversation:
    convo = Conversation(tenant_id=tenant_id, user_id=user_id or None, kind=kind, title=title)
    db.add(convo)
    await db.flush()
    logger.info("Created %s conversation: %s (tenant=%s)", kind, convo.id, tenant_id)
    return convo


async def add_message(
    db: AsyncSession,
    convo: Conversation,
    role: str,
    content: str,
    metadata: dict = None,
) -> Message:
    """Append a message to the conversation."""
    result = await db.execute(
        select(Message.sequence_number)
        .where(Message.conversation_id == convo.id)
        .order_by(Message.sequence_number.desc())
        .limit(1)
    )
    last = result.scalar_one_or_none()
    seq = (last + 1) if last is not None else 1

    msg = Message(
        conversation_id=convo.id,
        tenant_id=convo.tenant_id,
        role=role,
        content=content,
        sequence_number=seq,
        metadata_=metadata or {},
    )
    db.add(msg)
    await db.flush()
    return msg


async def get_messages(db: AsyncSession, convo: Optional[Conversation], limit: int = 50) -> list[Message]:
    """Most recent messages, oldest first."""
    if convo is None:
        return []
    result = await db.execute(
        select(Message)
        .where(Message.conversation_id == convo.id)
        .order_by(Message.sequence_number.desc())
        .limit(limit)
    )
    messages = list(result.scalars().all())
    messages.reverse()
    return messages


def build_history(messages: list[Message]) -> list[dict]:
    """LLM-compatible role/content list."""
    return [
        {"role": m.role, "content": m.content}
        for m in messages
        if m.content and m.role in ("user", "assistant")
    ]
