"""
ConversationRepository - chat conversations and their append-only messages
"""

from typing import List

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from database_models import Conversation, Message
from models.results import Found, NotFound, Result, Unauthorized


class ConversationRepository:
    """Repository class for Conversation and Message database operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_for_user(self, user_id: int) -> List[Conversation]:
        """Conversations for user_id, newest first, with messages eagerly loaded."""
        result = await self.db.execute(
            select(Conversation)
            .where(Conversation.user_id == user_id)
            .order_by(Conversation.started_at.desc(), Conversation.id.desc())
        )
        return list(result.scalars().all())

    async def create(self, user_id: int) -> Conversation:
        conversation = Conversation(user_id=user_id)
        self.db.add(conversation)
        await self.db.flush()
        await self.db.refresh(conversation)
        return conversation

    async def lookup(self, conversation_id: int, user_id: int) -> Result:
        conversation = await self.db.get(Conversation, conversation_id)
        if conversation is None:
            return NotFound("Conversation not found")
        if conversation.user_id != user_id:
            return Unauthorized("User not authorized to delete this conversation")
        return Found(conversation)

    async def add_message(self, conversation_id: int, user_id: int, role: str, content: str) -> Message:
        message = Message(
            conversation_id=conversation_id,
            user_id=user_id,
            role=role,
            content=content,
        )
        self.db.add(message)
        await self.db.flush()
        await self.db.refresh(message)
        return message

    async def delete(self, conversation_id: int, user_id: int) -> Result:
        """Delete an owned conversation; its messages go with it."""
        lookup = await self.lookup(conversation_id, user_id)
        if not isinstance(lookup, Found):
            return lookup
        await self.db.delete(lookup.value)
        await self.db.flush()
        return lookup
