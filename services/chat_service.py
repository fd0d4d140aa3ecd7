"""
Chat Service - stored conversation history
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from crud.conversation import ConversationRepository
from models.results import Found, NotFound, Result

logger = logging.getLogger(__name__)


def serialize_conversation(conversation) -> dict:
    return {
        "conversation_id": conversation.id,
        "started_at": conversation.started_at.isoformat() if conversation.started_at else None,
        "messages": [
            {
                "role": message.role,
                "content": message.content,
                "timestamp": message.timestamp.isoformat() if message.timestamp else None,
            }
            for message in conversation.messages
        ],
    }


class ChatService:

    def __init__(self, db: AsyncSession):
        self.db = db
        self.repo = ConversationRepository(db)

    async def history(self, user_id: int) -> list:
        conversations = await self.repo.list_for_user(user_id)
        return [serialize_conversation(c) for c in conversations]

    async def start(self, user_id: int) -> int:
        conversation = await self.repo.create(user_id)
        await self.db.commit()
        return conversation.id

    async def add_message(self, conversation_id: int, user_id: int, role: str, content: str) -> Result:
        """Append a message; a conversation owned by someone else is reported as missing."""
        lookup = await self.repo.lookup(conversation_id, user_id)
        if not isinstance(lookup, Found):
            return NotFound("Conversation not found")

        message = await self.repo.add_message(conversation_id, user_id, role, content)
        record = message.to_dict()
        await self.db.commit()
        return Found(record)

    async def delete(self, conversation_id: int, user_id: int) -> Result:
        result = await self.repo.delete(conversation_id, user_id)
        if isinstance(result, Found):
            await self.db.commit()
            logger.info(f"Conversation {conversation_id} deleted for user {user_id}")
        return result
