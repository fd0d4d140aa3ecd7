"""
Chat and conversation request models
"""
from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, field_validator

EMPTY_MESSAGES = "Messages must be a non-empty array"


class ChatTurn(BaseModel):
    role: Literal["user", "assistant"]
    content: str
    timestamp: Optional[datetime] = None

    def for_model(self) -> dict:
        return {"role": self.role, "content": self.content}


class OpenAIChatRequest(BaseModel):
    cat_id: int = Field(alias="catId")
    messages: List[ChatTurn]
    language: str = "en"

    @field_validator("messages")
    @classmethod
    def non_empty(cls, value):
        if not value:
            raise ValueError(EMPTY_MESSAGES)
        return value


class ChatMessageRequest(BaseModel):
    conversation_id: int
    content: str
    role: Literal["user", "assistant"]
    timestamp: Optional[datetime] = None
