"""Coach chat and conversation history schemas."""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


class ChatRequest(BaseModel):
    """Chat request schema.

    ``conversation_history`` is accepted loosely; it is trimmed and its roles
    normalized before being sent to the model.
    """

    message: str | None = None
    context: str = "general"
    conversation_history: list[Any] = Field(
        default_factory=list,
        validation_alias=AliasChoices("conversation_history", "conversationHistory"),
    )
    conversation_id: UUID | None = None

    @field_validator("context", mode="before")
    @classmethod
    def default_context(cls, value: object) -> object:
        return value or "general"

    @field_validator("conversation_history", mode="before")
    @classmethod
    def coerce_history(cls, value: object) -> object:
        return value if isinstance(value, list) else []


class ChatUsageInfo(BaseModel):
    """Remaining AI interactions after the current request."""

    subscription_tier: str
    monthly_limit: int
    remaining: int


class ChatResponse(BaseModel):
    """Chat response schema (non-streaming)."""

    success: bool = True
    response: str
    context: str
    conversation_id: UUID
    usage_info: ChatUsageInfo


class ThreadRead(BaseModel):
    """Conversation thread summary."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    title: str | None = None
    context_type: str
    created_at: datetime
    updated_at: datetime


class ThreadPage(BaseModel):
    items: list[ThreadRead]
    next_cursor: str | None = None


class ThreadMessageRead(BaseModel):
    """Message in a conversation thread."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    role: str
    content: str
    created_at: datetime


class ThreadMessagePage(BaseModel):
    items: list[ThreadMessageRead]
    next_cursor: str | None = None
