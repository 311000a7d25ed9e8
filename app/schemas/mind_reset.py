"""Mind reset session and journal title schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, field_validator

from app.models.mind_reset import SessionType


class ReframeContext(BaseModel):
    """Optional circumstances around the thought being reframed."""

    emotional_state: str | None = None
    trigger: str | None = None
    situation: str | None = None


class MindResetSessionCreate(BaseModel):
    """Request body for logging a session.

    ``original_thought`` is required for ``thought_reframe`` sessions, which
    are the only ones sent to the AI.
    """

    session_type: SessionType = SessionType.THOUGHT_REFRAME
    original_thought: str | None = None
    context: ReframeContext | None = None
    duration_minutes: int | None = None
    mood_before: int | None = None
    mood_after: int | None = None
    notes: str | None = None

    @field_validator("session_type", mode="before")
    @classmethod
    def default_session_type(cls, value: object) -> object:
        return value or SessionType.THOUGHT_REFRAME

    @field_validator("context", mode="before")
    @classmethod
    def coerce_context(cls, value: object) -> object:
        return value if isinstance(value, dict) else None


class MindResetSessionRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    session_type: str
    original_thought: str | None = None
    reframed_thought: str | None = None
    techniques_used: list[str] | None = None
    affirmations: list[str] | None = None
    duration_minutes: int | None = None
    mood_before: int | None = None
    mood_after: int | None = None
    effectiveness_rating: int | None = None
    notes: str | None = None
    created_at: datetime


class MindResetSessionResponse(BaseModel):
    success: bool = True
    session: MindResetSessionRead


class MindResetSessionPage(BaseModel):
    items: list[MindResetSessionRead]
    next_cursor: str | None = None


class TitleSuggestionRequest(BaseModel):
    """Journal text to suggest incident titles for."""

    text: str | None = None
    n: int | None = None


class TitleSuggestionsResponse(BaseModel):
    success: bool = True
    suggestions: list[str]
