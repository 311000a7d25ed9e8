"""Mind reset session model."""

from datetime import datetime
from enum import Enum
from uuid import UUID, uuid4

from sqlalchemy import DateTime, Integer, String, Text, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base, utcnow
from app.models.types import JSONType


class SessionType(str, Enum):
    """Kinds of mind reset sessions; only thought reframing calls the AI."""

    THOUGHT_REFRAME = "thought_reframe"
    BREATHING = "breathing"
    AFFIRMATION = "affirmation"
    GROUNDING = "grounding"
    MEDITATION = "meditation"


class MindResetSession(Base):
    """One completed mind reset exercise."""

    __tablename__ = "mind_reset_sessions"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    user_id: Mapped[UUID] = mapped_column(Uuid, nullable=False, index=True)
    session_type: Mapped[str] = mapped_column(
        String(50), nullable=False, default=SessionType.THOUGHT_REFRAME.value
    )

    original_thought: Mapped[str | None] = mapped_column(Text, nullable=True)
    reframed_thought: Mapped[str | None] = mapped_column(Text, nullable=True)
    techniques_used: Mapped[list | None] = mapped_column(JSONType, nullable=True)
    affirmations: Mapped[list | None] = mapped_column(JSONType, nullable=True)

    duration_minutes: Mapped[int | None] = mapped_column(Integer, nullable=True)
    mood_before: Mapped[int | None] = mapped_column(Integer, nullable=True)
    mood_after: Mapped[int | None] = mapped_column(Integer, nullable=True)
    effectiveness_rating: Mapped[int | None] = mapped_column(Integer, nullable=True)  # 1-5
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        index=True,
    )
