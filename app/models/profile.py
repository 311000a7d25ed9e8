"""Profile model - one row per Supabase auth user."""

from datetime import datetime
from uuid import UUID

from sqlalchemy import DateTime, String, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base, utcnow
from app.models.feature_limit import SubscriptionTier
from app.models.types import JSONType


class Profile(Base):
    """Profile holds the subscription tier and UI preferences of a user.

    The primary key is the auth user id issued by Supabase, so there is no
    separate users table on this side.
    """

    __tablename__ = "profiles"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    subscription_tier: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        default=SubscriptionTier.FOUNDATION.value,
    )
    ui_preferences: Mapped[dict | None] = mapped_column(JSONType, nullable=True)
    # Structure: {"affirmations": {"playlist_id": ..., "affirmation_index": ..., "auto_play": ...}}

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        onupdate=utcnow,
    )
