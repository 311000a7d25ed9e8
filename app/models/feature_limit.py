"""Feature limit model - per-tier quota configuration."""

from enum import Enum
from uuid import UUID, uuid4

from sqlalchemy import Integer, String, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base

UNLIMITED = -1


class SubscriptionTier(str, Enum):
    """Available subscription tiers, lowest first."""

    FOUNDATION = "foundation"
    RECOVERY = "recovery"
    EMPOWERMENT = "empowerment"

    @property
    def next_tier(self) -> "SubscriptionTier | None":
        """The tier a user would upgrade to, if any."""
        tiers = list(SubscriptionTier)
        index = tiers.index(self)
        return tiers[index + 1] if index + 1 < len(tiers) else None


class Feature(str, Enum):
    """Features gated by a per-tier limit."""

    AI_INTERACTIONS = "ai_interactions"
    TRANSCRIPTION_MINUTES = "transcription_minutes"
    PATTERN_ANALYSIS = "pattern_analysis"
    STORAGE = "storage"
    JOURNAL_ENTRIES = "journal_entries"
    MIND_RESET_SESSIONS = "mind_reset_sessions"
    BOUNDARY_BUILDER = "boundary_builder"
    GREY_ROCK_MESSAGES = "grey_rock_messages"
    COMMUNITY_POSTS = "community_posts"
    WELLNESS = "wellness"


class LimitType(str, Enum):
    """Unit a limit is expressed in."""

    MONTHLY_COUNT = "monthly_count"
    MINUTES = "minutes"
    STORAGE_MB = "storage_mb"


# Every (feature, limit type) pair the tiers endpoint reports
TIER_FEATURES: list[tuple[Feature, LimitType]] = [
    (Feature.AI_INTERACTIONS, LimitType.MONTHLY_COUNT),
    (Feature.TRANSCRIPTION_MINUTES, LimitType.MINUTES),
    (Feature.PATTERN_ANALYSIS, LimitType.MONTHLY_COUNT),
    (Feature.STORAGE, LimitType.STORAGE_MB),
    (Feature.JOURNAL_ENTRIES, LimitType.MONTHLY_COUNT),
    (Feature.MIND_RESET_SESSIONS, LimitType.MONTHLY_COUNT),
    (Feature.BOUNDARY_BUILDER, LimitType.MONTHLY_COUNT),
    (Feature.GREY_ROCK_MESSAGES, LimitType.MONTHLY_COUNT),
    (Feature.COMMUNITY_POSTS, LimitType.MONTHLY_COUNT),
    (Feature.WELLNESS, LimitType.MONTHLY_COUNT),
]


class FeatureLimit(Base):
    """Configured limit for one (tier, feature, limit type). -1 means unlimited."""

    __tablename__ = "feature_limits"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    subscription_tier: Mapped[str] = mapped_column(String(50), nullable=False)
    feature_name: Mapped[str] = mapped_column(String(100), nullable=False)
    limit_type: Mapped[str] = mapped_column(String(50), nullable=False)
    limit_value: Mapped[int | None] = mapped_column(Integer, nullable=True)

    __table_args__ = (
        UniqueConstraint(
            "subscription_tier",
            "feature_name",
            "limit_type",
            name="uq_feature_limits_tier_feature_type",
        ),
    )
