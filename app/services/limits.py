"""Read-only sources of per-tier feature limits."""

import logging
from collections.abc import Mapping
from typing import Protocol, runtime_checkable

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.feature_limit import UNLIMITED, Feature, FeatureLimit, LimitType, SubscriptionTier

logger = logging.getLogger(__name__)

LimitKey = tuple[str, str, str]  # (tier, feature, limit type)


class LimitNotConfiguredError(LookupError):
    """Raised when a (tier, feature, limit type) has no usable numeric limit."""

    def __init__(self, tier: str, feature: str, limit_type: str) -> None:
        super().__init__(f"No limit configured for {tier}/{feature}/{limit_type}")
        self.tier = tier
        self.feature = feature
        self.limit_type = limit_type


def _enum_value(value: object) -> str:
    return value.value if isinstance(value, (Feature, LimitType, SubscriptionTier)) else str(value)


def coerce_limit(value: object, key: LimitKey) -> int:
    """Validate a raw limit value; anything but an integer (or -1) is an error."""
    if isinstance(value, bool) or value is None:
        raise LimitNotConfiguredError(*key)
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    if not isinstance(value, int) or value < UNLIMITED:
        raise LimitNotConfiguredError(*key)
    return value


@runtime_checkable
class FeatureLimits(Protocol):
    """Protocol for limit providers."""

    async def get_limit(
        self,
        tier: str | SubscriptionTier,
        feature: str | Feature,
        limit_type: str | LimitType,
    ) -> int: ...

    async def get_optional_limit(
        self,
        tier: str | SubscriptionTier,
        feature: str | Feature,
        limit_type: str | LimitType,
    ) -> int | None: ...


class StaticFeatureLimits:
    """Limits held in memory, e.g. for tests or a database-less deployment."""

    def __init__(self, limits: Mapping[LimitKey, object]) -> None:
        self._limits = {
            (_enum_value(t), _enum_value(f), _enum_value(lt)): v
            for (t, f, lt), v in limits.items()
        }

    async def get_limit(self, tier, feature, limit_type) -> int:
        key = (_enum_value(tier), _enum_value(feature), _enum_value(limit_type))
        if key not in self._limits:
            raise LimitNotConfiguredError(*key)
        return coerce_limit(self._limits[key], key)

    async def get_optional_limit(self, tier, feature, limit_type) -> int | None:
        try:
            return await self.get_limit(tier, feature, limit_type)
        except LimitNotConfiguredError:
            return None


class DatabaseFeatureLimits:
    """Limits read from the ``feature_limits`` table."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def get_limit(self, tier, feature, limit_type) -> int:
        key = (_enum_value(tier), _enum_value(feature), _enum_value(limit_type))
        result = await self.db.execute(
            select(FeatureLimit.limit_value)
            .where(FeatureLimit.subscription_tier == key[0])
            .where(FeatureLimit.feature_name == key[1])
            .where(FeatureLimit.limit_type == key[2])
        )
        rows = result.scalars().all()
        if len(rows) != 1:
            logger.warning("Expected one feature limit row for %s, found %d", key, len(rows))
            raise LimitNotConfiguredError(*key)
        return coerce_limit(rows[0], key)

    async def get_optional_limit(self, tier, feature, limit_type) -> int | None:
        try:
            return await self.get_limit(tier, feature, limit_type)
        except LimitNotConfiguredError:
            return None


# Fallback table for FEATURE_LIMITS_SOURCE=static: (foundation, recovery, empowerment)
_DEFAULT_LIMITS_BY_FEATURE: dict[tuple[Feature, LimitType], tuple[int, int, int]] = {
    (Feature.AI_INTERACTIONS, LimitType.MONTHLY_COUNT): (10, 100, UNLIMITED),
    (Feature.TRANSCRIPTION_MINUTES, LimitType.MINUTES): (30, 300, UNLIMITED),
    (Feature.PATTERN_ANALYSIS, LimitType.MONTHLY_COUNT): (1, 10, UNLIMITED),
    (Feature.STORAGE, LimitType.STORAGE_MB): (100, UNLIMITED, UNLIMITED),
    (Feature.JOURNAL_ENTRIES, LimitType.MONTHLY_COUNT): (30, UNLIMITED, UNLIMITED),
    (Feature.MIND_RESET_SESSIONS, LimitType.MONTHLY_COUNT): (10, UNLIMITED, UNLIMITED),
    (Feature.BOUNDARY_BUILDER, LimitType.MONTHLY_COUNT): (5, UNLIMITED, UNLIMITED),
    (Feature.GREY_ROCK_MESSAGES, LimitType.MONTHLY_COUNT): (10, UNLIMITED, UNLIMITED),
    (Feature.COMMUNITY_POSTS, LimitType.MONTHLY_COUNT): (5, UNLIMITED, UNLIMITED),
    (Feature.WELLNESS, LimitType.MONTHLY_COUNT): (10, UNLIMITED, UNLIMITED),
}

DEFAULT_FEATURE_LIMITS: dict[LimitKey, int] = {
    (tier.value, feature.value, limit_type.value): values[index]
    for (feature, limit_type), values in _DEFAULT_LIMITS_BY_FEATURE.items()
    for index, tier in enumerate(SubscriptionTier)
}
