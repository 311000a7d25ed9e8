"""Usage summaries built on the quota service."""

import math
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.models.feature_limit import (
    TIER_FEATURES,
    UNLIMITED,
    Feature,
    LimitType,
    SubscriptionTier,
)
from app.services.limits import FeatureLimits
from app.services.quota import QuotaStatus, quota_service


def _feature_usage(quota: QuotaStatus) -> dict:
    return {"current": quota.used, "limit": quota.limit, "remaining": quota.remaining}


class UsageService:
    """Read-only usage reporting per user and per tier."""

    async def get_usage_summary(
        self,
        db: AsyncSession,
        limits: FeatureLimits,
        user_id: UUID,
    ) -> dict:
        """Current month usage for the coach, transcription and pattern analysis.

        Unlimited features report ``current`` as None without summing usage.
        """
        tier = await quota_service.resolve_tier(db, user_id)
        period = quota_service.get_current_period()
        since = quota_service.period_start_datetime(period)

        ai = await quota_service.check_monthly_count(
            db, limits, user_id, Feature.AI_INTERACTIONS, tier=tier, period=period
        )

        # Minutes gate transcription; the file count is informational
        minutes_limit = await limits.get_limit(tier, Feature.TRANSCRIPTION_MINUTES, LimitType.MINUTES)
        if minutes_limit == UNLIMITED:
            transcription = {
                "current": None,
                "limit": UNLIMITED,
                "remaining": UNLIMITED,
                "duration_minutes": None,
                "minutes_limit": UNLIMITED,
                "minutes_remaining": UNLIMITED,
            }
        else:
            count, seconds = await quota_service.sum_transcription_seconds(db, user_id, since)
            minutes = quota_service.evaluate(minutes_limit, math.ceil(seconds / 60))
            transcription = {
                "current": count,
                "limit": UNLIMITED,
                "remaining": UNLIMITED,
                "duration_minutes": minutes.used,
                "minutes_limit": minutes.limit,
                "minutes_remaining": minutes.remaining,
            }

        pattern_limit = await limits.get_limit(tier, Feature.PATTERN_ANALYSIS, LimitType.MONTHLY_COUNT)
        if pattern_limit == UNLIMITED:
            pattern = quota_service.evaluate(UNLIMITED, None)
        else:
            analyses = await quota_service.count_pattern_analyses(db, user_id, since)
            pattern = quota_service.evaluate(pattern_limit, analyses)

        return {
            "subscription_tier": tier.value,
            "period_start": period,
            "ai_interactions": _feature_usage(ai),
            "audio_transcription": transcription,
            "pattern_analysis": _feature_usage(pattern),
        }

    async def get_mind_reset_usage(
        self,
        db: AsyncSession,
        limits: FeatureLimits,
        user_id: UUID,
    ) -> dict:
        tier = await quota_service.resolve_tier(db, user_id)
        period = quota_service.get_current_period()
        quota = await quota_service.check_monthly_count(
            db, limits, user_id, Feature.MIND_RESET_SESSIONS, tier=tier, period=period
        )
        return {
            "subscription_tier": tier.value,
            "period_start": period,
            "mind_reset_sessions": _feature_usage(quota),
        }

    async def get_tier_limits(self, limits: FeatureLimits) -> dict[str, dict[str, int | None]]:
        """Every tier's configured limits keyed ``feature:limit_type``; None when unset."""
        tiers: dict[str, dict[str, int | None]] = {}
        for tier in SubscriptionTier:
            tiers[tier.value] = {
                f"{feature.value}:{limit_type.value}": await limits.get_optional_limit(
                    tier, feature, limit_type
                )
                for feature, limit_type in TIER_FEATURES
            }
        return tiers


# Singleton instance
usage_service = UsageService()
