"""Quota service for per-tier usage limits."""

import logging
import math
from dataclasses import dataclass
from datetime import date, datetime, timezone
from uuid import UUID, uuid4

from sqlalchemy import func, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import get_settings
from app.database import utcnow
from app.models.evidence import EvidenceFile
from app.models.feature_limit import UNLIMITED, Feature, LimitType, SubscriptionTier
from app.models.pattern_analysis import PatternAnalysis
from app.models.profile import Profile
from app.models.usage import UsageRecord
from app.services.limits import FeatureLimits

logger = logging.getLogger(__name__)

BYTES_PER_MB = 1024 * 1024


@dataclass(frozen=True)
class QuotaStatus:
    """Outcome of comparing usage against a limit.

    ``limit`` and ``remaining`` are -1 for unlimited plans, in which case
    usage is never summed and ``used`` is None.
    """

    limit: int
    used: int | None
    remaining: int
    allowed: bool

    @property
    def unlimited(self) -> bool:
        return self.limit == UNLIMITED


class QuotaService:
    """Service for checking and tracking usage quotas."""

    def __init__(self) -> None:
        self.settings = get_settings()

    @staticmethod
    def get_current_period(now: datetime | None = None) -> date:
        """Get the first day of current month (UTC)."""
        now = now or datetime.now(timezone.utc)
        return now.astimezone(timezone.utc).date().replace(day=1)

    @staticmethod
    def period_start_datetime(period: date) -> datetime:
        """Midnight UTC on the first day of the period."""
        return datetime(period.year, period.month, period.day, tzinfo=timezone.utc)

    @staticmethod
    def evaluate(limit: int, used: int | None, incoming: int | None = None) -> QuotaStatus:
        """Compare usage with a limit.

        Without ``incoming`` the status is informational and always allowed.
        """
        if limit == UNLIMITED:
            return QuotaStatus(limit=UNLIMITED, used=used, remaining=UNLIMITED, allowed=True)

        used = used or 0
        remaining = max(0, limit - used)
        allowed = incoming is None or incoming <= remaining
        return QuotaStatus(limit=limit, used=used, remaining=remaining, allowed=allowed)

    async def resolve_tier(self, db: AsyncSession, user_id: UUID) -> SubscriptionTier:
        """Get the user's tier, falling back to the lowest one."""
        result = await db.execute(
            select(Profile.subscription_tier).where(Profile.id == user_id)
        )
        raw_tier = result.scalar_one_or_none()
        if not raw_tier:
            return SubscriptionTier.FOUNDATION
        try:
            return SubscriptionTier(raw_tier)
        except ValueError:
            logger.warning("Unknown subscription tier %r for user %s", raw_tier, user_id)
            return SubscriptionTier.FOUNDATION

    async def sum_usage(
        self,
        db: AsyncSession,
        user_id: UUID,
        feature: Feature,
        usage_type: LimitType,
        period: date | None = None,
    ) -> int:
        """Sum recorded usage counters for the billing period."""
        period = period or self.get_current_period()
        result = await db.execute(
            select(func.coalesce(func.sum(UsageRecord.usage_count), 0))
            .where(UsageRecord.user_id == user_id)
            .where(UsageRecord.feature_name == feature.value)
            .where(UsageRecord.usage_type == usage_type.value)
            .where(UsageRecord.billing_period_start == period)
        )
        return int(result.scalar_one() or 0)

    async def sum_storage_bytes(self, db: AsyncSession, user_id: UUID) -> int:
        """Total size of every evidence file the user has stored."""
        result = await db.execute(
            select(func.coalesce(func.sum(EvidenceFile.file_size), 0))
            .where(EvidenceFile.user_id == user_id)
        )
        return int(result.scalar_one() or 0)

    async def sum_transcription_seconds(
        self,
        db: AsyncSession,
        user_id: UUID,
        since: datetime,
    ) -> tuple[int, float]:
        """Count and total duration of audio evidence uploaded since ``since``.

        Returns:
            Tuple of (file_count, total_seconds)
        """
        result = await db.execute(
            select(
                func.count(EvidenceFile.id),
                func.coalesce(func.sum(EvidenceFile.duration_seconds), 0),
            )
            .where(EvidenceFile.user_id == user_id)
            .where(EvidenceFile.storage_bucket == self.settings.evidence_audio_bucket)
            .where(EvidenceFile.uploaded_at >= since)
        )
        count, seconds = result.one()
        return int(count or 0), float(seconds or 0)

    async def count_pattern_analyses(
        self,
        db: AsyncSession,
        user_id: UUID,
        since: datetime,
    ) -> int:
        """Number of pattern analyses run since ``since``."""
        result = await db.execute(
            select(func.count(PatternAnalysis.id))
            .where(PatternAnalysis.user_id == user_id)
            .where(PatternAnalysis.created_at >= since)
        )
        return int(result.scalar_one() or 0)

    async def check_storage(
        self,
        db: AsyncSession,
        limits: FeatureLimits,
        user_id: UUID,
        incoming_bytes: int = 0,
    ) -> QuotaStatus:
        """Check whether ``incoming_bytes`` more evidence fits in the storage cap.

        The cap is configured in MB and reported in bytes.
        """
        tier = await self.resolve_tier(db, user_id)
        storage_mb = await limits.get_limit(tier, Feature.STORAGE, LimitType.STORAGE_MB)
        if storage_mb == UNLIMITED:
            return self.evaluate(UNLIMITED, None)

        used = await self.sum_storage_bytes(db, user_id)
        return self.evaluate(storage_mb * BYTES_PER_MB, used, incoming_bytes)

    async def check_transcription_minutes(
        self,
        db: AsyncSession,
        limits: FeatureLimits,
        user_id: UUID,
        incoming_minutes: int | None = None,
        tier: SubscriptionTier | None = None,
        period: date | None = None,
    ) -> QuotaStatus:
        """Check transcription minutes used this month against the tier limit."""
        tier = tier or await self.resolve_tier(db, user_id)
        limit = await limits.get_limit(tier, Feature.TRANSCRIPTION_MINUTES, LimitType.MINUTES)
        if limit == UNLIMITED:
            return self.evaluate(UNLIMITED, None)

        since = self.period_start_datetime(period or self.get_current_period())
        _, seconds = await self.sum_transcription_seconds(db, user_id, since)
        return self.evaluate(limit, math.ceil(seconds / 60), incoming_minutes)

    async def check_monthly_count(
        self,
        db: AsyncSession,
        limits: FeatureLimits,
        user_id: UUID,
        feature: Feature,
        incoming: int | None = None,
        tier: SubscriptionTier | None = None,
        period: date | None = None,
    ) -> QuotaStatus:
        """Check a ``monthly_count`` feature tracked in the usage table."""
        tier = tier or await self.resolve_tier(db, user_id)
        limit = await limits.get_limit(tier, feature, LimitType.MONTHLY_COUNT)
        if limit == UNLIMITED:
            return self.evaluate(UNLIMITED, None)

        used = await self.sum_usage(db, user_id, feature, LimitType.MONTHLY_COUNT, period)
        return self.evaluate(limit, used, incoming)

    async def record_usage(
        self,
        db: AsyncSession,
        user_id: UUID,
        feature: Feature,
        usage_type: LimitType = LimitType.MONTHLY_COUNT,
        amount: int = 1,
        period: date | None = None,
        metadata: dict | None = None,
    ) -> None:
        """Add ``amount`` to the period counter in a single statement.

        Uses INSERT ... ON CONFLICT DO UPDATE so concurrent requests never
        lose an increment. ``metadata`` replaces the row's stored context.
        The caller commits.
        """
        period = period or self.get_current_period()
        values = {
            "id": uuid4(),
            "user_id": user_id,
            "feature_name": feature.value,
            "usage_type": usage_type.value,
            "billing_period_start": period,
            "usage_count": amount,
        }
        key_columns = [
            UsageRecord.user_id,
            UsageRecord.feature_name,
            UsageRecord.usage_type,
            UsageRecord.billing_period_start,
        ]

        dialect = db.get_bind().dialect.name
        if dialect in ("postgresql", "sqlite"):
            insert = pg_insert if dialect == "postgresql" else sqlite_insert
            stmt = insert(UsageRecord).values({**values, UsageRecord.metadata_: metadata})
            stmt = stmt.on_conflict_do_update(
                index_elements=key_columns,
                set_={
                    "usage_count": UsageRecord.usage_count + stmt.excluded.usage_count,
                    "updated_at": utcnow(),
                    "metadata": stmt.excluded["metadata"],
                },
            )
            await db.execute(stmt)
            return

        # Other backends: increment in place, insert when the row is missing
        result = await db.execute(
            update(UsageRecord)
            .where(*(column == values[column.key] for column in key_columns))
            .values({
                UsageRecord.usage_count: UsageRecord.usage_count + amount,
                UsageRecord.updated_at: utcnow(),
                UsageRecord.metadata_: metadata,
            })
        )
        if result.rowcount == 0:
            db.add(UsageRecord(**values, metadata_=metadata))
            await db.flush()


# Global instance
quota_service = QuotaService()
