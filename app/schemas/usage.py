"""Usage and quota schemas."""

from datetime import date, datetime

from pydantic import BaseModel


class StorageCheckRequest(BaseModel):
    """Size of the evidence file about to be uploaded; null counts as 0."""

    incoming_bytes: int | None = 0


class StorageCheckResponse(BaseModel):
    """Storage cap check.

    ``cap_bytes`` and ``remaining_bytes`` are -1 when storage is unlimited,
    in which case ``used_bytes`` is omitted.
    """

    allowed: bool
    cap_bytes: int
    used_bytes: int | None = None
    remaining_bytes: int


class FeatureUsage(BaseModel):
    """Usage of one monthly feature.

    ``current`` is None when the limit is unlimited (-1); usage is not summed
    in that case.
    """

    current: int | None = None
    limit: int
    remaining: int


class TranscriptionUsage(FeatureUsage):
    """Audio transcription usage: file count plus minutes."""

    duration_minutes: int | None = None
    minutes_limit: int
    minutes_remaining: int


class UsageSummary(BaseModel):
    """Summary of current period usage vs limits."""

    subscription_tier: str
    period_start: date
    ai_interactions: FeatureUsage
    audio_transcription: TranscriptionUsage
    pattern_analysis: FeatureUsage


class TranscriptionCheckRequest(BaseModel):
    incoming_minutes: int | None = None


class TranscriptionUsageResponse(BaseModel):
    """Transcription minutes accounting for the current month."""

    allowed: bool
    tier: str
    cap_minutes: int
    used_minutes: int | None = None
    remaining_minutes: int
    since: datetime


class MindResetUsageResponse(BaseModel):
    """Mind reset sessions accounting for the current month."""

    subscription_tier: str
    period_start: date
    mind_reset_sessions: FeatureUsage


class TiersResponse(BaseModel):
    """Configured limits per tier, keyed ``feature:limit_type``."""

    tiers: dict[str, dict[str, int | None]]
