"""Usage endpoints."""

import logging

from fastapi import APIRouter, HTTPException, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import AuthUser
from app.deps import CurrentUser, DbSession, Limits
from app.schemas.usage import (
    MindResetUsageResponse,
    TranscriptionCheckRequest,
    TranscriptionUsageResponse,
    UsageSummary,
)
from app.services.limits import FeatureLimits, LimitNotConfiguredError
from app.services.quota import quota_service
from app.services.usage import usage_service

logger = logging.getLogger(__name__)
router = APIRouter()

PLAN_LIMITS_ERROR = "Failed to read plan limits"


@router.get("/limits", response_model=UsageSummary)
async def get_usage_limits(
    user: CurrentUser,
    db: DbSession,
    limits: Limits,
) -> dict:
    """Current month usage vs limits for the caller's tier."""
    try:
        return await usage_service.get_usage_summary(db, limits, user.id)
    except LimitNotConfiguredError as e:
        logger.error("Usage limits lookup failed: %s", e)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=PLAN_LIMITS_ERROR,
        )
    except SQLAlchemyError:
        logger.exception("Failed to load usage for user %s", user.id)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to load usage",
        )


async def _transcription_usage(
    user: AuthUser,
    db: AsyncSession,
    limits: FeatureLimits,
    incoming_minutes: int | None,
) -> TranscriptionUsageResponse:
    try:
        tier = await quota_service.resolve_tier(db, user.id)
        period = quota_service.get_current_period()
        quota = await quota_service.check_transcription_minutes(
            db, limits, user.id, incoming_minutes, tier=tier, period=period
        )
    except LimitNotConfiguredError as e:
        logger.error("Transcription limit lookup failed: %s", e)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=PLAN_LIMITS_ERROR,
        )
    except SQLAlchemyError:
        logger.exception("Failed to load transcription usage for user %s", user.id)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to load usage",
        )

    usage = TranscriptionUsageResponse(
        allowed=quota.allowed,
        tier=tier.value,
        cap_minutes=quota.limit,
        used_minutes=quota.used,
        remaining_minutes=quota.remaining,
        since=quota_service.period_start_datetime(period),
    )
    if not quota.allowed:
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail={
                "error": "Transcription limit exceeded for your plan",
                **usage.model_dump(mode="json"),
                "upgrade_required": True,
            },
        )
    return usage


@router.get("/transcription", response_model=TranscriptionUsageResponse)
async def get_transcription_usage(
    user: CurrentUser,
    db: DbSession,
    limits: Limits,
    incoming_minutes: int | None = None,
) -> TranscriptionUsageResponse:
    """Transcription minutes used this month; 429 when ``incoming_minutes`` does not fit."""
    return await _transcription_usage(user, db, limits, incoming_minutes)


@router.post("/transcription", response_model=TranscriptionUsageResponse)
async def check_transcription_usage(
    user: CurrentUser,
    db: DbSession,
    limits: Limits,
    data: TranscriptionCheckRequest | None = None,
    incoming_minutes: int | None = None,
) -> TranscriptionUsageResponse:
    """Same as GET; ``incoming_minutes`` may also come in the JSON body."""
    if data is not None and data.incoming_minutes is not None:
        incoming_minutes = data.incoming_minutes
    return await _transcription_usage(user, db, limits, incoming_minutes)


@router.get("/mind-reset", response_model=MindResetUsageResponse)
async def get_mind_reset_usage(
    user: CurrentUser,
    db: DbSession,
    limits: Limits,
) -> dict:
    """Mind reset sessions used this month."""
    try:
        return await usage_service.get_mind_reset_usage(db, limits, user.id)
    except LimitNotConfiguredError as e:
        logger.error("Mind reset limit lookup failed: %s", e)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=PLAN_LIMITS_ERROR,
        )
    except SQLAlchemyError:
        logger.exception("Failed to load mind reset usage for user %s", user.id)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to load usage",
        )
