"""Evidence storage cap endpoints."""

import logging

from fastapi import APIRouter, HTTPException, status
from sqlalchemy.exc import SQLAlchemyError

from app.deps import CurrentUser, DbSession, Limits
from app.schemas.usage import StorageCheckRequest, StorageCheckResponse
from app.services.limits import LimitNotConfiguredError
from app.services.quota import quota_service

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/check-cap", response_model=StorageCheckResponse, response_model_exclude_none=True)
async def check_storage_cap(
    user: CurrentUser,
    db: DbSession,
    limits: Limits,
    data: StorageCheckRequest | None = None,
) -> StorageCheckResponse:
    """Check whether an upload of ``incoming_bytes`` fits the plan's storage cap."""
    incoming_bytes = (data.incoming_bytes if data else None) or 0

    try:
        quota = await quota_service.check_storage(db, limits, user.id, incoming_bytes)
    except LimitNotConfiguredError as e:
        logger.error("Storage limit lookup failed: %s", e)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to read plan limits",
        )
    except SQLAlchemyError:
        logger.exception("Failed to compute storage usage for user %s", user.id)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to verify storage usage",
        )

    if quota.unlimited:
        return StorageCheckResponse(allowed=True, cap_bytes=quota.limit, remaining_bytes=quota.remaining)

    if not quota.allowed:
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail={
                "allowed": False,
                "error": "Storage limit exceeded for your plan",
                "cap_bytes": quota.limit,
                "used_bytes": quota.used,
                "remaining_bytes": quota.remaining,
                "upgrade_required": True,
            },
        )

    return StorageCheckResponse(
        allowed=True,
        cap_bytes=quota.limit,
        used_bytes=quota.used,
        remaining_bytes=quota.remaining,
    )
