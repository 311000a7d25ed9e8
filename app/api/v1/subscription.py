"""Subscription tier endpoints."""

import logging

from fastapi import APIRouter, HTTPException, status
from sqlalchemy.exc import SQLAlchemyError

from app.deps import CurrentUser, Limits
from app.schemas.usage import TiersResponse
from app.services.usage import usage_service

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/tiers", response_model=TiersResponse)
async def list_tiers(user: CurrentUser, limits: Limits) -> dict:
    """Configured limits of every tier, for the pricing page."""
    try:
        tiers = await usage_service.get_tier_limits(limits)
    except SQLAlchemyError:
        logger.exception("Failed to load tier limits")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to read plan limits",
        )
    return {"tiers": tiers}
