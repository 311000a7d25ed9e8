"""FastAPI dependencies."""

import logging
from typing import Annotated
from uuid import UUID

import jwt
from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import get_settings
from app.core.auth import AuthUser, supabase_auth
from app.database import get_db
from app.services.gemini import GeminiClient
from app.services.limits import (
    DEFAULT_FEATURE_LIMITS,
    DatabaseFeatureLimits,
    FeatureLimits,
    StaticFeatureLimits,
)

logger = logging.getLogger(__name__)


async def get_current_user(
    authorization: Annotated[str | None, Header()] = None,
) -> AuthUser:
    """Validate the Supabase bearer token and return the caller.

    In dev mode (DEV_AUTH_BYPASS=true), returns the configured dev user.
    """
    settings = get_settings()

    if settings.dev_auth_bypass:
        logger.debug("DEV MODE: bypassing Supabase auth")
        return AuthUser(id=UUID(settings.dev_user_id), email="dev@reclaim.local")

    if not authorization:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authorization header required",
            headers={"WWW-Authenticate": "Bearer"},
        )

    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        return supabase_auth.authenticate(token.strip())
    except (jwt.PyJWTError, ValueError) as e:
        logger.info("Token validation failed: %s", e)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
            headers={"WWW-Authenticate": "Bearer"},
        )


async def get_feature_limits(
    db: Annotated[AsyncSession, Depends(get_db)],
) -> FeatureLimits:
    """Limits provider selected by FEATURE_LIMITS_SOURCE."""
    if get_settings().feature_limits_source == "static":
        return StaticFeatureLimits(DEFAULT_FEATURE_LIMITS)
    return DatabaseFeatureLimits(db)


def get_gemini_client() -> GeminiClient:
    return GeminiClient()


# Type aliases for dependency injection
CurrentUser = Annotated[AuthUser, Depends(get_current_user)]
DbSession = Annotated[AsyncSession, Depends(get_db)]
Limits = Annotated[FeatureLimits, Depends(get_feature_limits)]
Gemini = Annotated[GeminiClient, Depends(get_gemini_client)]
