"""Mind reset endpoints: reframing sessions and affirmation player preferences."""

import logging

from fastapi import APIRouter, HTTPException, status
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from app.core.pagination import (
    InvalidCursorError,
    apply_keyset,
    build_page,
    clamp_limit,
    parse_cursor,
)
from app.deps import CurrentUser, DbSession, Gemini, Limits
from app.models.feature_limit import Feature
from app.models.mind_reset import MindResetSession, SessionType
from app.models.profile import Profile
from app.schemas.mind_reset import (
    MindResetSessionCreate,
    MindResetSessionPage,
    MindResetSessionResponse,
)
from app.schemas.preferences import (
    AffirmationPrefsResponse,
    AffirmationPrefsUpdate,
    SuccessResponse,
)
from app.services.coping import AIResponseFormatError
from app.services.gemini import AIConfigurationError, AIServiceError, AITimeoutError
from app.services.limits import LimitNotConfiguredError
from app.services.mind_reset import mind_reset_service
from app.services.quota import quota_service

logger = logging.getLogger(__name__)
router = APIRouter()

PREFS_KEY = "affirmations"
SESSIONS_DEFAULT_LIMIT = 20
SESSIONS_MAX_LIMIT = 100


@router.get("/session", response_model=MindResetSessionPage)
async def list_sessions(
    user: CurrentUser,
    db: DbSession,
    limit: int | None = None,
    cursor: str | None = None,
    session_type: SessionType | None = None,
) -> dict:
    """List the caller's sessions, newest first."""
    page_size = clamp_limit(limit, SESSIONS_DEFAULT_LIMIT, SESSIONS_MAX_LIMIT)
    try:
        position = parse_cursor(cursor)
    except InvalidCursorError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid cursor",
        )

    query = select(MindResetSession).where(MindResetSession.user_id == user.id)
    if session_type is not None:
        query = query.where(MindResetSession.session_type == session_type.value)
    query = apply_keyset(
        query, MindResetSession.created_at, MindResetSession.id, position, page_size
    )

    try:
        result = await db.execute(query)
        rows = result.scalars().all()
    except SQLAlchemyError:
        logger.exception("Failed to list mind reset sessions for user %s", user.id)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch sessions",
        )

    page = build_page(rows, page_size, "created_at")
    return {"items": page.items, "next_cursor": page.next_cursor}


@router.post("/session", response_model=MindResetSessionResponse)
async def create_session(
    data: MindResetSessionCreate,
    user: CurrentUser,
    db: DbSession,
    limits: Limits,
    gemini: Gemini,
) -> dict:
    """Log a session; ``thought_reframe`` sessions are reframed by the AI.

    Every session type is refused once the monthly ``mind_reset_sessions``
    allowance is used up, but only AI reframes consume a unit.
    """
    uses_ai = data.session_type == SessionType.THOUGHT_REFRAME
    thought = (data.original_thought or "").strip()
    if uses_ai and not thought:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="original_thought is required for thought_reframe",
        )

    try:
        tier = await quota_service.resolve_tier(db, user.id)
        quota = await quota_service.check_monthly_count(
            db, limits, user.id, Feature.MIND_RESET_SESSIONS, incoming=1, tier=tier
        )
    except LimitNotConfiguredError as e:
        logger.error("Mind reset limit lookup failed: %s", e)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to read plan limits",
        )
    except SQLAlchemyError:
        logger.exception("Failed to check mind reset usage for user %s", user.id)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to check usage limits",
        )

    if not quota.allowed:
        upgrade_to = tier.next_tier
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail={
                "error": "Monthly Mind Reset limit reached",
                "limit": quota.limit,
                "used": quota.used,
                "remaining": 0,
                "upgrade_required": True,
                "upgrade_to": upgrade_to.value if upgrade_to else None,
            },
        )

    session = MindResetSession(
        user_id=user.id,
        session_type=data.session_type.value,
        original_thought=thought or None,
        duration_minutes=data.duration_minutes,
        mood_before=data.mood_before,
        mood_after=data.mood_after,
        notes=data.notes,
    )

    if uses_ai:
        try:
            reframe = await mind_reset_service.reframe(gemini, thought, data.context, tier)
        except AITimeoutError:
            raise HTTPException(
                status_code=status.HTTP_504_GATEWAY_TIMEOUT,
                detail="AI request timed out",
            )
        except AIConfigurationError as e:
            logger.error("Mind reset unavailable: %s", e)
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Server misconfigured: missing AI provider key",
            )
        except (AIServiceError, AIResponseFormatError) as e:
            logger.warning("Mind reset reframe failed for user %s: %s", user.id, e)
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Failed to process mind reset - please try again",
            )
        session.reframed_thought = reframe.reframed_thought
        session.techniques_used = reframe.techniques
        session.affirmations = reframe.affirmations
        session.effectiveness_rating = reframe.effectiveness

    try:
        db.add(session)
        if uses_ai:
            await quota_service.record_usage(
                db,
                user.id,
                Feature.MIND_RESET_SESSIONS,
                metadata={"session_type": session.session_type, "used_ai": True},
            )
        await db.commit()
    except SQLAlchemyError:
        await db.rollback()
        logger.exception("Failed to save mind reset session for user %s", user.id)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create session",
        )

    return {"success": True, "session": session}


@router.get("/affirmations/prefs", response_model=AffirmationPrefsResponse)
async def get_affirmation_prefs(user: CurrentUser, db: DbSession) -> dict:
    """Saved affirmation player state, or ``{}``."""
    try:
        result = await db.execute(
            select(Profile.ui_preferences).where(Profile.id == user.id)
        )
        ui_preferences = result.scalar_one_or_none() or {}
    except SQLAlchemyError:
        logger.exception("Failed to load preferences for user %s", user.id)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to load preferences",
        )

    prefs = ui_preferences.get(PREFS_KEY) if isinstance(ui_preferences, dict) else None
    return {"prefs": prefs if isinstance(prefs, dict) else {}}


@router.put("/affirmations/prefs", response_model=SuccessResponse)
async def update_affirmation_prefs(
    user: CurrentUser,
    db: DbSession,
    data: AffirmationPrefsUpdate | None = None,
) -> dict:
    """Merge the provided keys into ``ui_preferences.affirmations``.

    Keys absent from the body keep their stored value. The profile row is
    created when the user has none yet.
    """
    updates = data.model_dump(exclude_unset=True) if data else {}

    try:
        result = await db.execute(select(Profile).where(Profile.id == user.id))
        profile = result.scalar_one_or_none()
        if profile is None:
            profile = Profile(id=user.id, email=user.email)
            db.add(profile)

        ui_preferences = dict(profile.ui_preferences or {})
        affirmations = dict(ui_preferences.get(PREFS_KEY) or {})
        affirmations.update(updates)
        ui_preferences[PREFS_KEY] = affirmations
        # Reassign so the JSON column is marked dirty
        profile.ui_preferences = ui_preferences

        await db.commit()
    except SQLAlchemyError:
        await db.rollback()
        logger.exception("Failed to save preferences for user %s", user.id)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to save preferences",
        )

    return {"success": True}
