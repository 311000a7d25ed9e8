"""AI coach endpoints: conversation history, coping suggestions, titles and chat."""

import logging
from uuid import UUID

from fastapi import APIRouter, HTTPException, Query, status
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.pagination import (
    Cursor,
    InvalidCursorError,
    apply_keyset,
    build_page,
    clamp_limit,
    parse_cursor,
)
from app.database import utcnow
from app.deps import CurrentUser, DbSession, Gemini, Limits
from app.models.conversation import AIConversation, AIMessage, MessageRole
from app.models.feature_limit import UNLIMITED, Feature, SubscriptionTier
from app.schemas.chat import ChatRequest, ChatResponse, ThreadMessagePage, ThreadPage
from app.schemas.coping import CopingSuggestionRequest, CopingSuggestionsResponse
from app.schemas.mind_reset import TitleSuggestionRequest, TitleSuggestionsResponse
from app.services.coach import coach_service, normalize_context, trim_history
from app.services.coping import AIResponseFormatError, coping_service
from app.services.gemini import AIConfigurationError, AIServiceError, AITimeoutError
from app.services.limits import FeatureLimits, LimitNotConfiguredError
from app.services.quota import QuotaStatus, quota_service
from app.services.titles import title_service

logger = logging.getLogger(__name__)
router = APIRouter()

THREADS_DEFAULT_LIMIT = 20
THREADS_MAX_LIMIT = 50
MESSAGES_DEFAULT_LIMIT = 30
MESSAGES_MAX_LIMIT = 100
TITLE_MAX_CHARS = 60
MIN_TITLE_TEXT_CHARS = 8


def _cursor_or_400(cursor: str | None) -> Cursor | None:
    try:
        return parse_cursor(cursor)
    except InvalidCursorError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid cursor",
        )


async def _ai_quota_or_429(
    db: AsyncSession,
    limits: FeatureLimits,
    user_id: UUID,
) -> tuple[SubscriptionTier, QuotaStatus]:
    """Resolve the tier and reserve one ``ai_interactions`` unit, or raise."""
    try:
        tier = await quota_service.resolve_tier(db, user_id)
        quota = await quota_service.check_monthly_count(
            db, limits, user_id, Feature.AI_INTERACTIONS, incoming=1, tier=tier
        )
    except LimitNotConfiguredError as e:
        logger.error("AI interaction limit lookup failed: %s", e)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to read plan limits",
        )
    except SQLAlchemyError:
        logger.exception("Failed to check AI usage for user %s", user_id)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to check usage limits",
        )

    if not quota.allowed:
        upgrade_to = tier.next_tier
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail={
                "error": "Monthly AI interaction limit reached",
                "limit": quota.limit,
                "used": quota.used,
                "remaining": 0,
                "upgrade_required": True,
                "upgrade_to": upgrade_to.value if upgrade_to else None,
            },
        )
    return tier, quota


@router.get("/threads", response_model=ThreadPage)
async def list_threads(
    user: CurrentUser,
    db: DbSession,
    limit: int | None = None,
    cursor: str | None = None,
) -> dict:
    """List the caller's conversations, most recently active first."""
    page_size = clamp_limit(limit, THREADS_DEFAULT_LIMIT, THREADS_MAX_LIMIT)
    position = _cursor_or_400(cursor)

    query = select(AIConversation).where(AIConversation.user_id == user.id)
    query = apply_keyset(query, AIConversation.updated_at, AIConversation.id, position, page_size)

    try:
        result = await db.execute(query)
        rows = result.scalars().all()
    except SQLAlchemyError:
        logger.exception("Failed to list threads for user %s", user.id)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to list threads",
        )

    page = build_page(rows, page_size, "updated_at")
    return {"items": page.items, "next_cursor": page.next_cursor}


@router.get("/thread-messages", response_model=ThreadMessagePage)
async def list_thread_messages(
    user: CurrentUser,
    db: DbSession,
    conversation_id: UUID | None = Query(default=None),
    limit: int | None = None,
    cursor: str | None = None,
) -> dict:
    """List messages of one of the caller's conversations, newest first."""
    if conversation_id is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="conversation_id is required",
        )

    page_size = clamp_limit(limit, MESSAGES_DEFAULT_LIMIT, MESSAGES_MAX_LIMIT)
    position = _cursor_or_400(cursor)

    try:
        result = await db.execute(
            select(AIConversation.user_id).where(AIConversation.id == conversation_id)
        )
        owner_id = result.scalar_one_or_none()
        if owner_id is None or owner_id != user.id:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Conversation not found",
            )

        query = select(AIMessage).where(AIMessage.conversation_id == conversation_id)
        query = apply_keyset(query, AIMessage.created_at, AIMessage.id, position, page_size)
        result = await db.execute(query)
        rows = result.scalars().all()
    except SQLAlchemyError:
        logger.exception("Failed to list messages of conversation %s", conversation_id)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to list messages",
        )

    page = build_page(rows, page_size, "created_at")
    return {"items": page.items, "next_cursor": page.next_cursor}


@router.post(
    "/suggest-coping-strategies",
    response_model=CopingSuggestionsResponse,
    response_model_exclude_none=True,
)
async def suggest_coping_strategies(
    user: CurrentUser,
    gemini: Gemini,
    data: CopingSuggestionRequest | None = None,
) -> dict:
    """Suggest 3-5 coping strategies for the state the user describes."""
    context = data.context if data else None

    try:
        suggestions = await coping_service.suggest(gemini, context)
    except AITimeoutError:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="AI error: request timed out",
        )
    except AIConfigurationError as e:
        logger.error("Coping suggestions unavailable: %s", e)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Server misconfigured: missing AI provider key",
        )
    except (AIServiceError, AIResponseFormatError) as e:
        logger.warning("Coping suggestions failed for user %s: %s", user.id, e)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(e),
        )

    return {"suggestions": suggestions}


@router.post("/suggest-title", response_model=TitleSuggestionsResponse)
async def suggest_title(
    user: CurrentUser,
    db: DbSession,
    limits: Limits,
    gemini: Gemini,
    data: TitleSuggestionRequest | None = None,
) -> dict:
    """Suggest incident titles for a journal entry; costs one AI interaction."""
    text = (data.text if data else None) or ""
    if len(text.strip()) < MIN_TITLE_TEXT_CHARS:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Provide a valid description text (min {MIN_TITLE_TEXT_CHARS} chars)",
        )
    tier, _ = await _ai_quota_or_429(db, limits, user.id)

    try:
        suggestions, model = await title_service.suggest(gemini, text, data.n, tier)
    except AITimeoutError:
        raise HTTPException(
            status_code=status.HTTP_504_GATEWAY_TIMEOUT,
            detail="AI request timed out",
        )
    except AIConfigurationError as e:
        logger.error("Title suggestions unavailable: %s", e)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Server misconfigured: missing AI provider key",
        )
    except AIServiceError as e:
        logger.error("Title suggestions failed for user %s: %s", user.id, e)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to generate title suggestions",
        )

    try:
        await quota_service.record_usage(
            db,
            user.id,
            Feature.AI_INTERACTIONS,
            metadata={"feature": "suggest_title", "text_length": len(text), "model": model},
        )
        await db.commit()
    except SQLAlchemyError:
        await db.rollback()
        logger.exception("Failed to record title suggestion usage for user %s", user.id)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to record usage",
        )

    return {"success": True, "suggestions": suggestions}


@router.post("/chat", response_model=ChatResponse)
async def chat(
    data: ChatRequest,
    user: CurrentUser,
    db: DbSession,
    limits: Limits,
    gemini: Gemini,
) -> dict:
    """Send a message to the AI coach.

    The monthly ``ai_interactions`` allowance is checked before the model is
    called and one unit is recorded after a successful answer.
    """
    message = (data.message or "").strip()
    if not message:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Message is required",
        )
    context = normalize_context(data.context)
    tier, quota = await _ai_quota_or_429(db, limits, user.id)

    conversation: AIConversation | None = None
    if data.conversation_id is not None:
        try:
            result = await db.execute(
                select(AIConversation).where(AIConversation.id == data.conversation_id)
            )
            conversation = result.scalar_one_or_none()
        except SQLAlchemyError:
            logger.exception("Failed to load conversation %s", data.conversation_id)
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Failed to load conversation",
            )
        if conversation is None or conversation.user_id != user.id:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Conversation not found",
            )

    history = trim_history(
        data.conversation_history,
        coach_service.settings.chat_history_max_messages,
        coach_service.settings.chat_history_max_chars,
    )

    try:
        answer = await coach_service.reply(gemini, message, history, context, tier)
    except AITimeoutError:
        raise HTTPException(
            status_code=status.HTTP_504_GATEWAY_TIMEOUT,
            detail="AI request timed out",
        )
    except AIConfigurationError as e:
        logger.error("AI chat unavailable: %s", e)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Server misconfigured: missing AI provider key",
        )
    except AIServiceError as e:
        logger.error("AI chat failed for user %s: %s", user.id, e)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="AI chat failed",
        )

    try:
        if conversation is None:
            conversation = AIConversation(
                user_id=user.id,
                title=message[:TITLE_MAX_CHARS],
                context_type=context,
            )
            db.add(conversation)
            await db.flush()
        else:
            conversation.updated_at = utcnow()

        metadata = {"context_type": context}
        db.add(AIMessage(
            conversation_id=conversation.id,
            user_id=user.id,
            role=MessageRole.USER.value,
            content=message,
            metadata_=metadata,
        ))
        db.add(AIMessage(
            conversation_id=conversation.id,
            user_id=user.id,
            role=MessageRole.ASSISTANT.value,
            content=answer,
            metadata_=metadata,
        ))

        await quota_service.record_usage(
            db,
            user.id,
            Feature.AI_INTERACTIONS,
            metadata={
                "feature": "chat",
                "context_type": context,
                "message_length": len(message),
                "response_length": len(answer),
            },
        )
        await db.commit()
    except SQLAlchemyError:
        await db.rollback()
        logger.exception("Failed to save chat exchange for user %s", user.id)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to save conversation",
        )

    if quota.unlimited:
        remaining = UNLIMITED
    else:
        remaining = max(0, quota.remaining - 1)

    return {
        "success": True,
        "response": answer,
        "context": context,
        "conversation_id": conversation.id,
        "usage_info": {
            "subscription_tier": tier.value,
            "monthly_limit": quota.limit,
            "remaining": remaining,
        },
    }
