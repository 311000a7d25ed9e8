"""Pydantic schemas for API request/response validation."""

from app.schemas.chat import ChatRequest, ChatResponse, ThreadPage, ThreadMessagePage
from app.schemas.coping import CopingContext, CopingSuggestionRequest, CopingSuggestionsResponse
from app.schemas.usage import StorageCheckRequest, StorageCheckResponse, UsageSummary
from app.schemas.community import PostCreate, PostRead, CommentCreate, CommentRead, ReportCreate
from app.schemas.preferences import AffirmationPrefsUpdate, MeResponse
from app.schemas.mind_reset import MindResetSessionCreate, MindResetSessionRead, TitleSuggestionRequest

__all__ = [
    "ChatRequest",
    "ChatResponse",
    "ThreadPage",
    "ThreadMessagePage",
    "CopingContext",
    "CopingSuggestionRequest",
    "CopingSuggestionsResponse",
    "StorageCheckRequest",
    "StorageCheckResponse",
    "UsageSummary",
    "PostCreate",
    "PostRead",
    "CommentCreate",
    "CommentRead",
    "ReportCreate",
    "AffirmationPrefsUpdate",
    "MeResponse",
    "MindResetSessionCreate",
    "MindResetSessionRead",
    "TitleSuggestionRequest",
]
