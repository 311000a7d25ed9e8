"""Coping strategy suggestion schemas."""

import math

from pydantic import BaseModel, field_validator

SCORE_MIN = 0.0
SCORE_MAX = 10.0


class CopingContext(BaseModel):
    """Loosely structured state the user shares with the suggestion request.

    Scores that are not numbers are treated as absent; numeric scores are
    clamped to the 0-10 scale.
    """

    mood: float | None = None
    anxiety: float | None = None
    energy: float | None = None
    note: str | None = None
    preferred_categories: list[str] | None = None

    @field_validator("mood", "anxiety", "energy", mode="before")
    @classmethod
    def coerce_score(cls, value: object) -> float | None:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return None
        if not math.isfinite(value):
            return None
        return min(SCORE_MAX, max(SCORE_MIN, float(value)))

    @field_validator("note", mode="before")
    @classmethod
    def coerce_note(cls, value: object) -> str | None:
        if value is None or value == "":
            return None
        return str(value)

    @field_validator("preferred_categories", mode="before")
    @classmethod
    def coerce_categories(cls, value: object) -> list[str] | None:
        if not isinstance(value, list):
            return None
        return [str(item) for item in value if item is not None]


class CopingSuggestionRequest(BaseModel):
    """Request body for coping strategy suggestions."""

    context: CopingContext | None = None

    @field_validator("context", mode="before")
    @classmethod
    def coerce_context(cls, value: object) -> object:
        return value if isinstance(value, dict) else None


class CopingSuggestion(BaseModel):
    """One normalized suggestion."""

    strategy_name: str
    description: str
    category: str
    effectiveness_rating: int
    rationale: str | None = None


class CopingSuggestionsResponse(BaseModel):
    """Suggestions returned to the client."""

    suggestions: list[CopingSuggestion]
