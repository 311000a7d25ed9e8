"""Coping strategy suggestions generated by Gemini."""

import logging
import math

from app.config import get_settings
from app.core.structured_output import (
    StructuredOutputMissingError,
    StructuredOutputParseError,
    extract_json_object,
)
from app.schemas.coping import CopingContext, CopingSuggestion
from app.services.gemini import GeminiClient

logger = logging.getLogger(__name__)

CATEGORIES = ("breathing", "grounding", "physical", "creative", "emotional", "other")
FALLBACK_CATEGORY = "other"
FALLBACK_STRATEGY_NAME = "Suggested Strategy"
FALLBACK_DESCRIPTION = "A practical coping step."
DEFAULT_RATING = 3
MIN_RATING = 1
MAX_RATING = 5
MAX_SUGGESTIONS = 5
MAX_NOTE_CHARS = 500

PROMPT_TEMPLATE = """
You are a trauma-informed coach. Suggest practical coping strategies tailored to the user's current state.
{state_line}

Return STRICT JSON with this shape:
{{
  "suggestions": [
    {{
      "strategy_name": "string",
      "description": "1-3 short sentences with concrete steps",
      "category": "breathing|grounding|physical|creative|emotional|other",
      "effectiveness_rating": 1-5,
      "rationale": "why this may help"
    }}
  ]
}}
Keep items actionable and safe. Avoid clinical claims or diagnoses. Limit to 3-5 items."""


class AIResponseFormatError(Exception):
    """The model answered, but not with the expected structure."""


class AIStructuredDataMissingError(AIResponseFormatError):
    def __init__(self) -> None:
        super().__init__("AI did not return structured data")


class AIResponseParseError(AIResponseFormatError):
    def __init__(self) -> None:
        super().__init__("Failed to parse AI response")


class AIResponseShapeError(AIResponseFormatError):
    def __init__(self) -> None:
        super().__init__("Invalid AI response format")


def _score_line(label: str, value: float | None) -> str:
    if value is None:
        return f"{label}: n/a"
    return f"{label}: {value:g}/10"


def build_coping_prompt(context: CopingContext | None) -> str:
    """Render the instruction block for the user's current state."""
    context = context or CopingContext()

    if context.preferred_categories:
        preferred = f"Preferred categories: {', '.join(context.preferred_categories)}"
    else:
        preferred = "Preferred categories: none specified"

    if context.note:
        note_line = f"User note: {context.note[:MAX_NOTE_CHARS]}"
    else:
        note_line = "User note: n/a"

    state_line = (
        f"{_score_line('Mood', context.mood)}; "
        f"{_score_line('Anxiety', context.anxiety)}; "
        f"{_score_line('Energy', context.energy)}; "
        f"{preferred}. {note_line}."
    )
    return PROMPT_TEMPLATE.format(state_line=state_line)


def _text_or(value: object, fallback: str) -> str:
    if value is None or isinstance(value, (dict, list)):
        return fallback
    text = str(value).strip()
    return text or fallback


def clamp_rating(value: object) -> int:
    if value is None or isinstance(value, bool):
        return DEFAULT_RATING
    try:
        number = float(value)
    except (TypeError, ValueError):
        return DEFAULT_RATING
    if not math.isfinite(number):
        return DEFAULT_RATING
    return min(MAX_RATING, max(MIN_RATING, int(round(number))))


def normalize_suggestion(raw: object) -> CopingSuggestion:
    """Coerce one model-produced suggestion into the response shape."""
    item = raw if isinstance(raw, dict) else {}

    category = str(item.get("category") or "").strip().lower()
    if category not in CATEGORIES:
        category = FALLBACK_CATEGORY

    rationale = item.get("rationale")
    return CopingSuggestion(
        strategy_name=_text_or(item.get("strategy_name"), FALLBACK_STRATEGY_NAME),
        description=_text_or(item.get("description"), FALLBACK_DESCRIPTION),
        category=category,
        effectiveness_rating=clamp_rating(item.get("effectiveness_rating")),
        rationale=str(rationale) if rationale else None,
    )


def parse_suggestions(text: str) -> list[CopingSuggestion]:
    """Extract and normalize the suggestions embedded in raw model output.

    Raises:
        AIStructuredDataMissingError: no JSON-shaped substring
        AIResponseParseError: the substring is not valid JSON
        AIResponseShapeError: no ``suggestions`` array
    """
    try:
        parsed = extract_json_object(text, required_key="suggestions")
    except StructuredOutputMissingError as e:
        raise AIStructuredDataMissingError() from e
    except StructuredOutputParseError as e:
        raise AIResponseParseError() from e

    suggestions = parsed.get("suggestions")
    if not isinstance(suggestions, list):
        raise AIResponseShapeError()

    return [normalize_suggestion(item) for item in suggestions[:MAX_SUGGESTIONS]]


class CopingService:
    """Builds the prompt, calls Gemini and validates the answer."""

    def __init__(self) -> None:
        self.settings = get_settings()

    async def suggest(
        self,
        client: GeminiClient,
        context: CopingContext | None,
    ) -> list[CopingSuggestion]:
        prompt = build_coping_prompt(context)
        text = await client.generate_text(
            prompt,
            temperature=self.settings.coping_temperature,
            max_output_tokens=self.settings.coping_max_output_tokens,
        )
        suggestions = parse_suggestions(text)
        logger.info("Generated %d coping suggestions", len(suggestions))
        return suggestions


# Singleton instance
coping_service = CopingService()
