"""Incident title suggestions for journal entries."""

import logging

from app.config import get_settings
from app.core.structured_output import StructuredOutputError, extract_json_object
from app.models.feature_limit import SubscriptionTier
from app.services.coach import coach_service
from app.services.gemini import AIServiceError, GeminiClient

logger = logging.getLogger(__name__)

DEFAULT_COUNT = 5
MIN_COUNT = 3
MAX_COUNT = 7
MAX_TITLE_CHARS = 120
FALLBACK_TITLES = ["Journal Entry"]

PROMPT_TEMPLATE = '''
You are a trauma-informed journaling assistant who recognizes manipulation patterns (gaslighting, blame-shifting, DARVO, stonewalling, silent treatment).
Do NOT diagnose or label people. Focus on the writer's lived experience.

Suggest {count} concise, compassionate incident titles for the journal text below.
- 4-10 words each, neutral and non-blaming
- Prefer clear pattern words where they fit ("Gaslighting After Confrontation", "Invalidation During Vulnerability")
- No names, emojis, quotes or markdown

Return STRICT JSON: {{"titles": ["title", "title"]}}
If the text is too thin, return {{"titles": ["Journal Entry"]}}.

Journal text:
"""
{text}
"""'''


def clamp_count(n: int | None) -> int:
    if n is None:
        return DEFAULT_COUNT
    return max(MIN_COUNT, min(n, MAX_COUNT))


def parse_titles(text: str, count: int) -> list[str]:
    """Titles found in the model output, or the generic fallback."""
    try:
        parsed = extract_json_object(text, required_key="titles")
    except StructuredOutputError:
        logger.warning("Title suggestions were not JSON, using fallback")
        return list(FALLBACK_TITLES)

    titles = parsed.get("titles")
    if not isinstance(titles, list):
        return list(FALLBACK_TITLES)

    cleaned = [t.strip()[:MAX_TITLE_CHARS] for t in titles if isinstance(t, str) and t.strip()]
    return cleaned[:count] or list(FALLBACK_TITLES)


class TitleService:
    """Suggests titles for a journal entry from its text."""

    def __init__(self) -> None:
        self.settings = get_settings()

    async def suggest(
        self,
        client: GeminiClient,
        text: str,
        n: int | None,
        tier: SubscriptionTier,
    ) -> tuple[list[str], str]:
        """Return the suggestions and the model that produced them."""
        count = clamp_count(n)
        model = coach_service.model_for_tier(tier)
        answer = await client.generate_text(
            PROMPT_TEMPLATE.format(count=count, text=text),
            model=model,
            temperature=self.settings.title_temperature,
            max_output_tokens=self.settings.title_max_output_tokens,
        )
        if not answer.strip():
            raise AIServiceError("AI returned an empty response")
        return parse_titles(answer, count), model


# Singleton instance
title_service = TitleService()
