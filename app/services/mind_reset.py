"""Thought reframing for mind reset sessions."""

import logging
from dataclasses import dataclass, field

from app.config import get_settings
from app.core.structured_output import (
    StructuredOutputMissingError,
    StructuredOutputParseError,
    extract_json_object,
)
from app.models.feature_limit import SubscriptionTier
from app.schemas.mind_reset import ReframeContext
from app.services.coach import coach_service
from app.services.coping import (
    AIResponseParseError,
    AIResponseShapeError,
    AIStructuredDataMissingError,
    clamp_rating,
)
from app.services.gemini import GeminiClient

logger = logging.getLogger(__name__)

MAX_THOUGHT_CHARS = 2000
MAX_LIST_ITEMS = 5

PROMPT_TEMPLATE = """
You are a trauma-informed coach specializing in cognitive reframing for survivors of narcissistic abuse.

Original thought: "{thought}"
{context_lines}
Help reframe this thought in a healthier, more balanced way. Return STRICT JSON with this shape:
{{
  "reframed_thought": "healthier perspective",
  "techniques_suggested": ["technique", "technique"],
  "affirmations": ["affirmation", "affirmation"],
  "effectiveness_prediction": 1-5
}}
Challenge cognitive distortions, promote self-compassion and validate the survivor's experience.
Avoid clinical claims or diagnoses."""


@dataclass(frozen=True)
class Reframe:
    reframed_thought: str
    techniques: list[str] = field(default_factory=list)
    affirmations: list[str] = field(default_factory=list)
    effectiveness: int | None = None


def build_reframe_prompt(thought: str, context: ReframeContext | None) -> str:
    context = context or ReframeContext()
    lines = [
        f"{label}: {value}"
        for label, value in (
            ("Current emotional state", context.emotional_state),
            ("Trigger", context.trigger),
            ("Situation", context.situation),
        )
        if value
    ]
    context_lines = "\n".join(lines) + "\n" if lines else ""
    return PROMPT_TEMPLATE.format(
        thought=thought[:MAX_THOUGHT_CHARS],
        context_lines=context_lines,
    )


def _strings(value: object) -> list[str]:
    if not isinstance(value, list):
        return []
    items = [str(item).strip() for item in value if isinstance(item, (str, int, float))]
    return [item for item in items if item][:MAX_LIST_ITEMS]


def parse_reframe(text: str) -> Reframe:
    """Read the reframe object out of raw model output.

    Raises:
        AIStructuredDataMissingError: no JSON-shaped substring
        AIResponseParseError: the substring is not valid JSON
        AIResponseShapeError: no non-empty ``reframed_thought``
    """
    try:
        parsed = extract_json_object(text, required_key="reframed_thought")
    except StructuredOutputMissingError as e:
        raise AIStructuredDataMissingError() from e
    except StructuredOutputParseError as e:
        raise AIResponseParseError() from e

    reframed = parsed.get("reframed_thought")
    if not isinstance(reframed, str) or not reframed.strip():
        raise AIResponseShapeError()

    prediction = parsed.get("effectiveness_prediction")
    return Reframe(
        reframed_thought=reframed.strip(),
        techniques=_strings(parsed.get("techniques_suggested")),
        affirmations=_strings(parsed.get("affirmations")),
        effectiveness=clamp_rating(prediction) if prediction is not None else None,
    )


class MindResetService:
    """Asks Gemini to reframe a negative thought."""

    def __init__(self) -> None:
        self.settings = get_settings()

    async def reframe(
        self,
        client: GeminiClient,
        thought: str,
        context: ReframeContext | None,
        tier: SubscriptionTier,
    ) -> Reframe:
        text = await client.generate_text(
            build_reframe_prompt(thought, context),
            model=coach_service.model_for_tier(tier),
            temperature=self.settings.mind_reset_temperature,
            max_output_tokens=self.settings.mind_reset_max_output_tokens,
        )
        reframe = parse_reframe(text)
        logger.info("Reframed thought with %d techniques", len(reframe.techniques))
        return reframe


# Singleton instance
mind_reset_service = MindResetService()
