"""AI recovery coach chat."""

import logging
from dataclasses import dataclass

from app.config import get_settings
from app.models.feature_limit import SubscriptionTier
from app.services.gemini import AIServiceError, GeminiClient

logger = logging.getLogger(__name__)

DEFAULT_CONTEXT = "general"

BASE_PROMPT = (
    "You are a compassionate AI coach specialized in helping survivors of "
    "narcissistic abuse. You are trauma-informed, validating, and focused on "
    "empowerment and healing."
)

SYSTEM_PROMPTS = {
    "general": f"{BASE_PROMPT} Provide supportive guidance and validation.",
    "crisis": (
        f"{BASE_PROMPT} This is a crisis situation. Prioritize safety and "
        "provide immediate support resources."
    ),
    "pattern-analysis": (
        f"{BASE_PROMPT} Help identify patterns in abusive behavior and provide insights."
    ),
    "mind-reset": (
        f"{BASE_PROMPT} Help reframe negative thoughts and provide coping strategies."
    ),
    "grey-rock": (
        f"{BASE_PROMPT} Provide guidance on the grey rock technique for minimizing conflict."
    ),
}


@dataclass(frozen=True)
class ChatTurn:
    role: str  # "user" or "assistant"
    content: str


def normalize_context(context: str | None) -> str:
    """Map unknown or empty contexts to ``general``."""
    if context in SYSTEM_PROMPTS:
        return context
    return DEFAULT_CONTEXT


def system_prompt(context: str | None) -> str:
    return SYSTEM_PROMPTS[normalize_context(context)]


def trim_history(
    history: list[dict] | None,
    max_messages: int,
    max_chars: int,
) -> list[ChatTurn]:
    """Window the history to the message and character caps.

    Only the last ``max_messages`` entries are considered. That window is
    walked oldest first and the walk stops at the first turn that would push
    the total past ``max_chars``, so that turn and every newer one are
    dropped. Any role other than ``assistant`` is treated as ``user``.
    """
    if not isinstance(history, list) or max_messages <= 0:
        return []

    turns: list[ChatTurn] = []
    total = 0
    for entry in history[-max_messages:]:
        entry = entry if isinstance(entry, dict) else {}
        content = entry.get("content")
        content = content if isinstance(content, str) else ""
        if total + len(content) > max_chars:
            break
        role = "assistant" if entry.get("role") == "assistant" else "user"
        turns.append(ChatTurn(role=role, content=content))
        total += len(content)
    return turns


def build_contents(message: str, history: list[ChatTurn]) -> list[dict]:
    """Gemini ``contents`` for the trimmed history plus the new message."""
    contents = [
        {
            "role": "model" if turn.role == "assistant" else "user",
            "parts": [{"text": turn.content}],
        }
        for turn in history
    ]
    contents.append({"role": "user", "parts": [{"text": message}]})
    return contents


class CoachService:
    """Chat with the AI coach, choosing the model from the user's tier."""

    def __init__(self) -> None:
        self.settings = get_settings()

    def model_for_tier(self, tier: SubscriptionTier) -> str:
        if tier == SubscriptionTier.FOUNDATION:
            return self.settings.gemini_free_tier_model
        return self.settings.gemini_paid_tier_model

    async def reply(
        self,
        client: GeminiClient,
        message: str,
        history: list[ChatTurn],
        context: str,
        tier: SubscriptionTier,
    ) -> str:
        """Generate the coach's answer.

        A 400 from a paid-tier model (typically a model the key is not
        entitled to) is retried once on the free-tier model. An answer with no
        text raises :class:`AIServiceError` so it is never stored or charged.
        """
        model = self.model_for_tier(tier)
        free_model = self.settings.gemini_free_tier_model
        contents = build_contents(message, history)

        async def _generate(model_name: str) -> str:
            return await client.generate(
                contents,
                model=model_name,
                temperature=self.settings.chat_temperature,
                max_output_tokens=self.settings.chat_max_output_tokens,
                system_instruction=system_prompt(context),
                safety=True,
            )

        try:
            answer = await _generate(model)
        except AIServiceError as e:
            if e.status_code != 400 or model == free_model:
                raise
            logger.warning("Model %s rejected the request, retrying with %s", model, free_model)
            answer = await _generate(free_model)

        # Blocked or truncated candidates carry no text
        if not answer.strip():
            raise AIServiceError("AI returned an empty response")
        return answer


# Singleton instance
coach_service = CoachService()
