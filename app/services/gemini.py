"""Gemini text generation client (REST ``generateContent``)."""

import logging

import httpx

from app.config import Settings, get_settings

logger = logging.getLogger(__name__)

# Block medium-and-above for every harm category
SAFETY_SETTINGS = [
    {"category": category, "threshold": "BLOCK_MEDIUM_AND_ABOVE"}
    for category in (
        "HARM_CATEGORY_HARASSMENT",
        "HARM_CATEGORY_HATE_SPEECH",
        "HARM_CATEGORY_SEXUALLY_EXPLICIT",
        "HARM_CATEGORY_DANGEROUS_CONTENT",
    )
]

MAX_ERROR_TEXT_CHARS = 500


class AIServiceError(Exception):
    """Raised when the AI provider call fails."""

    def __init__(self, message: str, status_code: int | None = None, body: str = "") -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class AIConfigurationError(AIServiceError):
    """Raised when no API key is configured."""


class AITimeoutError(AIServiceError):
    """Raised when the provider does not answer within the configured timeout."""


class GeminiClient:
    """Thin async client for Gemini ``generateContent``."""

    def __init__(
        self,
        settings: Settings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.api_key = self.settings.gemini_api_key
        self.base_url = self.settings.gemini_api_base.rstrip("/")
        self.timeout = self.settings.ai_timeout_seconds
        self._transport = transport

    async def generate(
        self,
        contents: list[dict],
        *,
        model: str | None = None,
        temperature: float,
        max_output_tokens: int,
        system_instruction: str | None = None,
        safety: bool = False,
    ) -> str:
        """Call ``generateContent`` and return the first candidate's text.

        Raises:
            AIConfigurationError: no API key
            AITimeoutError: the call exceeded ``AI_TIMEOUT_SECONDS``
            AIServiceError: transport failure or non-2xx status
        """
        if not self.api_key:
            raise AIConfigurationError("GEMINI_API_KEY is not configured")

        model = model or self.settings.gemini_model
        url = f"{self.base_url}/models/{model}:generateContent"

        payload: dict = {
            "contents": contents,
            "generationConfig": {
                "temperature": temperature,
                "maxOutputTokens": max_output_tokens,
            },
        }
        if system_instruction:
            payload["systemInstruction"] = {"parts": [{"text": system_instruction}]}
        if safety:
            payload["safetySettings"] = SAFETY_SETTINGS

        headers = {
            "Content-Type": "application/json",
            "x-goog-api-key": self.api_key,
        }

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(url, json=payload, headers=headers)
        except httpx.TimeoutException as e:
            logger.warning("Gemini call timed out after %.1fs [model=%s]", self.timeout, model)
            raise AITimeoutError("AI request timed out") from e
        except httpx.HTTPError as e:
            logger.error("Gemini transport error [model=%s]: %s", model, e)
            raise AIServiceError(f"AI request failed: {e}") from e

        if response.is_error:
            body = response.text[:MAX_ERROR_TEXT_CHARS]
            logger.error("Gemini returned %d [model=%s]: %s", response.status_code, model, body)
            raise AIServiceError(
                f"AI error: {response.status_code} {body}",
                status_code=response.status_code,
                body=body,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise AIServiceError("AI error: response was not JSON") from e

        return self.extract_text(data)

    async def generate_text(
        self,
        prompt: str,
        *,
        model: str | None = None,
        temperature: float,
        max_output_tokens: int,
    ) -> str:
        """Single-prompt convenience wrapper around :meth:`generate`."""
        return await self.generate(
            [{"role": "user", "parts": [{"text": prompt}]}],
            model=model,
            temperature=temperature,
            max_output_tokens=max_output_tokens,
        )

    @staticmethod
    def extract_text(data: dict) -> str:
        """First text part of the first candidate, or an empty string."""
        try:
            parts = data["candidates"][0]["content"]["parts"]
        except (KeyError, IndexError, TypeError):
            return ""
        for part in parts or []:
            if isinstance(part, dict) and isinstance(part.get("text"), str):
                return part["text"]
        return ""
