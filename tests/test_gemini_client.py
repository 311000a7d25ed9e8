"""Tests for the Gemini REST client."""

import json

import httpx
import pytest

from app.config import Settings
from app.services.gemini import (
    SAFETY_SETTINGS,
    AIConfigurationError,
    AIServiceError,
    AITimeoutError,
    GeminiClient,
)


def _settings(**overrides) -> Settings:
    values = {
        "gemini_api_key": "key-123",
        "gemini_api_base": "https://gemini.test/v1beta/",
        "gemini_model": "gemini-test",
        "ai_timeout_seconds": 5.0,
    }
    values.update(overrides)
    return Settings(**values)


def _client(gemini, **overrides) -> GeminiClient:
    return GeminiClient(settings=_settings(**overrides), transport=httpx.MockTransport(gemini.handler))


class TestGenerate:
    @pytest.mark.asyncio
    async def test_returns_first_candidate_text(self, gemini):
        gemini.reply("Hello there")

        text = await _client(gemini).generate_text("Hi", temperature=0.2, max_output_tokens=64)

        assert text == "Hello there"
        request = gemini.requests[0]
        assert str(request.url) == "https://gemini.test/v1beta/models/gemini-test:generateContent"
        assert request.headers["x-goog-api-key"] == "key-123"
        body = json.loads(request.content)
        assert body == {
            "contents": [{"role": "user", "parts": [{"text": "Hi"}]}],
            "generationConfig": {"temperature": 0.2, "maxOutputTokens": 64},
        }

    @pytest.mark.asyncio
    async def test_system_instruction_and_safety(self, gemini):
        gemini.reply("ok")

        await _client(gemini).generate(
            [{"role": "user", "parts": [{"text": "Hi"}]}],
            model="gemini-other",
            temperature=0.7,
            max_output_tokens=128,
            system_instruction="Be kind.",
            safety=True,
        )

        request = gemini.requests[0]
        assert request.url.path.endswith("/models/gemini-other:generateContent")
        body = json.loads(request.content)
        assert body["systemInstruction"] == {"parts": [{"text": "Be kind."}]}
        assert body["safetySettings"] == SAFETY_SETTINGS

    @pytest.mark.asyncio
    async def test_error_status_carries_body(self, gemini):
        gemini.fail(400, "model not available")

        with pytest.raises(AIServiceError) as exc_info:
            await _client(gemini).generate_text("Hi", temperature=0.2, max_output_tokens=64)

        assert exc_info.value.status_code == 400
        assert exc_info.value.body == "model not available"
        assert str(exc_info.value) == "AI error: 400 model not available"

    @pytest.mark.asyncio
    async def test_error_body_is_truncated(self, gemini):
        gemini.fail(500, "x" * 2000)

        with pytest.raises(AIServiceError) as exc_info:
            await _client(gemini).generate_text("Hi", temperature=0.2, max_output_tokens=64)

        assert len(exc_info.value.body) == 500

    @pytest.mark.asyncio
    async def test_timeout(self, gemini):
        gemini.timeout()

        with pytest.raises(AITimeoutError):
            await _client(gemini).generate_text("Hi", temperature=0.2, max_output_tokens=64)

    @pytest.mark.asyncio
    async def test_missing_key_makes_no_request(self, gemini):
        with pytest.raises(AIConfigurationError):
            await _client(gemini, gemini_api_key="").generate_text(
                "Hi", temperature=0.2, max_output_tokens=64
            )
        assert gemini.requests == []

    def test_error_hierarchy(self):
        assert issubclass(AITimeoutError, AIServiceError)
        assert issubclass(AIConfigurationError, AIServiceError)


class TestExtractText:
    def test_no_candidates(self):
        assert GeminiClient.extract_text({}) == ""
        assert GeminiClient.extract_text({"candidates": []}) == ""

    def test_skips_non_text_parts(self):
        data = {"candidates": [{"content": {"parts": [{"inlineData": {}}, {"text": "second"}]}}]}
        assert GeminiClient.extract_text(data) == "second"

    def test_blocked_candidate_without_content(self):
        assert GeminiClient.extract_text({"candidates": [{"finishReason": "SAFETY"}]}) == ""
