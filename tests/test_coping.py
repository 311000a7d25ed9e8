"""Tests for coping strategy suggestions: prompt, normalization and endpoint."""

import json

import pytest

from app.schemas.coping import CopingContext, CopingSuggestionRequest
from app.services.coping import (
    FALLBACK_DESCRIPTION,
    FALLBACK_STRATEGY_NAME,
    AIResponseParseError,
    AIResponseShapeError,
    AIStructuredDataMissingError,
    build_coping_prompt,
    normalize_suggestion,
    parse_suggestions,
)

URL = "/api/v1/ai/suggest-coping-strategies"


# ─── Context coercion ────────────────────────────────────────────────────────

class TestCopingContext:
    def test_scores_are_clamped(self):
        context = CopingContext(mood=-3, anxiety=14, energy=5.5)
        assert context.mood == 0
        assert context.anxiety == 10
        assert context.energy == 5.5

    def test_non_numeric_scores_are_absent(self):
        context = CopingContext(mood="sad", anxiety=True, energy=None)
        assert context.mood is None
        assert context.anxiety is None
        assert context.energy is None

    def test_categories_must_be_a_list(self):
        assert CopingContext(preferred_categories="breathing").preferred_categories is None
        assert CopingContext(preferred_categories=["breathing", None]).preferred_categories == ["breathing"]

    def test_non_object_context_is_ignored(self):
        assert CopingSuggestionRequest(context="calm").context is None


# ─── Prompt ──────────────────────────────────────────────────────────────────

class TestBuildPrompt:
    def test_absent_fields_render_as_na(self):
        prompt = build_coping_prompt(None)
        assert "Mood: n/a; Anxiety: n/a; Energy: n/a" in prompt
        assert "Preferred categories: none specified" in prompt
        assert "User note: n/a" in prompt

    def test_scores_and_categories(self):
        prompt = build_coping_prompt(
            CopingContext(mood=3, anxiety=8, preferred_categories=["breathing", "physical"])
        )
        assert "Mood: 3/10; Anxiety: 8/10; Energy: n/a" in prompt
        assert "Preferred categories: breathing, physical" in prompt

    def test_note_is_truncated(self):
        prompt = build_coping_prompt(CopingContext(note="x" * 2000))
        assert "x" * 500 in prompt
        assert "x" * 501 not in prompt

    def test_asks_for_strict_json(self):
        prompt = build_coping_prompt(None)
        assert "Return STRICT JSON" in prompt
        assert '"suggestions"' in prompt
        assert "Limit to 3-5 items." in prompt


# ─── Normalization ───────────────────────────────────────────────────────────

class TestNormalizeSuggestion:
    def test_defaults_for_empty_item(self):
        item = normalize_suggestion({})
        assert item.strategy_name == FALLBACK_STRATEGY_NAME
        assert item.description == FALLBACK_DESCRIPTION
        assert item.category == "other"
        assert item.effectiveness_rating == 3
        assert item.rationale is None

    def test_non_dict_item(self):
        item = normalize_suggestion("breathe")
        assert item.strategy_name == FALLBACK_STRATEGY_NAME

    def test_category_is_case_insensitive(self):
        assert normalize_suggestion({"category": " Grounding "}).category == "grounding"

    def test_unknown_category(self):
        assert normalize_suggestion({"category": "astrology"}).category == "other"

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [(9, 5), (0, 1), (-2, 1), (4.4, 4), ("2", 2), ("great", 3), (None, 3), (True, 3)],
    )
    def test_rating(self, raw, expected):
        assert normalize_suggestion({"effectiveness_rating": raw}).effectiveness_rating == expected

    def test_blank_strings_fall_back(self):
        item = normalize_suggestion({"strategy_name": "  ", "description": ""})
        assert item.strategy_name == FALLBACK_STRATEGY_NAME
        assert item.description == FALLBACK_DESCRIPTION

    def test_rationale_passthrough(self):
        assert normalize_suggestion({"rationale": "Slows breathing"}).rationale == "Slows breathing"


class TestParseSuggestions:
    def test_caps_at_five(self):
        text = json.dumps({"suggestions": [{"strategy_name": f"S{i}"} for i in range(7)]})
        suggestions = parse_suggestions(text)
        assert [s.strategy_name for s in suggestions] == ["S0", "S1", "S2", "S3", "S4"]

    def test_missing_json(self):
        with pytest.raises(AIStructuredDataMissingError, match="AI did not return structured data"):
            parse_suggestions("Take a deep breath.")

    def test_unparseable_json(self):
        with pytest.raises(AIResponseParseError, match="Failed to parse AI response"):
            parse_suggestions("{suggestions: nope}")

    def test_suggestions_not_a_list(self):
        with pytest.raises(AIResponseShapeError, match="Invalid AI response format"):
            parse_suggestions('{"suggestions": "breathe"}')

    def test_missing_suggestions_key(self):
        with pytest.raises(AIResponseShapeError):
            parse_suggestions('{"ideas": []}')


# ─── Endpoint ────────────────────────────────────────────────────────────────

class TestSuggestEndpoint:
    def test_end_to_end_example(self, client, headers, gemini):
        gemini.reply(
            "Here are some ideas:\n```json\n"
            '{"suggestions":[{"strategy_name":"Box breathing","category":"unknown","effectiveness_rating":9}]}'
            "\n```"
        )

        response = client.post(URL, json={"context": {"mood": 3, "anxiety": 8}}, headers=headers)

        assert response.status_code == 200
        assert response.json() == {
            "suggestions": [
                {
                    "strategy_name": "Box breathing",
                    "description": "A practical coping step.",
                    "category": "other",
                    "effectiveness_rating": 5,
                }
            ]
        }

    def test_request_sent_to_gemini(self, client, headers, gemini):
        gemini.reply('{"suggestions": []}')

        client.post(URL, json={"context": {"mood": 3, "note": "rough day"}}, headers=headers)

        request = gemini.requests[0]
        assert request.url.path.endswith(":generateContent")
        assert request.headers["x-goog-api-key"] == "test-gemini-key"
        body = json.loads(request.content)
        assert body["generationConfig"] == {"temperature": 0.6, "maxOutputTokens": 1024}
        prompt = body["contents"][0]["parts"][0]["text"]
        assert "Mood: 3/10" in prompt
        assert "User note: rough day" in prompt

    def test_seven_suggestions_are_capped_and_clamped(self, client, headers, gemini):
        items = [
            {"strategy_name": f"S{i}", "category": "nonsense", "effectiveness_rating": 10 - i * 3}
            for i in range(7)
        ]
        gemini.reply(json.dumps({"suggestions": items}))

        response = client.post(URL, json={"context": {}}, headers=headers)

        assert response.status_code == 200
        suggestions = response.json()["suggestions"]
        assert len(suggestions) == 5
        assert all(1 <= s["effectiveness_rating"] <= 5 for s in suggestions)
        assert all(s["category"] == "other" for s in suggestions)

    def test_no_body(self, client, headers, gemini):
        gemini.reply('{"suggestions": [{"strategy_name": "Walk", "category": "physical"}]}')

        response = client.post(URL, headers=headers)

        assert response.status_code == 200
        assert response.json()["suggestions"][0]["category"] == "physical"

    def test_no_structured_data(self, client, headers, gemini):
        gemini.reply("Just breathe slowly.")

        response = client.post(URL, json={"context": {}}, headers=headers)

        assert response.status_code == 500
        assert response.json() == {"error": "AI did not return structured data"}

    def test_upstream_error_status_and_text(self, client, headers, gemini):
        gemini.fail(503, "model overloaded")

        response = client.post(URL, json={"context": {}}, headers=headers)

        assert response.status_code == 500
        assert response.json() == {"error": "AI error: 503 model overloaded"}

    def test_upstream_timeout(self, client, headers, gemini):
        gemini.timeout()

        response = client.post(URL, json={"context": {}}, headers=headers)

        assert response.status_code == 500
        assert response.json() == {"error": "AI error: request timed out"}

    def test_requires_auth(self, client, gemini):
        response = client.post(URL, json={"context": {}})

        assert response.status_code == 401
        assert response.json() == {"error": "Authorization header required"}
        assert gemini.requests == []
