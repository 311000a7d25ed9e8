"""Tests for mind reset sessions and thought reframing."""

import json
from datetime import datetime, timedelta, timezone
from unittest.mock import patch
from uuid import uuid4

import pytest
from sqlalchemy import select
from sqlalchemy.exc import OperationalError

from app.models import MindResetSession, Profile, UsageRecord
from app.schemas.mind_reset import ReframeContext
from app.services.coping import (
    AIResponseParseError,
    AIResponseShapeError,
    AIStructuredDataMissingError,
)
from app.services.mind_reset import build_reframe_prompt, parse_reframe
from app.services.quota import QuotaService

URL = "/api/v1/mind-reset/session"

T0 = datetime(2026, 5, 20, 12, 0, tzinfo=timezone.utc)

REFRAME = json.dumps({
    "reframed_thought": "Making a mistake does not make me worthless.",
    "techniques_suggested": ["Evidence check", "Self-compassion", ""],
    "affirmations": ["I am learning"],
    "effectiveness_prediction": 9,
})


def _session(user_id, minutes_ago: int, session_type: str = "thought_reframe") -> MindResetSession:
    return MindResetSession(
        user_id=user_id,
        session_type=session_type,
        created_at=T0 - timedelta(minutes=minutes_ago),
    )


def _usage(user_id, count: int) -> UsageRecord:
    return UsageRecord(
        user_id=user_id,
        feature_name="mind_reset_sessions",
        usage_type="monthly_count",
        billing_period_start=QuotaService.get_current_period(),
        usage_count=count,
    )


class TestReframePrompt:
    def test_context_lines_only_when_present(self):
        prompt = build_reframe_prompt(
            "I ruin everything", ReframeContext(trigger="Missed a call", situation=None)
        )

        assert 'Original thought: "I ruin everything"' in prompt
        assert "Trigger: Missed a call" in prompt
        assert "Situation" not in prompt
        assert "Current emotional state" not in prompt

    def test_asks_for_strict_json(self):
        prompt = build_reframe_prompt("I ruin everything", None)

        assert "STRICT JSON" in prompt
        assert '"reframed_thought"' in prompt


class TestParseReframe:
    def test_wrapped_object(self):
        reframe = parse_reframe(f"```json\n{REFRAME}\n```")

        assert reframe.reframed_thought == "Making a mistake does not make me worthless."
        assert reframe.techniques == ["Evidence check", "Self-compassion"]
        assert reframe.affirmations == ["I am learning"]
        assert reframe.effectiveness == 5

    def test_missing_prediction(self):
        reframe = parse_reframe('{"reframed_thought": "ok", "techniques_suggested": "breathe"}')

        assert reframe.effectiveness is None
        assert reframe.techniques == []

    def test_no_json(self):
        with pytest.raises(AIStructuredDataMissingError):
            parse_reframe("Try to be kind to yourself.")

    def test_broken_json(self):
        with pytest.raises(AIResponseParseError):
            parse_reframe('{"reframed_thought": "ok",}')

    def test_blank_reframe(self):
        with pytest.raises(AIResponseShapeError):
            parse_reframe('{"reframed_thought": "  "}')


class TestCreateSession:
    def test_thought_reframe(self, client, headers, gemini, query, user_id):
        gemini.reply(REFRAME)

        response = client.post(
            URL,
            json={
                "original_thought": "  I always mess up  ",
                "context": {"emotional_state": "ashamed"},
                "mood_before": 3,
            },
            headers=headers,
        )

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        session = body["session"]
        assert session["session_type"] == "thought_reframe"
        assert session["original_thought"] == "I always mess up"
        assert session["reframed_thought"] == "Making a mistake does not make me worthless."
        assert session["techniques_used"] == ["Evidence check", "Self-compassion"]
        assert session["effectiveness_rating"] == 5
        assert session["mood_before"] == 3

        [stored] = query(select(MindResetSession).where(MindResetSession.user_id == user_id))
        assert str(stored.id) == session["id"]
        [usage] = query(select(UsageRecord).where(UsageRecord.user_id == user_id))
        assert usage.feature_name == "mind_reset_sessions"
        assert usage.usage_count == 1
        assert usage.metadata_ == {"session_type": "thought_reframe", "used_ai": True}

        prompt = json.loads(gemini.requests[0].content)["contents"][0]["parts"][0]["text"]
        assert "Current emotional state: ashamed" in prompt

    def test_paid_tier_uses_paid_model(self, client, headers, gemini, seed, user_id):
        seed(Profile(id=user_id, subscription_tier="recovery"))
        gemini.reply(REFRAME)

        response = client.post(URL, json={"original_thought": "I am too much"}, headers=headers)

        assert response.status_code == 200
        assert "/models/gemini-1.5-pro:" in gemini.requests[0].url.path

    def test_breathing_session_skips_ai_and_usage(self, client, headers, gemini, query):
        response = client.post(
            URL,
            json={"session_type": "breathing", "duration_minutes": 5, "mood_after": 7},
            headers=headers,
        )

        assert response.status_code == 200
        session = response.json()["session"]
        assert session["session_type"] == "breathing"
        assert session["reframed_thought"] is None
        assert session["duration_minutes"] == 5
        assert gemini.requests == []
        assert query(select(UsageRecord)) == []

    def test_thought_required_for_reframe(self, client, headers, gemini):
        for payload in ({}, {"original_thought": "   "}):
            response = client.post(URL, json=payload, headers=headers)
            assert response.status_code == 400
            assert response.json() == {"error": "original_thought is required for thought_reframe"}
        assert gemini.requests == []

    def test_unknown_session_type(self, client, headers):
        response = client.post(URL, json={"session_type": "hypnosis"}, headers=headers)

        assert response.status_code == 400
        assert response.json()["error"] == "Invalid request"

    def test_monthly_limit_blocks_every_type(self, client, headers, gemini, seed, query, user_id):
        seed(_usage(user_id, 10))

        for payload in ({"original_thought": "again"}, {"session_type": "breathing"}):
            response = client.post(URL, json=payload, headers=headers)
            assert response.status_code == 429
            assert response.json() == {
                "error": "Monthly Mind Reset limit reached",
                "limit": 10,
                "used": 10,
                "remaining": 0,
                "upgrade_required": True,
                "upgrade_to": "recovery",
            }
        assert gemini.requests == []
        assert query(select(MindResetSession)) == []

    def test_unusable_answer_is_not_stored_or_charged(self, client, headers, gemini, query):
        gemini.reply("Be gentle with yourself.")

        response = client.post(URL, json={"original_thought": "I am a failure"}, headers=headers)

        assert response.status_code == 500
        assert response.json() == {"error": "Failed to process mind reset - please try again"}
        assert query(select(MindResetSession)) == []
        assert query(select(UsageRecord)) == []

    def test_timeout(self, client, headers, gemini, query):
        gemini.timeout()

        response = client.post(URL, json={"original_thought": "I am a failure"}, headers=headers)

        assert response.status_code == 504
        assert response.json() == {"error": "AI request timed out"}
        assert query(select(UsageRecord)) == []

    def test_requires_auth(self, client, gemini):
        assert client.post(URL, json={"original_thought": "hi"}).status_code == 401


class TestListSessions:
    def test_walk_newest_first(self, client, headers, seed, user_id):
        rows = [_session(user_id, i) for i in (0, 1, 1, 2, 5)]
        seed(*rows, _session(uuid4(), 0))

        ids: list[str] = []
        cursor = None
        while True:
            params = {"limit": 2}
            if cursor:
                params["cursor"] = cursor
            body = client.get(URL, params=params, headers=headers).json()
            ids.extend(item["id"] for item in body["items"])
            cursor = body["next_cursor"]
            if cursor is None:
                break

        expected = sorted(rows, key=lambda r: (r.created_at, r.id), reverse=True)
        assert ids == [str(r.id) for r in expected]

    def test_filter_by_type(self, client, headers, seed, user_id):
        seed(_session(user_id, 0, "breathing"), _session(user_id, 1))

        body = client.get(URL, params={"session_type": "breathing"}, headers=headers).json()

        assert [item["session_type"] for item in body["items"]] == ["breathing"]
        assert body["next_cursor"] is None

    def test_invalid_cursor(self, client, headers):
        response = client.get(URL, params={"cursor": "yesterday"}, headers=headers)

        assert response.status_code == 400
        assert response.json() == {"error": "Invalid cursor"}

    def test_database_failure(self, client, headers):
        with patch(
            "sqlalchemy.ext.asyncio.AsyncSession.execute",
            side_effect=OperationalError("SELECT", {}, Exception("db down")),
        ):
            response = client.get(URL, headers=headers)

        assert response.status_code == 500
        assert response.json() == {"error": "Failed to fetch sessions"}
        assert "db down" not in response.text
