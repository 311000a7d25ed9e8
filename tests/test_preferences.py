"""Tests for affirmation preferences, the health check and error rendering."""

from unittest.mock import patch

from fastapi.testclient import TestClient
from sqlalchemy import select
from sqlalchemy.exc import OperationalError

from app.main import app
from app.models import Profile

PREFS_URL = "/api/v1/mind-reset/affirmations/prefs"


class TestAffirmationPrefs:
    def test_empty_without_profile(self, client, headers):
        response = client.get(PREFS_URL, headers=headers)

        assert response.status_code == 200
        assert response.json() == {"prefs": {}}

    def test_put_creates_profile(self, client, headers, query, user_id):
        response = client.put(
            PREFS_URL,
            json={"playlist_id": "calm", "affirmation_index": 2, "auto_play": True},
            headers=headers,
        )

        assert response.status_code == 200
        assert response.json() == {"success": True}
        [profile] = query(select(Profile).where(Profile.id == user_id))
        assert profile.subscription_tier == "foundation"
        assert profile.ui_preferences == {
            "affirmations": {"playlist_id": "calm", "affirmation_index": 2, "auto_play": True}
        }

    def test_partial_update_merges(self, client, headers, seed, user_id):
        seed(Profile(
            id=user_id,
            ui_preferences={
                "theme": "dark",
                "affirmations": {"playlist_id": 7, "affirmation_index": 1, "auto_play": False},
            },
        ))

        client.put(PREFS_URL, json={"affirmation_index": 5}, headers=headers)
        response = client.get(PREFS_URL, headers=headers)

        assert response.json() == {
            "prefs": {"playlist_id": 7, "affirmation_index": 5, "auto_play": False}
        }

    def test_other_preferences_are_kept(self, client, headers, seed, query, user_id):
        seed(Profile(id=user_id, ui_preferences={"theme": "dark"}))

        client.put(PREFS_URL, json={"auto_play": True}, headers=headers)

        [profile] = query(select(Profile).where(Profile.id == user_id))
        assert profile.ui_preferences == {"theme": "dark", "affirmations": {"auto_play": True}}

    def test_explicit_null_is_stored(self, client, headers, seed, user_id):
        seed(Profile(id=user_id, ui_preferences={"affirmations": {"playlist_id": "calm"}}))

        client.put(PREFS_URL, json={"playlist_id": None}, headers=headers)

        assert client.get(PREFS_URL, headers=headers).json() == {"prefs": {"playlist_id": None}}

    def test_non_dict_prefs_read_as_empty(self, client, headers, seed, user_id):
        seed(Profile(id=user_id, ui_preferences={"affirmations": ["broken"]}))

        assert client.get(PREFS_URL, headers=headers).json() == {"prefs": {}}

    def test_invalid_body(self, client, headers):
        response = client.put(PREFS_URL, json={"affirmation_index": "first"}, headers=headers)

        assert response.status_code == 400
        assert response.json()["error"] == "Invalid request"

    def test_database_failure(self, client, headers):
        with patch(
            "sqlalchemy.ext.asyncio.AsyncSession.execute",
            side_effect=OperationalError("SELECT", {}, Exception("db down")),
        ):
            response = client.get(PREFS_URL, headers=headers)

        assert response.status_code == 500
        assert response.json() == {"error": "Failed to load preferences"}


class TestMe:
    def test_returns_identity(self, client, headers, user_id):
        response = client.get("/api/v1/me", headers=headers)

        assert response.status_code == 200
        assert response.json() == {"id": str(user_id), "email": "user@example.com"}


class TestApp:
    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}

    def test_unknown_route_uses_error_shape(self, client):
        response = client.get("/api/v1/nope")

        assert response.status_code == 404
        assert response.json() == {"error": "Not Found"}

    def test_unhandled_error_is_generic(self, client, headers):
        with patch(
            "app.api.v1.me.MeResponse",
            side_effect=RuntimeError("boom"),
        ):
            response = TestClient(app, raise_server_exceptions=False).get(
                "/api/v1/me", headers=headers
            )

        assert response.status_code == 500
        assert response.json() == {"error": "Internal server error"}
