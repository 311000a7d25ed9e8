"""Tests for keyset pagination helpers."""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from uuid import UUID, uuid4

import pytest
from sqlalchemy import select

from app.core.pagination import (
    Cursor,
    InvalidCursorError,
    apply_keyset,
    build_page,
    clamp_limit,
    parse_cursor,
)
from app.models.community import CommunityPost


@dataclass
class Row:
    id: UUID
    created_at: datetime


T0 = datetime(2026, 3, 10, 12, 0, 0, tzinfo=timezone.utc)


def _rows(*offsets_minutes: int) -> list[Row]:
    return [Row(id=uuid4(), created_at=T0 - timedelta(minutes=m)) for m in offsets_minutes]


# ─── clamp_limit ─────────────────────────────────────────────────────────────

class TestClampLimit:
    def test_default_when_missing(self):
        assert clamp_limit(None, 20, 50) == 20

    def test_ceiling_is_enforced(self):
        assert clamp_limit(500, 20, 50) == 50

    def test_lower_bound(self):
        assert clamp_limit(0, 20, 50) == 1
        assert clamp_limit(-5, 20, 50) == 1

    def test_value_inside_range_is_kept(self):
        assert clamp_limit(7, 20, 50) == 7


# ─── Cursor encoding ─────────────────────────────────────────────────────────

class TestCursor:
    def test_plain_timestamp(self):
        cursor = Cursor.decode("2026-03-10T12:00:00+00:00")
        assert cursor.timestamp == T0
        assert cursor.id is None

    def test_timestamp_with_id(self):
        row_id = uuid4()
        cursor = Cursor.decode(f"2026-03-10T12:00:00+00:00|{row_id}")
        assert cursor.timestamp == T0
        assert cursor.id == row_id

    def test_encode_matches_decode(self):
        row_id = uuid4()
        encoded = Cursor(timestamp=T0, id=row_id).encode()
        assert encoded == f"{T0.isoformat()}|{row_id}"
        assert Cursor.decode(encoded) == Cursor(timestamp=T0, id=row_id)

    def test_plus_sign_turned_into_space(self):
        """An unescaped "+" offset arrives as a space after query decoding."""
        cursor = Cursor.decode("2026-03-10T12:00:00 00:00")
        assert cursor.timestamp == T0

    @pytest.mark.parametrize("raw", ["yesterday", "2026-13-45", "2026-03-10T12:00:00|not-a-uuid", "   "])
    def test_invalid(self, raw):
        with pytest.raises(InvalidCursorError):
            Cursor.decode(raw)

    def test_parse_cursor_optional(self):
        assert parse_cursor(None) is None
        assert parse_cursor("") is None

    def test_invalid_cursor_is_a_value_error(self):
        assert issubclass(InvalidCursorError, ValueError)


# ─── build_page ──────────────────────────────────────────────────────────────

class TestBuildPage:
    def test_last_page_has_no_cursor(self):
        rows = _rows(0, 1, 2)
        page = build_page(rows, 3, "created_at")
        assert page.items == rows
        assert page.next_cursor is None

    def test_empty(self):
        page = build_page([], 10, "created_at")
        assert page.items == []
        assert page.next_cursor is None

    def test_extra_row_is_trimmed(self):
        rows = _rows(0, 1, 2, 3)
        page = build_page(rows, 3, "created_at")
        assert page.items == rows[:3]
        assert page.next_cursor == rows[2].created_at.isoformat()

    def test_tie_at_boundary_carries_id(self):
        rows = _rows(0, 1, 2, 2)
        page = build_page(rows, 3, "created_at")
        assert page.next_cursor == f"{rows[2].created_at.isoformat()}|{rows[2].id}"


# ─── apply_keyset ────────────────────────────────────────────────────────────

class TestApplyKeyset:
    def _sql(self, query) -> str:
        return str(query.compile(compile_kwargs={"literal_binds": False}))

    def test_no_cursor_orders_and_fetches_one_extra(self):
        query = apply_keyset(
            select(CommunityPost), CommunityPost.created_at, CommunityPost.id, None, 20
        )
        sql = self._sql(query)
        assert "ORDER BY community_posts.created_at DESC, community_posts.id DESC" in sql
        assert "WHERE" not in sql
        assert 21 in query.compile().params.values()

    def test_plain_cursor_is_strictly_older(self):
        query = apply_keyset(
            select(CommunityPost), CommunityPost.created_at, CommunityPost.id, Cursor(T0), 5
        )
        sql = self._sql(query)
        assert "community_posts.created_at <" in sql
        assert "community_posts.id <" not in sql

    def test_id_cursor_breaks_ties(self):
        query = apply_keyset(
            select(CommunityPost),
            CommunityPost.created_at,
            CommunityPost.id,
            Cursor(T0, uuid4()),
            5,
        )
        sql = self._sql(query)
        assert "community_posts.created_at <" in sql
        assert "community_posts.created_at =" in sql
        assert "community_posts.id <" in sql
