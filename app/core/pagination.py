"""Keyset (cursor) pagination over a timestamp column.

Rows are ordered newest first by ``(timestamp, id)``. A cursor is the ISO-8601
timestamp of the last row on the previous page. When the row right after the
page boundary shares that timestamp, the cursor also carries the row id
(``<timestamp>|<id>``) so the next page resumes exactly after it instead of
skipping the tied rows.
"""

from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Generic, TypeVar
from uuid import UUID

from sqlalchemy import Select, and_, or_

T = TypeVar("T")

CURSOR_ID_SEPARATOR = "|"


class InvalidCursorError(ValueError):
    """Raised when a client-supplied cursor cannot be decoded."""


@dataclass(frozen=True)
class Cursor:
    """Decoded position in a descending ``(timestamp, id)`` ordering."""

    timestamp: datetime
    id: UUID | None = None

    def encode(self) -> str:
        value = self.timestamp.isoformat()
        if self.id is not None:
            value = f"{value}{CURSOR_ID_SEPARATOR}{self.id}"
        return value

    @classmethod
    def decode(cls, raw: str) -> "Cursor":
        raw = raw.strip()
        if not raw:
            raise InvalidCursorError("Empty cursor")

        id_part: str | None = None
        if CURSOR_ID_SEPARATOR in raw:
            raw, id_part = raw.rsplit(CURSOR_ID_SEPARATOR, 1)

        try:
            timestamp = datetime.fromisoformat(raw)
        except ValueError:
            # Query strings turn an unescaped "+" offset into a space
            try:
                timestamp = datetime.fromisoformat(raw.replace(" ", "+"))
            except ValueError as e:
                raise InvalidCursorError(f"Invalid cursor timestamp: {raw!r}") from e

        row_id = None
        if id_part is not None:
            try:
                row_id = UUID(id_part)
            except ValueError as e:
                raise InvalidCursorError(f"Invalid cursor id: {id_part!r}") from e

        return cls(timestamp=timestamp, id=row_id)


@dataclass
class Page(Generic[T]):
    """One page of results plus the cursor for the next one."""

    items: list[T] = field(default_factory=list)
    next_cursor: str | None = None


def clamp_limit(requested: int | None, default: int, ceiling: int) -> int:
    """Server-side page size: the client value bounded to ``[1, ceiling]``."""
    if requested is None:
        requested = default
    return max(1, min(requested, ceiling))


def parse_cursor(raw: str | None) -> Cursor | None:
    """Decode an optional cursor query parameter."""
    if raw is None or not raw.strip():
        return None
    return Cursor.decode(raw)


def apply_keyset(
    query: Select,
    timestamp_column: Any,
    id_column: Any,
    cursor: Cursor | None,
    limit: int,
) -> Select:
    """Order newest first, start strictly after the cursor, fetch one extra row."""
    if cursor is not None:
        if cursor.id is None:
            query = query.where(timestamp_column < cursor.timestamp)
        else:
            query = query.where(
                or_(
                    timestamp_column < cursor.timestamp,
                    and_(timestamp_column == cursor.timestamp, id_column < cursor.id),
                )
            )

    return query.order_by(timestamp_column.desc(), id_column.desc()).limit(limit + 1)


def build_page(
    rows: Sequence[T],
    limit: int,
    timestamp_attr: str,
    id_attr: str = "id",
) -> Page[T]:
    """Trim ``limit + 1`` rows to a page and derive its next cursor."""
    items = list(rows[:limit])
    if len(rows) <= limit:
        return Page(items=items, next_cursor=None)

    last = items[-1]
    following = rows[limit]
    last_ts = getattr(last, timestamp_attr)

    if getattr(following, timestamp_attr) == last_ts:
        cursor = Cursor(timestamp=last_ts, id=getattr(last, id_attr))
    else:
        cursor = Cursor(timestamp=last_ts)

    return Page(items=items, next_cursor=cursor.encode())
