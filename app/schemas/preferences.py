"""Affirmation preference and profile schemas."""

from uuid import UUID

from pydantic import BaseModel


class AffirmationPrefsUpdate(BaseModel):
    """Only keys present in the request body are merged."""

    playlist_id: str | int | None = None
    affirmation_index: int | None = None
    auto_play: bool | None = None


class AffirmationPrefsResponse(BaseModel):
    prefs: dict


class SuccessResponse(BaseModel):
    success: bool = True


class MeResponse(BaseModel):
    id: UUID
    email: str | None = None
