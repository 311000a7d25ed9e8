"""Community forum schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from app.models.community import CommunityPost


class PostCreate(BaseModel):
    """Schema for creating a post. Title and content are checked by the route."""

    title: str | None = None
    content: str | None = None
    is_anonymous: bool = False
    category: str | None = None


class PostRead(BaseModel):
    """Post as seen by a given viewer.

    ``author_id`` is hidden on anonymous posts unless the viewer wrote them.
    """

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    author_id: UUID | None = None
    title: str
    content: str
    category: str | None = None
    is_anonymous: bool
    created_at: datetime
    updated_at: datetime

    @classmethod
    def for_viewer(cls, post: CommunityPost, viewer_id: UUID) -> "PostRead":
        item = cls.model_validate(post)
        if post.is_anonymous and post.author_id != viewer_id:
            item.author_id = None
        return item


class PostItem(BaseModel):
    item: PostRead


class PostPage(BaseModel):
    items: list[PostRead]
    next_cursor: str | None = None


class IdBody(BaseModel):
    """Optional JSON body carrying the target id for deletes."""

    id: UUID | None = None


class CommentCreate(BaseModel):
    post_id: UUID | None = None
    content: str | None = None
    parent_comment_id: UUID | None = None


class CommentUpdate(BaseModel):
    id: UUID | None = None
    content: str | None = None


class CommentRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    post_id: UUID
    author_id: UUID
    parent_comment_id: UUID | None = None
    content: str
    created_at: datetime
    updated_at: datetime


class CommentItem(BaseModel):
    item: CommentRead


class CommentPage(BaseModel):
    items: list[CommentRead]
    next_cursor: str | None = None


class CountResponse(BaseModel):
    count: int


class LikeBody(BaseModel):
    post_id: UUID | None = None


class LikeStatus(BaseModel):
    count: int
    liked: bool


class OkResponse(BaseModel):
    ok: bool = True


class ReportCreate(BaseModel):
    target_type: str | None = None
    target_id: str | None = None
    reason: str | None = None


class ReportRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    reporter_id: UUID
    target_type: str
    target_id: str
    reason: str
    status: str
    created_at: datetime


class ReportItem(BaseModel):
    item: ReportRead
