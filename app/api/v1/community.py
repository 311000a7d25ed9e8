"""Community forum endpoints."""

import logging
from uuid import UUID

from fastapi import APIRouter, HTTPException, Query, Response, status
from sqlalchemy import delete, func, or_, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from app.core.pagination import (
    Cursor,
    InvalidCursorError,
    apply_keyset,
    build_page,
    clamp_limit,
    parse_cursor,
)
from app.deps import CurrentUser, DbSession
from app.models.community import (
    CommunityComment,
    CommunityLike,
    CommunityPost,
    CommunityReport,
    ReportTargetType,
)
from app.schemas.community import (
    CommentCreate,
    CommentItem,
    CommentPage,
    CommentRead,
    CommentUpdate,
    CountResponse,
    IdBody,
    LikeBody,
    LikeStatus,
    OkResponse,
    PostCreate,
    PostItem,
    PostPage,
    PostRead,
    ReportCreate,
    ReportItem,
)

logger = logging.getLogger(__name__)
router = APIRouter()

POSTS_DEFAULT_LIMIT = 20
POSTS_MAX_LIMIT = 50
COMMENTS_DEFAULT_LIMIT = 50
COMMENTS_MAX_LIMIT = 100


def _cursor_or_400(cursor: str | None) -> Cursor | None:
    try:
        return parse_cursor(cursor)
    except InvalidCursorError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid cursor",
        )


def _server_error(message: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=message,
    )


# =============================================================================
# Posts
# =============================================================================


@router.get("/posts", response_model=PostPage)
async def list_posts(
    user: CurrentUser,
    db: DbSession,
    limit: int | None = None,
    cursor: str | None = None,
    category: str | None = None,
    q: str | None = None,
    mine: bool = False,
) -> dict:
    """List posts newest first, optionally filtered by category, text or author."""
    page_size = clamp_limit(limit, POSTS_DEFAULT_LIMIT, POSTS_MAX_LIMIT)
    position = _cursor_or_400(cursor)

    query = select(CommunityPost)
    if category:
        query = query.where(CommunityPost.category == category)
    if q:
        pattern = f"%{q}%"
        query = query.where(
            or_(CommunityPost.title.ilike(pattern), CommunityPost.content.ilike(pattern))
        )
    if mine:
        query = query.where(CommunityPost.author_id == user.id)
    query = apply_keyset(query, CommunityPost.created_at, CommunityPost.id, position, page_size)

    try:
        result = await db.execute(query)
        rows = result.scalars().all()
    except SQLAlchemyError:
        logger.exception("Failed to list posts")
        raise _server_error("Failed to list posts")

    page = build_page(rows, page_size, "created_at")
    return {
        "items": [PostRead.for_viewer(post, user.id) for post in page.items],
        "next_cursor": page.next_cursor,
    }


@router.get("/posts/{post_id}", response_model=PostItem)
async def get_post(post_id: UUID, user: CurrentUser, db: DbSession) -> dict:
    """Get a post by ID."""
    try:
        post = await db.get(CommunityPost, post_id)
    except SQLAlchemyError:
        logger.exception("Failed to load post %s", post_id)
        raise _server_error("Failed to load post")

    if post is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Post not found",
        )
    return {"item": PostRead.for_viewer(post, user.id)}


@router.post("/posts", response_model=PostItem, status_code=status.HTTP_201_CREATED)
async def create_post(data: PostCreate, user: CurrentUser, db: DbSession) -> dict:
    """Create a new post."""
    title = (data.title or "").strip()
    content = (data.content or "").strip()
    if not title or not content:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Title and content are required",
        )

    post = CommunityPost(
        author_id=user.id,
        title=title,
        content=content,
        is_anonymous=data.is_anonymous,
        category=(data.category or "").strip() or None,
    )
    try:
        db.add(post)
        await db.commit()
        await db.refresh(post)
    except SQLAlchemyError:
        await db.rollback()
        logger.exception("Failed to create post for user %s", user.id)
        raise _server_error("Failed to create post")

    return {"item": PostRead.for_viewer(post, user.id)}


@router.delete("/posts", status_code=status.HTTP_204_NO_CONTENT)
async def delete_post(
    user: CurrentUser,
    db: DbSession,
    post_id: UUID | None = Query(default=None, alias="id"),
    data: IdBody | None = None,
) -> Response:
    """Delete one of the caller's posts; the id comes from the query or the body."""
    if post_id is None and data is not None:
        post_id = data.id
    if post_id is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing id",
        )

    try:
        post = await db.get(CommunityPost, post_id)
        if post is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Post not found",
            )
        if post.author_id != user.id:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Not allowed to delete this post",
            )
        await db.delete(post)
        await db.commit()
    except SQLAlchemyError:
        await db.rollback()
        logger.exception("Failed to delete post %s", post_id)
        raise _server_error("Failed to delete post")

    return Response(status_code=status.HTTP_204_NO_CONTENT)


# =============================================================================
# Comments
# =============================================================================


@router.get("/comments", response_model=CommentPage | CountResponse)
async def list_comments(
    user: CurrentUser,
    db: DbSession,
    post_id: UUID | None = None,
    count: str | None = None,
    limit: int | None = None,
    cursor: str | None = None,
) -> dict:
    """List a post's comments newest first, or only their number with ``count=1``."""
    if post_id is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="post_id is required",
        )

    if count == "1":
        try:
            result = await db.execute(
                select(func.count(CommunityComment.id)).where(CommunityComment.post_id == post_id)
            )
            total = result.scalar_one()
        except SQLAlchemyError:
            logger.exception("Failed to count comments of post %s", post_id)
            raise _server_error("Failed to count comments")
        return {"count": total}

    page_size = clamp_limit(limit, COMMENTS_DEFAULT_LIMIT, COMMENTS_MAX_LIMIT)
    position = _cursor_or_400(cursor)

    query = select(CommunityComment).where(CommunityComment.post_id == post_id)
    query = apply_keyset(query, CommunityComment.created_at, CommunityComment.id, position, page_size)

    try:
        result = await db.execute(query)
        rows = result.scalars().all()
    except SQLAlchemyError:
        logger.exception("Failed to list comments of post %s", post_id)
        raise _server_error("Failed to list comments")

    page = build_page(rows, page_size, "created_at")
    return {
        "items": [CommentRead.model_validate(comment) for comment in page.items],
        "next_cursor": page.next_cursor,
    }


@router.post("/comments", response_model=CommentItem, status_code=status.HTTP_201_CREATED)
async def create_comment(data: CommentCreate, user: CurrentUser, db: DbSession) -> dict:
    """Comment on a post, optionally as a reply to another comment."""
    content = (data.content or "").strip()
    if data.post_id is None or not content:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="post_id and content are required",
        )

    try:
        if await db.get(CommunityPost, data.post_id) is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Post not found",
            )
        if data.parent_comment_id is not None:
            parent = await db.get(CommunityComment, data.parent_comment_id)
            if parent is None or parent.post_id != data.post_id:
                raise HTTPException(
                    status_code=status.HTTP_404_NOT_FOUND,
                    detail="Parent comment not found",
                )

        comment = CommunityComment(
            post_id=data.post_id,
            author_id=user.id,
            content=content,
            parent_comment_id=data.parent_comment_id,
        )
        db.add(comment)
        await db.commit()
        await db.refresh(comment)
    except SQLAlchemyError:
        await db.rollback()
        logger.exception("Failed to create comment on post %s", data.post_id)
        raise _server_error("Failed to create comment")

    return {"item": comment}


@router.patch("/comments", response_model=CommentItem)
async def update_comment(data: CommentUpdate, user: CurrentUser, db: DbSession) -> dict:
    """Edit the content of one of the caller's comments."""
    content = (data.content or "").strip()
    if data.id is None or not content:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="id and content are required",
        )

    try:
        comment = await db.get(CommunityComment, data.id)
        if comment is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Comment not found",
            )
        if comment.author_id != user.id:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Not allowed to edit this comment",
            )
        comment.content = content
        await db.commit()
        await db.refresh(comment)
    except SQLAlchemyError:
        await db.rollback()
        logger.exception("Failed to update comment %s", data.id)
        raise _server_error("Failed to update comment")

    return {"item": comment}


@router.delete("/comments", status_code=status.HTTP_204_NO_CONTENT)
async def delete_comment(
    user: CurrentUser,
    db: DbSession,
    comment_id: UUID | None = Query(default=None, alias="id"),
) -> Response:
    """Delete one of the caller's comments."""
    if comment_id is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing id",
        )

    try:
        comment = await db.get(CommunityComment, comment_id)
        if comment is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Comment not found",
            )
        if comment.author_id != user.id:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Not allowed to delete this comment",
            )
        await db.delete(comment)
        await db.commit()
    except SQLAlchemyError:
        await db.rollback()
        logger.exception("Failed to delete comment %s", comment_id)
        raise _server_error("Failed to delete comment")

    return Response(status_code=status.HTTP_204_NO_CONTENT)


# =============================================================================
# Likes
# =============================================================================


@router.get("/likes", response_model=LikeStatus)
async def get_likes(
    user: CurrentUser,
    db: DbSession,
    post_id: UUID | None = None,
) -> dict:
    """Like count of a post and whether the caller liked it."""
    if post_id is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="post_id is required",
        )

    try:
        result = await db.execute(
            select(func.count(CommunityLike.id)).where(CommunityLike.post_id == post_id)
        )
        total = result.scalar_one()
        result = await db.execute(
            select(CommunityLike.id)
            .where(CommunityLike.post_id == post_id)
            .where(CommunityLike.user_id == user.id)
        )
        liked = result.scalar_one_or_none() is not None
    except SQLAlchemyError:
        logger.exception("Failed to load likes of post %s", post_id)
        raise _server_error("Failed to load likes")

    return {"count": total, "liked": liked}


@router.post("/likes", response_model=OkResponse, status_code=status.HTTP_201_CREATED)
async def like_post(
    data: LikeBody,
    user: CurrentUser,
    db: DbSession,
    response: Response,
) -> dict:
    """Like a post. Liking twice is a no-op answered with 200."""
    if data.post_id is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="post_id is required",
        )

    try:
        if await db.get(CommunityPost, data.post_id) is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Post not found",
            )
        result = await db.execute(
            select(CommunityLike.id)
            .where(CommunityLike.post_id == data.post_id)
            .where(CommunityLike.user_id == user.id)
        )
        if result.scalar_one_or_none() is not None:
            response.status_code = status.HTTP_200_OK
            return {"ok": True}

        db.add(CommunityLike(post_id=data.post_id, user_id=user.id))
        await db.commit()
    except IntegrityError:
        # Concurrent like by the same user
        await db.rollback()
        response.status_code = status.HTTP_200_OK
        return {"ok": True}
    except SQLAlchemyError:
        await db.rollback()
        logger.exception("Failed to like post %s", data.post_id)
        raise _server_error("Failed to like post")

    return {"ok": True}


@router.delete("/likes", response_model=OkResponse)
async def unlike_post(data: LikeBody, user: CurrentUser, db: DbSession) -> dict:
    """Remove the caller's like from a post."""
    if data.post_id is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="post_id is required",
        )

    try:
        await db.execute(
            delete(CommunityLike)
            .where(CommunityLike.post_id == data.post_id)
            .where(CommunityLike.user_id == user.id)
        )
        await db.commit()
    except SQLAlchemyError:
        await db.rollback()
        logger.exception("Failed to unlike post %s", data.post_id)
        raise _server_error("Failed to unlike post")

    return {"ok": True}


# =============================================================================
# Reports
# =============================================================================


@router.post("/reports", response_model=ReportItem, status_code=status.HTTP_201_CREATED)
async def create_report(data: ReportCreate, user: CurrentUser, db: DbSession) -> dict:
    """Report a post, comment or user to the moderators."""
    target_type = (data.target_type or "").strip()
    target_id = (data.target_id or "").strip()
    reason = (data.reason or "").strip()
    if not target_type or not target_id or not reason:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="target_type, target_id, and reason are required",
        )
    if target_type not in {t.value for t in ReportTargetType}:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="target_type must be one of post, comment, user",
        )

    report = CommunityReport(
        reporter_id=user.id,
        target_type=target_type,
        target_id=target_id,
        reason=reason,
    )
    try:
        db.add(report)
        await db.commit()
        await db.refresh(report)
    except SQLAlchemyError:
        await db.rollback()
        logger.exception("Failed to submit report for user %s", user.id)
        raise _server_error("Failed to submit report")

    return {"item": report}
