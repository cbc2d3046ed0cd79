"""Community API: posts, comments, likes and moderation."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from oceo.auth.dependencies import get_current_user, require_admin
from oceo.auth.service import ADMIN_ROLES
from oceo.community import service
from oceo.community.schemas import (
    AuthorResponse,
    CommentCreateRequest,
    CommentListResponse,
    CommentResponse,
    CommentUpdateRequest,
    CommunityStatsResponse,
    LikeResponse,
    LikersResponse,
    PinRequest,
    PostCourseResponse,
    PostCreatedResponse,
    PostCreateRequest,
    PostDetailResponse,
    PostListResponse,
    PostResponse,
    PostUpdateRequest,
)
from oceo.database import get_session
from oceo.db.models import CommunityPost, PostComment, User

router = APIRouter(prefix="/api/v1/community", tags=["Community"])


def _post_response(row: service.PostRow) -> PostResponse:
    post = row.post
    return PostResponse(
        id=post.id,
        user_id=post.user_id,
        course_id=post.course_id,
        title=post.title,
        content=post.content,
        post_type=post.post_type,
        is_pinned=post.is_pinned,
        likes_count=post.likes_count,
        comments_count=post.comments_count,
        created_at=post.created_at,
        updated_at=post.updated_at,
        user=AuthorResponse.model_validate(row.author),
        course=PostCourseResponse.model_validate(row.course) if row.course else None,
    )


def _comment_response(node: service.CommentNode) -> CommentResponse:
    comment = node.comment
    return CommentResponse(
        id=comment.id,
        post_id=comment.post_id,
        user_id=comment.user_id,
        parent_id=comment.parent_id,
        content=comment.content,
        created_at=comment.created_at,
        updated_at=comment.updated_at,
        user=AuthorResponse.model_validate(node.author),
        replies=[_comment_response(reply) for reply in node.replies],
    )


async def _post_or_404(db: AsyncSession, post_id: int) -> CommunityPost:
    post = await service.get_post(db, post_id)
    if post is None:
        raise HTTPException(status_code=404, detail="Post not found")
    return post


async def _own_post(db: AsyncSession, post_id: int, user: User) -> CommunityPost:
    """Posts owned by someone else read as missing."""
    post = await service.get_post(db, post_id)
    if post is None or post.user_id != user.id:
        raise HTTPException(status_code=404, detail="Post not found")
    return post


async def _own_comment(db: AsyncSession, comment_id: int, user: User, allow_admin: bool = False) -> PostComment:
    comment = await service.get_comment(db, comment_id)
    if comment is None or (comment.user_id != user.id and not (allow_admin and user.role in ADMIN_ROLES)):
        raise HTTPException(status_code=404, detail="Comment not found")
    return comment


# ── Posts ──


@router.get("/posts", response_model=PostListResponse)
async def list_posts(
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    type: str | None = Query(None),  # noqa: A002
    course_id: int | None = Query(None),
    mine: bool = Query(False),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    rows = await service.list_posts(
        db,
        limit=limit,
        offset=offset,
        post_type=type,
        course_id=course_id,
        user_id=user.id if mine else None,
    )
    return PostListResponse(posts=[_post_response(row) for row in rows])


@router.post("/posts", response_model=PostCreatedResponse, status_code=201)
async def create_post(
    body: PostCreateRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    try:
        created = await service.create_post(
            db,
            user.id,
            title=body.title,
            content=body.content,
            post_type=body.post_type,
            course_id=body.course_id,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    await db.commit()
    row = await service.get_post_row(db, created.post.id)
    return PostCreatedResponse(
        post=_post_response(row),
        points_awarded=service.POST_POINTS,
        new_achievements=[a.slug for a in created.achievements],
    )


@router.get("/posts/{post_id}", response_model=PostDetailResponse)
async def get_post(
    post_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    row = await service.get_post_row(db, post_id)
    if row is None:
        raise HTTPException(status_code=404, detail="Post not found")
    comments = await service.list_comments(db, post_id)
    return PostDetailResponse(
        post=_post_response(row),
        comments=[_comment_response(node) for node in comments],
        liked=await service.is_liked_by(db, post_id, user.id),
    )


@router.patch("/posts/{post_id}", response_model=PostResponse)
async def update_post(
    post_id: int,
    body: PostUpdateRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    post = await _own_post(db, post_id, user)
    try:
        await service.update_post(db, post, title=body.title, content=body.content, post_type=body.post_type)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    await db.commit()
    return _post_response(await service.get_post_row(db, post_id))


@router.delete("/posts/{post_id}")
async def delete_post(
    post_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Authors delete their own posts; admins moderate any."""
    if user.role in ADMIN_ROLES:
        post = await _post_or_404(db, post_id)
    else:
        post = await _own_post(db, post_id, user)
    await service.delete_post(db, post)
    await db.commit()
    return {"success": True}


@router.patch("/posts/{post_id}/pin", response_model=PostResponse)
async def pin_post(
    post_id: int,
    body: PinRequest,
    _admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
):
    post = await _post_or_404(db, post_id)
    await service.pin_post(db, post, body.is_pinned)
    await db.commit()
    return _post_response(await service.get_post_row(db, post_id))


# ── Comments ──


@router.get("/posts/{post_id}/comments", response_model=CommentListResponse)
async def list_comments(
    post_id: int,
    _user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    await _post_or_404(db, post_id)
    nodes = await service.list_comments(db, post_id)
    return CommentListResponse(comments=[_comment_response(node) for node in nodes])


@router.post("/posts/{post_id}/comments", response_model=CommentResponse, status_code=201)
async def create_comment(
    post_id: int,
    body: CommentCreateRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    post = await _post_or_404(db, post_id)
    try:
        comment = await service.create_comment(db, post, user.id, body.content, parent_id=body.parent_id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    await db.commit()
    return _comment_response(service.CommentNode(comment, user))


@router.patch("/comments/{comment_id}", response_model=CommentResponse)
async def update_comment(
    comment_id: int,
    body: CommentUpdateRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    comment = await _own_comment(db, comment_id, user)
    await service.update_comment(db, comment, body.content)
    await db.commit()
    return _comment_response(service.CommentNode(comment, user))


@router.delete("/comments/{comment_id}")
async def delete_comment(
    comment_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    comment = await _own_comment(db, comment_id, user, allow_admin=True)
    removed = await service.delete_comment(db, comment)
    await db.commit()
    return {"success": True, "removed": removed}


# ── Likes ──


@router.post("/posts/{post_id}/like", response_model=LikeResponse)
async def like_post(
    post_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    post = await _post_or_404(db, post_id)
    success = await service.like_post(db, post, user.id)
    await db.commit()
    return LikeResponse(success=success, liked=True, likes_count=post.likes_count)


@router.delete("/posts/{post_id}/like", response_model=LikeResponse)
async def unlike_post(
    post_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    post = await _post_or_404(db, post_id)
    success = await service.unlike_post(db, post, user.id)
    await db.commit()
    return LikeResponse(success=success, liked=False, likes_count=post.likes_count)


@router.get("/posts/{post_id}/likes", response_model=LikersResponse)
async def list_likers(
    post_id: int,
    _user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    await _post_or_404(db, post_id)
    users = await service.list_likers(db, post_id)
    return LikersResponse(users=[AuthorResponse.model_validate(u) for u in users])


# ── Stats ──


@router.get("/stats", response_model=CommunityStatsResponse)
async def community_stats(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Community totals plus the caller's own activity."""
    totals = await service.get_community_stats(db)
    mine = await service.get_user_community_stats(db, user.id)
    return CommunityStatsResponse(**totals, **mine)
