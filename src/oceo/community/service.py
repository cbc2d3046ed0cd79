"""Member community: posts, threaded comments and likes.

Rules:
- Creating a post earns 10 points, a comment 5
- Post authors edit their own posts and comments; admins may delete any
- Pinned posts lead the feed, newest first within each group
- A reply must belong to the same post as its parent comment
- likes_count and comments_count are kept on the post row
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import structlog
from sqlalchemy import delete, func, select

from oceo.db.base import utcnow
from oceo.db.models import Achievement, CommunityPost, Course, PostComment, PostLike, User
from oceo.gamification.achievement_service import check_and_award_achievements
from oceo.gamification.points_service import award_points

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()

POST_TYPES = ("discussion", "question", "win", "resource")
POST_POINTS = 10
COMMENT_POINTS = 5


@dataclass
class PostRow:
    post: CommunityPost
    author: User
    course: Course | None = None


@dataclass
class CommentNode:
    comment: PostComment
    author: User
    replies: list[CommentNode] = field(default_factory=list)


@dataclass
class CreatedPost:
    post: CommunityPost
    achievements: list[Achievement] = field(default_factory=list)


def _check_post_type(post_type: str) -> None:
    if post_type not in POST_TYPES:
        msg = f"Invalid post type. Must be one of: {', '.join(POST_TYPES)}"
        raise ValueError(msg)


# ---------------------------------------------------------------------------
# Posts
# ---------------------------------------------------------------------------


async def get_post(db: AsyncSession, post_id: int) -> CommunityPost | None:
    return await db.get(CommunityPost, post_id)


async def list_posts(
    db: AsyncSession,
    limit: int = 20,
    offset: int = 0,
    post_type: str | None = None,
    course_id: int | None = None,
    user_id: int | None = None,
) -> list[PostRow]:
    """Feed with author and course, pinned first then newest."""
    stmt = (
        select(CommunityPost, User, Course)
        .join(User, User.id == CommunityPost.user_id)
        .outerjoin(Course, Course.id == CommunityPost.course_id)
    )
    if post_type:
        stmt = stmt.where(CommunityPost.post_type == post_type)
    if course_id is not None:
        stmt = stmt.where(CommunityPost.course_id == course_id)
    if user_id is not None:
        stmt = stmt.where(CommunityPost.user_id == user_id)
    stmt = stmt.order_by(
        CommunityPost.is_pinned.desc(), CommunityPost.created_at.desc(), CommunityPost.id.desc()
    ).limit(limit).offset(offset)
    result = await db.execute(stmt)
    return [PostRow(row.CommunityPost, row.User, row.Course) for row in result]


async def get_post_row(db: AsyncSession, post_id: int) -> PostRow | None:
    result = await db.execute(
        select(CommunityPost, User, Course)
        .join(User, User.id == CommunityPost.user_id)
        .outerjoin(Course, Course.id == CommunityPost.course_id)
        .where(CommunityPost.id == post_id)
    )
    row = result.first()
    return PostRow(row.CommunityPost, row.User, row.Course) if row else None


async def create_post(
    db: AsyncSession,
    user_id: int,
    title: str,
    content: str,
    post_type: str = "discussion",
    course_id: int | None = None,
) -> CreatedPost:
    """
    Publish a post, award its points and any achievements it unlocks.

    Raises:
        ValueError: Unknown post type or course.
    """
    _check_post_type(post_type)
    if course_id is not None and await db.get(Course, course_id) is None:
        msg = "Course not found"
        raise ValueError(msg)

    now = utcnow()
    post = CommunityPost(
        user_id=user_id,
        course_id=course_id,
        title=title,
        content=content,
        post_type=post_type,
        created_at=now,
        updated_at=now,
    )
    db.add(post)
    await db.flush()

    await award_points(db, user_id, POST_POINTS, "post_created", reference_type="post", reference_id=post.id)
    achievements = await check_and_award_achievements(db, user_id)
    logger.info("community_post_created", post_id=post.id, user_id=user_id, post_type=post_type)
    return CreatedPost(post=post, achievements=achievements)


async def update_post(
    db: AsyncSession,
    post: CommunityPost,
    title: str | None = None,
    content: str | None = None,
    post_type: str | None = None,
) -> CommunityPost:
    """
    Raises:
        ValueError: Unknown post type.
    """
    if post_type is not None:
        _check_post_type(post_type)
        post.post_type = post_type
    if title is not None:
        post.title = title
    if content is not None:
        post.content = content
    post.updated_at = utcnow()
    await db.flush()
    return post


async def delete_post(db: AsyncSession, post: CommunityPost) -> None:
    """Delete a post with its comments and likes."""
    await db.execute(delete(PostLike).where(PostLike.post_id == post.id))
    await db.execute(delete(PostComment).where(PostComment.post_id == post.id))
    await db.delete(post)
    await db.flush()
    logger.info("community_post_deleted", post_id=post.id)


async def pin_post(db: AsyncSession, post: CommunityPost, is_pinned: bool) -> CommunityPost:
    post.is_pinned = is_pinned
    post.updated_at = utcnow()
    await db.flush()
    logger.info("community_post_pinned", post_id=post.id, is_pinned=is_pinned)
    return post


# ---------------------------------------------------------------------------
# Comments
# ---------------------------------------------------------------------------


async def get_comment(db: AsyncSession, comment_id: int) -> PostComment | None:
    return await db.get(PostComment, comment_id)


async def list_comments(db: AsyncSession, post_id: int) -> list[CommentNode]:
    """Top-level comments oldest first, each with its replies."""
    result = await db.execute(
        select(PostComment, User)
        .join(User, User.id == PostComment.user_id)
        .where(PostComment.post_id == post_id)
        .order_by(PostComment.created_at, PostComment.id)
    )
    nodes = {row.PostComment.id: CommentNode(row.PostComment, row.User) for row in result}
    roots: list[CommentNode] = []
    for node in nodes.values():
        parent = nodes.get(node.comment.parent_id) if node.comment.parent_id else None
        if parent is None:
            roots.append(node)
        else:
            parent.replies.append(node)
    return roots


async def create_comment(
    db: AsyncSession,
    post: CommunityPost,
    user_id: int,
    content: str,
    parent_id: int | None = None,
) -> PostComment:
    """
    Raises:
        ValueError: The parent comment is missing or on another post.
    """
    if parent_id is not None:
        parent = await db.get(PostComment, parent_id)
        if parent is None or parent.post_id != post.id:
            msg = "Parent comment not found on this post"
            raise ValueError(msg)
        # Threads are one level deep: a reply to a reply joins the top comment.
        parent_id = parent.parent_id or parent.id

    now = utcnow()
    comment = PostComment(
        post_id=post.id,
        user_id=user_id,
        parent_id=parent_id,
        content=content,
        created_at=now,
        updated_at=now,
    )
    db.add(comment)
    post.comments_count += 1
    post.updated_at = now
    await db.flush()

    await award_points(
        db, user_id, COMMENT_POINTS, "comment_created", reference_type="comment", reference_id=comment.id
    )
    logger.info("community_comment_created", comment_id=comment.id, post_id=post.id, user_id=user_id)
    return comment


async def update_comment(db: AsyncSession, comment: PostComment, content: str) -> PostComment:
    comment.content = content
    comment.updated_at = utcnow()
    await db.flush()
    return comment


async def delete_comment(db: AsyncSession, comment: PostComment) -> int:
    """Delete a comment and its replies. Returns how many rows went."""
    reply_ids = (await db.execute(
        select(PostComment.id).where(PostComment.parent_id == comment.id)
    )).scalars().all()
    removed = len(reply_ids) + 1
    if reply_ids:
        await db.execute(delete(PostComment).where(PostComment.id.in_(reply_ids)))

    post = await db.get(CommunityPost, comment.post_id)
    await db.delete(comment)
    if post is not None:
        post.comments_count = max(post.comments_count - removed, 0)
        post.updated_at = utcnow()
    await db.flush()
    logger.info("community_comment_deleted", comment_id=comment.id, removed=removed)
    return removed


# ---------------------------------------------------------------------------
# Likes
# ---------------------------------------------------------------------------


async def is_liked_by(db: AsyncSession, post_id: int, user_id: int) -> bool:
    result = await db.execute(
        select(PostLike.id).where(PostLike.post_id == post_id, PostLike.user_id == user_id).limit(1)
    )
    return result.scalar_one_or_none() is not None


async def like_post(db: AsyncSession, post: CommunityPost, user_id: int) -> bool:
    """False when the user already liked the post."""
    if await is_liked_by(db, post.id, user_id):
        return False
    db.add(PostLike(post_id=post.id, user_id=user_id, created_at=utcnow()))
    post.likes_count += 1
    await db.flush()
    return True


async def unlike_post(db: AsyncSession, post: CommunityPost, user_id: int) -> bool:
    """False when there was no like to remove."""
    result = await db.execute(
        delete(PostLike).where(PostLike.post_id == post.id, PostLike.user_id == user_id)
    )
    if not result.rowcount:
        return False
    post.likes_count = max(post.likes_count - 1, 0)
    await db.flush()
    return True


async def list_likers(db: AsyncSession, post_id: int) -> list[User]:
    result = await db.execute(
        select(User)
        .join(PostLike, PostLike.user_id == User.id)
        .where(PostLike.post_id == post_id)
        .order_by(PostLike.created_at, PostLike.id)
    )
    return list(result.scalars().all())


# ---------------------------------------------------------------------------
# Stats
# ---------------------------------------------------------------------------


async def get_community_stats(db: AsyncSession) -> dict[str, int]:
    posts = (await db.execute(select(func.count(CommunityPost.id)))).scalar() or 0
    comments = (await db.execute(select(func.count(PostComment.id)))).scalar() or 0
    pinned = (await db.execute(
        select(func.count(CommunityPost.id)).where(CommunityPost.is_pinned.is_(True))
    )).scalar() or 0
    return {"total_posts": posts, "total_comments": comments, "pinned_posts": pinned}


async def get_user_community_stats(db: AsyncSession, user_id: int) -> dict[str, int]:
    posts = (await db.execute(
        select(func.count(CommunityPost.id)).where(CommunityPost.user_id == user_id)
    )).scalar() or 0
    comments = (await db.execute(
        select(func.count(PostComment.id)).where(PostComment.user_id == user_id)
    )).scalar() or 0
    likes = (await db.execute(
        select(func.count(PostLike.id))
        .join(CommunityPost, CommunityPost.id == PostLike.post_id)
        .where(CommunityPost.user_id == user_id)
    )).scalar() or 0
    return {"posts_created": posts, "comments_created": comments, "likes_received": likes}
