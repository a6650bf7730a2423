"""Feed endpoints: community posts and comments on posts."""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, Query, status
from sqlalchemy import asc, desc, func, select
from sqlalchemy.orm import Session

from huddle.api.dependencies import OptionalCallerIdDep, SessionDep
from huddle.core.settings import settings
from huddle.models import Comment, CommunityMember, Post, PostLike, PostMedia, Profile
from huddle.schemas.feed import (
    CommentListResponse,
    CommentResponse,
    FeedAuthor,
    FeedPostResponse,
    FeedResponse,
)
from huddle.schemas.profile import ProfileSummary
from huddle.services.query import QueryTier, first_successful, run_tier

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/feed", tags=["feed"])

_POST_COLUMNS = (
    Post.id,
    Post.author_id,
    Post.community_id,
    Post.content,
    Post.like_count,
    Post.created_at,
)


def _comment_counts():
    return (
        select(Comment.post_id, func.count(Comment.id).label("comments"))
        .group_by(Comment.post_id)
        .subquery()
    )


def fetch_joined_posts(
    db: Session, community_id: str, offset: int, limit: int
) -> list[FeedPostResponse]:
    """A page of community posts with author, author role, comment count and image."""
    counts = _comment_counts()
    first_image = (
        select(PostMedia.file_url)
        .where(PostMedia.post_id == Post.id)
        .order_by(asc(PostMedia.created_at))
        .limit(1)
        .scalar_subquery()
    )
    stmt = (
        select(
            Post,
            Profile,
            CommunityMember.role,
            func.coalesce(counts.c.comments, 0),
            first_image,
        )
        .outerjoin(Profile, Profile.id == Post.author_id)
        .outerjoin(
            CommunityMember,
            (CommunityMember.profile_id == Post.author_id)
            & (CommunityMember.community_id == community_id),
        )
        .outerjoin(counts, counts.c.post_id == Post.id)
        .where(Post.community_id == community_id)
        .order_by(desc(Post.created_at))
        .offset(offset)
        .limit(limit)
    )
    posts = []
    for post, author, role, comments, image_url in db.execute(stmt).all():
        item = FeedPostResponse.model_validate(post)
        if author is not None:
            item.user = FeedAuthor(
                id=author.id,
                username=author.username,
                avatar_url=author.avatar_url,
                role=role,
            )
        item.comment_count = int(comments)
        item.image_url = image_url
        posts.append(item)
    return posts


def fetch_plain_posts(
    db: Session, community_id: str, offset: int, limit: int
) -> list[FeedPostResponse]:
    """A page of community posts with comment counts and no other joins."""
    counts = _comment_counts()
    stmt = (
        select(*_POST_COLUMNS, func.coalesce(counts.c.comments, 0).label("comment_count"))
        .outerjoin(counts, counts.c.post_id == Post.id)
        .where(Post.community_id == community_id)
        .order_by(desc(Post.created_at))
        .offset(offset)
        .limit(limit)
    )
    return [FeedPostResponse.model_validate(dict(row._mapping)) for row in db.execute(stmt)]


def fetch_liked_post_ids(db: Session, user_id: str, post_ids: list[str]) -> list[str]:
    stmt = select(PostLike.post_id).where(
        PostLike.user_id == user_id,
        PostLike.post_id.in_(post_ids),
    )
    return list(db.scalars(stmt))


def fetch_joined_comments(db: Session, post_id: str) -> list[CommentResponse]:
    """Comments in chronological order with the author's profile fields."""
    stmt = (
        select(Comment, Profile.username, Profile.avatar_url)
        .outerjoin(Profile, Profile.id == Comment.author_id)
        .where(Comment.post_id == post_id)
        .order_by(asc(Comment.created_at))
    )
    comments = []
    for comment, username, avatar_url in db.execute(stmt).all():
        item = CommentResponse.model_validate(comment)
        if username is not None:
            item.author = ProfileSummary(username=username, avatar_url=avatar_url)
        comments.append(item)
    return comments


def fetch_plain_comments(db: Session, post_id: str) -> list[CommentResponse]:
    """Comments in chronological order without the profile join."""
    stmt = (
        select(
            Comment.id,
            Comment.post_id,
            Comment.author_id,
            Comment.content,
            Comment.created_at,
        )
        .where(Comment.post_id == post_id)
        .order_by(asc(Comment.created_at))
    )
    return [CommentResponse.model_validate(dict(row._mapping)) for row in db.execute(stmt)]


@router.get("/comments/{post_id}", response_model=CommentListResponse)
async def list_post_comments(post_id: str, db: SessionDep) -> CommentListResponse:
    """Return the comments of a post, oldest first."""
    outcome = first_successful(
        db,
        [
            QueryTier("joined", lambda s: fetch_joined_comments(s, post_id)),
            QueryTier("plain", lambda s: fetch_plain_comments(s, post_id)),
        ],
    )
    if not outcome.ok:
        logger.error("Comments for post %s unavailable: %s", post_id, outcome.error)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch",
        )
    return CommentListResponse(comments=outcome.items)


@router.get("/{community_id}", response_model=FeedResponse)
async def list_community_posts(
    community_id: str,
    caller_id: OptionalCallerIdDep,
    db: SessionDep,
    page: int = Query(default=0, ge=0),
) -> FeedResponse:
    """Return one page of a community's posts, newest first.

    ``isLiked`` is only computed for a signed-in caller; if likes cannot be
    read every post reports ``false``.
    """
    limit = settings.feed_page_size
    offset = page * limit
    outcome = first_successful(
        db,
        [
            QueryTier("joined", lambda s: fetch_joined_posts(s, community_id, offset, limit)),
            QueryTier("plain", lambda s: fetch_plain_posts(s, community_id, offset, limit)),
        ],
    )
    if not outcome.ok:
        logger.error("Feed for community %s unavailable: %s", community_id, outcome.error)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Internal Server Error",
        )

    posts = outcome.items
    if caller_id is not None and posts:
        post_ids = [post.id for post in posts]
        likes = run_tier(
            db, QueryTier("likes", lambda s: fetch_liked_post_ids(s, caller_id, post_ids))
        )
        if not likes.ok:
            logger.warning("Likes for %s unavailable: %s", caller_id, likes.error)
        liked = set(likes.items)
        for post in posts:
            post.is_liked = post.id in liked
    return FeedResponse(posts=posts)
