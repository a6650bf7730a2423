"""Profile statistics endpoint."""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, Query, status
from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from huddle.api.dependencies import SessionDep
from huddle.models import Friendship, Post
from huddle.models.friendship import STATUS_ACCEPTED
from huddle.schemas.stats import StatCountResponse, StatKind
from huddle.services.query import QueryTier, run_tier

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/profile", tags=["profile"])


def count_posts(db: Session, user_id: str) -> int:
    stmt = select(func.count()).select_from(Post).where(Post.author_id == user_id)
    return int(db.scalar(stmt) or 0)


def count_friends(db: Session, user_id: str) -> int:
    stmt = (
        select(func.count())
        .select_from(Friendship)
        .where(
            Friendship.status == STATUS_ACCEPTED,
            or_(Friendship.sender_id == user_id, Friendship.receiver_id == user_id),
        )
    )
    return int(db.scalar(stmt) or 0)


_COUNTERS = {
    StatKind.POSTS: count_posts,
    StatKind.FRIENDS: count_friends,
}


@router.get("/stats", response_model=StatCountResponse)
async def get_profile_stat(
    db: SessionDep,
    user_id: str | None = Query(default=None, alias="userId"),
    stat: str | None = Query(default=None),
) -> StatCountResponse:
    """Count a profile's posts or accepted friendships.

    Store failures are reported as a zero count rather than an error.
    """
    if not user_id or not stat:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing parameters")
    try:
        kind = StatKind(stat)
    except ValueError as err:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid stat type",
        ) from err

    counter = _COUNTERS[kind]
    outcome = run_tier(db, QueryTier(kind.value, lambda s: [counter(s, user_id)]))
    if not outcome.ok:
        logger.error("%s count error for %s: %s", kind.value, user_id, outcome.error)
        return StatCountResponse(count=0)
    return StatCountResponse(count=outcome.items[0])
