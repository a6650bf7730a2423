"""Friendship endpoints for the Huddle API.

These routes never fail loudly: anonymous callers, bad tokens and store
errors all degrade to an empty result.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter
from sqlalchemy import and_, desc, or_, select
from sqlalchemy.orm import Session, aliased

from huddle.api.dependencies import OptionalCallerIdDep, SessionDep
from huddle.models import Friendship, Profile
from huddle.models.friendship import STATUS_ACCEPTED
from huddle.schemas.friendship import (
    STATUS_NONE,
    STATUS_SELF,
    FriendListResponse,
    FriendshipStatusResponse,
    MutualFriendsResponse,
)
from huddle.schemas.profile import ProfileCard
from huddle.services.query import QueryTier, run_tier

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/friends", tags=["friends"])


def _involves(profile_id: str):
    return or_(Friendship.sender_id == profile_id, Friendship.receiver_id == profile_id)


def fetch_friend_profiles(db: Session, caller_id: str) -> list[ProfileCard]:
    """Profiles on the other side of the caller's accepted friendships."""
    sender = aliased(Profile)
    receiver = aliased(Profile)
    stmt = (
        select(Friendship.id, Friendship.sender_id, sender, receiver)
        .outerjoin(sender, sender.id == Friendship.sender_id)
        .outerjoin(receiver, receiver.id == Friendship.receiver_id)
        .where(Friendship.status == STATUS_ACCEPTED, _involves(caller_id))
        .order_by(Friendship.created_at)
    )
    friends = []
    for friendship_id, sender_id, sender_profile, receiver_profile in db.execute(stmt).all():
        counterpart = receiver_profile if sender_id == caller_id else sender_profile
        if counterpart is None:
            logger.warning("Friendship %s references a missing profile", friendship_id)
            continue
        friends.append(ProfileCard.model_validate(counterpart))
    return friends


def fetch_friend_ids(db: Session, profile_id: str) -> list[str]:
    """Ids of the accepted friends of ``profile_id``, in friendship order."""
    stmt = (
        select(Friendship.sender_id, Friendship.receiver_id)
        .where(Friendship.status == STATUS_ACCEPTED, _involves(profile_id))
        .order_by(Friendship.created_at)
    )
    return [
        receiver_id if sender_id == profile_id else sender_id
        for sender_id, receiver_id in db.execute(stmt).all()
    ]


def fetch_relation(db: Session, caller_id: str, target_id: str) -> list[Friendship]:
    stmt = (
        select(Friendship)
        .where(
            or_(
                and_(Friendship.sender_id == caller_id, Friendship.receiver_id == target_id),
                and_(Friendship.sender_id == target_id, Friendship.receiver_id == caller_id),
            )
        )
        .order_by(desc(Friendship.created_at))
        .limit(1)
    )
    return list(db.scalars(stmt))


@router.get("/list", response_model=FriendListResponse)
async def list_friends(caller_id: OptionalCallerIdDep, db: SessionDep) -> FriendListResponse:
    """Return the caller's friends; anonymous callers get an empty list."""
    if caller_id is None:
        return FriendListResponse(friends=[])

    outcome = run_tier(db, QueryTier("friends", lambda s: fetch_friend_profiles(s, caller_id)))
    if not outcome.ok:
        logger.error("Friend list for %s unavailable: %s", caller_id, outcome.error)
    return FriendListResponse(friends=outcome.items)


@router.get(
    "/status/{target_id}",
    response_model=FriendshipStatusResponse,
    response_model_exclude_none=True,
)
async def get_friendship_status(
    target_id: str,
    caller_id: OptionalCallerIdDep,
    db: SessionDep,
) -> FriendshipStatusResponse:
    """Describe the relation between the caller and ``target_id``."""
    if caller_id is None:
        return FriendshipStatusResponse(status=STATUS_NONE)
    if caller_id == target_id:
        return FriendshipStatusResponse(status=STATUS_SELF)

    outcome = run_tier(db, QueryTier("relation", lambda s: fetch_relation(s, caller_id, target_id)))
    if not outcome.ok:
        logger.error("Status fetch error: %s", outcome.error)
        return FriendshipStatusResponse(status=STATUS_NONE)
    if not outcome.items:
        return FriendshipStatusResponse(status=STATUS_NONE)

    relation = outcome.items[0]
    return FriendshipStatusResponse(
        status=relation.status,
        is_sender=relation.sender_id == caller_id,
    )


@router.get("/mutual/{target_id}", response_model=MutualFriendsResponse)
async def list_mutual_friends(
    target_id: str,
    caller_id: OptionalCallerIdDep,
    db: SessionDep,
) -> MutualFriendsResponse:
    """Return friends shared by the caller and ``target_id``."""
    if caller_id is None or caller_id == target_id:
        return MutualFriendsResponse()

    def _mutual_profiles(s: Session) -> list[ProfileCard]:
        mine = set(fetch_friend_ids(s, caller_id))
        mutual_ids = list(dict.fromkeys(i for i in fetch_friend_ids(s, target_id) if i in mine))
        if not mutual_ids:
            return []
        profiles = s.scalars(select(Profile).where(Profile.id.in_(mutual_ids))).all()
        by_id = {profile.id: ProfileCard.model_validate(profile) for profile in profiles}
        return [by_id[i] for i in mutual_ids if i in by_id]

    outcome = run_tier(db, QueryTier("mutual", _mutual_profiles))
    if not outcome.ok:
        logger.error("Mutual friends for %s/%s unavailable: %s", caller_id, target_id, outcome.error)
    return MutualFriendsResponse(
        mutual_friends=outcome.items,
        total_count=len(outcome.items),
    )
