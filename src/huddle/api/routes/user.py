"""Endpoints scoped to the caller: memberships and community suggestions."""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, status
from sqlalchemy import desc, select
from sqlalchemy.orm import Session

from huddle.api.dependencies import CallerIdDep, OptionalCallerIdDep, SessionDep
from huddle.core.settings import settings
from huddle.models import Community, CommunityMember
from huddle.schemas.community import CommunityBrief, UserCommunitiesResponse
from huddle.services.query import QueryTier, run_tier

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/user", tags=["user"])


def fetch_member_communities(db: Session, profile_id: str) -> list[CommunityBrief]:
    """Communities ``profile_id`` belongs to, flattened out of the membership join."""
    stmt = (
        select(CommunityMember.id, Community)
        .outerjoin(Community, Community.id == CommunityMember.community_id)
        .where(CommunityMember.profile_id == profile_id)
    )
    communities = []
    for membership_id, community in db.execute(stmt).all():
        if community is None:
            logger.warning("Membership %s references a missing community", membership_id)
            continue
        communities.append(CommunityBrief.model_validate(community))
    return communities


def fetch_suggested_communities(
    db: Session, profile_id: str | None, limit: int
) -> list[CommunityBrief]:
    """Newest communities, skipping those ``profile_id`` already belongs to."""
    stmt = select(Community).order_by(desc(Community.created_at)).limit(limit)
    if profile_id is not None:
        joined = select(CommunityMember.community_id).where(
            CommunityMember.profile_id == profile_id
        )
        stmt = stmt.where(Community.id.not_in(joined))
    return [CommunityBrief.model_validate(community) for community in db.scalars(stmt)]


@router.get("/communities", response_model=UserCommunitiesResponse)
async def list_my_communities(caller_id: CallerIdDep, db: SessionDep) -> UserCommunitiesResponse:
    """Return the communities the caller is a member of."""
    outcome = run_tier(
        db, QueryTier("memberships", lambda s: fetch_member_communities(s, caller_id))
    )
    if not outcome.ok:
        logger.error("Membership fetch for %s failed: %s", caller_id, outcome.error)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch communities",
        )
    return UserCommunitiesResponse(communities=outcome.items)


@router.get("/suggestions", response_model=UserCommunitiesResponse)
async def suggest_communities(
    caller_id: OptionalCallerIdDep, db: SessionDep
) -> UserCommunitiesResponse:
    """Suggest communities to join; anonymous callers get the newest ones."""
    outcome = run_tier(
        db,
        QueryTier(
            "suggestions",
            lambda s: fetch_suggested_communities(s, caller_id, settings.suggestion_limit),
        ),
    )
    if not outcome.ok:
        logger.error("Suggestions for %s failed: %s", caller_id or "anonymous", outcome.error)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Internal Error",
        )
    return UserCommunitiesResponse(communities=outcome.items)
