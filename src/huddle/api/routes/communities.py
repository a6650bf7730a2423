"""Community-related endpoints for the Huddle API."""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, Query, Request, status
from sqlalchemy import desc, func, select, update
from sqlalchemy.orm import Session

from huddle.api.dependencies import CallerIdDep, OptionalCallerIdDep, SessionDep
from huddle.core.settings import settings
from huddle.models import Community, CommunityMember
from huddle.models.community import ROLE_MODERATOR
from huddle.schemas.community import (
    CommunityDetail,
    CommunityDetailEnvelope,
    CommunityEnvelope,
    CommunityListResponse,
    CommunityResponse,
    CommunityWithMembers,
    MessageResponse,
    PromoteRequest,
)
from huddle.services.query import QueryTier, run_tier

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/communities", tags=["communities"])


def fetch_communities_with_counts(db: Session, limit: int) -> list[CommunityWithMembers]:
    """Newest communities, each annotated with its member count."""
    member_counts = (
        select(
            CommunityMember.community_id,
            func.count(CommunityMember.id).label("members"),
        )
        .group_by(CommunityMember.community_id)
        .subquery()
    )
    stmt = (
        select(Community, func.coalesce(member_counts.c.members, 0))
        .outerjoin(member_counts, member_counts.c.community_id == Community.id)
        .order_by(desc(Community.created_at))
        .limit(limit)
    )
    communities = []
    for community, members in db.execute(stmt).all():
        item = CommunityWithMembers.model_validate(community)
        item.members = int(members)
        communities.append(item)
    return communities


def count_members(db: Session, community_id: str) -> int:
    stmt = (
        select(func.count())
        .select_from(CommunityMember)
        .where(CommunityMember.community_id == community_id)
    )
    return int(db.scalar(stmt) or 0)


@router.get("", response_model=CommunityListResponse)
async def list_communities(
    db: SessionDep,
    limit: int | None = Query(default=None, ge=1),
) -> CommunityListResponse:
    """List communities with member counts, oldest of the latest ``limit`` first."""
    outcome = run_tier(
        db,
        QueryTier(
            "communities_with_counts",
            lambda s: fetch_communities_with_counts(
                s, limit or settings.community_list_default_limit
            ),
        ),
    )
    if not outcome.ok:
        logger.error("Error fetching communities: %s", outcome.error)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch communities",
        )
    return CommunityListResponse(communities=list(reversed(outcome.items)))


@router.get("/id/{community_id}", response_model=CommunityEnvelope)
async def get_community(community_id: str, db: SessionDep) -> CommunityEnvelope:
    """Get a specific community by ID."""
    community = db.get(Community, community_id)
    if community is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Community not found",
        )
    return CommunityEnvelope(community=CommunityResponse.model_validate(community))


async def _read_promotion(request: Request) -> PromoteRequest:
    try:
        return PromoteRequest.model_validate(await request.json())
    except ValueError as exc:
        logger.info("Rejected promotion body: %s", exc)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid request data",
        ) from exc


@router.post(
    "/id/{community_id}/promote",
    response_model=MessageResponse,
    openapi_extra={
        "requestBody": {
            "content": {"application/json": {"schema": PromoteRequest.model_json_schema()}}
        }
    },
)
async def promote_member(
    community_id: str,
    request: Request,
    caller_id: CallerIdDep,
    db: SessionDep,
) -> MessageResponse:
    """Assign a role to a member; only the community's creator may do so.

    The body is read after the creator check so that a non-creator is
    refused with 403 whatever they send.
    """
    creator_id = db.scalar(select(Community.creator_id).where(Community.id == community_id))
    if creator_id is None or creator_id != caller_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only the community leader can assign roles",
        )

    payload = await _read_promotion(request)
    if not payload.target_profile_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing targetProfileId",
        )

    role = payload.role or ROLE_MODERATOR
    db.execute(
        update(CommunityMember)
        .where(
            CommunityMember.community_id == community_id,
            CommunityMember.profile_id == payload.target_profile_id,
        )
        .values(role=role)
    )
    db.commit()
    logger.info(
        "Profile %s set to %s in community %s by %s",
        payload.target_profile_id,
        role,
        community_id,
        caller_id,
    )
    return MessageResponse(message="Role updated successfully")


@router.get("/{name}", response_model=CommunityDetailEnvelope)
async def get_community_by_name(
    name: str,
    db: SessionDep,
    caller_id: OptionalCallerIdDep,
) -> CommunityDetailEnvelope:
    """Look up a community by name, case-insensitively."""
    community = db.scalars(
        select(Community)
        .where(func.lower(Community.name) == name.lower())
        .order_by(Community.created_at)
    ).first()
    if community is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Community not found",
        )

    detail = CommunityDetail.model_validate(community)
    detail.members = count_members(db, community.id)
    if caller_id is not None:
        membership_id = db.scalar(
            select(CommunityMember.id).where(
                CommunityMember.community_id == community.id,
                CommunityMember.profile_id == caller_id,
            )
        )
        detail.is_joined = membership_id is not None
    return CommunityDetailEnvelope(community=detail)
