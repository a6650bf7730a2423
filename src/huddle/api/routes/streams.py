"""Livestream endpoints: room access tokens, RTMP ingress and live rooms."""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import desc, select
from sqlalchemy.orm import Session

from huddle.api.dependencies import SessionDep
from huddle.models import Community, LiveStream
from huddle.models.stream import STREAM_LIVE
from huddle.schemas.community import CommunityBrief
from huddle.schemas.stream import (
    ROLE_VIEWER,
    ActiveStreamsResponse,
    IngressRequest,
    IngressResponse,
    LiveStreamResponse,
    StreamTokenRequest,
    StreamTokenResponse,
)
from huddle.services.livestream import LivestreamIssuer, get_livestream_issuer
from huddle.services.query import QueryTier, first_successful

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/streams", tags=["streams"])

LivestreamIssuerDep = Annotated[LivestreamIssuer, Depends(get_livestream_issuer)]


def fetch_joined_live_streams(db: Session) -> list[LiveStreamResponse]:
    """Live rooms, most recently updated first, with their community card."""
    stmt = (
        select(LiveStream, Community)
        .outerjoin(Community, Community.id == LiveStream.community_id)
        .where(LiveStream.status == STREAM_LIVE)
        .order_by(desc(LiveStream.updated_at))
    )
    streams = []
    for stream, community in db.execute(stmt).all():
        item = LiveStreamResponse.model_validate(stream)
        if community is not None:
            item.community = CommunityBrief.model_validate(community)
        streams.append(item)
    return streams


def fetch_plain_live_streams(db: Session) -> list[LiveStreamResponse]:
    stmt = (
        select(LiveStream)
        .where(LiveStream.status == STREAM_LIVE)
        .order_by(desc(LiveStream.updated_at))
    )
    return [LiveStreamResponse.model_validate(stream) for stream in db.scalars(stmt)]


@router.get("/active", response_model=ActiveStreamsResponse)
async def list_active_streams(db: SessionDep) -> ActiveStreamsResponse:
    """Return the rooms currently live across all communities."""
    outcome = first_successful(
        db,
        [
            QueryTier("joined", fetch_joined_live_streams),
            QueryTier("plain", fetch_plain_live_streams),
        ],
    )
    if not outcome.ok:
        logger.error("Active streams unavailable: %s", outcome.error)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Internal Error",
        )
    return ActiveStreamsResponse(streams=outcome.items)


@router.post("/token", response_model=StreamTokenResponse)
async def create_stream_token(
    payload: StreamTokenRequest,
    issuer: LivestreamIssuerDep,
) -> StreamTokenResponse:
    """Mint a room token; only the ``streamer`` role may publish."""
    if not payload.room:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail='Missing "room" property',
        )
    if not payload.username:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail='Missing "username" property',
        )

    role = payload.role or ROLE_VIEWER
    token = issuer.mint_token(payload.room, payload.username, role)
    return StreamTokenResponse(token=token)


@router.post("/ingress", response_model=IngressResponse)
async def create_stream_ingress(
    payload: IngressRequest,
    issuer: LivestreamIssuerDep,
) -> IngressResponse:
    """Create an RTMP ingress so an external encoder can stream into a room."""
    if not payload.room_name or not payload.streamer_name:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing required params",
        )

    credentials = await issuer.create_ingress(payload.room_name, payload.streamer_name)
    if payload.community_id:
        logger.info(
            "Ingress %s opened for community %s",
            credentials.ingress_id,
            payload.community_id,
        )
    return IngressResponse(
        ingress_id=credentials.ingress_id,
        url=credentials.url,
        stream_key=credentials.stream_key,
    )
