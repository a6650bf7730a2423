"""Community chat history endpoint."""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, Query, status
from sqlalchemy import desc, select
from sqlalchemy.orm import Session

from huddle.api.dependencies import SessionDep
from huddle.core.settings import settings
from huddle.models import CommunityChatMessage, Profile
from huddle.schemas.chat import ChatHistoryResponse, ChatMessageResponse
from huddle.schemas.profile import ProfileSummary
from huddle.services.query import QueryTier, first_successful

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/chat", tags=["chat"])

_CORE_COLUMNS = (
    CommunityChatMessage.id,
    CommunityChatMessage.community_id,
    CommunityChatMessage.user_id,
    CommunityChatMessage.content,
    CommunityChatMessage.created_at,
)


def _room_filter(room_id: str | None):
    if room_id:
        return CommunityChatMessage.room_id == room_id
    return CommunityChatMessage.room_id.is_(None)


def fetch_joined_messages(
    db: Session, community_id: str, room_id: str | None, limit: int
) -> list[ChatMessageResponse]:
    """Newest messages with the author's profile fields attached."""
    stmt = (
        select(CommunityChatMessage, Profile.username, Profile.avatar_url)
        .outerjoin(Profile, Profile.id == CommunityChatMessage.user_id)
        .where(CommunityChatMessage.community_id == community_id, _room_filter(room_id))
        .order_by(desc(CommunityChatMessage.created_at))
        .limit(limit)
    )
    messages = []
    for message, username, avatar_url in db.execute(stmt).all():
        item = ChatMessageResponse.model_validate(message)
        if username is not None:
            item.user = ProfileSummary(username=username, avatar_url=avatar_url)
        messages.append(item)
    return messages


def fetch_plain_messages(
    db: Session, community_id: str, room_id: str | None, limit: int
) -> list[ChatMessageResponse]:
    """Newest messages without the profile join."""
    stmt = (
        select(*_CORE_COLUMNS, CommunityChatMessage.room_id)
        .where(CommunityChatMessage.community_id == community_id, _room_filter(room_id))
        .order_by(desc(CommunityChatMessage.created_at))
        .limit(limit)
    )
    return [ChatMessageResponse.model_validate(dict(row._mapping)) for row in db.execute(stmt)]


def fetch_unscoped_messages(db: Session, community_id: str, limit: int) -> list[ChatMessageResponse]:
    """Newest messages of the community ignoring rooms, for stores without ``room_id``."""
    stmt = (
        select(*_CORE_COLUMNS)
        .where(CommunityChatMessage.community_id == community_id)
        .order_by(desc(CommunityChatMessage.created_at))
        .limit(limit)
    )
    return [ChatMessageResponse.model_validate(dict(row._mapping)) for row in db.execute(stmt)]


@router.get("/{community_id}", response_model=ChatHistoryResponse)
async def get_chat_history(
    community_id: str,
    db: SessionDep,
    room_id: str | None = Query(default=None, alias="roomId"),
) -> ChatHistoryResponse:
    """Return the latest chat messages of a community, oldest first.

    Without ``roomId`` only the community's global chat is returned.
    """
    limit = settings.chat_history_limit
    outcome = first_successful(
        db,
        [
            QueryTier(
                "joined",
                lambda s: fetch_joined_messages(s, community_id, room_id, limit),
            ),
            QueryTier(
                "plain",
                lambda s: fetch_plain_messages(s, community_id, room_id, limit),
            ),
            QueryTier(
                "unscoped",
                lambda s: fetch_unscoped_messages(s, community_id, limit),
            ),
        ],
    )
    if not outcome.ok:
        logger.error("Chat history for %s unavailable: %s", community_id, outcome.error)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Internal Server Error",
        )

    return ChatHistoryResponse(messages=list(reversed(outcome.items)))
