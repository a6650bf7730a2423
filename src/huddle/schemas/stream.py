"""Livestream token, ingress and active stream schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from .community import CommunityBrief

ROLE_STREAMER = "streamer"
ROLE_VIEWER = "viewer"


class StreamTokenRequest(BaseModel):
    """Request for a room access token; ``role`` defaults to viewer."""

    room: str | None = None
    username: str | None = None
    role: str | None = None


class StreamTokenResponse(BaseModel):
    token: str


class IngressRequest(BaseModel):
    """Request for an RTMP ingress bound to a room."""

    model_config = ConfigDict(populate_by_name=True)

    room_name: str | None = Field(default=None, alias="roomName")
    streamer_name: str | None = Field(default=None, alias="streamerName")
    community_id: str | None = Field(default=None, alias="communityId")


class IngressResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    ingress_id: str = Field(alias="ingressId")
    url: str
    stream_key: str = Field(alias="streamKey")


class LiveStreamResponse(BaseModel):
    """A live room together with the community hosting it."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    community_id: str
    streamer_id: str | None = None
    room_name: str
    title: str | None = None
    status: str
    created_at: datetime
    updated_at: datetime
    community: CommunityBrief | None = None


class ActiveStreamsResponse(BaseModel):
    streams: list[LiveStreamResponse]
