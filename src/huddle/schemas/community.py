"""Community-related Pydantic schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class CommunityResponse(BaseModel):
    """Schema for community information returned by the API."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    image_url: str | None = None
    creator_id: str
    created_at: datetime


class CommunityWithMembers(CommunityResponse):
    """Community row annotated with its member count."""

    members: int = 0


class CommunityDetail(CommunityWithMembers):
    """Community looked up by name, with the caller's membership flag."""

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    is_joined: bool = Field(default=False, alias="isJoined")


class CommunityBrief(BaseModel):
    """Minimal community card for the caller's membership list."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    image_url: str | None = None


class CommunityEnvelope(BaseModel):
    community: CommunityResponse


class CommunityDetailEnvelope(BaseModel):
    community: CommunityDetail


class CommunityListResponse(BaseModel):
    communities: list[CommunityWithMembers]


class UserCommunitiesResponse(BaseModel):
    communities: list[CommunityBrief]


class PromoteRequest(BaseModel):
    """Body of a role assignment; the role defaults to moderator."""

    model_config = ConfigDict(populate_by_name=True)

    target_profile_id: str | None = Field(default=None, alias="targetProfileId")
    role: str | None = None


class MessageResponse(BaseModel):
    message: str
