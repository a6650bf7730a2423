"""Friendship schemas."""

from pydantic import BaseModel, ConfigDict, Field

from .profile import ProfileCard

STATUS_SELF = "self"
STATUS_NONE = "none"


class FriendListResponse(BaseModel):
    friends: list[ProfileCard]


class FriendshipStatusResponse(BaseModel):
    """Relation between the caller and a target profile.

    ``isSender`` is only present when a stored relation exists.
    """

    model_config = ConfigDict(populate_by_name=True)

    status: str
    is_sender: bool | None = Field(default=None, alias="isSender")


class MutualFriendsResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    mutual_friends: list[ProfileCard] = Field(default_factory=list, alias="mutualFriends")
    total_count: int = Field(default=0, alias="totalCount")
