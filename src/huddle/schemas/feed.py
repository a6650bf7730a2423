"""Feed post and comment schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from .profile import ProfileCard, ProfileSummary


class CommentResponse(BaseModel):
    """Comment on a post with the author's display fields when available."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    post_id: str
    author_id: str
    content: str
    created_at: datetime
    author: ProfileSummary | None = None


class CommentListResponse(BaseModel):
    comments: list[CommentResponse]


class FeedAuthor(ProfileCard):
    """Post author with their role in the post's community, if a member."""

    role: str | None = None


class FeedPostResponse(BaseModel):
    """Community feed post with counters and the caller's like flag."""

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: str
    author_id: str
    community_id: str | None = None
    content: str
    created_at: datetime
    user: FeedAuthor | None = None
    comment_count: int = 0
    like_count: int = 0
    image_url: str | None = None
    is_liked: bool = Field(default=False, alias="isLiked")


class FeedResponse(BaseModel):
    posts: list[FeedPostResponse]
