"""SQLAlchemy models for the Huddle application."""

from .community import Community, CommunityChatMessage, CommunityMember
from .friendship import Friendship
from .post import Comment, Post, PostLike, PostMedia
from .profile import Profile
from .stream import LiveStream

__all__ = [
    "Community", "CommunityChatMessage", "CommunityMember",
    "Friendship",
    "Comment", "Post", "PostLike", "PostMedia",
    "Profile",
    "LiveStream",
]
