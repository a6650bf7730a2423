"""Route modules, one per resource."""

from .chat import router as chat_router
from .communities import router as communities_router
from .feed import router as feed_router
from .friends import router as friends_router
from .profile import router as profile_router
from .streams import router as streams_router
from .user import router as user_router

__all__ = [
    "chat_router",
    "communities_router",
    "feed_router",
    "friends_router",
    "profile_router",
    "streams_router",
    "user_router",
]
