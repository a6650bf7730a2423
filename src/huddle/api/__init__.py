"""HTTP API for the Huddle backend."""

from .routes import (
    chat_router,
    communities_router,
    feed_router,
    friends_router,
    profile_router,
    streams_router,
    user_router,
)

__all__ = [
    "chat_router",
    "communities_router",
    "feed_router",
    "friends_router",
    "profile_router",
    "streams_router",
    "user_router",
]
