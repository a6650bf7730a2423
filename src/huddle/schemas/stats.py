"""Profile statistics schemas."""

from enum import Enum

from pydantic import BaseModel


class StatKind(str, Enum):
    """Countable profile statistics."""

    POSTS = "posts"
    FRIENDS = "friends"


class StatCountResponse(BaseModel):
    count: int = 0
