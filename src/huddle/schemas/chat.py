"""Community chat schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict

from .profile import ProfileSummary


class ChatMessageResponse(BaseModel):
    """Chat line; ``user`` is absent when the profile join was unavailable."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    community_id: str
    user_id: str
    room_id: str | None = None
    content: str
    created_at: datetime
    user: ProfileSummary | None = None


class ChatHistoryResponse(BaseModel):
    messages: list[ChatMessageResponse]
