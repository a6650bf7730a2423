"""Profile projections embedded in other payloads."""

from pydantic import BaseModel, ConfigDict


class ProfileSummary(BaseModel):
    """Display fields joined onto chat messages and comments."""

    model_config = ConfigDict(from_attributes=True)

    username: str
    avatar_url: str | None = None


class ProfileCard(ProfileSummary):
    """Profile with its identifier, used in friend listings."""

    id: str
