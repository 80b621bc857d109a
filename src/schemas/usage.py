"""Usage quota schemas."""

from datetime import datetime

from src.schemas.base import ApiModel


class UsageResponse(ApiModel):
    """Today's LLM usage for the current user."""

    used: int
    limit: int
    remaining: int
    is_admin: bool
    resets_at: datetime
