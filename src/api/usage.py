"""Usage quota endpoint."""

from fastapi import APIRouter

from src.api.dependencies import CurrentUser, DbSession
from src.schemas.usage import UsageResponse
from src.services.usage_limiter import get_usage_summary

router = APIRouter(prefix="/api/v1/usage", tags=["usage"])


@router.get("", response_model=UsageResponse)
def get_usage(user_id: CurrentUser, db: DbSession):
    """Today's LLM usage for the current user."""
    summary = get_usage_summary(db, user_id)
    return UsageResponse(
        used=summary.used,
        limit=summary.limit,
        remaining=summary.remaining,
        is_admin=summary.is_admin,
        resets_at=summary.resets_at,
    )
