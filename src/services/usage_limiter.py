"""Per-user daily quota on LLM-backed requests."""

import logging
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from src.config import get_settings
from src.models.usage_log import UsageLogEntry
from src.services.errors import QuotaExceeded, UsageCheckUnavailable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UsageSummary:
    used: int
    limit: int
    remaining: int
    is_admin: bool
    resets_at: datetime


def start_of_utc_day(now: datetime | None = None) -> datetime:
    now = now or datetime.now(UTC)
    return now.astimezone(UTC).replace(hour=0, minute=0, second=0, microsecond=0)


def count_usage_today(db: Session, user_id: str) -> int:
    """Count the user's logged LLM requests since UTC midnight."""
    stmt = select(func.count(UsageLogEntry.id)).where(
        UsageLogEntry.user_id == user_id,
        UsageLogEntry.created_at >= start_of_utc_day(),
    )
    return db.scalar(stmt) or 0


def check_usage_limit(db: Session, user_id: str) -> None:
    """Raise ``QuotaExceeded`` when the user has used up today's quota.

    Call before any LLM work. Admins are never limited. If the count cannot
    be read the request is denied with ``UsageCheckUnavailable``.
    """
    settings = get_settings()
    if settings.is_admin(user_id):
        return

    try:
        used = count_usage_today(db, user_id)
    except SQLAlchemyError as e:
        logger.error(f"Usage check failed for user {user_id}: {e!r}")
        db.rollback()
        raise UsageCheckUnavailable() from e

    if used >= settings.daily_llm_limit:
        logger.info(f"User {user_id} hit daily LLM limit ({used}/{settings.daily_llm_limit})")
        raise QuotaExceeded()


def log_usage(db: Session, user_id: str, endpoint: str) -> None:
    """Record one successful LLM-backed request."""
    db.add(UsageLogEntry(user_id=user_id, endpoint=endpoint))
    db.commit()


def get_usage_summary(db: Session, user_id: str) -> UsageSummary:
    settings = get_settings()
    used = count_usage_today(db, user_id)
    limit = settings.daily_llm_limit
    return UsageSummary(
        used=used,
        limit=limit,
        remaining=max(0, limit - used),
        is_admin=settings.is_admin(user_id),
        resets_at=start_of_utc_day() + timedelta(days=1),
    )
