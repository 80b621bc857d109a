"""LLM usage log model for daily quota accounting."""

from sqlalchemy import Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from src.database import Base
from src.models.mixins import CreatedAtMixin


class UsageLogEntry(Base, CreatedAtMixin):
    """One row per successful LLM-backed request. Never updated or deleted."""

    __tablename__ = "llm_usage_log"
    __table_args__ = (Index("idx_llm_usage_user_date", "user_id", "created_at"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    endpoint: Mapped[str] = mapped_column(String(100), nullable=False)

    def __repr__(self) -> str:
        return f"<UsageLogEntry(id={self.id}, user_id={self.user_id}, endpoint={self.endpoint})>"
