"""Unrecognized item model for names missing from the ingredient catalog."""

from datetime import datetime

from sqlalchemy import DateTime, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from src.database import Base
from src.models.mixins import CreatedAtMixin


class UnrecognizedItem(Base, CreatedAtMixin):
    """Raw text a user confirmed that matched no catalog ingredient.

    Rows outlive the inventory entries pointing at them so admins can promote
    the text to a real ingredient later.
    """

    __tablename__ = "unrecognized_items"
    __table_args__ = (
        UniqueConstraint("user_id", "raw_text", name="uq_unrecognized_user_raw_text"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    raw_text: Mapped[str] = mapped_column(Text, nullable=False)
    context: Mapped[str | None] = mapped_column(String(50), nullable=True)  # "ingredient"
    resolved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    def __repr__(self) -> str:
        return f"<UnrecognizedItem(id={self.id}, user_id={self.user_id}, raw_text={self.raw_text})>"
