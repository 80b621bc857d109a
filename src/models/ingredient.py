"""Ingredient catalog model."""

from sqlalchemy import Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from src.database import Base
from src.models.mixins import CreatedAtMixin


class Ingredient(Base, CreatedAtMixin):
    """Canonical catalog entry that user inventory rows point at."""

    __tablename__ = "ingredients"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    name: Mapped[str] = mapped_column(
        String(255), unique=True, nullable=False
    )  # Lowercase, singular, trimmed
    category: Mapped[str] = mapped_column(String(50), nullable=False, index=True)

    def __repr__(self) -> str:
        return f"<Ingredient(id={self.id}, name={self.name}, category={self.category})>"
