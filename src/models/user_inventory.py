"""User inventory model."""

from dataclasses import dataclass

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    ForeignKey,
    Index,
    Integer,
    String,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.database import Base
from src.models.ingredient import Ingredient
from src.models.mixins import TimestampMixin
from src.models.unrecognized_item import UnrecognizedItem


@dataclass(frozen=True)
class RecognizedRef:
    """Inventory row backed by a catalog ingredient."""

    ingredient_id: int


@dataclass(frozen=True)
class UnrecognizedRef:
    """Inventory row backed by raw unrecognized text."""

    unrecognized_item_id: int


InventoryRef = RecognizedRef | UnrecognizedRef


class UserInventoryItem(Base, TimestampMixin):
    """What a user has at home: one catalog ingredient or one unrecognized item."""

    __tablename__ = "user_inventory"
    __table_args__ = (
        CheckConstraint("quantity_level BETWEEN 0 AND 3", name="ck_user_inventory_quantity"),
        CheckConstraint(
            "(ingredient_id IS NULL) <> (unrecognized_item_id IS NULL)",
            name="ck_user_inventory_single_ref",
        ),
        Index(
            "uq_user_inventory_user_ingredient",
            "user_id",
            "ingredient_id",
            unique=True,
            postgresql_where=text("ingredient_id IS NOT NULL"),
            sqlite_where=text("ingredient_id IS NOT NULL"),
        ),
        Index(
            "uq_user_inventory_user_unrecognized",
            "user_id",
            "unrecognized_item_id",
            unique=True,
            postgresql_where=text("unrecognized_item_id IS NOT NULL"),
            sqlite_where=text("unrecognized_item_id IS NOT NULL"),
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    ingredient_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("ingredients.id", ondelete="RESTRICT"), nullable=True
    )
    unrecognized_item_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("unrecognized_items.id", ondelete="CASCADE"), nullable=True
    )
    quantity_level: Mapped[int] = mapped_column(Integer, nullable=False, default=3)
    is_pantry_staple: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # Relationships
    ingredient: Mapped[Ingredient | None] = relationship(Ingredient, lazy="joined")
    unrecognized_item: Mapped[UnrecognizedItem | None] = relationship(
        UnrecognizedItem, lazy="joined"
    )

    @classmethod
    def for_ref(
        cls,
        user_id: str,
        ref: InventoryRef,
        quantity_level: int = 3,
        is_pantry_staple: bool = False,
    ) -> "UserInventoryItem":
        """Build a row from a tagged reference so only one side is ever set."""
        if isinstance(ref, RecognizedRef):
            return cls(
                user_id=user_id,
                ingredient_id=ref.ingredient_id,
                quantity_level=quantity_level,
                is_pantry_staple=is_pantry_staple,
            )
        return cls(
            user_id=user_id,
            unrecognized_item_id=ref.unrecognized_item_id,
            quantity_level=quantity_level,
            is_pantry_staple=is_pantry_staple,
        )

    @property
    def ref(self) -> InventoryRef:
        """The row's reference as a tagged union."""
        if self.ingredient_id is not None:
            return RecognizedRef(ingredient_id=self.ingredient_id)
        return UnrecognizedRef(unrecognized_item_id=self.unrecognized_item_id)

    @property
    def display_name(self) -> str:
        if self.ingredient is not None:
            return self.ingredient.name
        return self.unrecognized_item.raw_text if self.unrecognized_item else ""

    def __repr__(self) -> str:
        return (
            f"<UserInventoryItem(id={self.id}, user_id={self.user_id}, "
            f"ref={self.ref}, quantity_level={self.quantity_level})>"
        )
