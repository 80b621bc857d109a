"""Ingredient catalog administration."""

import logging
from dataclasses import dataclass

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from src.database import transaction
from src.models.ingredient import Ingredient
from src.models.mixins import utcnow
from src.models.unrecognized_item import UnrecognizedItem

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PromotionResult:
    promoted: int
    skipped: int
    resolved: int


def existing_ingredient_names(db: Session, names: list[str]) -> set[str]:
    """Subset of ``names`` (lowercase) already in the catalog."""
    if not names:
        return set()
    lowered = {name.lower() for name in names}
    catalog_name = func.lower(Ingredient.name)
    return set(db.scalars(select(catalog_name).where(catalog_name.in_(lowered))))


def promote_ingredients(db: Session, promotions: list[tuple[str, str]]) -> PromotionResult:
    """Add (name, category) pairs to the catalog and resolve matching unrecognized items.

    Names already in the catalog are skipped. Unrecognized items with the
    same raw text are marked resolved for every user.
    """
    names = [name for name, _ in promotions]
    promoted = 0
    with transaction(db):
        existing = existing_ingredient_names(db, names)
        for name, category in promotions:
            if name in existing:
                continue
            db.add(Ingredient(name=name, category=category))
            existing.add(name)
            promoted += 1
        db.flush()

        resolved = db.execute(
            update(UnrecognizedItem)
            .where(
                UnrecognizedItem.raw_text.in_(names),
                UnrecognizedItem.resolved_at.is_(None),
            )
            .values(resolved_at=utcnow())
        ).rowcount

    logger.info(f"Promoted {promoted} ingredients, skipped {len(promotions) - promoted}")
    return PromotionResult(promoted=promoted, skipped=len(promotions) - promoted, resolved=resolved)


def list_unresolved_unrecognized(db: Session) -> list[tuple[str, int]]:
    """Unresolved raw texts with the number of users that have each, most common first."""
    user_count = func.count(func.distinct(UnrecognizedItem.user_id))
    rows = db.execute(
        select(UnrecognizedItem.raw_text, user_count.label("user_count"))
        .where(UnrecognizedItem.resolved_at.is_(None))
        .group_by(UnrecognizedItem.raw_text)
        .order_by(user_count.desc(), UnrecognizedItem.raw_text)
    ).all()
    return [(row.raw_text, row.user_count) for row in rows]
