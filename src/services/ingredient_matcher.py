"""Match free-text ingredient names against the ingredient catalog."""

import logging
import re
from dataclasses import dataclass, field

from sqlalchemy import String, func, literal, select
from sqlalchemy.orm import Session

from src.models.ingredient import Ingredient

logger = logging.getLogger(__name__)

# Containment matching is skipped for shorter strings ("oi" would match "oil")
MIN_CONTAINMENT_LENGTH = 3


@dataclass(frozen=True)
class RecognizedIngredient:
    input_name: str
    matched_name: str
    ingredient_id: int


@dataclass
class MatchResult:
    recognized: list[RecognizedIngredient] = field(default_factory=list)
    unrecognized: list[str] = field(default_factory=list)

    def ingredient_id_for(self, name: str) -> int | None:
        """Catalog id matched for an input name, compared case-insensitively."""
        key = normalize_name(name)
        for item in self.recognized:
            if normalize_name(item.input_name) == key:
                return item.ingredient_id
        return None


def normalize_name(name: str) -> str:
    return name.strip().lower()


def contains_word(text: str, word: str) -> bool:
    """True when ``word`` appears in ``text`` as a whole word, plural allowed."""
    return re.search(rf"\b{re.escape(word)}(e?s)?\b", text) is not None


def match_ingredient(db: Session, name: str) -> Ingredient | None:
    """Find the catalog ingredient for one name.

    Tries exact equality, then the longest catalog name contained in the
    input, then the shortest catalog name containing the input.
    """
    normalized = normalize_name(name)
    if not normalized:
        return None

    catalog_name = func.lower(Ingredient.name)
    exact = db.scalars(
        select(Ingredient).where(catalog_name == normalized).order_by(Ingredient.id).limit(1)
    ).first()
    if exact is not None or len(normalized) < MIN_CONTAINMENT_LENGTH:
        return exact

    # "tomatoes" contains "tomato"; LIKE only narrows, whole words decide
    candidates = db.scalars(
        select(Ingredient)
        .where(
            func.length(Ingredient.name) >= MIN_CONTAINMENT_LENGTH,
            literal(normalized, String).contains(catalog_name),
        )
        .order_by(func.length(Ingredient.name).desc(), Ingredient.id)
    )
    for candidate in candidates:
        if contains_word(normalized, candidate.name.lower()):
            return candidate

    # "basil" is contained in "basil leaf"
    return db.scalars(
        select(Ingredient)
        .where(catalog_name.contains(normalized, autoescape=True))
        .order_by(func.length(Ingredient.name), Ingredient.id)
        .limit(1)
    ).first()


def validate_ingredient_names(db: Session, names: list[str]) -> MatchResult:
    """Split names into catalog matches and unrecognized names.

    Read-only. Unmatched names are returned exactly as given.
    """
    result = MatchResult()
    for name in names:
        if not normalize_name(name):
            continue
        ingredient = match_ingredient(db, name)
        if ingredient is None:
            result.unrecognized.append(name)
        else:
            result.recognized.append(
                RecognizedIngredient(
                    input_name=name,
                    matched_name=ingredient.name,
                    ingredient_id=ingredient.id,
                )
            )

    logger.debug(
        f"Matched {len(result.recognized)} of {len(names)} names, "
        f"{len(result.unrecognized)} unrecognized"
    )
    return result
