"""Inventory persistence: upserts, listing and bulk operations."""

import logging

from sqlalchemy import delete, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session

from src.database import transaction
from src.models.ingredient import Ingredient
from src.models.mixins import utcnow
from src.models.unrecognized_item import UnrecognizedItem
from src.models.user_inventory import UnrecognizedRef, UserInventoryItem
from src.services.demo_data import DEMO_INVENTORY
from src.services.errors import InvalidInput, NotFound
from src.services.ingredient_matcher import match_ingredient, normalize_name
from src.services.proposal_builder import InventorySnapshot

logger = logging.getLogger(__name__)

UNRECOGNIZED_CONTEXT = "ingredient"


def _insert_for(db: Session):
    dialect = db.get_bind().dialect.name
    if dialect == "postgresql":
        return postgresql.insert
    if dialect == "sqlite":
        return sqlite.insert
    raise NotImplementedError(f"Upsert not supported for dialect {dialect}")


def upsert_inventory_item(
    db: Session,
    user_id: str,
    ingredient_id: int,
    quantity_level: int,
    is_pantry_staple: bool | None = None,
) -> None:
    """Insert or update the user's row for a catalog ingredient.

    Targets the partial unique index on (user_id, ingredient_id). The staple
    flag is only written when ``is_pantry_staple`` is given. Does not commit.
    """
    insert = _insert_for(db)
    now = utcnow()
    stmt = insert(UserInventoryItem).values(
        user_id=user_id,
        ingredient_id=ingredient_id,
        quantity_level=quantity_level,
        is_pantry_staple=bool(is_pantry_staple),
        created_at=now,
        updated_at=now,
    )
    set_ = {"quantity_level": stmt.excluded.quantity_level, "updated_at": now}
    if is_pantry_staple is not None:
        set_["is_pantry_staple"] = stmt.excluded.is_pantry_staple
    stmt = stmt.on_conflict_do_update(
        index_elements=[UserInventoryItem.user_id, UserInventoryItem.ingredient_id],
        index_where=UserInventoryItem.ingredient_id.isnot(None),
        set_=set_,
    )
    db.execute(stmt)


def ensure_ingredients_exist(db: Session, ingredient_ids: list[int]) -> None:
    """Raise ``InvalidInput`` listing every id missing from the catalog."""
    wanted = set(ingredient_ids)
    if not wanted:
        return
    found = set(db.scalars(select(Ingredient.id).where(Ingredient.id.in_(wanted))))
    missing = sorted(wanted - found)
    if missing:
        raise InvalidInput(
            "Unknown ingredient ids",
            details=[f"ingredientId {ingredient_id} does not exist" for ingredient_id in missing],
        )


def find_or_create_unrecognized(
    db: Session, user_id: str, raw_text: str
) -> tuple[UnrecognizedItem, bool]:
    """Return the user's unrecognized item for ``raw_text`` and whether it was created."""
    raw_text = normalize_name(raw_text)
    item = db.scalars(
        select(UnrecognizedItem).where(
            UnrecognizedItem.user_id == user_id, UnrecognizedItem.raw_text == raw_text
        )
    ).first()
    if item is not None:
        return item, False

    item = UnrecognizedItem(user_id=user_id, raw_text=raw_text, context=UNRECOGNIZED_CONTEXT)
    db.add(item)
    db.flush()
    return item, True


def ensure_unrecognized_row(
    db: Session,
    user_id: str,
    item: UnrecognizedItem,
    quantity_level: int = 3,
    is_pantry_staple: bool = False,
) -> bool:
    """Create an inventory row for an unrecognized item unless one exists."""
    exists = db.scalars(
        select(UserInventoryItem.id).where(
            UserInventoryItem.user_id == user_id,
            UserInventoryItem.unrecognized_item_id == item.id,
        )
    ).first()
    if exists is not None:
        return False
    db.add(
        UserInventoryItem.for_ref(
            user_id,
            UnrecognizedRef(unrecognized_item_id=item.id),
            quantity_level=quantity_level,
            is_pantry_staple=is_pantry_staple,
        )
    )
    db.flush()
    return True


def get_inventory(db: Session, user_id: str) -> list[UserInventoryItem]:
    """Recognized rows ordered by ingredient name, then unrecognized rows."""
    recognized = db.scalars(
        select(UserInventoryItem)
        .join(Ingredient, UserInventoryItem.ingredient_id == Ingredient.id)
        .where(UserInventoryItem.user_id == user_id)
        .order_by(Ingredient.name)
    ).all()
    unrecognized = db.scalars(
        select(UserInventoryItem)
        .join(UnrecognizedItem, UserInventoryItem.unrecognized_item_id == UnrecognizedItem.id)
        .where(UserInventoryItem.user_id == user_id)
        .order_by(UnrecognizedItem.raw_text)
    ).all()
    return [*recognized, *unrecognized]


def get_inventory_snapshot(db: Session, user_id: str) -> list[InventorySnapshot]:
    """Catalog-backed rows in the shape the proposal builder reads."""
    rows = db.execute(
        select(
            UserInventoryItem.id,
            UserInventoryItem.ingredient_id,
            Ingredient.name,
            UserInventoryItem.quantity_level,
            UserInventoryItem.is_pantry_staple,
        )
        .join(Ingredient, UserInventoryItem.ingredient_id == Ingredient.id)
        .where(UserInventoryItem.user_id == user_id)
        .order_by(Ingredient.name)
    ).all()
    return [
        InventorySnapshot(
            id=row.id,
            ingredient_id=row.ingredient_id,
            name=row.name,
            quantity_level=row.quantity_level,
            is_pantry_staple=row.is_pantry_staple,
        )
        for row in rows
    ]


def present_ingredient_names(db: Session, user_id: str) -> list[str]:
    """Names of everything the user has, for the extraction prompt."""
    return [item.display_name for item in get_inventory(db, user_id) if item.quantity_level > 0]


def _get_user_item(db: Session, user_id: str, item_id: int) -> UserInventoryItem:
    item = db.scalars(
        select(UserInventoryItem).where(
            UserInventoryItem.id == item_id, UserInventoryItem.user_id == user_id
        )
    ).first()
    if item is None:
        raise NotFound("Inventory item not found")
    return item


def set_quantity(
    db: Session, user_id: str, ingredient_id: int, quantity_level: int
) -> UserInventoryItem:
    with transaction(db):
        ensure_ingredients_exist(db, [ingredient_id])
        upsert_inventory_item(db, user_id, ingredient_id, quantity_level)

    return db.scalars(
        select(UserInventoryItem).where(
            UserInventoryItem.user_id == user_id,
            UserInventoryItem.ingredient_id == ingredient_id,
        )
    ).one()


def batch_set_quantities(db: Session, user_id: str, updates: list[tuple[int, int]]) -> int:
    """Apply many (ingredient_id, quantity_level) pairs in one transaction."""
    with transaction(db):
        ensure_ingredients_exist(db, [ingredient_id for ingredient_id, _ in updates])
        for ingredient_id, quantity_level in updates:
            upsert_inventory_item(db, user_id, ingredient_id, quantity_level)
    return len(updates)


def delete_item(db: Session, user_id: str, item_id: int) -> None:
    """Delete one inventory row. Unrecognized items themselves are kept."""
    with transaction(db):
        item = _get_user_item(db, user_id, item_id)
        db.delete(item)


def toggle_pantry_staple(db: Session, user_id: str, item_id: int) -> UserInventoryItem:
    with transaction(db):
        item = _get_user_item(db, user_id, item_id)
        if item.ingredient_id is None:
            raise InvalidInput("Only catalog ingredients can be pantry staples")
        item.is_pantry_staple = not item.is_pantry_staple
    db.refresh(item)
    return item


def reset_inventory(db: Session, user_id: str) -> int:
    """Delete every inventory row of the user."""
    with transaction(db):
        result = db.execute(delete(UserInventoryItem).where(UserInventoryItem.user_id == user_id))
    logger.info(f"Reset inventory for user {user_id}: {result.rowcount} rows deleted")
    return result.rowcount


def prefill_demo_inventory(db: Session, user_id: str) -> tuple[int, int]:
    """Insert the demo inventory, leaving rows the user already has untouched.

    Returns:
        (inventory rows created, unrecognized items created)
    """
    inventory_created = 0
    unrecognized_created = 0
    with transaction(db):
        existing = {
            ingredient_id
            for ingredient_id in db.scalars(
                select(UserInventoryItem.ingredient_id).where(
                    UserInventoryItem.user_id == user_id,
                    UserInventoryItem.ingredient_id.isnot(None),
                )
            )
        }
        for demo in DEMO_INVENTORY:
            ingredient = match_ingredient(db, demo.name)
            if ingredient is None:
                item, created = find_or_create_unrecognized(db, user_id, demo.name)
                unrecognized_created += int(created)
                inventory_created += int(
                    ensure_unrecognized_row(
                        db, user_id, item, demo.quantity_level, demo.is_pantry_staple
                    )
                )
                continue
            if ingredient.id in existing:
                continue
            upsert_inventory_item(
                db, user_id, ingredient.id, demo.quantity_level, demo.is_pantry_staple
            )
            existing.add(ingredient.id)
            inventory_created += 1

    logger.info(
        f"Prefilled demo inventory for user {user_id}: "
        f"{inventory_created} rows, {unrecognized_created} unrecognized"
    )
    return inventory_created, unrecognized_created
