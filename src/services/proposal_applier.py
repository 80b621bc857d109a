"""Commit a confirmed inventory update proposal."""

import logging
from dataclasses import dataclass

from sqlalchemy.orm import Session

from src.database import transaction
from src.schemas.proposal import InventoryUpdateProposal
from src.services.ingredient_matcher import normalize_name
from src.services.inventory_service import (
    ensure_ingredients_exist,
    ensure_unrecognized_row,
    find_or_create_unrecognized,
    upsert_inventory_item,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ApplyResult:
    updated: int
    unrecognized_created: int = 0


def apply_proposal(db: Session, user_id: str, proposal: InventoryUpdateProposal) -> ApplyResult:
    """Apply every change in ``proposal`` atomically.

    Recognized changes are upserts, so applying the same proposal twice
    leaves the same state. Unrecognized names get an unrecognized item and a
    full inventory row unless the user already has one.

    Raises:
        InvalidInput: a recognized change points at an unknown ingredient
    """
    if proposal.is_empty:
        return ApplyResult(updated=0)

    unrecognized_created = 0
    with transaction(db):
        ensure_ingredients_exist(db, [change.ingredient_id for change in proposal.recognized])

        for change in proposal.recognized:
            upsert_inventory_item(
                db,
                user_id,
                change.ingredient_id,
                change.proposed_quantity,
                change.proposed_pantry_staple,
            )

        seen: set[str] = set()
        for name in proposal.unrecognized:
            raw_text = normalize_name(name)
            if not raw_text or raw_text in seen:
                continue
            seen.add(raw_text)
            item, created = find_or_create_unrecognized(db, user_id, raw_text)
            ensure_unrecognized_row(db, user_id, item)
            unrecognized_created += int(created)

    logger.info(
        f"Applied proposal for user {user_id}: {len(proposal.recognized)} updated, "
        f"{unrecognized_created} unrecognized created"
    )
    return ApplyResult(
        updated=len(proposal.recognized), unrecognized_created=unrecognized_created
    )
