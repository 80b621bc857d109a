"""Build an inventory update proposal from an extraction.

Pure: no database access. Callers load the inventory snapshot and run the
ingredient matcher first.
"""

from dataclasses import dataclass

from src.models.enums import QuantityLevel, RemovalPolicy
from src.schemas.proposal import InventoryUpdateProposal, ProposalChange
from src.services.extraction import ExtractionResult
from src.services.ingredient_matcher import MatchResult, normalize_name


@dataclass(frozen=True)
class InventorySnapshot:
    """A catalog-backed inventory row as it was before the request."""

    id: int
    ingredient_id: int
    name: str
    quantity_level: int
    is_pantry_staple: bool


@dataclass
class _PendingChange:
    ingredient_id: int
    ingredient_name: str
    previous_quantity: int
    previous_staple: bool | None
    quantity: int
    proposed_staple: bool | None = None

    def to_change(self) -> ProposalChange:
        return ProposalChange(
            ingredient_id=self.ingredient_id,
            ingredient_name=self.ingredient_name,
            previous_quantity=int(self.previous_quantity),
            proposed_quantity=int(self.quantity),
            previous_pantry_staple=self.previous_staple,
            proposed_pantry_staple=self.proposed_staple,
        )


def _added_quantity(current: int, is_staple: bool) -> int:
    if is_staple:
        return current
    if current > QuantityLevel.NONE:
        return QuantityLevel.clamp(current + 1)
    return QuantityLevel.FULL.value


def build_proposal(
    extraction: ExtractionResult,
    current_inventory: list[InventorySnapshot],
    match_result: MatchResult,
    removal_policy: RemovalPolicy | str = RemovalPolicy.DECREMENT,
) -> InventoryUpdateProposal:
    """Turn extracted add/rm names into proposed quantity changes.

    Rules, applied per ingredient in mention order:

    - add: an explicit level wins; a present item steps up one level per
      mention (capped at full); an absent item goes to full; a pantry staple
      keeps its quantity.
    - rm: a present item steps down one level, or drops to none under the
      ``deplete`` policy or when the user said it is gone. Items not in the
      inventory are skipped.
    - staple intents set ``proposed_pantry_staple``.

    Unmatched add names are returned as unrecognized; unmatched rm names are
    dropped.
    """
    policy = RemovalPolicy(removal_policy)
    by_ingredient = {item.ingredient_id: item for item in current_inventory}
    pending: dict[int, _PendingChange] = {}
    unrecognized: list[str] = []
    seen_unrecognized: set[str] = set()
    depleted = {normalize_name(n) for n in extraction.depleted}

    def pending_for(ingredient_id: int, name: str) -> _PendingChange:
        if ingredient_id not in pending:
            row = by_ingredient.get(ingredient_id)
            pending[ingredient_id] = _PendingChange(
                ingredient_id=ingredient_id,
                ingredient_name=row.name if row else name,
                previous_quantity=row.quantity_level if row else QuantityLevel.NONE,
                previous_staple=row.is_pantry_staple if row else None,
                quantity=row.quantity_level if row else QuantityLevel.NONE,
            )
        return pending[ingredient_id]

    def matched_name(name: str) -> str:
        key = normalize_name(name)
        for item in match_result.recognized:
            if normalize_name(item.input_name) == key:
                return item.matched_name
        return key

    for name in extraction.add:
        ingredient_id = match_result.ingredient_id_for(name)
        if ingredient_id is None:
            key = normalize_name(name)
            if key and key not in seen_unrecognized:
                seen_unrecognized.add(key)
                unrecognized.append(key)
            continue

        change = pending_for(ingredient_id, matched_name(name))
        explicit = extraction.levels.get(normalize_name(name))
        if explicit is not None:
            change.quantity = QuantityLevel.clamp(explicit)
        else:
            change.quantity = _added_quantity(change.quantity, bool(change.previous_staple))

    for name in extraction.rm:
        ingredient_id = match_result.ingredient_id_for(name)
        if ingredient_id is None:
            continue
        row = by_ingredient.get(ingredient_id)
        if ingredient_id not in pending and (row is None or row.quantity_level == 0):
            continue

        change = pending_for(ingredient_id, matched_name(name))
        key = normalize_name(name)
        explicit = extraction.levels.get(key)
        if explicit is not None:
            change.quantity = QuantityLevel.clamp(explicit)
        elif policy is RemovalPolicy.DEPLETE or key in depleted:
            change.quantity = QuantityLevel.NONE
        else:
            change.quantity = QuantityLevel.clamp(change.quantity - 1)

    for name, staple in extraction.staples.items():
        ingredient_id = match_result.ingredient_id_for(name)
        if ingredient_id is None:
            continue
        change = pending.get(ingredient_id)
        if change is None:
            change = pending_for(ingredient_id, matched_name(name))
            if change.quantity == QuantityLevel.NONE:
                change.quantity = QuantityLevel.FULL
        change.proposed_staple = staple

    return InventoryUpdateProposal(
        recognized=[change.to_change() for change in pending.values()],
        unrecognized=unrecognized,
    )
