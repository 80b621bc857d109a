"""SQLAlchemy models."""

from src.models.ingredient import Ingredient
from src.models.unrecognized_item import UnrecognizedItem
from src.models.usage_log import UsageLogEntry
from src.models.user_inventory import (
    InventoryRef,
    RecognizedRef,
    UnrecognizedRef,
    UserInventoryItem,
)

__all__ = [
    "Ingredient",
    "UnrecognizedItem",
    "UserInventoryItem",
    "UsageLogEntry",
    "InventoryRef",
    "RecognizedRef",
    "UnrecognizedRef",
]
