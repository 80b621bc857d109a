"""Inventory schemas."""

from datetime import datetime
from typing import Annotated, Literal

from pydantic import Field

from src.schemas.base import ApiModel


class InventorySetRequest(ApiModel):
    """Set the quantity of one catalog ingredient."""

    ingredient_id: int
    quantity_level: int = Field(..., ge=0, le=3)


class InventoryBatchRequest(ApiModel):
    updates: list[InventorySetRequest] = Field(..., min_length=1)


class RecognizedInventoryItem(ApiModel):
    """Inventory row backed by a catalog ingredient."""

    kind: Literal["recognized"] = "recognized"
    id: int
    ingredient_id: int
    name: str
    category: str
    quantity_level: int
    is_pantry_staple: bool
    updated_at: datetime


class UnrecognizedInventoryItem(ApiModel):
    """Inventory row backed by raw text with no catalog match."""

    kind: Literal["unrecognized"] = "unrecognized"
    id: int
    unrecognized_item_id: int
    name: str
    quantity_level: int
    is_pantry_staple: bool
    updated_at: datetime


InventoryItemResponse = Annotated[
    RecognizedInventoryItem | UnrecognizedInventoryItem, Field(discriminator="kind")
]


class InventoryListResponse(ApiModel):
    inventory: list[InventoryItemResponse]
    count: int


class InventoryBatchResponse(ApiModel):
    success: bool = True
    updated: int


class InventoryResetResponse(ApiModel):
    success: bool = True
    deleted: int


class DemoPrefillResponse(ApiModel):
    success: bool = True
    inventory_created: int
    unrecognized_created: int


class ValidateIngredientsRequest(ApiModel):
    ingredient_names: list[str] = Field(..., max_length=200)


class RecognizedIngredientResponse(ApiModel):
    input_name: str
    matched_name: str
    ingredient_id: int


class ValidateIngredientsResponse(ApiModel):
    recognized: list[RecognizedIngredientResponse]
    unrecognized: list[str]
