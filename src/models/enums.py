"""Enums for model fields."""

from enum import Enum


class IngredientCategory(str, Enum):
    """Fixed category set for catalog ingredients."""

    MEAT = "meat"
    CEREAL = "cereal"
    FISH = "fish"
    MOLLUSCS = "molluscs"
    CRUSTACEANS = "crustaceans"
    BEE_INGREDIENTS = "bee_ingredients"
    SYNTHESIZED = "synthesized"
    POULTRY = "poultry"
    EGGS = "eggs"
    DAIRY = "dairy"
    FRUIT = "fruit"
    VEGETABLES = "vegetables"
    BEANS = "beans"
    NUTS = "nuts"
    SEED = "seed"
    PLANTS = "plants"
    MUSHROOM = "mushroom"
    CHEESES = "cheeses"
    OILS_AND_FATS = "oils_and_fats"
    NON_CLASSIFIED = "non_classified"
    E100_E199 = "e100_e199"
    FERMENTS = "ferments"
    SALT = "salt"
    STARCH = "starch"
    ALCOHOL = "alcohol"
    AROMA = "aroma"
    COCOA = "cocoa"
    WATER = "water"
    PARTS = "parts"
    COMPOUND_INGREDIENTS = "compound_ingredients"


class QuantityLevel(int, Enum):
    """Inventory quantity levels. NONE means the item is absent."""

    NONE = 0
    LOW = 1
    SOME = 2
    FULL = 3

    @classmethod
    def clamp(cls, value: int) -> int:
        """Clamp a raw level into the valid 0..3 range."""
        return max(cls.NONE.value, min(cls.FULL.value, value))


class RemovalPolicy(str, Enum):
    """How far a removal drops an ingredient's quantity."""

    DECREMENT = "decrement"  # one level per mention
    DEPLETE = "deplete"  # straight to NONE
