"""Demo inventory used by the "start demo" prefill."""

from typing import NamedTuple


class DemoItem(NamedTuple):
    name: str
    quantity_level: int
    is_pantry_staple: bool


DEMO_INVENTORY: list[DemoItem] = [
    # Available ingredients
    DemoItem("bread", 3, False),
    DemoItem("butter", 3, False),
    DemoItem("egg", 3, False),
    DemoItem("garlic", 1, False),
    DemoItem("milk", 3, False),
    DemoItem("onion", 2, False),
    DemoItem("peanut butter", 3, False),
    DemoItem("spaghetti", 2, False),
    # Pantry staples
    DemoItem("baking powder", 3, True),
    DemoItem("bean", 3, True),
    DemoItem("black pepper", 3, True),
    DemoItem("flour", 3, True),
    DemoItem("honey", 3, True),
    DemoItem("noodle", 3, True),
    DemoItem("olive oil", 3, True),
    DemoItem("pasta", 3, True),
    DemoItem("rice", 3, True),
    DemoItem("salt", 3, True),
    DemoItem("soy sauce", 3, True),
    DemoItem("sugar", 3, True),
]
