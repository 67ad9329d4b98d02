"""Heuristic recipe synthesis for when model output is beyond repair.

Given only a title and a list of food items, RecipeSynthesizer fabricates a
complete, schema-valid RecipeRecord. The instructions come from one of three
fixed templates (drink, sweet, savory) chosen by keywords in the title; the
filler fields (time, servings, difficulty, quantities) are drawn from an
injectable random.Random so callers can seed it.

The content is plausible filler, not a real recipe.
"""

import random
import re
from typing import Optional

from src.models.models import RecipeRecord, join_sentences

DEFAULT_TITLE = "Gourmet Recipe"

DESCRIPTION = (
    "A delicious recipe created from the ingredients in your fridge. This dish combines "
    "fresh flavors and proper cooking techniques for a satisfying meal."
)

# Drinks are checked first so a "strawberry milkshake" is never a dessert.
# "tea" must start a word, otherwise every "steak" would be a drink.
DRINK_PATTERN = re.compile(r"shake|smoothie|juice|\btea")
SWEET_PATTERN = re.compile(r"cake|cookie|muffin|brownie|ice cream|pudding")

TEMPLATES = {
    "drink": [
        "Wash and prepare all fresh ingredients thoroughly",
        "Add liquid ingredients to the blender first, followed by solid ingredients",
        "Blend on low speed for 30 seconds, then increase to high speed",
        "Continue blending until the mixture is completely smooth and creamy",
        "Taste and adjust sweetness or thickness as needed",
        "Pour into chilled glasses and serve immediately with garnishes",
    ],
    "sweet": [
        "Preheat oven to 350°F (175°C) and prepare baking dish with non-stick spray",
        "In a large mixing bowl, cream together butter and sugar until light and fluffy",
        "Add eggs one at a time, beating well after each addition",
        "Gradually mix in dry ingredients, alternating with liquid ingredients",
        "Gently fold in fresh fruits and nuts until evenly distributed",
        "Pour batter into prepared dish and bake for 25-30 minutes until golden brown",
        "Allow to cool completely before serving or storing",
    ],
    "savory": [
        "Heat oil in a large skillet over medium-high heat",
        "Dice vegetables and proteins into uniform pieces for even cooking",
        "Sauté aromatics (onions, garlic) until fragrant and translucent",
        "Add proteins and cook until browned on all sides",
        "Incorporate vegetables and cook until tender-crisp",
        "Season with herbs, spices, salt, and pepper to taste",
        "Simmer with liquid ingredients to develop flavors",
        "Garnish with fresh herbs and serve hot",
    ],
}


def classify_title(title: str) -> str:
    """Return the template family ("drink", "sweet" or "savory") for a recipe title."""
    lowered = title.lower()
    if DRINK_PATTERN.search(lowered):
        return "drink"
    if SWEET_PATTERN.search(lowered):
        return "sweet"
    return "savory"


class RecipeSynthesizer:
    """Builds complete RecipeRecords from a title and food items."""

    def __init__(self, rng: Optional[random.Random] = None, seed: Optional[int] = None) -> None:
        """
        Args:
            rng: Random source for filler values. Takes precedence over seed.
            seed: Seed for a private random.Random when rng is not given.
        """
        self.rng = rng if rng is not None else random.Random(seed)

    def synthesize(self, title: str, food_items: list[str]) -> RecipeRecord:
        """Fabricate a full recipe.

        Args:
            title: Recipe title; blank falls back to "Gourmet Recipe".
            food_items: Detected food items, at least one.

        Returns:
            RecipeRecord with every required field populated.

        Raises:
            ValueError: If food_items has no non-blank entry.
        """
        items = [item.strip() for item in food_items if item and item.strip()]
        if not items:
            raise ValueError("Cannot synthesize a recipe without food items")

        title = title.strip() if title and title.strip() else DEFAULT_TITLE
        family = classify_title(title)

        low = self.rng.randint(2, 4)
        high = self.rng.randint(4, 5)
        return RecipeRecord(
            title=title,
            description=DESCRIPTION,
            ingredients=[f"{self.rng.randint(1, 2)} {item}" for item in items],
            instructions=join_sentences(TEMPLATES[family]),
            cooking_time_minutes=self.rng.randint(10, 24),
            difficulty=self.rng.randint(1, 3),
            serves=f"{low}-{high}",
        )


def synthesize_recipe(title: str, food_items: list[str], rng: Optional[random.Random] = None) -> RecipeRecord:
    """Convenience wrapper around RecipeSynthesizer.synthesize."""
    return RecipeSynthesizer(rng=rng).synthesize(title, food_items)
