"""Structured output extraction: raw model text → validated FoodAnalysisResult.

The analysis model is told to answer with ONLY valid JSON, and often does not:
it wraps the object in prose, leaves trailing commas, forgets quotes, or runs
out of tokens halfway through the recipe. StructuredOutputExtractor runs an
ordered list of strategies ("tiers") over the text and returns the first
result that validates:

1. strict    - json.loads on the raw text
2. sanitize  - cut to the outermost braces, close the object, strip trailing
               commas, quote bare keys, then json.loads
3. complete  - read the (possibly truncated) object with the tolerant reader
               and fill what is missing with the first matching CompletionRule
4. salvage   - regex the raw text for a fooditems array and a title and let
               the RecipeSynthesizer write the rest

Each tier either returns a FoodAnalysisResult or raises; failures are logged at
debug level and the next tier runs. A result only counts when it validates and,
if food was detected, carries a recipe. When every tier fails, ParseError is
raised with the raw text attached for diagnostics.

Strategies are plain `(name, callable)` pairs, so adding, removing or
reordering a tier is a one-line change to the list passed to the extractor.
"""

import json
import re
from dataclasses import dataclass
from functools import partial
from typing import Callable, List, Optional, Tuple

from src.extraction.json_reader import read_partial_json
from src.extraction.synthesizer import RecipeSynthesizer
from src.models.models import FoodAnalysisResult
from src.utils.errors import ParseError, safe_execute_sync
from src.utils.logger import logger

Strategy = Tuple[str, Callable[[str], FoodAnalysisResult]]

SWEET_KEYWORDS = ("sugar", "cinnamon", "vanilla", "cake", "cookie", "dessert", "roll", "sweet")
QUANTITIES = ["2", "1 cup", "3 tbsp", "1/2 cup", "4", "2 tbsp"]

_FOOD_ITEMS_RE = re.compile(r'"fooditems"\s*:\s*\[([^\]]*)\]', re.IGNORECASE)
_TITLE_RE = re.compile(r'"title"\s*:\s*"([^"]*)"', re.IGNORECASE)
_TRAILING_COMMA_RE = re.compile(r",(\s*[}\]])")
_BARE_KEY_RE = re.compile(r"([{,]\s*)([a-zA-Z_][a-zA-Z0-9_]*)\s*:")


@dataclass
class ExtractionOutcome:
    """A validated result plus the name of the tier that produced it."""

    result: FoodAnalysisResult
    tier: str


def join_output(fragments: List[str]) -> str:
    """Concatenate streamed output fragments, in order, separated by spaces."""
    return " ".join(fragments)


def validate_analysis(data: object) -> FoodAnalysisResult:
    """Validate a parsed object as a usable FoodAnalysisResult.

    Raises:
        ValueError: If data is not an object, fails schema validation
            (pydantic.ValidationError is a ValueError), or reports food
            without a recipe.
    """
    if not isinstance(data, dict):
        raise ValueError(f"expected a JSON object, got {type(data).__name__}")
    # a recipe sent alongside containsfood=false is never used, so it is not validated
    result = FoodAnalysisResult.model_validate({k: v for k, v in data.items() if str(k).lower() != "recipe"})
    if not result.contains_food:
        return result
    result = FoodAnalysisResult.model_validate(data)
    if result.recipe is None:
        raise ValueError("food detected but no recipe present")
    return result


def is_sweet(title: str, items: List[str]) -> bool:
    """True if the title or any item mentions a dessert/baking keyword."""
    haystack = [title.lower()] + [item.lower() for item in items]
    return any(keyword in text for text in haystack for keyword in SWEET_KEYWORDS)


def medley_title(food_items: List[str]) -> str:
    """"Egg and Tomato Medley" from the first two items, else "Gourmet Recipe"."""
    if len(food_items) < 2:
        return "Gourmet Recipe"
    first, second = (item.strip().title() for item in food_items[:2])
    return f"{first} and {second} Medley"


def with_quantities(food_items: List[str]) -> List[str]:
    """Pair up to six items with a fixed quantity pattern."""
    return [f"{quantity} {item}" for quantity, item in zip(QUANTITIES, food_items)]


# ============================================================================
# Tier 1 and 2
# ============================================================================


def strict_parse(raw_text: str) -> FoodAnalysisResult:
    return validate_analysis(json.loads(raw_text))


def sanitize_json_text(raw_text: str) -> str:
    """Apply the textual repairs of tier 2, in order."""
    text = raw_text
    first = text.find("{")
    if first > 0:
        text = text[first:]
    last = text.rfind("}")
    if last > 0:
        text = text[: last + 1]
    if not text.rstrip().endswith("}"):
        text = text + "}"
    text = _TRAILING_COMMA_RE.sub(r"\1", text)
    text = _BARE_KEY_RE.sub(r'\1"\2":', text)
    return text


def sanitize_and_parse(raw_text: str) -> FoodAnalysisResult:
    return validate_analysis(json.loads(sanitize_json_text(raw_text)))


# ============================================================================
# Tier 3: tolerant read + completion rules
# ============================================================================


@dataclass(frozen=True)
class CompletionRule:
    """Fills in a partially read analysis object.

    `applies` inspects the lower-cased object; `complete` returns the object
    with the missing fields added. Rules are tried in order and only the first
    match runs.
    """

    name: str
    applies: Callable[[dict], bool]
    complete: Callable[[dict], dict]


def _recipe(data: dict) -> Optional[dict]:
    recipe = data.get("recipe")
    return recipe if isinstance(recipe, dict) else None


def _food_items(data: dict) -> List[str]:
    items = data.get("fooditems")
    if not isinstance(items, list):
        return []
    return [str(item).strip() for item in items if item is not None and str(item).strip()]


def _ingredient_instructions(title: str, ingredients: List[str]) -> str:
    if len(ingredients) >= 3:
        a, b, c = ingredients[:3]
        if is_sweet(title, ingredients):
            return (
                "Preheat your oven to 350°F (175°C) and prepare your baking pan. "
                f"In a large mixing bowl, combine {a} and {b} until well mixed. "
                f"Gradually add {c} while stirring continuously. "
                "Mix in any additional flavorings like vanilla or spices. "
                "Pour the mixture into your prepared pan and bake for 25-30 minutes, "
                "or until a toothpick inserted in the center comes out clean. "
                "Allow to cool before serving."
            )
        return (
            "Prepare and measure all ingredients. Heat a pan over medium heat and add oil. "
            f"Sauté {a} until fragrant. Add {b} and cook for 2-3 minutes. "
            f"Incorporate {c} and season to taste. "
            "Cook until all ingredients are well combined and heated through. "
            "Serve hot with your preferred accompaniments."
        )
    combined = " and ".join(ingredients) if ingredients else "the ingredients"
    return (
        f"Gather and prepare all ingredients. Combine {combined} in a mixing bowl. "
        "Season with salt, pepper, and herbs to enhance the natural flavors. "
        "Mix thoroughly until well combined. "
        "Let the mixture rest for 10 minutes to allow flavors to meld. "
        "Serve immediately or refrigerate for later use."
    )


def _food_item_instructions(title: str, items: List[str]) -> str:
    sweet = is_sweet(title, items)
    if len(items) >= 4:
        a, b, c, d = items[:4]
        if sweet:
            return (
                "Preheat your oven to 350°F (175°C) and grease a baking pan. "
                f"In a large mixing bowl, cream together {a} and {b} until light and fluffy. "
                f"Gradually add {c} while mixing continuously. "
                f"Fold in {d} and any additional flavorings. "
                "Pour the batter into your prepared pan and bake for 25-30 minutes, "
                "or until a toothpick inserted in the center comes out clean. "
                "Allow to cool completely before serving."
            )
        return (
            "Begin by preparing your workspace and gathering all necessary equipment. "
            "Wash and prepare all fresh ingredients, chopping vegetables and measuring dry ingredients. "
            "Heat a large skillet over medium-high heat and add 2-3 tablespoons of cooking oil. "
            f"Start by sautéing {a} until it begins to soften and release its natural flavors. "
            f"Add {b} and continue cooking for 3-4 minutes, stirring occasionally. "
            f"Incorporate {c} and cook for an additional 2-3 minutes. "
            f"Add {d} and season generously with salt, pepper, and complementary herbs and spices. "
            "Reduce heat to medium and cook for 5-7 minutes, allowing all flavors to meld together. "
            "Taste and adjust seasoning as needed, then serve hot."
        )
    if len(items) >= 2:
        a, b = items[:2]
        if sweet:
            return (
                "Preheat your oven to 350°F (175°C). "
                f"In a medium mixing bowl, combine {a} with {b} and the remaining ingredients. "
                "Mix in sugar and spices to taste. "
                "Pour the mixture into a greased baking dish and bake for 20-25 minutes, or until golden brown. "
                "Allow to cool before serving."
            )
        return (
            "Prepare your workspace and gather all necessary equipment. "
            f"Clean and prepare {a} according to your preference. "
            f"In a medium mixing bowl, combine {a} with {b} and the remaining ingredients. "
            "Season the mixture generously with salt, pepper, and complementary spices. "
            "Allow the ingredients to marinate for 15-20 minutes to develop flavors. "
            "Heat a pan over medium heat with a small amount of oil and cook, stirring occasionally, "
            "until everything is heated through. "
            "Serve immediately, garnished with herbs if available."
        )
    return (
        "Carefully prepare and measure all ingredients. "
        "In a clean mixing bowl, combine the ingredients thoroughly. "
        "Season with salt, pepper, and herbs to enhance the natural flavors. "
        "Allow the mixture to rest for 10-15 minutes to develop flavors. "
        "Taste and adjust seasoning as needed. Serve in an attractive presentation."
    )


def _complete_instructions(data: dict) -> dict:
    recipe = _recipe(data)
    ingredients = recipe.get("ingredients")
    if isinstance(ingredients, list):
        ingredients = [str(item).strip() for item in ingredients if item is not None and str(item).strip()]
    else:
        ingredients = []
    if not ingredients:
        ingredients = with_quantities(_food_items(data))
    title = recipe.get("title") or "Delicious Recipe"
    recipe.update(
        title=title,
        ingredients=ingredients,
        instructions=_ingredient_instructions(title, ingredients),
        cookingtime=35,
        difficulty=3,
    )
    data.setdefault("containsfood", True)
    return data


def _complete_recipe_from_food_items(data: dict) -> dict:
    items = _food_items(data)
    title = medley_title(items)
    data.setdefault("containsfood", True)
    data["recipe"] = {
        "title": title,
        "ingredients": with_quantities(items),
        "instructions": _food_item_instructions(title, items),
        "cookingtime": 45,
        "difficulty": 3,
    }
    return data


def _complete_default_recipe(data: dict) -> dict:
    data["recipe"] = {
        "title": "Simple Recipe",
        "ingredients": ["2 eggs", "1 orange"],
        "instructions": "Mix ingredients together",
        "cookingtime": 15,
        "difficulty": 1,
    }
    return data


def _complete_recipe_gaps(data: dict) -> dict:
    recipe = _recipe(data)
    defaults = {
        "title": "Delicious Recipe",
        "ingredients": with_quantities(_food_items(data)),
        "cookingtime": 30,
        "difficulty": 3,
    }
    for key, value in defaults.items():
        if not recipe.get(key):
            recipe[key] = value
    data.setdefault("containsfood", True)
    return data


COMPLETION_RULES: List[CompletionRule] = [
    CompletionRule(
        name="ingredients_without_instructions",
        applies=lambda d: _recipe(d) is not None and "ingredients" in _recipe(d) and "instructions" not in _recipe(d),
        complete=_complete_instructions,
    ),
    CompletionRule(
        name="food_items_without_recipe",
        applies=lambda d: bool(_food_items(d)) and "recipe" not in d,
        complete=_complete_recipe_from_food_items,
    ),
    CompletionRule(
        name="default_recipe",
        applies=lambda d: "containsfood" in d and "fooditems" in d and "recipe" not in d,
        complete=_complete_default_recipe,
    ),
    CompletionRule(
        name="recipe_gaps",
        applies=lambda d: _recipe(d) is not None
        and "instructions" in _recipe(d)
        and any(key not in _recipe(d) or not _recipe(d)[key] for key in ("title", "ingredients", "cookingtime", "difficulty")),
        complete=_complete_recipe_gaps,
    ),
]


def extract_object_text(raw_text: str) -> str:
    """Greedy first-`{`-to-last-`}` slice; runs to the end of text when truncated."""
    start = raw_text.find("{")
    if start < 0:
        raise ValueError("no JSON object start found")
    end = raw_text.rfind("}")
    if end < start:
        return raw_text[start:]
    return raw_text[start : end + 1]


def _lower_keys(data: dict) -> dict:
    lowered = {str(key).lower(): value for key, value in data.items()}
    if isinstance(lowered.get("recipe"), dict):
        lowered["recipe"] = {str(key).lower(): value for key, value in lowered["recipe"].items()}
    return lowered


def extract_and_complete(raw_text: str, rules: Optional[List[CompletionRule]] = None) -> FoodAnalysisResult:
    candidate = extract_object_text(raw_text)

    parsed = safe_execute_sync(
        lambda: validate_analysis(json.loads(candidate)),
        "Tier complete: extracted object is not usable as-is",
        log_level="debug",
    )
    if parsed is not None:
        return parsed

    partial_json = read_partial_json(candidate)
    logger.debug(
        f"Tolerant read: complete={partial_json.complete}, keys={partial_json.found_keys}, "
        f"notes={partial_json.notes}"
    )

    data = _lower_keys(partial_json.value)
    for rule in rules if rules is not None else COMPLETION_RULES:
        if rule.applies(data):
            logger.debug(f"Applying completion rule '{rule.name}'", extra={"tier": "complete"})
            data = rule.complete(data)
            break
    return validate_analysis(data)


# ============================================================================
# Tier 4: raw-text salvage
# ============================================================================


def _split_array_body(body: str) -> List[str]:
    items = [part.strip().strip("\"'").strip() for part in body.split(",")]
    return [item for item in items if item]


def salvage_raw_text(raw_text: str, synthesizer: Optional[RecipeSynthesizer] = None) -> FoodAnalysisResult:
    items_match = _FOOD_ITEMS_RE.search(raw_text)
    if not items_match:
        raise ValueError("no fooditems array found in raw text")
    food_items = _split_array_body(items_match.group(1))
    if not food_items:
        raise ValueError("fooditems array is empty")

    title_match = _TITLE_RE.search(raw_text)
    title = title_match.group(1) if title_match else ""

    recipe = (synthesizer or RecipeSynthesizer()).synthesize(title, food_items)
    return FoodAnalysisResult(contains_food=True, food_items=food_items, recipe=recipe)


def default_strategies(synthesizer: RecipeSynthesizer) -> List[Strategy]:
    """The four-tier cascade, least to most aggressive."""
    return [
        ("strict", strict_parse),
        ("sanitize", sanitize_and_parse),
        ("complete", extract_and_complete),
        ("salvage", partial(salvage_raw_text, synthesizer=synthesizer)),
    ]


class StructuredOutputExtractor:
    """Runs extraction strategies in order and returns the first usable result."""

    def __init__(
        self,
        strategies: Optional[List[Strategy]] = None,
        synthesizer: Optional[RecipeSynthesizer] = None,
    ) -> None:
        self.synthesizer = synthesizer or RecipeSynthesizer()
        self.strategies = strategies if strategies is not None else default_strategies(self.synthesizer)

    def extract(self, raw_text: str) -> ExtractionOutcome:
        """Turn raw model text into a validated FoodAnalysisResult.

        Args:
            raw_text: Space-joined model output (see join_output).

        Returns:
            ExtractionOutcome with the result and the winning tier's name.

        Raises:
            ParseError: If every strategy failed. The raw text is attached to
                the exception and logged at debug level only.
        """
        for name, strategy in self.strategies:
            result = safe_execute_sync(
                partial(strategy, raw_text),
                f"Extraction tier '{name}' failed",
                log_level="debug",
            )
            if result is not None:
                logger.info(f"Model output extracted by tier '{name}'", extra={"tier": name})
                return ExtractionOutcome(result=result, tier=name)

        logger.warning(f"All {len(self.strategies)} extraction tiers failed")
        logger.debug(f"Unparseable model output: {raw_text!r}")
        raise ParseError(f"All {len(self.strategies)} extraction tiers failed", raw_text=raw_text)
