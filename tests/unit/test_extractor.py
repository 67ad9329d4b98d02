"""Unit tests for the structured output extraction cascade."""

import json
import logging
import random
from unittest.mock import Mock

import pytest

from src.extraction.extractor import (
    COMPLETION_RULES,
    ExtractionOutcome,
    StructuredOutputExtractor,
    extract_and_complete,
    extract_object_text,
    is_sweet,
    join_output,
    medley_title,
    salvage_raw_text,
    sanitize_json_text,
    validate_analysis,
    with_quantities,
)
from src.extraction.synthesizer import RecipeSynthesizer
from src.models.models import FoodAnalysisResult
from src.utils.errors import ParseError

OMELETTE = (
    '{"containsfood":true,"fooditems":["egg","tomato"],"recipe":{"title":"Omelette",'
    '"ingredients":["2 eggs","1 tomato"],"instructions":"Beat eggs. Cook.","cookingtime":10,"difficulty":1}}'
)


@pytest.fixture
def extractor():
    return StructuredOutputExtractor(synthesizer=RecipeSynthesizer(rng=random.Random(7)))


class TestHelpers:
    def test_join_output_uses_single_spaces(self):
        assert join_output(['{"a":', "1}"]) == '{"a": 1}'

    def test_medley_title_from_first_two_items(self):
        assert medley_title(["egg", "tomato", "basil"]) == "Egg and Tomato Medley"

    def test_medley_title_needs_two_items(self):
        assert medley_title(["egg"]) == "Gourmet Recipe"

    def test_with_quantities_caps_at_six(self):
        items = ["a", "b", "c", "d", "e", "f", "g"]
        assert with_quantities(items) == ["2 a", "1 cup b", "3 tbsp c", "1/2 cup d", "4 e", "2 tbsp f"]

    @pytest.mark.parametrize(
        "title,items,expected",
        [
            ("Cinnamon Rolls", [], True),
            ("Breakfast", ["flour", "Vanilla extract"], True),
            ("Stir Fry", ["chicken", "broccoli"], False),
        ],
    )
    def test_is_sweet(self, title, items, expected):
        assert is_sweet(title, items) is expected


class TestValidateAnalysis:
    def test_rejects_non_object(self):
        with pytest.raises(ValueError, match="expected a JSON object"):
            validate_analysis(["egg"])

    def test_rejects_food_without_recipe(self):
        with pytest.raises(ValueError, match="no recipe"):
            validate_analysis({"containsfood": True, "fooditems": ["egg"]})

    def test_accepts_no_food_without_recipe(self):
        result = validate_analysis({"containsfood": False, "fooditems": []})
        assert result.contains_food is False

    @pytest.mark.parametrize("recipe", [{}, {"title": "", "ingredients": []}, "none"])
    def test_ignores_recipe_when_no_food(self, recipe):
        result = validate_analysis({"containsfood": False, "fooditems": [], "Recipe": recipe})

        assert result.contains_food is False
        assert result.recipe is None


class TestStrictTier:
    """Well-formed output is returned unchanged by the first tier."""

    def test_omelette_is_returned_verbatim(self, extractor):
        outcome = extractor.extract(join_output([OMELETTE]))

        assert isinstance(outcome, ExtractionOutcome)
        assert outcome.tier == "strict"
        assert outcome.result.model_dump(by_alias=True, exclude_none=True) == json.loads(OMELETTE)

    def test_long_title_is_accepted(self, extractor):
        payload = json.loads(OMELETTE)
        payload["recipe"]["title"] = "Rustic " * 30 + "Omelette"

        outcome = extractor.extract(json.dumps(payload))

        assert outcome.tier == "strict"
        assert outcome.result.recipe.title == payload["recipe"]["title"]

    def test_strict_parse_is_idempotent(self, extractor):
        first = extractor.extract(OMELETTE).result
        again = extractor.extract(json.dumps(first.model_dump(by_alias=True, exclude_none=True))).result
        assert again == first


class TestSanitizeTier:
    def test_trailing_comma_before_brace(self, extractor):
        raw = OMELETTE.replace('"difficulty":1}', '"difficulty":1,}')

        outcome = extractor.extract(raw)

        assert outcome.tier == "sanitize"
        assert outcome.result.model_dump(by_alias=True, exclude_none=True) == json.loads(OMELETTE)

    def test_prose_around_object(self, extractor):
        outcome = extractor.extract(f"Here is your recipe: {OMELETTE} Enjoy!")

        assert outcome.tier == "sanitize"
        assert outcome.result.recipe.title == "Omelette"

    def test_sanitize_json_text_repairs_in_order(self):
        assert sanitize_json_text('Result: {"a": 1,} trailing') == '{"a": 1}'
        assert sanitize_json_text("{a: 1, b: [1,2,]}") == '{"a": 1, "b": [1,2]}'
        assert sanitize_json_text('{"a": 1') == '{"a": 1}'


class TestCompleteTier:
    """Truncated or incomplete objects are completed by the first matching rule."""

    def test_egg_and_tomato_truncated_before_recipe(self, extractor):
        raw = join_output(['{"containsfood":true,"fooditems":["egg","tomato"],'])

        outcome = extractor.extract(raw)
        recipe = outcome.result.recipe

        assert outcome.tier == "complete"
        assert "Egg and Tomato Medley" in recipe.title
        assert recipe.cooking_time_minutes == 45
        assert recipe.difficulty == 3
        assert recipe.ingredients == ["2 egg", "1 cup tomato"]

    def test_ingredients_without_instructions_sweet(self, extractor):
        raw = (
            '{"containsfood": true, "fooditems": ["flour", "sugar", "butter"], '
            '"recipe": {"title": "Cinnamon Rolls", "ingredients": ["2 cups flour", "1 cup sugar", "1/2 cup butter"], "instr'
        )

        outcome = extractor.extract(raw)
        recipe = outcome.result.recipe

        assert outcome.tier == "complete"
        assert recipe.title == "Cinnamon Rolls"
        assert len(recipe.instructions) > 0
        assert recipe.instructions.startswith("Preheat your oven")
        assert recipe.difficulty == 3
        assert recipe.cooking_time_minutes == 35

    def test_ingredients_without_instructions_savory(self, extractor):
        raw = (
            '{"containsfood": true, "fooditems": ["chicken"], "recipe": {"title": "Stir Fry", '
            '"ingredients": ["200g chicken", "1 onion", "2 carrots"]'
        )

        recipe = extractor.extract(raw).result.recipe

        assert "Sauté 200g chicken until fragrant" in recipe.instructions
        assert recipe.difficulty == 3

    def test_ingredients_without_instructions_defaults_title(self):
        raw = '{"containsfood": true, "fooditems": ["egg"], "recipe": {"ingredients": ["2 eggs"]'

        recipe = extract_and_complete(raw).recipe

        assert recipe.title == "Delicious Recipe"
        assert "Combine 2 eggs in a mixing bowl" in recipe.instructions

    def test_food_items_without_recipe_key(self, extractor):
        outcome = extractor.extract('{"fooditems":["egg","spinach"]}')
        recipe = outcome.result.recipe

        assert outcome.tier == "complete"
        assert outcome.result.contains_food is True
        assert len(recipe.ingredients) >= 1
        assert recipe.instructions

    def test_four_food_items_use_long_template(self):
        result = extract_and_complete('{"containsfood": true, "fooditems": ["beef", "onion", "pepper", "rice"]')

        assert result.recipe.title == "Beef and Onion Medley"
        assert "Add rice and season generously" in result.recipe.instructions

    def test_default_recipe_when_no_food_items(self):
        result = extract_and_complete('{"containsfood": true, "fooditems": []}')

        assert result.recipe.title == "Simple Recipe"
        assert result.recipe.ingredients == ["2 eggs", "1 orange"]
        assert result.recipe.cooking_time_minutes == 15
        assert result.recipe.difficulty == 1

    def test_recipe_gaps_are_filled(self):
        raw = (
            '{"containsfood": true, "fooditems": ["rice", "beans"], '
            '"recipe": {"title": "Rice Bowl", "ingredients": ["1 cup rice"], "instructions": "Cook rice."}}'
        )

        recipe = extract_and_complete(raw).recipe

        assert recipe.title == "Rice Bowl"
        assert recipe.cooking_time_minutes == 30
        assert recipe.difficulty == 3

    def test_recipe_gaps_fill_empty_ingredients_from_food_items(self):
        raw = (
            '{"containsfood": true, "fooditems": ["rice", "beans"], '
            '"recipe": {"title": "", "ingredients": [], "instructions": "Cook.", "cookingtime": 20, "difficulty": 2}}'
        )

        recipe = extract_and_complete(raw).recipe

        assert recipe.title == "Delicious Recipe"
        assert recipe.ingredients == ["2 rice", "1 cup beans"]
        assert recipe.cooking_time_minutes == 20

    def test_key_case_is_normalized(self):
        raw = OMELETTE.replace('"containsfood"', '"ContainsFood"').replace('"cookingtime"', '"CookingTime"')

        result = extract_and_complete(raw)

        assert result.contains_food is True
        assert result.recipe.cooking_time_minutes == 10

    def test_only_first_matching_rule_runs(self):
        first = Mock(name="first")
        first.applies.return_value = True
        first.complete.side_effect = lambda d: {**d, "recipe": json.loads(OMELETTE)["recipe"]}
        second = Mock(name="second")
        second.applies.return_value = True

        extract_and_complete('{"containsfood": true, "fooditems": ["egg"]', rules=[first, second])

        first.complete.assert_called_once()
        second.complete.assert_not_called()

    def test_rules_are_in_priority_order(self):
        assert [rule.name for rule in COMPLETION_RULES] == [
            "ingredients_without_instructions",
            "food_items_without_recipe",
            "default_recipe",
            "recipe_gaps",
        ]

    def test_extract_object_text_runs_to_end_when_truncated(self):
        assert extract_object_text('noise {"a": [1, 2') == '{"a": [1, 2'
        assert extract_object_text('x {"a": 1} y') == '{"a": 1}'

    def test_extract_object_text_requires_brace(self):
        with pytest.raises(ValueError):
            extract_object_text("no braces")


class TestSalvageTier:
    def test_salvage_from_loose_text(self, extractor):
        raw = 'I found "fooditems": ["banana", "milk"] and "title": "Banana Smoothie" for you'

        outcome = extractor.extract(raw)

        assert outcome.tier == "salvage"
        assert outcome.result.contains_food is True
        assert outcome.result.food_items == ["banana", "milk"]
        assert outcome.result.recipe.title == "Banana Smoothie"
        assert "blender" in outcome.result.recipe.instructions

    def test_salvage_without_title_uses_default(self):
        result = salvage_raw_text('"fooditems": ["kale"]', synthesizer=RecipeSynthesizer(seed=1))
        assert result.recipe.title == "Gourmet Recipe"

    def test_salvage_requires_food_items(self):
        with pytest.raises(ValueError):
            salvage_raw_text('"fooditems": []')
        with pytest.raises(ValueError):
            salvage_raw_text("nothing here")


class TestExhaustion:
    def test_plain_prose_raises_parse_error(self, extractor):
        raw = join_output(["not json at all, sorry"])

        with pytest.raises(ParseError) as exc:
            extractor.extract(raw)

        assert exc.value.raw_text == raw
        assert exc.value.user_message.startswith("Unable to generate recipe")
        assert raw not in exc.value.user_message

    def test_exhaustion_is_logged_as_warning(self, extractor, caplog):
        with caplog.at_level(logging.DEBUG, logger="culinai"):
            with pytest.raises(ParseError):
                extractor.extract("not json at all, sorry")

        assert any(r.levelno == logging.WARNING and "extraction tiers failed" in r.getMessage() for r in caplog.records)


class TestStrategyList:
    def test_custom_strategies_run_in_order(self):
        calls = []

        def failing(raw):
            calls.append("failing")
            raise ValueError("nope")

        def succeeding(raw):
            calls.append("succeeding")
            return FoodAnalysisResult(contains_food=False)

        def never(raw):
            calls.append("never")
            raise AssertionError("should not run")

        extractor = StructuredOutputExtractor(strategies=[("a", failing), ("b", succeeding), ("c", never)])
        outcome = extractor.extract("anything")

        assert outcome.tier == "b"
        assert calls == ["failing", "succeeding"]

    def test_empty_strategy_list_raises(self):
        with pytest.raises(ParseError):
            StructuredOutputExtractor(strategies=[]).extract("{}")


@pytest.mark.parametrize(
    "raw",
    [
        OMELETTE,
        OMELETTE.replace('"difficulty":1}', '"difficulty":1,}'),
        '{"containsfood":true,"fooditems":["egg","tomato"],',
        '{"containsfood": true, "fooditems": ["egg"], "recipe": {"title": "Eggs", "ingredients": ["2 eggs"]',
        '{"containsfood": true, "fooditems": []}',
        '"fooditems": ["oats", "honey"], "title": "Oat Cookie"',
    ],
)
def test_every_tier_emits_a_complete_recipe(extractor, raw):
    recipe = extractor.extract(raw).result.recipe

    assert 1 <= recipe.difficulty <= 5
    assert recipe.ingredients
    assert recipe.instructions
