"""Prompts sent to the prediction service.

The analysis prompt demands strict JSON with lower-case keys; the extractor
exists because models do not reliably comply. The image prompt is a fixed
template over the extracted recipe.
"""

from typing import List

ANALYSIS_PROMPT = (
    "You are a JSON generator. You must output ONLY valid JSON with no additional text, "
    "explanations, or formatting. Analyze the provided image to identify up to 10 food "
    "ingredients and return a JSON object with this exact structure: "
    '{"containsfood": true, "fooditems": ["ingredient1", "ingredient2"], '
    '"recipe": {"title": "Recipe Title", "ingredients": ["amount ingredient1", "amount ingredient2"], '
    '"instructions": "step1, step2, step3", "cookingtime": 30, "difficulty": 3}}. '
    'If no food is detected, use {"containsfood": false, "fooditems": []}. '
    "IMPORTANT: Output ONLY the JSON object, no other text. Ensure all property names are in "
    "double quotes, all strings are in double quotes, and the JSON is perfectly formatted with "
    "no trailing commas and proper closing braces. Do not include any explanations or additional formatting."
)


def build_image_prompt(title: str, food_items: List[str]) -> str:
    """Prompt for the image model: "A photorealistic photo of a {title} with {items}"."""
    return f"A photorealistic photo of a {title} with {' '.join(food_items)}"
