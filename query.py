#!/usr/bin/env python3
"""Ad hoc runner for the recipe pipeline.

Turn one photo into a recipe and a rendering of it, without any web layer.

Usage:
    python query.py images/fridge.jpg
    python query.py --json images/fridge.jpg          # Print the full result as JSON
    python query.py --debug images/fridge.jpg         # Also show the extraction tier
    python query.py --seed 42 https://example.com/fridge.png

Requires REPLICATE_API_TOKEN in the environment or .env file.
"""

import asyncio
import sys
from typing import Optional

from rich.console import Console
from rich.markdown import Markdown

from src.models.models import RecipeResult
from src.pipeline.orchestrator import generate_recipe
from src.utils.config import config
from src.utils.errors import RecipePipelineError
from src.utils.logger import logger

console = Console()

USAGE = "Usage: python query.py [--debug] [--json] [--seed N] <image-path-or-url>"


def format_recipe_markdown(result: RecipeResult) -> str:
    """Render a RecipeResult as Markdown for the terminal."""
    recipe = result.analysis.recipe
    lines = [f"# {recipe.title}", ""]
    if recipe.description:
        lines += [recipe.description, ""]

    facts = [f"**Time:** {recipe.cooking_time_minutes} mins", f"**Difficulty:** {recipe.difficulty_label}"]
    if recipe.serves:
        facts.append(f"**Serves:** {recipe.serves}")
    lines += [" · ".join(facts), ""]

    lines += ["## Detected in your photo", ", ".join(result.analysis.food_items), ""]
    lines += ["## Ingredients"] + [f"- {ingredient}" for ingredient in recipe.ingredients] + [""]
    lines += ["## Instructions", recipe.instructions, ""]
    lines += ["## Rendering", result.image.final_image]
    return "\n".join(lines)


def run_query(image_source: str, debug: bool = False, as_json: bool = False, seed: Optional[int] = None) -> int:
    """Run the pipeline for one image and print the outcome.

    Returns:
        Process exit code: 0 on success, 1 on any failure.
    """
    try:
        logger.info(f"Generating recipe for: {image_source}")
        result = asyncio.run(generate_recipe(image_source, seed=seed))
    except KeyboardInterrupt:
        logger.info("Query interrupted by user.")
        return 1
    except RecipePipelineError as e:
        logger.error(f"Pipeline failed: {e}")
        console.print(f"[red]✗ {e.user_message}[/red]")
        return 1
    except ValueError as e:
        logger.error(f"Invalid input: {e}")
        console.print(f"[red]✗ {e}[/red]")
        return 1

    console.print()
    if as_json:
        console.print_json(data=result.model_dump(mode="json", by_alias=True, exclude_none=True))
        return 0

    if debug:
        console.print(f"[dim]Extraction tier: {result.extraction_tier}[/dim]")
        console.print()
    console.print(Markdown(format_recipe_markdown(result)))
    return 0


def parse_args(argv: list[str]) -> dict:
    """Parse `[--debug] [--json] [--seed N] <source>` into run_query kwargs.

    Raises:
        ValueError: On unknown flags, a bad seed or a missing image source.
    """
    options = {"debug": False, "as_json": config.OUTPUT_FORMAT == "json", "seed": None}
    index = 0
    while index < len(argv) and argv[index].startswith("--"):
        flag = argv[index]
        if flag == "--debug":
            options["debug"] = True
        elif flag == "--json":
            options["as_json"] = True
        elif flag == "--seed":
            index += 1
            if index >= len(argv):
                raise ValueError("--seed flag requires a number")
            try:
                options["seed"] = int(argv[index])
            except ValueError:
                raise ValueError(f"--seed must be an integer, got: {argv[index]}") from None
        else:
            raise ValueError(f"Unknown flag: {flag}")
        index += 1

    if index >= len(argv):
        raise ValueError("No image provided")
    options["image_source"] = argv[index]
    return options


if __name__ == "__main__":
    try:
        cli_options = parse_args(sys.argv[1:])
    except ValueError as e:
        print(f"Error: {e}")
        print(USAGE)
        sys.exit(1)

    sys.exit(run_query(**cli_options))
