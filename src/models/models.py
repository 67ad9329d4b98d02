"""Data models for the recipe pipeline.

Defines Pydantic models for prediction jobs and for the structured recipe data
extracted from model output. All models use Pydantic v2.

The analysis model is asked for lower-case wire keys (`containsfood`,
`fooditems`, `cookingtime`); models accept those aliases as well as the Python
field names and dump back to the wire keys with `model_dump(by_alias=True)`.
Validators are deliberately lenient about *shape* (a string where a list was
expected, "Level 2" for a difficulty) but strict about *presence*: a
RecipeRecord that validates always has every required field populated.
"""

import re
from enum import Enum
from typing import Any, List, Optional, Annotated

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


def join_sentences(steps: List[str]) -> str:
    """Join instruction steps into one narrative, one sentence per step."""
    sentences = [str(step).strip().rstrip(".").strip() for step in steps]
    sentences = [s for s in sentences if s]
    return ". ".join(sentences) + "." if sentences else ""


def _first_int(value: str) -> Optional[int]:
    match = re.search(r"-?\d+", value)
    return int(match.group()) if match else None


class PredictionStatus(str, Enum):
    """Lifecycle status of a prediction job."""

    STARTING = "starting"
    PROCESSING = "processing"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELED = "canceled"


TERMINAL_STATUSES = frozenset({PredictionStatus.SUCCEEDED, PredictionStatus.FAILED, PredictionStatus.CANCELED})


class PredictionJob(BaseModel):
    """One asynchronous unit of work on the prediction service.

    Only the fields the pipeline reads are modelled; anything else the service
    returns (urls, metrics, logs) is ignored.
    """

    id: Annotated[str, Field(min_length=1, description="Opaque prediction id")]
    status: Annotated[PredictionStatus, Field(description="Current lifecycle status")]
    output: Annotated[
        Optional[List[str]],
        Field(None, description="Text fragments (analysis) or image URIs (image generation)"),
    ]
    error: Annotated[Optional[str], Field(None, description="Failure message reported by the service")]

    @field_validator("output", mode="before")
    @classmethod
    def coerce_output(cls, v: Any) -> Optional[List[str]]:
        """Single-string outputs become a one-item list; null fragments are dropped."""
        if v is None:
            return None
        if isinstance(v, str):
            return [v]
        if isinstance(v, list):
            return [item if isinstance(item, str) else str(item) for item in v if item is not None]
        return [str(v)]

    @field_validator("error", mode="before")
    @classmethod
    def coerce_error(cls, v: Any) -> Optional[str]:
        if v is None or v == "":
            return None
        return v if isinstance(v, str) else str(v)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def succeeded(self) -> bool:
        return self.status == PredictionStatus.SUCCEEDED


class RecipeRecord(BaseModel):
    """A complete recipe. Every instance satisfies the required-field constraints."""

    model_config = ConfigDict(str_strip_whitespace=True, populate_by_name=True)

    title: Annotated[str, Field(min_length=1, description="Recipe name")]
    description: Annotated[Optional[str], Field(None, description="Short blurb about the dish")]
    ingredients: Annotated[
        List[str], Field(min_length=1, description="Ingredients with quantities, e.g. '2 eggs'")
    ]
    instructions: Annotated[str, Field(min_length=1, description="Sentence-joined cooking steps")]
    cooking_time_minutes: Annotated[
        int,
        Field(
            gt=0,
            validation_alias=AliasChoices("cookingtime", "cooking_time_minutes", "cookingTimeMinutes", "cooking_time"),
            serialization_alias="cookingtime",
            description="Total time in minutes",
        ),
    ]
    difficulty: Annotated[int, Field(ge=1, le=5, description="Difficulty from 1 (easy) to 5 (hard)")]
    serves: Annotated[Optional[str], Field(None, description="Serving range, e.g. '2-4'")]

    @field_validator("ingredients", mode="before")
    @classmethod
    def coerce_ingredients(cls, v: Any) -> Any:
        """Accept a comma/newline separated string and drop blank entries."""
        if isinstance(v, str):
            v = re.split(r"[,\n]", v)
        if isinstance(v, list):
            return [str(item).strip() for item in v if item is not None and str(item).strip()]
        return v

    @field_validator("instructions", mode="before")
    @classmethod
    def coerce_instructions(cls, v: Any) -> Any:
        """A list of steps is joined into one sentence-per-step narrative."""
        if isinstance(v, list):
            return join_sentences(v)
        return v

    @field_validator("cooking_time_minutes", mode="before")
    @classmethod
    def coerce_cooking_time(cls, v: Any) -> Any:
        """Accept "30 minutes", "30" or 30.0."""
        if isinstance(v, str):
            parsed = _first_int(v)
            if parsed is None:
                raise ValueError(f"cooking time has no number: {v!r}")
            return parsed
        if isinstance(v, float):
            return int(round(v))
        return v

    @field_validator("difficulty", mode="before")
    @classmethod
    def coerce_difficulty(cls, v: Any) -> Any:
        """Accept "Level 2" or "3/5" and clamp numbers into 1..5."""
        if isinstance(v, str):
            parsed = _first_int(v)
            if parsed is None:
                raise ValueError(f"difficulty has no number: {v!r}")
            v = parsed
        if isinstance(v, float):
            v = int(round(v))
        if isinstance(v, int) and not isinstance(v, bool):
            return min(5, max(1, v))
        return v

    @field_validator("serves", mode="before")
    @classmethod
    def coerce_serves(cls, v: Any) -> Any:
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(int(v))
        return v

    @property
    def difficulty_label(self) -> str:
        return f"Level {self.difficulty}"


class FoodAnalysisResult(BaseModel):
    """What the analysis model found in the photo."""

    model_config = ConfigDict(str_strip_whitespace=True, populate_by_name=True)

    contains_food: Annotated[
        bool,
        Field(
            validation_alias=AliasChoices("containsfood", "contains_food", "containsFood"),
            serialization_alias="containsfood",
        ),
    ]
    food_items: Annotated[
        List[str],
        Field(
            default_factory=list,
            validation_alias=AliasChoices("fooditems", "food_items", "foodItems"),
            serialization_alias="fooditems",
        ),
    ]
    recipe: Annotated[Optional[RecipeRecord], Field(None)]

    @field_validator("food_items", mode="before")
    @classmethod
    def coerce_food_items(cls, v: Any) -> Any:
        if v is None:
            return []
        if isinstance(v, str):
            v = v.split(",")
        if isinstance(v, list):
            return [str(item).strip() for item in v if item is not None and str(item).strip()]
        return v


class ImageJobResult(BaseModel):
    """Rendered images of the recipe; the last one is the final rendering."""

    images: Annotated[List[str], Field(min_length=1, description="Image URIs in generation order")]

    @property
    def final_image(self) -> str:
        return self.images[-1]


class RecipeResult(BaseModel):
    """Everything a successful request returns."""

    analysis: FoodAnalysisResult
    image: ImageJobResult
    extraction_tier: Annotated[str, Field(description="Name of the extraction tier that produced the analysis")]
