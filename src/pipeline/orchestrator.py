"""Two-stage recipe pipeline: photo → analysis job → recipe → image job.

RecipePipeline.run() sequences one request:

1. Submit the analysis job (ANALYSIS_PROMPT + photo) and poll it.
2. Failed job → JobFailedError; succeeded without output → ParseError.
3. Extract a FoodAnalysisResult from the joined output (ParseError on failure).
4. Require contains_food and at least one food item → AnalysisValidationError.
5. Build the image prompt from the recipe title and food items.
6. Submit the image job and poll it; failure → JobFailedError.

The two jobs run strictly one after the other because the image prompt needs
the analysis. Nothing is retried; the first error aborts the request and no
partial recipe or image is returned.
"""

import asyncio
import uuid
from typing import Optional

from src.extraction.extractor import StructuredOutputExtractor, join_output
from src.extraction.synthesizer import RecipeSynthesizer
from src.models.models import FoodAnalysisResult, ImageJobResult, PredictionJob, RecipeResult
from src.pipeline.images import ImageSource, prepare_image
from src.predictions.client import PredictionClient
from src.predictions.poller import JobPoller
from src.prompts.prompts import ANALYSIS_PROMPT, build_image_prompt
from src.utils.config import config
from src.utils.errors import AnalysisValidationError, JobFailedError, ParseError
from src.utils.logger import logger


def default_poller() -> JobPoller:
    return JobPoller(
        poll_interval=config.POLL_INTERVAL_SECONDS,
        max_attempts=config.POLL_MAX_ATTEMPTS,
        timeout=config.POLL_TIMEOUT_SECONDS,
    )


class RecipePipeline:
    """Orchestrates the analysis and image-generation jobs for one photo."""

    def __init__(
        self,
        client: PredictionClient,
        poller: Optional[JobPoller] = None,
        extractor: Optional[StructuredOutputExtractor] = None,
        analysis_version: Optional[str] = None,
        image_version: Optional[str] = None,
    ) -> None:
        self.client = client
        self.poller = poller or default_poller()
        self.extractor = extractor or StructuredOutputExtractor(
            synthesizer=RecipeSynthesizer(seed=config.SYNTHESIZER_SEED)
        )
        self.analysis_version = analysis_version or config.ANALYSIS_MODEL_VERSION
        self.image_version = image_version or config.IMAGE_MODEL_VERSION

    async def run(self, image_data_uri: str, cancel_event: Optional[asyncio.Event] = None) -> RecipeResult:
        """Produce a recipe and a rendering of it from one photo.

        Args:
            image_data_uri: The photo as a data URI (see prepare_image).
            cancel_event: Optional event that stops either poll loop.

        Returns:
            RecipeResult with the analysis, the rendered images and the
            extraction tier that produced the analysis.

        Raises:
            TransportError: The prediction service could not be reached.
            JobFailedError: A job finished as failed/canceled.
            ParseError: The analysis output could not be turned into a recipe.
            AnalysisValidationError: No food was detected.
            PollTimeoutError / PollCancelledError: From a bounded poller.
        """
        request_id = uuid.uuid4().hex[:8]
        log_context = {"request_id": request_id}
        logger.info("Starting food analysis", extra=log_context)

        analysis_job = await self.poller.run(
            lambda: self.client.create(self.analysis_version, {"prompt": ANALYSIS_PROMPT, "image": image_data_uri}),
            self.client.get,
            cancel_event=cancel_event,
        )
        self._raise_if_failed(analysis_job, "Food analysis failed")
        if not analysis_job.output:
            raise ParseError(f"Analysis prediction {analysis_job.id} succeeded without output")

        raw_text = join_output(analysis_job.output)
        logger.debug(f"Raw analysis output: {raw_text!r}", extra=log_context)
        outcome = self.extractor.extract(raw_text)
        analysis = outcome.result

        self._validate_analysis(analysis)

        prompt = build_image_prompt(analysis.recipe.title, analysis.food_items)
        logger.info(f"Generating image for '{analysis.recipe.title}'", extra=log_context)

        image_job = await self.poller.run(
            lambda: self.client.create(self.image_version, {"prompt": prompt}),
            self.client.get,
            cancel_event=cancel_event,
        )
        self._raise_if_failed(image_job, "Image generation failed")
        if not image_job.output:
            raise JobFailedError(f"Image prediction {image_job.id} returned no images", job_id=image_job.id)

        logger.info(f"Recipe ready (extraction tier: {outcome.tier})", extra=log_context)
        return RecipeResult(
            analysis=analysis,
            image=ImageJobResult(images=image_job.output),
            extraction_tier=outcome.tier,
        )

    @staticmethod
    def _raise_if_failed(job: PredictionJob, default_message: str) -> None:
        if not job.succeeded:
            message = job.error or default_message
            logger.error(f"Prediction {job.status.value}: {message}", extra={"job_id": job.id})
            raise JobFailedError(message, job_id=job.id)

    @staticmethod
    def _validate_analysis(analysis: FoodAnalysisResult) -> None:
        # containsfood=false is rejected even when the model also sent a recipe
        if not analysis.contains_food or not analysis.food_items:
            raise AnalysisValidationError(
                f"No food detected (containsfood={analysis.contains_food}, items={len(analysis.food_items)})"
            )
        if analysis.recipe is None:
            raise ParseError("Analysis has food items but no recipe")


async def generate_recipe(
    image_source: ImageSource,
    cancel_event: Optional[asyncio.Event] = None,
    seed: Optional[int] = None,
) -> RecipeResult:
    """Prepare an image and run the full pipeline with a client built from config.

    Args:
        image_source: File path, URL, data URI, base64 string or raw bytes.
        cancel_event: Optional event that stops polling.
        seed: Synthesizer seed overriding SYNTHESIZER_SEED.

    Raises:
        ValueError: If the image is unusable or REPLICATE_API_TOKEN is missing.
        RecipePipelineError: Any pipeline failure (see RecipePipeline.run).
    """
    image_data_uri = await prepare_image(image_source)
    synthesizer = RecipeSynthesizer(seed=seed if seed is not None else config.SYNTHESIZER_SEED)
    async with PredictionClient() as client:
        pipeline = RecipePipeline(client, extractor=StructuredOutputExtractor(synthesizer=synthesizer))
        return await pipeline.run(image_data_uri, cancel_event=cancel_event)
