"""Async client for the Replicate predictions API.

Two calls are all the pipeline needs:
- create(version, input): POST /predictions, returns the new PredictionJob
- get(prediction_id):     GET /predictions/{id}, returns its current state

The two job kinds (food analysis and image generation) differ only in the
model version they are submitted with.

Any non-2xx response, connection failure, timeout or undecodable body raises
TransportError. Nothing is retried here: a transport failure aborts the whole
request.
"""

import asyncio
from typing import Any, Optional

import aiohttp
from pydantic import ValidationError

from src.models.models import PredictionJob
from src.utils.config import config
from src.utils.errors import TransportError
from src.utils.logger import logger


class PredictionClient:
    """Thin wrapper around the predictions endpoints.

    Use as an async context manager to share one aiohttp session across every
    create/get of a request; used bare, each call opens its own session.
    """

    def __init__(
        self,
        api_token: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout_seconds: Optional[float] = None,
        session: Optional[aiohttp.ClientSession] = None,
    ) -> None:
        """Initialize the client.

        Args:
            api_token: Replicate API token. Defaults to REPLICATE_API_TOKEN.
            base_url: API root. Defaults to REPLICATE_API_URL.
            timeout_seconds: Per-request timeout. Defaults to HTTP_TIMEOUT_SECONDS.
            session: Existing aiohttp session to use (not closed by this client).

        Raises:
            ValueError: If no API token is configured.
        """
        self.api_token = api_token if api_token is not None else config.REPLICATE_API_TOKEN
        if not self.api_token:
            raise ValueError("REPLICATE_API_TOKEN is required")

        self.base_url = (base_url or config.REPLICATE_API_URL).rstrip("/")
        self.timeout = aiohttp.ClientTimeout(total=timeout_seconds or config.HTTP_TIMEOUT_SECONDS)
        self._session = session
        self._owns_session = False

    @property
    def headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_token}",
            "Content-Type": "application/json",
        }

    async def __aenter__(self) -> "PredictionClient":
        if self._session is None:
            self._session = aiohttp.ClientSession(timeout=self.timeout)
            self._owns_session = True
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if self._owns_session and self._session is not None:
            await self._session.close()
            self._session = None
            self._owns_session = False

    async def create(self, version: str, input: dict[str, Any]) -> PredictionJob:
        """Submit a new prediction.

        Args:
            version: Model version id; selects analysis vs image generation.
            input: Model input, e.g. {"prompt": ..., "image": "data:image/jpeg;base64,..."}.

        Returns:
            The freshly created PredictionJob (usually status "starting").
        """
        job = await self._request("POST", f"{self.base_url}/predictions", {"version": version, "input": input})
        logger.debug(f"Created prediction {job.id} on version {version[:12]}", extra={"job_id": job.id})
        return job

    async def get(self, prediction_id: str) -> PredictionJob:
        """Fetch the current state of a prediction."""
        if not prediction_id:
            raise ValueError("prediction_id is required")
        return await self._request("GET", f"{self.base_url}/predictions/{prediction_id}")

    async def _request(self, method: str, url: str, payload: Optional[dict] = None) -> PredictionJob:
        if self._session is not None:
            return await self._send(self._session, method, url, payload)
        async with aiohttp.ClientSession(timeout=self.timeout) as session:
            return await self._send(session, method, url, payload)

    async def _send(
        self,
        session: aiohttp.ClientSession,
        method: str,
        url: str,
        payload: Optional[dict],
    ) -> PredictionJob:
        try:
            async with session.request(method, url, json=payload, headers=self.headers) as response:
                status = response.status
                try:
                    data = await response.json(content_type=None)
                except ValueError:
                    data = None
        except asyncio.TimeoutError as e:
            raise TransportError(f"{method} {url} timed out") from e
        except aiohttp.ClientError as e:
            raise TransportError(f"{method} {url} failed: {e}") from e

        if not 200 <= status < 300:
            detail = None
            if isinstance(data, dict):
                detail = data.get("detail") or data.get("error") or data.get("title")
            logger.error(f"Prediction service returned {status} for {method} {url}: {detail}")
            raise TransportError(f"{method} {url} returned {status}: {detail or 'no detail'}", status=status)

        if not isinstance(data, dict):
            raise TransportError(f"{method} {url} returned an undecodable body", status=status)

        try:
            return PredictionJob.model_validate(data)
        except ValidationError as e:
            raise TransportError(f"{method} {url} returned an unexpected prediction payload: {e}", status=status) from e
