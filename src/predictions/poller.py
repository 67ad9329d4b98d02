"""Submit-then-poll driver for prediction jobs (async).

JobPoller.run() submits one job and polls it until it reaches a terminal
status, sleeping `poll_interval` seconds between polls. The sleep is the only
suspend point of each iteration: other requests keep running, this request
waits.

States: Submitted → Polling → {Succeeded, Failed}. A job that comes back from
submission already carrying an error goes straight to Failed without being
polled.

Bounds are opt-in. With neither `max_attempts` nor `timeout` set the loop
polls until the job finishes; with either set it raises PollTimeoutError when
exceeded. A cancel_event (asyncio.Event) stops the loop with
PollCancelledError at the next iteration.

Transport errors from submit/poll_once propagate unchanged and are not retried.
"""

import asyncio
import time
from typing import Awaitable, Callable, Optional

from src.models.models import PredictionJob, PredictionStatus
from src.utils.errors import PollCancelledError, PollTimeoutError
from src.utils.logger import logger

SubmitFn = Callable[[], Awaitable[PredictionJob]]
PollFn = Callable[[str], Awaitable[PredictionJob]]
SleepFn = Callable[[float], Awaitable[None]]


class JobPoller:
    """Drives one prediction job from submission to a terminal status."""

    def __init__(
        self,
        poll_interval: float = 1.0,
        max_attempts: Optional[int] = None,
        timeout: Optional[float] = None,
        sleep: Optional[SleepFn] = None,
    ) -> None:
        """Initialize JobPoller.

        Args:
            poll_interval: Seconds to sleep before each poll (default: 1.0).
            max_attempts: Maximum number of polls. None = unbounded.
            timeout: Seconds after submission before giving up. None = unbounded.
            sleep: Coroutine function used to wait between polls. None = asyncio.sleep.

        Raises:
            ValueError: If a bound is not positive.
        """
        if poll_interval <= 0:
            raise ValueError(f"poll_interval must be greater than 0, got: {poll_interval}")
        if max_attempts is not None and max_attempts < 1:
            raise ValueError(f"max_attempts must be at least 1, got: {max_attempts}")
        if timeout is not None and timeout <= 0:
            raise ValueError(f"timeout must be greater than 0, got: {timeout}")

        self.poll_interval = poll_interval
        self.max_attempts = max_attempts
        self.timeout = timeout
        self.sleep = sleep

    async def run(
        self,
        submit: SubmitFn,
        poll_once: PollFn,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> PredictionJob:
        """Submit a job and poll it until it is terminal.

        Args:
            submit: Coroutine function creating the job.
            poll_once: Coroutine function fetching a job by id.
            cancel_event: Optional event; once set, polling stops.

        Returns:
            The terminal PredictionJob (succeeded, failed or canceled).

        Raises:
            PollTimeoutError: If max_attempts or timeout is exceeded.
            PollCancelledError: If cancel_event is set before the job finishes.
            TransportError: Propagated from submit/poll_once.
        """
        job = await submit()
        logger.info(f"Prediction submitted (status={job.status.value})", extra={"job_id": job.id})

        if job.error:
            logger.warning(f"Prediction rejected on submission: {job.error}", extra={"job_id": job.id})
            return job.model_copy(update={"status": PredictionStatus.FAILED})

        deadline = time.monotonic() + self.timeout if self.timeout is not None else None
        attempts = 0

        while not job.is_terminal:
            if cancel_event is not None and cancel_event.is_set():
                raise PollCancelledError(f"Polling of prediction {job.id} was cancelled")
            if self.max_attempts is not None and attempts >= self.max_attempts:
                raise PollTimeoutError(f"Prediction {job.id} still {job.status.value} after {attempts} polls")
            if deadline is not None and time.monotonic() >= deadline:
                raise PollTimeoutError(f"Prediction {job.id} still {job.status.value} after {self.timeout}s")

            await (self.sleep or asyncio.sleep)(self.poll_interval)
            job = await poll_once(job.id)
            attempts += 1
            logger.debug(f"Poll {attempts}: status={job.status.value}", extra={"job_id": job.id})

        logger.info(f"Prediction finished with status={job.status.value} after {attempts} polls", extra={"job_id": job.id})
        return job
