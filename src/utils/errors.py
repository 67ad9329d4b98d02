"""Error taxonomy and error handling helpers for the recipe pipeline.

Every failure that aborts a request derives from RecipePipelineError and carries
a short `user_message` that is safe to show in a UI. The detailed message
(`str(exc)`) is meant for logs.

Failure kinds:
- TransportError: the prediction service answered with a non-2xx status or
  could not be reached
- JobFailedError: a prediction reached a terminal failed/canceled status
- ParseError: every extraction tier failed on the model output
- AnalysisValidationError: the analysis succeeded but found no food
- PollTimeoutError / PollCancelledError: a bounded poll loop gave up
"""

from typing import Any, Callable, Optional

from src.utils.logger import logger


class RecipePipelineError(Exception):
    """Base class for failures that abort a recipe request."""

    user_message = "Something went wrong. Please try again."

    def __init__(self, message: Optional[str] = None, user_message: Optional[str] = None) -> None:
        super().__init__(message or self.user_message)
        if user_message is not None:
            self.user_message = user_message


class TransportError(RecipePipelineError):
    """Non-success response (or no response) from the prediction service."""

    user_message = "Could not reach the prediction service. Please try again later."

    def __init__(self, message: str, status: Optional[int] = None) -> None:
        super().__init__(message)
        self.status = status


class JobFailedError(RecipePipelineError):
    """A prediction job finished with status failed or canceled."""

    def __init__(self, message: str, job_id: Optional[str] = None) -> None:
        super().__init__(message, user_message=message)
        self.job_id = job_id


class ParseError(RecipePipelineError):
    """All extraction tiers failed. `raw_text` is for diagnostics only."""

    user_message = "Unable to generate recipe. Please try again with a different image."

    def __init__(self, message: str, raw_text: str = "") -> None:
        super().__init__(message)
        self.raw_text = raw_text


class AnalysisValidationError(RecipePipelineError):
    """The model answered, but no food was detected in the image."""

    user_message = "No food ingredients detected in the image."


class PollTimeoutError(RecipePipelineError):
    """A poll loop hit its attempt or deadline bound before the job finished."""

    user_message = "The prediction took too long. Please try again."


class PollCancelledError(RecipePipelineError):
    """A poll loop was cancelled through its cancellation event."""

    user_message = "The request was cancelled."


# ============================================================================
# Error Handling Helpers
# ============================================================================


def _log_error(operation_name: str, exception: Exception, log_level: str = "warning") -> None:
    """Log error with appropriate level. Helper to reduce duplication.

    Args:
        operation_name: Description for logging
        exception: Exception that occurred
        log_level: Logging level ("debug", "warning", "error"). Default: "warning".
    """
    msg = f"{operation_name}: {exception}"
    if log_level == "debug":
        logger.debug(msg)
    elif log_level == "error":
        logger.error(msg)
    else:
        logger.warning(msg)


def safe_execute_sync(
    func: Callable[[], Any],
    operation_name: str,
    log_level: str = "warning",
    default_return: Any = None,
) -> Any:
    """Run func(), logging and swallowing any exception.

    Used where a failure is an expected, recoverable outcome: an extraction
    tier that cannot parse its input, an image that cannot be compressed.

    Args:
        func: Callable to execute (no args).
        operation_name: Description for logging (e.g. "Tier strict").
        log_level: Logging level ("debug", "warning", "error"). Default: "warning".
        default_return: Value to return on exception. Default: None.

    Returns:
        Result of func if successful, default_return otherwise.
    """
    try:
        return func()
    except Exception as e:
        _log_error(operation_name, e, log_level)
        return default_return


async def safe_execute_async(
    coro,
    operation_name: str,
    log_level: str = "warning",
    default_return: Any = None,
) -> Any:
    """Async counterpart of safe_execute_sync for awaitables."""
    try:
        return await coro
    except Exception as e:
        _log_error(operation_name, e, log_level)
        return default_return
