"""Configuration management for the CulinAI recipe pipeline.

Loads environment variables from system environment and .env file.
Priority order: system environment > .env file > hardcoded defaults
"""

import os
from typing import Optional

from dotenv import load_dotenv


# Load .env file (if exists, silently continues if missing)
load_dotenv()


def _get_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("true", "1", "yes")


def _get_optional_int(name: str) -> Optional[int]:
    value = os.getenv(name)
    return int(value) if value not in (None, "") else None


def _get_optional_float(name: str) -> Optional[float]:
    value = os.getenv(name)
    return float(value) if value not in (None, "") else None


class Config:
    """Application configuration loaded from environment variables."""

    def __init__(self) -> None:
        """Initialize configuration from environment variables."""
        # Replicate API token: required to submit prediction jobs (checked when the client is built)
        self.REPLICATE_API_TOKEN: str = os.getenv("REPLICATE_API_TOKEN", "")
        self.REPLICATE_API_URL: str = os.getenv("REPLICATE_API_URL", "https://api.replicate.com/v1")
        # Analysis Model: image-conditioned LLM that detects food items and proposes a recipe
        self.ANALYSIS_MODEL_VERSION: str = os.getenv(
            "ANALYSIS_MODEL_VERSION",
            "b5f6212d032508382d61ff00469ddda3e32fd8a0e75dc39d8a4191bb742157fb",
        )
        # Image Model: text-to-image model that renders the final dish
        self.IMAGE_MODEL_VERSION: str = os.getenv(
            "IMAGE_MODEL_VERSION",
            "8beff3369e81422112d93b89ca01426147de542cd4684c244b673b105188fe5f",
        )
        # Seconds to wait between two polls of the same prediction. Default: 1.0
        self.POLL_INTERVAL_SECONDS: float = float(os.getenv("POLL_INTERVAL_SECONDS", "1.0"))
        # Upper bounds for a single poll loop. Unset = poll until the job is terminal
        self.POLL_MAX_ATTEMPTS: Optional[int] = _get_optional_int("POLL_MAX_ATTEMPTS")
        self.POLL_TIMEOUT_SECONDS: Optional[float] = _get_optional_float("POLL_TIMEOUT_SECONDS")
        # Timeout for each HTTP request to the prediction service
        self.HTTP_TIMEOUT_SECONDS: float = float(os.getenv("HTTP_TIMEOUT_SECONDS", "30"))
        # Maximum image size (in MB) that can be uploaded. Default: 5 MB
        self.MAX_IMAGE_SIZE_MB: int = int(os.getenv("MAX_IMAGE_SIZE_MB", "5"))
        # Image Compression: Enable/disable image compression before upload
        self.COMPRESS_IMG: bool = _get_bool("COMPRESS_IMG", "true")
        # Image Compression Threshold: Only compress images at or above this size (in KB)
        self.COMPRESS_IMG_THRESHOLD_KB: int = int(os.getenv("COMPRESS_IMG_THRESHOLD_KB", "300"))
        # Seed for the recipe synthesizer's filler values (prep time, serves). Unset = random
        self.SYNTHESIZER_SEED: Optional[int] = _get_optional_int("SYNTHESIZER_SEED")
        # Output Format for query.py: "json" or "markdown". Default: "markdown"
        self.OUTPUT_FORMAT: str = os.getenv("OUTPUT_FORMAT", "markdown")

    def validate(self) -> None:
        """Validate configuration values.

        Raises:
            ValueError: If a value is out of range.
        """
        if not self.REPLICATE_API_URL.startswith(("http://", "https://")):
            raise ValueError(
                f"REPLICATE_API_URL must be an http(s) URL, got: {self.REPLICATE_API_URL}"
            )
        if self.POLL_INTERVAL_SECONDS <= 0:
            raise ValueError(
                f"POLL_INTERVAL_SECONDS must be greater than 0, got: {self.POLL_INTERVAL_SECONDS}"
            )
        if self.POLL_MAX_ATTEMPTS is not None and self.POLL_MAX_ATTEMPTS < 1:
            raise ValueError(
                f"POLL_MAX_ATTEMPTS must be at least 1, got: {self.POLL_MAX_ATTEMPTS}"
            )
        if self.POLL_TIMEOUT_SECONDS is not None and self.POLL_TIMEOUT_SECONDS <= 0:
            raise ValueError(
                f"POLL_TIMEOUT_SECONDS must be greater than 0, got: {self.POLL_TIMEOUT_SECONDS}"
            )
        if self.HTTP_TIMEOUT_SECONDS <= 0:
            raise ValueError(
                f"HTTP_TIMEOUT_SECONDS must be greater than 0, got: {self.HTTP_TIMEOUT_SECONDS}"
            )
        if self.MAX_IMAGE_SIZE_MB < 1:
            raise ValueError(
                f"MAX_IMAGE_SIZE_MB must be at least 1, got: {self.MAX_IMAGE_SIZE_MB}"
            )
        if self.OUTPUT_FORMAT not in ("json", "markdown"):
            raise ValueError(
                f"OUTPUT_FORMAT must be 'json' or 'markdown', got: {self.OUTPUT_FORMAT}"
            )


# Create module-level config instance and validate immediately
config = Config()
config.validate()
