"""Pytest configuration and fixtures for integration tests.

Loads .env and skips the whole integration suite when no Replicate API token
is configured. These tests submit real predictions and cost money.
"""

import os
from pathlib import Path

import pytest
from dotenv import load_dotenv


def pytest_configure(config):
    """Load .env before collection and bound polling so a stuck job cannot hang the run."""
    env_path = Path(__file__).parent.parent.parent / ".env"
    load_dotenv(env_path)

    os.environ.setdefault("POLL_INTERVAL_SECONDS", "2")
    os.environ.setdefault("POLL_TIMEOUT_SECONDS", "300")

    print("\n" + "=" * 70)
    print("Note: These tests require a valid REPLICATE_API_TOKEN")
    print(f"Environment loaded from: {env_path}")
    print(f"  - Poll interval: {os.environ['POLL_INTERVAL_SECONDS']}s")
    print(f"  - Poll timeout: {os.environ['POLL_TIMEOUT_SECONDS']}s")
    print("=" * 70 + "\n")


@pytest.fixture(scope="session", autouse=True)
def check_api_token():
    """Skip integration tests if REPLICATE_API_TOKEN is not configured in .env."""
    if not os.getenv("REPLICATE_API_TOKEN"):
        pytest.skip(
            "Integration tests skipped. Missing REPLICATE_API_TOKEN. Please set it in your .env file.",
            allow_module_level=True,
        )


@pytest.fixture(scope="session")
def food_image() -> Path:
    """Sample food photo from images/ (skips when none is available)."""
    images_dir = Path("images")
    for name in ("fresh_vegetables.jpg", "fruit.jpg", "pasta.png"):
        path = images_dir / name
        if path.exists():
            return path
    pytest.skip("No test images found in images/ directory")
