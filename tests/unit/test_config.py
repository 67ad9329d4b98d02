"""Unit tests for configuration management."""

import pytest

from src.utils.config import Config

CONFIG_VARS = (
    "REPLICATE_API_TOKEN",
    "REPLICATE_API_URL",
    "ANALYSIS_MODEL_VERSION",
    "IMAGE_MODEL_VERSION",
    "POLL_INTERVAL_SECONDS",
    "POLL_MAX_ATTEMPTS",
    "POLL_TIMEOUT_SECONDS",
    "HTTP_TIMEOUT_SECONDS",
    "MAX_IMAGE_SIZE_MB",
    "COMPRESS_IMG",
    "COMPRESS_IMG_THRESHOLD_KB",
    "SYNTHESIZER_SEED",
    "OUTPUT_FORMAT",
)


@pytest.fixture
def clean_env(monkeypatch):
    for name in CONFIG_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


class TestConfigInitialization:
    """Test Config class initialization and environment variable loading."""

    def test_config_loads_default_values(self, clean_env):
        """Test that Config uses default values when env vars not set."""
        config = Config()

        assert config.REPLICATE_API_TOKEN == ""
        assert config.REPLICATE_API_URL == "https://api.replicate.com/v1"
        assert config.ANALYSIS_MODEL_VERSION.startswith("b5f6212d")
        assert config.IMAGE_MODEL_VERSION.startswith("8beff336")
        assert config.POLL_INTERVAL_SECONDS == 1.0
        assert config.POLL_MAX_ATTEMPTS is None
        assert config.POLL_TIMEOUT_SECONDS is None
        assert config.HTTP_TIMEOUT_SECONDS == 30
        assert config.MAX_IMAGE_SIZE_MB == 5
        assert config.COMPRESS_IMG is True
        assert config.COMPRESS_IMG_THRESHOLD_KB == 300
        assert config.SYNTHESIZER_SEED is None
        assert config.OUTPUT_FORMAT == "markdown"

    def test_config_loads_from_environment(self, clean_env):
        """Test that Config loads values from environment variables."""
        clean_env.setenv("REPLICATE_API_TOKEN", "r8_test")
        clean_env.setenv("REPLICATE_API_URL", "http://localhost:5000/v1")
        clean_env.setenv("ANALYSIS_MODEL_VERSION", "analysis-v2")
        clean_env.setenv("IMAGE_MODEL_VERSION", "image-v2")
        clean_env.setenv("POLL_INTERVAL_SECONDS", "0.25")
        clean_env.setenv("POLL_MAX_ATTEMPTS", "60")
        clean_env.setenv("POLL_TIMEOUT_SECONDS", "90")
        clean_env.setenv("SYNTHESIZER_SEED", "42")
        clean_env.setenv("OUTPUT_FORMAT", "json")

        config = Config()

        assert config.REPLICATE_API_TOKEN == "r8_test"
        assert config.REPLICATE_API_URL == "http://localhost:5000/v1"
        assert config.ANALYSIS_MODEL_VERSION == "analysis-v2"
        assert config.IMAGE_MODEL_VERSION == "image-v2"
        assert config.POLL_INTERVAL_SECONDS == 0.25
        assert config.POLL_MAX_ATTEMPTS == 60
        assert config.POLL_TIMEOUT_SECONDS == 90.0
        assert config.SYNTHESIZER_SEED == 42
        assert config.OUTPUT_FORMAT == "json"

    def test_config_converts_numeric_types(self, clean_env):
        """Test that Config properly converts numeric environment variables."""
        clean_env.setenv("POLL_INTERVAL_SECONDS", "2")
        clean_env.setenv("POLL_MAX_ATTEMPTS", "10")
        clean_env.setenv("MAX_IMAGE_SIZE_MB", "20")
        clean_env.setenv("COMPRESS_IMG_THRESHOLD_KB", "512")

        config = Config()

        assert isinstance(config.POLL_INTERVAL_SECONDS, float)
        assert isinstance(config.POLL_MAX_ATTEMPTS, int)
        assert isinstance(config.MAX_IMAGE_SIZE_MB, int)
        assert isinstance(config.COMPRESS_IMG_THRESHOLD_KB, int)

    def test_empty_optional_values_are_none(self, clean_env):
        """Test that empty strings for optional bounds mean 'unset'."""
        clean_env.setenv("POLL_MAX_ATTEMPTS", "")
        clean_env.setenv("POLL_TIMEOUT_SECONDS", "")
        clean_env.setenv("SYNTHESIZER_SEED", "")

        config = Config()

        assert config.POLL_MAX_ATTEMPTS is None
        assert config.POLL_TIMEOUT_SECONDS is None
        assert config.SYNTHESIZER_SEED is None

    @pytest.mark.parametrize("value,expected", [("true", True), ("1", True), ("YES", True), ("false", False), ("0", False)])
    def test_compress_img_boolean_parsing(self, clean_env, value, expected):
        """Test boolean parsing of COMPRESS_IMG."""
        clean_env.setenv("COMPRESS_IMG", value)
        assert Config().COMPRESS_IMG is expected


class TestConfigValidation:
    """Test Config validation logic."""

    def test_validate_succeeds_with_defaults(self, clean_env):
        """Test that the default configuration is valid."""
        Config().validate()  # Should not raise

    def test_validate_does_not_require_api_token(self, clean_env):
        """Test that a missing token is left for the client to report."""
        clean_env.setenv("REPLICATE_API_TOKEN", "")
        Config().validate()  # Should not raise

    def test_validate_rejects_non_http_url(self, clean_env):
        clean_env.setenv("REPLICATE_API_URL", "ftp://replicate.example")
        with pytest.raises(ValueError, match="REPLICATE_API_URL"):
            Config().validate()

    def test_validate_rejects_non_positive_poll_interval(self, clean_env):
        clean_env.setenv("POLL_INTERVAL_SECONDS", "0")
        with pytest.raises(ValueError, match="POLL_INTERVAL_SECONDS"):
            Config().validate()

    def test_validate_rejects_zero_max_attempts(self, clean_env):
        clean_env.setenv("POLL_MAX_ATTEMPTS", "0")
        with pytest.raises(ValueError, match="POLL_MAX_ATTEMPTS"):
            Config().validate()

    def test_validate_rejects_negative_poll_timeout(self, clean_env):
        clean_env.setenv("POLL_TIMEOUT_SECONDS", "-5")
        with pytest.raises(ValueError, match="POLL_TIMEOUT_SECONDS"):
            Config().validate()

    def test_validate_rejects_non_positive_http_timeout(self, clean_env):
        clean_env.setenv("HTTP_TIMEOUT_SECONDS", "0")
        with pytest.raises(ValueError, match="HTTP_TIMEOUT_SECONDS"):
            Config().validate()

    def test_validate_rejects_zero_image_size(self, clean_env):
        clean_env.setenv("MAX_IMAGE_SIZE_MB", "0")
        with pytest.raises(ValueError, match="MAX_IMAGE_SIZE_MB"):
            Config().validate()

    def test_validate_rejects_unknown_output_format(self, clean_env):
        clean_env.setenv("OUTPUT_FORMAT", "yaml")
        with pytest.raises(ValueError, match="OUTPUT_FORMAT"):
            Config().validate()


class TestModuleLevelConfig:
    """Test the module-level config instance."""

    def test_config_is_importable(self):
        from src.utils.config import config

        assert isinstance(config, Config)
