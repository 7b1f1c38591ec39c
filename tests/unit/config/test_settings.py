"""
Module: test_settings.py
Description: Unit tests for harness settings.
"""

import pytest
from pydantic import ValidationError

from sqs_harness.config.settings import Settings


class TestSettings:
    """Test cases for Settings defaults, environment and validation."""

    def test_defaults_point_at_local_emulator(self, monkeypatch):
        """Test defaults match a local ElasticMQ."""
        for name in ["SERVICE_URL", "QUEUE_PREFIX", "LOG_LEVEL"]:
            monkeypatch.delenv(f"SQS_HARNESS_{name}", raising=False)

        config = Settings(_env_file=None)

        assert config.service_url == "http://localhost:9324/"
        assert config.queue_url_path == "queue"
        assert config.access_key_id == "x"
        assert config.queue_prefix == "TestQueue"

    def test_environment_overrides(self, monkeypatch):
        """Test SQS_HARNESS_* variables override defaults."""
        monkeypatch.setenv("SQS_HARNESS_SERVICE_URL", "http://emulator:9324/")
        monkeypatch.setenv("SQS_HARNESS_MAX_ATTEMPTS", "5")
        monkeypatch.setenv("SQS_HARNESS_LOG_LEVEL", "debug")

        config = Settings(_env_file=None)

        assert config.service_url == "http://emulator:9324/"
        assert config.max_attempts == 5
        assert config.log_level == "DEBUG"

    @pytest.mark.parametrize("overrides", [
        {"service_url": "localhost:9324"},
        {"queue_prefix": "bad prefix"},
        {"log_level": "LOUD"},
        {"max_attempts": 0},
        {"request_timeout_seconds": 0},
    ])
    def test_invalid_values(self, overrides):
        """Test invalid settings are rejected."""
        with pytest.raises(ValidationError):
            Settings(_env_file=None, **overrides)
