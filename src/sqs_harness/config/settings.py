"""
Module: settings.py
Description: Harness configuration using pydantic-settings.

Loads the queue service endpoint, placeholder credentials, retry
policy and fixture naming options from environment variables
(prefix ``SQS_HARNESS_``) with validation and defaults. Supports .env
files for local development.
"""

import re

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Harness settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="SQS_HARNESS_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    log_level: str = Field(default="INFO", description="Logging level")

    # Queue service settings
    service_url: str = Field(
        default="http://localhost:9324/",
        description="Base URL of the SQS-compatible queue service"
    )
    region: str = Field(default="elasticmq", description="Region used for request signing")
    access_key_id: str = Field(default="x", description="Placeholder access key")
    secret_access_key: str = Field(default="x", description="Placeholder secret key")
    queue_url_path: str = Field(
        default="queue",
        description="Path segment the service puts between base URL and queue name"
    )

    # Transport settings
    request_timeout_seconds: float = Field(
        default=10,
        ge=1,
        le=120,
        description="HTTP timeout in seconds for each service call"
    )
    max_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Attempts per call before ServiceUnavailable is raised"
    )
    retry_backoff_seconds: float = Field(
        default=0.5,
        ge=0,
        description="Exponential backoff multiplier between attempts"
    )
    retry_max_backoff_seconds: float = Field(
        default=5,
        ge=0,
        description="Upper bound for a single backoff wait"
    )

    # Fixture settings
    queue_prefix: str = Field(
        default="TestQueue",
        min_length=1,
        max_length=60,
        description="Prefix of every queue a fixture creates; also the cleanup selector"
    )
    name_attempts: int = Field(
        default=5,
        ge=1,
        le=50,
        description="Fresh-suffix attempts before a name collision is raised"
    )

    @field_validator('service_url')
    @classmethod
    def validate_service_url(cls, v: str) -> str:
        """Validate the service URL is an HTTP(S) URL."""
        if not v.startswith(('http://', 'https://')):
            raise ValueError("service_url must be a valid HTTP/HTTPS URL")
        return v

    @field_validator('queue_prefix')
    @classmethod
    def validate_queue_prefix(cls, v: str) -> str:
        """Validate the prefix only uses characters allowed in queue names."""
        if not re.match(r'^[a-zA-Z0-9_-]+$', v):
            raise ValueError(
                "queue_prefix must contain only letters, numbers, hyphens, and underscores"
            )
        return v

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is a valid logging level."""
        valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        if v.upper() not in valid_levels:
            raise ValueError(f"log_level must be one of: {', '.join(valid_levels)}")
        return v.upper()


# Global settings instance
settings = Settings()
