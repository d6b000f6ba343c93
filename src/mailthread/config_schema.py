"""Pydantic configuration schema for mailthread.

This module defines the configuration schema that mirrors config.yaml structure.
All configuration is validated against these models when it is loaded.

Usage:
    from mailthread.config_schema import AppConfig

    # Validate a config dict
    config = AppConfig(**yaml_data)
"""

from datetime import timedelta
from typing import Literal

from pydantic import BaseModel, Field, field_validator

# Current schema version - increment when adding new required fields
CURRENT_SCHEMA_VERSION = 1

DEFAULT_SUBJECT_PREFIXES = ["Re", "Fwd", "Fw", "AW", "WG"]


class ThreadingConfig(BaseModel):
    """Threading engine configuration."""

    time_window_days: int = Field(
        default=30,
        ge=1,
        le=3650,
        description="Max gap between a thread's last message and a new message "
        "for subject-based matching (days)",
    )
    subject_prefixes: list[str] = Field(
        default_factory=lambda: list(DEFAULT_SUBJECT_PREFIXES),
        description="Reply/forward prefixes stripped from subjects (case-insensitive)",
    )
    thread_id_prefix: str = Field(
        default="thread-",
        max_length=32,
        description="Prefix for generated thread IDs",
    )
    regex_timeout_seconds: float = Field(
        default=1.0,
        gt=0,
        le=10,
        description="Timeout for subject normalization regex operations",
    )

    @field_validator("subject_prefixes")
    @classmethod
    def validate_subject_prefixes(cls, v: list[str]) -> list[str]:
        """Ensure every prefix is a single alphabetic word."""
        if not v:
            raise ValueError("At least one subject prefix is required")
        cleaned = []
        for prefix in v:
            prefix = prefix.strip().rstrip(":").strip()
            if not prefix.isalpha():
                raise ValueError(
                    f"Subject prefix '{prefix}' must be a single alphabetic word "
                    "(e.g. 'Re', 'AW'); the colon is matched automatically"
                )
            cleaned.append(prefix)
        return cleaned

    @property
    def time_window(self) -> timedelta:
        """Subject-matching window as a timedelta."""
        return timedelta(days=self.time_window_days)


class LoggingConfig(BaseModel):
    """Logging output configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Minimum log level",
    )


class AppConfig(BaseModel):
    """Root configuration model."""

    schema_version: int = Field(
        default=CURRENT_SCHEMA_VERSION,
        ge=1,
        description="Config schema version",
    )
    threading: ThreadingConfig = Field(default_factory=ThreadingConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
