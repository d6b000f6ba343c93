"""Pytest fixtures and configuration for mailthread tests.

Provides common fixtures for configuration and message construction.
"""

import itertools
from collections.abc import Callable, Generator
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import pytest

from mailthread.config import reset_config
from mailthread.engine.models import Message
from mailthread.engine.threading_engine import ThreadingEngine

BASE_TIME = datetime(2024, 1, 1, 9, 0, tzinfo=UTC)


@pytest.fixture(autouse=True)
def reset_config_singleton() -> Generator[None, None, None]:
    """Reset the config singleton before each test."""
    reset_config()
    yield
    reset_config()


@pytest.fixture
def base_time() -> datetime:
    """Return a fixed, timezone-aware reference time."""
    return BASE_TIME


@pytest.fixture
def make_message() -> Callable[..., Message]:
    """Return a factory for Message objects with sensible defaults."""

    def _make(
        message_id: str,
        subject: str = "Project Update",
        sent_at: datetime | None = None,
        from_address: str = "alice@example.com",
        to: tuple[str, ...] = ("bob@example.com",),
        cc: tuple[str, ...] = (),
        in_reply_to: str | None = None,
        references: tuple[str, ...] = (),
    ) -> Message:
        return Message(
            message_id=message_id,
            subject=subject,
            sent_at=sent_at or BASE_TIME,
            from_address=from_address,
            to=to,
            cc=cc,
            in_reply_to=in_reply_to,
            references=references,
        )

    return _make


@pytest.fixture
def sequential_ids() -> Callable[[], str]:
    """Return a thread ID factory producing thread-1, thread-2, ..."""
    counter = itertools.count(1)
    return lambda: f"thread-{next(counter)}"


@pytest.fixture
def engine(sequential_ids: Callable[[], str]) -> ThreadingEngine:
    """Create a ThreadingEngine with default config and predictable IDs."""
    return ThreadingEngine(id_factory=sequential_ids)


@pytest.fixture
def temp_config_dir(tmp_path: Path) -> Path:
    """Create a temporary config directory."""
    config_dir = tmp_path / "config"
    config_dir.mkdir()
    return config_dir


@pytest.fixture
def sample_config_yaml() -> str:
    """Return a minimal valid config.yaml content."""
    return """
schema_version: 1

threading:
  time_window_days: 14
  subject_prefixes: ["Re", "Fwd", "SV"]
  thread_id_prefix: "conv-"

logging:
  level: "DEBUG"
"""


@pytest.fixture
def sample_config_dict() -> dict[str, Any]:
    """Return a minimal valid config as a dictionary."""
    return {
        "schema_version": 1,
        "threading": {
            "time_window_days": 14,
            "subject_prefixes": ["Re", "Fwd", "SV"],
            "thread_id_prefix": "conv-",
        },
        "logging": {"level": "DEBUG"},
    }


@pytest.fixture
def config_file(temp_config_dir: Path, sample_config_yaml: str) -> Path:
    """Create a temporary config file with valid content."""
    config_path = temp_config_dir / "config.yaml"
    config_path.write_text(sample_config_yaml)
    return config_path
