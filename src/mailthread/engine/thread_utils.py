"""Thread helper utilities: subject normalization, participants, thread IDs.

This module provides the small pure functions the matching strategies and
the threading engine share:
- Subject normalization: strip one reply/forward prefix, collapse whitespace
- Participant extraction: from/to/cc addresses of a message
- Thread ID generation

Usage:
    from mailthread.engine.thread_utils import SubjectNormalizer, normalize_subject

    normalize_subject("Re:  Project   Update")   # -> "project update"

    normalizer = SubjectNormalizer(prefixes=["Re", "Fwd", "SV"])
    normalizer.clean("SV: Budget")                # -> "Budget"
"""

from __future__ import annotations

import uuid
from collections.abc import Iterable
from typing import TYPE_CHECKING

import regex

from mailthread.config_schema import DEFAULT_SUBJECT_PREFIXES
from mailthread.core.logging import get_logger

if TYPE_CHECKING:
    from mailthread.engine.models import Message

logger = get_logger(__name__)

# Regex timeout for security (used in match operations)
REGEX_TIMEOUT = 1.0

WHITESPACE_PATTERN = regex.compile(r"\s+")

DEFAULT_THREAD_ID_PREFIX = "thread-"


def build_prefix_pattern(prefixes: Iterable[str]) -> regex.Pattern:
    """Compile the leading reply/forward prefix pattern.

    A prefix word must be followed by a colon or by whitespace, so "Re: x",
    "RE:x" and "Re x" all lose the prefix while "Regarding x", "Re-org plan"
    and "Re's" are left alone.

    Args:
        prefixes: Prefix words, e.g. ["Re", "Fwd", "AW", "WG"]

    Returns:
        Compiled case-insensitive pattern anchored at the start
    """
    # Longest first so "Fwd" wins over "Fw"
    words = sorted({p.strip() for p in prefixes if p.strip()}, key=len, reverse=True)
    if not words:
        raise ValueError("At least one subject prefix is required")
    alternation = "|".join(regex.escape(w) for w in words)
    # Note: timeout is passed at match time (sub), not compile time
    return regex.compile(rf"^(?:{alternation})(?::\s*|\s+)", regex.IGNORECASE)


class SubjectNormalizer:
    """Subject normalization with a configurable prefix set.

    Exactly one leading prefix is removed per call: "Re: Re: Hello" cleans
    to "Re: Hello". clean() keeps casing and is used for the stored thread
    subject; normalize() lower-cases it and is the comparison key.
    """

    def __init__(
        self,
        prefixes: Iterable[str] = DEFAULT_SUBJECT_PREFIXES,
        timeout: float = REGEX_TIMEOUT,
    ) -> None:
        self._prefixes = tuple(prefixes)
        self._pattern = build_prefix_pattern(self._prefixes)
        self._timeout = timeout

    @property
    def prefixes(self) -> tuple[str, ...]:
        return self._prefixes

    def clean(self, subject: str | None) -> str:
        """Strip one prefix, collapse whitespace and trim. Casing is kept.

        Args:
            subject: Raw subject line

        Returns:
            Cleaned subject (empty string for empty input)
        """
        if not subject:
            return ""

        try:
            stripped = self._pattern.sub("", subject, count=1, timeout=self._timeout)
            collapsed = WHITESPACE_PATTERN.sub(" ", stripped, timeout=self._timeout)
            return collapsed.strip()
        except (regex.error, TimeoutError) as e:
            # Timeout or error - keep the prefix, still collapse whitespace
            logger.warning(
                "subject_normalization_failed",
                subject=subject[:80],
                error=str(e),
            )
            return " ".join(subject.split())

    def normalize(self, subject: str | None) -> str:
        """Comparison key: clean() lower-cased."""
        return self.clean(subject).lower()


_default_normalizer = SubjectNormalizer()


def normalize_subject(subject: str | None) -> str:
    """Normalize a subject with the default prefix set.

    Args:
        subject: Email subject

    Returns:
        Normalized subject for comparison
    """
    return _default_normalizer.normalize(subject)


def extract_participants(message: Message) -> set[str]:
    """Collect the sender and every to/cc address of a message.

    Addresses are compared as exact strings: "Foo@x.com" and "foo@x.com"
    are two participants. Empty addresses are skipped.

    Args:
        message: Message to read addresses from

    Returns:
        Set of participant addresses
    """
    participants = {message.from_address}
    participants.update(message.to)
    participants.update(message.cc)
    participants.discard("")
    return participants


def generate_thread_id(prefix: str = DEFAULT_THREAD_ID_PREFIX) -> str:
    """Generate a unique thread ID.

    Args:
        prefix: String prepended to the random part

    Returns:
        Thread ID such as "thread-3f2b9c..."
    """
    return f"{prefix}{uuid.uuid4().hex}"
