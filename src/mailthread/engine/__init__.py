"""Email threading engine.

This package provides:
- Message and Thread data types
- Subject normalization and participant helpers
- Matching strategies (In-Reply-To, References, subject + time window)
- ThreadingEngine for batch and incremental threading
"""

from mailthread.engine.matching import (
    DEFAULT_STRATEGIES,
    MatchContext,
    MatchStrategy,
    ThreadMatch,
    build_message_index,
    find_match,
    match_in_reply_to,
    match_references,
    match_subject_window,
)
from mailthread.engine.models import Message, Thread, validate_message
from mailthread.engine.thread_utils import (
    SubjectNormalizer,
    extract_participants,
    generate_thread_id,
    normalize_subject,
)
from mailthread.engine.threading_engine import Assignment, ThreadingEngine

__all__ = [
    # Models
    "Message",
    "Thread",
    "validate_message",
    # Engine
    "Assignment",
    "ThreadingEngine",
    # Matching
    "DEFAULT_STRATEGIES",
    "MatchContext",
    "MatchStrategy",
    "ThreadMatch",
    "build_message_index",
    "find_match",
    "match_in_reply_to",
    "match_references",
    "match_subject_window",
    # Thread utilities
    "SubjectNormalizer",
    "extract_participants",
    "generate_thread_id",
    "normalize_subject",
]
