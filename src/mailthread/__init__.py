"""mailthread - email conversation threading.

Groups parsed email messages into conversation threads using reply headers
with a subject + time-window fallback.
"""

from mailthread.core.errors import InvalidMessageError, MailThreadError
from mailthread.engine import Message, Thread, ThreadingEngine, ThreadMatch, normalize_subject

__version__ = "0.1.0"

__all__ = [
    "InvalidMessageError",
    "MailThreadError",
    "Message",
    "Thread",
    "ThreadMatch",
    "ThreadingEngine",
    "normalize_subject",
]
