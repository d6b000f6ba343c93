"""Thread matching strategies.

Each strategy is a pure function that looks at one message and the current
matching state and either names a thread or passes. Strategies are tried in
priority order and the first hit wins:

1. In-Reply-To: the directly replied-to message is already in a thread
2. References: the first declared ancestor that is already in a thread
3. Subject + time window: a thread with the same normalized subject whose
   last message is no older than the window before this message

Usage:
    from mailthread.engine.matching import MatchContext, build_message_index, find_match

    context = MatchContext(
        message_index=build_message_index(threads),
        threads=threads,
        time_window=timedelta(days=30),
        normalizer=SubjectNormalizer(),
    )
    match = find_match(message, context)
    if match is None:
        ...  # start a new thread
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Literal

from mailthread.core.logging import get_logger
from mailthread.engine.models import Message, Thread
from mailthread.engine.thread_utils import SubjectNormalizer

logger = get_logger(__name__)

MatchMethod = Literal["in_reply_to", "references", "subject"]

DEFAULT_TIME_WINDOW = timedelta(days=30)


@dataclass(frozen=True, slots=True)
class MatchContext:
    """Matching state a strategy may consult.

    Attributes:
        message_index: message_id -> thread_id for every message already threaded
        threads: Candidate threads in creation order
        time_window: Max gap for subject-based matching
        normalizer: Subject normalizer shared with thread creation
    """

    message_index: Mapping[str, str]
    threads: Sequence[Thread]
    time_window: timedelta = DEFAULT_TIME_WINDOW
    normalizer: SubjectNormalizer = field(default_factory=SubjectNormalizer)


@dataclass(frozen=True, slots=True)
class ThreadMatch:
    """A strategy's decision.

    Attributes:
        thread_id: Thread the message belongs to
        method: Which signal produced the match
        matched_on: The message ID or subject key that matched
    """

    thread_id: str
    method: MatchMethod
    matched_on: str


MatchStrategy = Callable[[Message, MatchContext], ThreadMatch | None]


def build_message_index(threads: Iterable[Thread]) -> dict[str, str]:
    """Map every message ID in the given threads to its thread ID.

    Args:
        threads: Already materialized threads

    Returns:
        Dict of message_id -> thread_id
    """
    index: dict[str, str] = {}
    for thread in threads:
        for message in thread.messages:
            index[message.message_id] = thread.thread_id
    return index


def match_in_reply_to(message: Message, context: MatchContext) -> ThreadMatch | None:
    """Match on the In-Reply-To header."""
    if not message.in_reply_to:
        return None

    thread_id = context.message_index.get(message.in_reply_to)
    if thread_id is None:
        return None

    return ThreadMatch(thread_id=thread_id, method="in_reply_to", matched_on=message.in_reply_to)


def match_references(message: Message, context: MatchContext) -> ThreadMatch | None:
    """Match on the first resolvable entry of the References header.

    References are checked in the order the message lists them (oldest
    ancestor first), not by recency.
    """
    for ref_id in message.references:
        thread_id = context.message_index.get(ref_id)
        if thread_id is not None:
            return ThreadMatch(thread_id=thread_id, method="references", matched_on=ref_id)
    return None


def match_subject_window(message: Message, context: MatchContext) -> ThreadMatch | None:
    """Match on normalized subject within the time window.

    A thread qualifies when its normalized subject equals the message's and
    ``thread.last_message_at >= message.sent_at - time_window`` (inclusive).
    When several threads qualify, the first in ``context.threads`` wins.
    """
    subject_key = context.normalizer.normalize(message.subject)
    window_start = message.sent_at - context.time_window

    for thread in context.threads:
        if thread.normalized_subject != subject_key:
            continue
        if thread.last_message_at is not None and thread.last_message_at >= window_start:
            return ThreadMatch(thread_id=thread.thread_id, method="subject", matched_on=subject_key)

    return None


DEFAULT_STRATEGIES: tuple[MatchStrategy, ...] = (
    match_in_reply_to,
    match_references,
    match_subject_window,
)


def find_match(
    message: Message,
    context: MatchContext,
    strategies: Sequence[MatchStrategy] = DEFAULT_STRATEGIES,
) -> ThreadMatch | None:
    """Run strategies in order and return the first match.

    Args:
        message: Message to place
        context: Current matching state
        strategies: Strategies in priority order

    Returns:
        The first ThreadMatch produced, or None if the message starts a new thread
    """
    for strategy in strategies:
        match = strategy(message, context)
        if match is not None:
            logger.debug(
                "thread_matched",
                message_id=message.message_id,
                thread_id=match.thread_id,
                method=match.method,
                matched_on=match.matched_on,
            )
            return match

    logger.debug(
        "thread_not_found",
        message_id=message.message_id,
        subject=message.subject,
    )
    return None
