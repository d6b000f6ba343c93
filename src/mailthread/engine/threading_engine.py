"""Threading engine: group messages into conversation threads.

Two entry points share one matching procedure:
- build_threads(): thread a whole mailbox at once (batch)
- find_thread_for_message(): locate the thread for one new message
  against threads built earlier (incremental)

The engine holds configuration only. Every call builds its own
message_id -> thread_id index from what it is given, so calls are
independent and may run concurrently.

Usage:
    from mailthread.engine.threading_engine import ThreadingEngine

    engine = ThreadingEngine()
    threads = engine.build_threads(messages)

    thread_id = engine.find_thread_for_message(new_message, threads)
    if thread_id is None:
        ...  # caller creates and persists a new thread
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass

from mailthread.config_schema import ThreadingConfig
from mailthread.core.logging import get_logger, run_scope
from mailthread.engine.matching import (
    DEFAULT_STRATEGIES,
    MatchContext,
    MatchStrategy,
    ThreadMatch,
    build_message_index,
    find_match,
)
from mailthread.engine.models import Message, Thread, validate_message
from mailthread.engine.thread_utils import SubjectNormalizer, generate_thread_id

logger = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class Assignment:
    """Outcome of placing one message with assign_message().

    Attributes:
        thread: Thread now holding the message
        created: True if a new thread was started for it
        duplicate: True if the message ID was already threaded (nothing changed)
        match: The match that selected an existing thread, if any
    """

    thread: Thread
    created: bool = False
    duplicate: bool = False
    match: ThreadMatch | None = None


class ThreadingEngine:
    """Decide which thread each message belongs to.

    Attributes:
        config: Threading configuration (time window, prefixes, ID prefix)
        normalizer: Subject normalizer built from the configured prefixes
    """

    def __init__(
        self,
        config: ThreadingConfig | None = None,
        id_factory: Callable[[], str] | None = None,
        strategies: Sequence[MatchStrategy] = DEFAULT_STRATEGIES,
    ) -> None:
        """Initialize the engine.

        Args:
            config: Threading settings; defaults give a 30-day window
            id_factory: Thread ID generator (defaults to a prefixed UUID)
            strategies: Matching strategies in priority order
        """
        self.config = config or ThreadingConfig()
        self.normalizer = SubjectNormalizer(
            prefixes=self.config.subject_prefixes,
            timeout=self.config.regex_timeout_seconds,
        )
        self._id_factory = id_factory or (
            lambda: generate_thread_id(self.config.thread_id_prefix)
        )
        self._strategies = tuple(strategies)

    def build_threads(self, messages: Iterable[Message]) -> list[Thread]:
        """Build threads from an unordered collection of messages.

        Messages are processed oldest first (stable sort on sent_at), so the
        earliest message of a conversation always starts its thread and later
        messages can resolve their reply headers against earlier ones.

        Args:
            messages: Messages in any order

        Returns:
            Threads in creation order

        Raises:
            InvalidMessageError: If any message has an empty message_id.
                Raised before any thread is built.
        """
        batch = list(messages)
        for message in batch:
            validate_message(message)

        ordered = sorted(batch, key=lambda m: m.sent_at)

        with run_scope():
            logger.debug("threads_building", message_count=len(ordered))

            threads: list[Thread] = []
            threads_by_id: dict[str, Thread] = {}
            message_index: dict[str, str] = {}
            context = self._make_context(message_index, threads)

            for message in ordered:
                if message.message_id in message_index:
                    logger.warning(
                        "duplicate_message_id",
                        message_id=message.message_id,
                        thread_id=message_index[message.message_id],
                    )

                match = find_match(message, context, self._strategies)

                if match is None:
                    thread = self._start_thread(message)
                    threads.append(thread)
                    threads_by_id[thread.thread_id] = thread
                else:
                    thread = threads_by_id[match.thread_id]
                    thread.add_message(message)
                    logger.debug(
                        "thread_extended",
                        thread_id=thread.thread_id,
                        message_id=message.message_id,
                        message_count=thread.message_count,
                    )

                message_index[message.message_id] = thread.thread_id

            logger.info(
                "threads_built",
                thread_count=len(threads),
                message_count=len(ordered),
            )

        return threads

    def find_thread_for_message(
        self,
        message: Message,
        existing_threads: Sequence[Thread],
    ) -> str | None:
        """Find the existing thread a new message belongs to.

        Does not modify any thread; the caller appends or creates and
        persists the result.

        Args:
            message: Newly arrived message
            existing_threads: Previously built threads, in creation order

        Returns:
            Thread ID, or None if the message starts a new thread

        Raises:
            InvalidMessageError: If the message has an empty message_id
        """
        match = self.match_message(message, existing_threads)
        return match.thread_id if match else None

    def match_message(
        self,
        message: Message,
        existing_threads: Sequence[Thread],
    ) -> ThreadMatch | None:
        """Like find_thread_for_message(), but report how the match was made.

        Returns:
            ThreadMatch with thread ID, method and matched value, or None
        """
        validate_message(message)
        context = self._make_context(build_message_index(existing_threads), existing_threads)
        return find_match(message, context, self._strategies)

    def assign_message(self, message: Message, threads: list[Thread]) -> Assignment:
        """Place one message into a caller-owned list of threads.

        A message whose ID is already in one of the threads is reported as a
        duplicate and changes nothing. Otherwise the message is added to the
        matched thread, or a new thread is started and appended to threads.

        Args:
            message: Newly arrived message
            threads: Threads to search and update, in creation order

        Returns:
            Assignment describing where the message went

        Raises:
            InvalidMessageError: If the message has an empty message_id.
                Raised before any thread is touched.
        """
        validate_message(message)
        message_index = build_message_index(threads)
        threads_by_id = {t.thread_id: t for t in threads}

        existing_id = message_index.get(message.message_id)
        if existing_id is not None:
            logger.warning(
                "message_already_threaded",
                message_id=message.message_id,
                thread_id=existing_id,
            )
            return Assignment(thread=threads_by_id[existing_id], duplicate=True)

        context = self._make_context(message_index, threads)
        match = find_match(message, context, self._strategies)

        if match is None:
            thread = self._start_thread(message)
            threads.append(thread)
            return Assignment(thread=thread, created=True)

        thread = threads_by_id[match.thread_id]
        thread.add_message(message)
        logger.debug(
            "thread_extended",
            thread_id=thread.thread_id,
            message_id=message.message_id,
            message_count=thread.message_count,
        )
        return Assignment(thread=thread, match=match)

    def _make_context(
        self,
        message_index: dict[str, str],
        threads: Sequence[Thread],
    ) -> MatchContext:
        return MatchContext(
            message_index=message_index,
            threads=threads,
            time_window=self.config.time_window,
            normalizer=self.normalizer,
        )

    def _start_thread(self, message: Message) -> Thread:
        thread = Thread.start(
            thread_id=self._id_factory(),
            message=message,
            subject=self.normalizer.clean(message.subject),
        )
        logger.debug(
            "thread_created",
            thread_id=thread.thread_id,
            subject=message.subject,
            message_id=message.message_id,
        )
        return thread
