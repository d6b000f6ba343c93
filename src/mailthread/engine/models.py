"""Message and Thread data types for the threading engine.

Message is an immutable view of the threading-relevant fields of a parsed
email. Thread is the mutable aggregate the engine builds from messages.

Usage:
    from mailthread.engine.models import Message, Thread

    message = Message(
        message_id="<abc@example.com>",
        subject="Project Update",
        sent_at=datetime(2024, 1, 1, 9, 0, tzinfo=UTC),
        from_address="alice@example.com",
        to=("bob@example.com",),
    )
    thread = Thread.start("thread-1", message, subject="Project Update")
"""

from __future__ import annotations

import bisect
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from mailthread.core.errors import InvalidMessageError
from mailthread.engine.thread_utils import extract_participants


def validate_message(message: Message) -> None:
    """Reject a message that must not enter the matching state.

    A blank message ID would collide with every other blank ID in the
    message index, so it is refused outright.

    Args:
        message: Message to check

    Raises:
        InvalidMessageError: If the message ID is missing or blank
    """
    message_id = getattr(message, "message_id", None)
    if not isinstance(message_id, str) or not message_id.strip():
        raise InvalidMessageError(
            f"Message has an empty message_id (subject={getattr(message, 'subject', None)!r}). "
            "Every message needs its Message-ID header; deduplicate or repair it upstream.",
            field="message_id",
            message_id=message_id if isinstance(message_id, str) else None,
        )


@dataclass(frozen=True, slots=True)
class Message:
    """Threading-relevant fields of a parsed email.

    Attributes:
        message_id: Message-ID header value (unique join key)
        subject: Raw, unnormalized subject line
        sent_at: When the message was sent
        from_address: Sender address
        to: Recipient addresses
        cc: Carbon-copy addresses
        in_reply_to: Message-ID this message directly replies to
        references: Ancestor Message-IDs, oldest first
    """

    message_id: str
    subject: str
    sent_at: datetime
    from_address: str = ""
    to: tuple[str, ...] = ()
    cc: tuple[str, ...] = ()
    in_reply_to: str | None = None
    references: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        validate_message(self)
        # Accept lists from callers but keep the stored value immutable
        object.__setattr__(self, "to", tuple(self.to))
        object.__setattr__(self, "cc", tuple(self.cc))
        object.__setattr__(self, "references", tuple(self.references))
        if self.in_reply_to is not None and not self.in_reply_to.strip():
            object.__setattr__(self, "in_reply_to", None)

    @property
    def participants(self) -> set[str]:
        """Sender plus every to/cc address, exact-string deduplicated."""
        return extract_participants(self)

    @property
    def is_reply(self) -> bool:
        return self.in_reply_to is not None

    @property
    def is_threaded(self) -> bool:
        """True if the message declares any reply linkage."""
        return self.in_reply_to is not None or bool(self.references)

    @property
    def thread_depth(self) -> int:
        """Depth in the declared reply chain (0 = root)."""
        return len(self.references)

    @property
    def root_message_id(self) -> str:
        """Oldest message ID this message declares as an ancestor, or its own."""
        if self.references:
            return self.references[0]
        if self.in_reply_to:
            return self.in_reply_to
        return self.message_id

    def to_dict(self) -> dict[str, Any]:
        return {
            "message_id": self.message_id,
            "in_reply_to": self.in_reply_to,
            "references": list(self.references),
            "subject": self.subject,
            "sent_at": self.sent_at.isoformat(),
            "from": self.from_address,
            "to": list(self.to),
            "cc": list(self.cc),
        }


@dataclass
class Thread:
    """A conversation: messages ordered by send time plus derived metadata.

    The subject is the thread starter's subject with one reply/forward
    prefix removed and whitespace collapsed, original casing kept.
    normalized_subject is its lower-cased form and is what subject
    matching compares against.

    Attributes:
        thread_id: Opaque identifier generated by the engine
        subject: Cleaned subject of the first message
        messages: Messages ordered by sent_at ascending
        participants: Union of all from/to/cc addresses
        last_message_at: Latest sent_at among the messages
    """

    thread_id: str
    subject: str
    messages: list[Message] = field(default_factory=list)
    participants: set[str] = field(default_factory=set)
    last_message_at: datetime | None = None

    @classmethod
    def start(cls, thread_id: str, message: Message, subject: str) -> Thread:
        """Create a thread seeded with its first message.

        Args:
            thread_id: Fresh thread identifier
            message: Thread starter
            subject: Cleaned subject for the thread

        Returns:
            New Thread containing only the starter
        """
        return cls(
            thread_id=thread_id,
            subject=subject,
            messages=[message],
            participants=set(message.participants),
            last_message_at=message.sent_at,
        )

    def add_message(self, message: Message) -> None:
        """Add a message, union its participants and advance last_message_at.

        Messages stay ordered by sent_at; a message with the same sent_at as
        an existing one goes after it.
        """
        bisect.insort_right(self.messages, message, key=lambda m: m.sent_at)
        self.participants |= message.participants
        if self.last_message_at is None or message.sent_at > self.last_message_at:
            self.last_message_at = message.sent_at

    @property
    def normalized_subject(self) -> str:
        return self.subject.lower()

    @property
    def message_count(self) -> int:
        return len(self.messages)

    @property
    def first_message(self) -> Message | None:
        """Thread starter."""
        return self.messages[0] if self.messages else None

    @property
    def last_message(self) -> Message | None:
        return self.messages[-1] if self.messages else None

    @property
    def message_ids(self) -> list[str]:
        return [m.message_id for m in self.messages]

    def to_dict(self) -> dict[str, Any]:
        """JSON-friendly view of the thread."""
        return {
            "thread_id": self.thread_id,
            "subject": self.subject,
            "message_count": self.message_count,
            "participants": sorted(self.participants),
            "last_message_at": (
                self.last_message_at.isoformat() if self.last_message_at else None
            ),
            "messages": [m.to_dict() for m in self.messages],
        }
