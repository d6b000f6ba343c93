"""JSON records for feeding messages and threads to the engine.

The mail-parsing layer that produces messages is outside this package; these
records are the file format the CLI reads and writes so that parsed
messages (and previously built threads) can be handed to the engine.

Message record:
    {
      "message_id": "<b@example.com>",
      "in_reply_to": "<a@example.com>",
      "references": ["<a@example.com>"],      # or "<a@example.com> <x@y>"
      "subject": "Re: Project Update",
      "sent_at": "2024-01-02T09:00:00+00:00",
      "from": "bob@example.com",
      "to": ["alice@example.com"],
      "cc": []
    }

A sent_at without a UTC offset is read as UTC.

Thread record: {"thread_id": ..., "subject": ..., "messages": [<message record>, ...]}
(the output of Thread.to_dict(); derived fields are recomputed on load).
"""

from __future__ import annotations

import json
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, field_validator

from mailthread.core.errors import RecordLoadError
from mailthread.engine.models import Message, Thread


class MessageRecord(BaseModel):
    """One parsed message as stored in JSON."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    message_id: str
    in_reply_to: str | None = None
    references: list[str] = Field(default_factory=list)
    subject: str = ""
    sent_at: datetime
    from_address: str = Field(default="", alias="from")
    to: list[str] = Field(default_factory=list)
    cc: list[str] = Field(default_factory=list)

    @field_validator("references", mode="before")
    @classmethod
    def split_references(cls, v: Any) -> Any:
        """Accept the raw header form: whitespace-separated IDs."""
        if isinstance(v, str):
            return v.split()
        if v is None:
            return []
        return v

    @field_validator("sent_at")
    @classmethod
    def assume_utc(cls, v: datetime) -> datetime:
        """Naive timestamps are taken as UTC so a file may mix both forms."""
        if v.tzinfo is None:
            return v.replace(tzinfo=UTC)
        return v

    @field_validator("to", "cc", mode="before")
    @classmethod
    def wrap_single_address(cls, v: Any) -> Any:
        if isinstance(v, str):
            return [v] if v else []
        if v is None:
            return []
        return v

    def to_message(self) -> Message:
        """Convert to an engine Message.

        Raises:
            InvalidMessageError: If message_id is blank
        """
        return Message(
            message_id=self.message_id,
            in_reply_to=self.in_reply_to,
            references=tuple(self.references),
            subject=self.subject,
            sent_at=self.sent_at,
            from_address=self.from_address,
            to=tuple(self.to),
            cc=tuple(self.cc),
        )


class ThreadRecord(BaseModel):
    """A previously built thread as stored in JSON."""

    model_config = ConfigDict(extra="ignore")

    thread_id: str = Field(min_length=1)
    subject: str = ""
    messages: list[MessageRecord] = Field(min_length=1)

    def to_thread(self) -> Thread:
        """Rebuild a Thread; participants and last_message_at are recomputed."""
        messages = sorted((m.to_message() for m in self.messages), key=lambda m: m.sent_at)
        thread = Thread.start(self.thread_id, messages[0], subject=self.subject)
        for message in messages[1:]:
            thread.add_message(message)
        return thread


_message_list_adapter = TypeAdapter(list[MessageRecord])
_thread_list_adapter = TypeAdapter(list[ThreadRecord])


def _read_json(path: Path) -> Any:
    if not path.exists():
        raise RecordLoadError(f"Input file not found: {path}")
    try:
        with open(path, encoding="utf-8") as f:
            return json.load(f)
    except json.JSONDecodeError as e:
        raise RecordLoadError(f"Failed to parse JSON in {path}: {e}") from e


def _format_errors(error: ValidationError) -> str:
    lines = []
    for err in error.errors():
        location = ".".join(str(loc) for loc in err["loc"])
        lines.append(f"  - {location}: {err['msg']}")
    return "\n".join(lines)


def load_messages(path: Path) -> list[Message]:
    """Load a JSON array of message records.

    Raises:
        RecordLoadError: If the file is missing, not JSON, or fails validation
        InvalidMessageError: If a record has a blank message_id
    """
    data = _read_json(path)
    try:
        records = _message_list_adapter.validate_python(data)
    except ValidationError as e:
        raise RecordLoadError(f"Invalid message records in {path}:\n{_format_errors(e)}") from e
    return [record.to_message() for record in records]


def load_message(path: Path) -> Message:
    """Load a single message record (a JSON object)."""
    data = _read_json(path)
    try:
        record = MessageRecord.model_validate(data)
    except ValidationError as e:
        raise RecordLoadError(f"Invalid message record in {path}:\n{_format_errors(e)}") from e
    return record.to_message()


def load_threads(path: Path) -> list[Thread]:
    """Load a JSON array of thread records (as written by dump_threads)."""
    data = _read_json(path)
    try:
        records = _thread_list_adapter.validate_python(data)
    except ValidationError as e:
        raise RecordLoadError(f"Invalid thread records in {path}:\n{_format_errors(e)}") from e
    return [record.to_thread() for record in records]


def dump_threads(threads: list[Thread]) -> str:
    """Serialize threads to a JSON string readable by load_threads()."""
    return json.dumps([thread.to_dict() for thread in threads], indent=2)
