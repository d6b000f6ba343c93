"""Custom exception types for mailthread.

Error messages should say what failed, which input or file caused it,
and how to fix it.
"""


class MailThreadError(Exception):
    """Base exception for all mailthread errors."""

    pass


class ConfigValidationError(MailThreadError):
    """Raised when config.yaml fails Pydantic validation.

    Includes specific field errors with actionable messages.
    """

    pass


class ConfigLoadError(MailThreadError):
    """Raised when config.yaml cannot be loaded (file not found, YAML parse error)."""

    pass


class InvalidMessageError(MailThreadError):
    """Raised when a message cannot be admitted into threading.

    The threading engine rejects such messages before any matching state
    is touched, so previously returned threads are never partially updated.

    Attributes:
        field: Name of the offending message field (if known)
        message_id: The message ID as supplied (may be empty)
    """

    def __init__(
        self,
        message: str,
        field: str | None = None,
        message_id: str | None = None,
    ):
        super().__init__(message)
        self.field = field
        self.message_id = message_id


class RecordLoadError(MailThreadError):
    """Raised when a JSON message or thread file cannot be read or validated."""

    pass
