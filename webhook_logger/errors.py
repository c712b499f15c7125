"""Error taxonomy shared by storage backends and HTTP handlers.

Backends translate driver and filesystem failures into these types;
handlers convert them into status codes and human-readable messages.
"""

from __future__ import annotations


class WebhookLoggerError(Exception):
    """Base class for all webhook logger errors."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotFound(WebhookLoggerError):
    """Raised when no record exists under the requested identifier."""

    def __init__(self, identifier: str) -> None:
        super().__init__(f"No webhook log found for {identifier!r}")
        self.identifier = identifier


class StorageError(WebhookLoggerError):
    """Base class for failures of the underlying storage medium."""


class StorageWriteError(StorageError):
    """Raised when a record could not be persisted."""


class StorageReadError(StorageError):
    """Raised when persisted data is unreadable or corrupt."""


class PayloadTooLarge(WebhookLoggerError):
    """Raised when a request body exceeds the configured ceiling."""

    def __init__(self, limit: int) -> None:
        super().__init__(f"Request body exceeds the {limit} byte limit")
        self.limit = limit


class InvalidPayload(WebhookLoggerError):
    """Raised when a request body cannot be decoded for its media type."""
