"""Storage backend interface.

Every backend must agree on three behaviours so the handlers never need to
know which one is active:

- ``list()`` returns identifiers newest first, and an empty store is an
  empty list rather than an error.
- ``get()`` raises :class:`NotFound` for unknown or malformed identifiers.
- ``save()`` never overwrites: an identifier that is already taken raises
  :class:`StorageWriteError`.
"""

from __future__ import annotations

import abc

from webhook_logger.records import WebhookRecord


class StorageBackend(abc.ABC):
    """Persists webhook records and reads them back."""

    name: str = "unknown"

    def open(self) -> None:
        """Prepare the medium (called once at application startup)."""

    def close(self) -> None:
        """Release resources (called once at application shutdown)."""

    @abc.abstractmethod
    def save(self, record: WebhookRecord) -> str:
        """Persist *record* and return its identifier."""

    @abc.abstractmethod
    def list(self) -> list[str]:
        """Return all stored identifiers, descending."""

    @abc.abstractmethod
    def get(self, identifier: str) -> WebhookRecord:
        """Return the record stored under *identifier*."""
