"""Webhook record model and identifier helpers.

An identifier is the receipt time rendered as ISO-8601 UTC with millisecond
precision, with colons swapped for hyphens so it is safe as a file name:

    2024-05-01T12:30:45.123Z  ->  2024-05-01T12-30-45.123Z

Identifiers therefore sort lexicographically in chronological order.
"""

from __future__ import annotations

import json
import re
import threading
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any

FILE_PREFIX = "webhook-"
FILE_SUFFIX = ".json"

_TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%S"
_IDENTIFIER_FORMAT = "%Y-%m-%dT%H-%M-%S"
_IDENTIFIER_RE = re.compile(r"[A-Za-z0-9][A-Za-z0-9._-]*")


def format_timestamp(moment: datetime) -> str:
    """Render *moment* as ``YYYY-MM-DDTHH:MM:SS.mmmZ`` in UTC."""
    moment = moment.astimezone(timezone.utc)
    return f"{moment.strftime(_TIMESTAMP_FORMAT)}.{moment.microsecond // 1000:03d}Z"


def parse_timestamp(value: str) -> datetime | None:
    """Inverse of :func:`format_timestamp`. Returns None for anything else."""
    try:
        return datetime.strptime(value, _TIMESTAMP_FORMAT + ".%fZ").replace(tzinfo=timezone.utc)
    except (TypeError, ValueError):
        return None


def identifier_for(moment: datetime) -> str:
    return format_timestamp(moment).replace(":", "-")


def timestamp_from_identifier(identifier: str) -> datetime | None:
    """Recover the receipt time from a time-derived identifier."""
    try:
        return datetime.strptime(identifier, _IDENTIFIER_FORMAT + ".%fZ").replace(tzinfo=timezone.utc)
    except (TypeError, ValueError):
        return None


def is_valid_identifier(value: str) -> bool:
    """True if *value* could name a stored record.

    Rejects path separators, leading dots and the empty string, so an
    identifier can always be embedded in a file name safely.
    """
    return bool(value) and _IDENTIFIER_RE.fullmatch(value) is not None


def normalize_identifier(value: str) -> str:
    """Accept either a bare identifier or a ``webhook-<id>.json`` file name."""
    if value.startswith(FILE_PREFIX) and value.endswith(FILE_SUFFIX):
        return value[len(FILE_PREFIX):-len(FILE_SUFFIX)]
    return value


def filename_for(identifier: str) -> str:
    return f"{FILE_PREFIX}{identifier}{FILE_SUFFIX}"


def encode_json(value: Any, *, indent: int | None = None) -> str:
    """Serialize *value* as strict JSON text that is valid UTF-8.

    Raises ValueError for NaN/Infinity and for strings holding lone
    surrogates, neither of which a JSON file or a JSONB column can hold.
    """
    text = json.dumps(value, indent=indent, ensure_ascii=False, allow_nan=False)
    text.encode("utf-8")
    return text


class ReceiptClock:
    """Hands out strictly increasing receipt times at millisecond resolution.

    Two requests landing in the same millisecond would otherwise share an
    identifier; the later one is moved forward by 1 ms instead.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._last: datetime | None = None

    def now(self) -> datetime:
        current = datetime.now(timezone.utc)
        current = current.replace(microsecond=current.microsecond // 1000 * 1000)
        with self._lock:
            if self._last is not None and current <= self._last:
                current = self._last + timedelta(milliseconds=1)
            self._last = current
        return current


@dataclass(frozen=True)
class WebhookRecord:
    """A single received webhook. Immutable once built."""

    identifier: str
    received_at: datetime
    headers: dict[str, Any] = field(default_factory=dict)
    body: Any = None
    query: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def create(
        cls,
        headers: dict[str, Any],
        body: Any,
        query: dict[str, Any],
        *,
        received_at: datetime | None = None,
    ) -> WebhookRecord:
        """Build a record stamped with *received_at* (default: now, UTC)."""
        moment = received_at or datetime.now(timezone.utc)
        return cls(
            identifier=identifier_for(moment),
            received_at=moment,
            headers=headers,
            body=body,
            query=query,
        )

    @property
    def timestamp(self) -> str:
        return format_timestamp(self.received_at)

    @property
    def filename(self) -> str:
        return filename_for(self.identifier)

    def to_document(self) -> dict[str, Any]:
        """Serializable form: ``{timestamp, headers, body, query}``."""
        return {
            "timestamp": self.timestamp,
            "headers": self.headers,
            "body": self.body,
            "query": self.query,
        }

    @classmethod
    def from_document(
        cls,
        identifier: str,
        document: dict[str, Any],
        *,
        received_at: datetime | None = None,
    ) -> WebhookRecord:
        """Rebuild a record from its serialized form.

        The receipt time comes from the document's ``timestamp``, then from the
        identifier itself, then from *received_at*.
        """
        moment = (
            parse_timestamp(document.get("timestamp"))
            or timestamp_from_identifier(identifier)
            or received_at
            or datetime.fromtimestamp(0, tz=timezone.utc)
        )
        return cls(
            identifier=identifier,
            received_at=moment,
            headers=document.get("headers") or {},
            body=document.get("body"),
            query=document.get("query") or {},
        )
