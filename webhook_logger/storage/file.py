"""File storage: one pretty-printed JSON document per webhook.

Files are named ``webhook-<identifier>.json``. A save writes a hidden temp
file in the same directory and hard-links it into place, so readers never
see a half-written document and an existing log is never replaced.
"""

from __future__ import annotations

import contextlib
import json
import logging
import os
import re
import tempfile
from pathlib import Path

from webhook_logger.errors import NotFound, StorageReadError, StorageWriteError
from webhook_logger.records import (
    FILE_PREFIX,
    FILE_SUFFIX,
    WebhookRecord,
    encode_json,
    filename_for,
    is_valid_identifier,
)
from webhook_logger.storage.base import StorageBackend

logger = logging.getLogger(__name__)

_FILENAME_RE = re.compile(
    rf"{re.escape(FILE_PREFIX)}(?P<identifier>[A-Za-z0-9][A-Za-z0-9._-]*){re.escape(FILE_SUFFIX)}"
)


class FileStorage(StorageBackend):
    """Stores webhook logs as JSON files in a single directory."""

    name = "file"

    def __init__(self, directory: str | os.PathLike[str]) -> None:
        self.directory = Path(directory)

    def open(self) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        logger.info("File storage ready (%d logs)", len(self.list()))

    def save(self, record: WebhookRecord) -> str:
        if not is_valid_identifier(record.identifier):
            raise StorageWriteError(f"Invalid webhook identifier {record.identifier!r}")

        try:
            data = encode_json(record.to_document(), indent=2).encode("utf-8")
        except ValueError as exc:
            raise StorageWriteError(f"Webhook log is not storable as JSON: {exc}") from exc

        target = self.directory / record.filename
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(prefix=".webhook-", suffix=".tmp", dir=self.directory)
        except OSError as exc:
            raise StorageWriteError(f"Could not write webhook log: {exc.strerror}") from exc

        try:
            with os.fdopen(fd, "wb") as fh:
                fh.write(data)
                fh.flush()
                os.fsync(fh.fileno())
            os.link(tmp_name, target)
        except FileExistsError as exc:
            raise StorageWriteError(f"A webhook log named {record.filename} already exists") from exc
        except OSError as exc:
            raise StorageWriteError(f"Could not write webhook log: {exc.strerror}") from exc
        finally:
            with contextlib.suppress(FileNotFoundError):
                os.unlink(tmp_name)

        return record.identifier

    def list(self) -> list[str]:
        try:
            names = os.listdir(self.directory)
        except FileNotFoundError:
            return []
        except OSError as exc:
            raise StorageReadError(f"Could not list webhook logs: {exc.strerror}") from exc

        identifiers = []
        for name in names:
            match = _FILENAME_RE.fullmatch(name)
            if match:
                identifiers.append(match.group("identifier"))
        return sorted(identifiers, reverse=True)

    def get(self, identifier: str) -> WebhookRecord:
        if not is_valid_identifier(identifier):
            raise NotFound(identifier)

        filename = filename_for(identifier)
        try:
            content = (self.directory / filename).read_text(encoding="utf-8")
        except (FileNotFoundError, IsADirectoryError) as exc:
            raise NotFound(identifier) from exc
        except (OSError, UnicodeDecodeError) as exc:
            raise StorageReadError(f"Could not read {filename}") from exc

        try:
            document = json.loads(content)
        except json.JSONDecodeError as exc:
            raise StorageReadError(f"{filename} does not contain valid JSON: {exc.msg}") from exc
        if not isinstance(document, dict):
            raise StorageReadError(f"{filename} does not contain a webhook log object")

        return WebhookRecord.from_document(identifier, document)
