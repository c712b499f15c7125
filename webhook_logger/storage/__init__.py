"""Storage backends for webhook logs."""

from __future__ import annotations

from typing import TYPE_CHECKING

from webhook_logger.storage.base import StorageBackend
from webhook_logger.storage.database import DatabaseStorage
from webhook_logger.storage.file import FileStorage

if TYPE_CHECKING:
    from webhook_logger.config import Settings

__all__ = [
    "DatabaseStorage",
    "FileStorage",
    "StorageBackend",
    "build_storage",
]


def build_storage(settings: Settings) -> StorageBackend:
    """Construct the single backend selected by *settings*."""
    if settings.storage_backend == "database":
        return DatabaseStorage.from_url(
            settings.database_url,
            min_size=settings.db_pool_min_size,
            max_size=settings.db_pool_max_size,
            timeout=settings.db_pool_timeout,
        )
    return FileStorage(settings.logs_dir)
