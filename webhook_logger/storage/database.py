"""PostgreSQL storage: one row per webhook in ``webhook_logs``.

Headers, body and query live in JSONB columns. The identifier column is
UNIQUE, so two webhooks that map to the same identifier make the second
insert fail instead of replacing the first.

Connections come from a bounded ``psycopg_pool.ConnectionPool`` shared by all
requests. Every operation is a single autocommit statement.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime
from typing import Any

import psycopg
from psycopg import errors as pg_errors
from psycopg_pool import ConnectionPool

from webhook_logger.errors import NotFound, StorageReadError, StorageWriteError
from webhook_logger.records import WebhookRecord, encode_json, is_valid_identifier
from webhook_logger.storage.base import StorageBackend

logger = logging.getLogger(__name__)

TABLE_NAME = "webhook_logs"

_SCHEMA_STATEMENTS = (
    """CREATE TABLE IF NOT EXISTS webhook_logs (
           id          BIGSERIAL PRIMARY KEY,
           identifier  TEXT NOT NULL UNIQUE,
           headers     JSONB NOT NULL DEFAULT '{}',
           body        JSONB,
           query       JSONB NOT NULL DEFAULT '{}',
           created_at  TIMESTAMPTZ NOT NULL DEFAULT now()
       )""",
    """CREATE INDEX IF NOT EXISTS webhook_logs_created_at_idx
           ON webhook_logs (created_at DESC)""",
)

_INSERT = """INSERT INTO webhook_logs (identifier, headers, body, query)
             VALUES (%s, %s, %s, %s)"""

_SELECT_IDENTIFIERS = """SELECT identifier FROM webhook_logs
                         ORDER BY created_at DESC, identifier DESC"""

# JSON columns are read back as text so a JSON string body is never
# mistaken for an encoded document.
_SELECT_ONE = """SELECT identifier, headers::text, body::text, query::text, created_at
                 FROM webhook_logs
                 WHERE identifier = %s"""

_JSON_COLUMNS = ("headers", "body", "query")


def decode_json_column(value: Any, *, column: str, identifier: str) -> Any:
    """Normalize a JSON column to its structured form.

    Drivers hand JSON back either already parsed or as raw text depending on
    the column type and cast; both come out the same here. An already-parsed
    top-level string would be decoded a second time, so reads cast to text.
    """
    if isinstance(value, memoryview):
        value = value.tobytes()
    if isinstance(value, (bytes, bytearray)):
        value = value.decode("utf-8")
    if isinstance(value, str):
        try:
            return json.loads(value)
        except json.JSONDecodeError as exc:
            raise StorageReadError(
                f"Stored webhook {identifier} has a malformed {column} column"
            ) from exc
    return value


def _describe(exc: Exception) -> str:
    # Driver messages can carry host names and credentials; only the class
    # name and SQLSTATE reach the client.
    sqlstate = getattr(exc, "sqlstate", None)
    return f"{type(exc).__name__} (SQLSTATE {sqlstate})" if sqlstate else type(exc).__name__


class DatabaseStorage(StorageBackend):
    """Stores webhook logs as rows in PostgreSQL."""

    name = "database"

    def __init__(self, pool: ConnectionPool) -> None:
        self._pool = pool

    @classmethod
    def from_url(
        cls,
        conninfo: str,
        *,
        min_size: int = 1,
        max_size: int = 10,
        timeout: float = 30.0,
    ) -> DatabaseStorage:
        """Build a backend around a new (not yet opened) connection pool."""
        pool = ConnectionPool(
            conninfo,
            min_size=min_size,
            max_size=max_size,
            timeout=timeout,
            open=False,
            kwargs={"autocommit": True},
            name="webhook-logger",
        )
        return cls(pool)

    def open(self) -> None:
        self._pool.open(wait=True)
        self.init_schema()
        logger.info("Database storage ready (table=%s)", TABLE_NAME)

    def close(self) -> None:
        self._pool.close()
        logger.info("Database storage closed")

    def init_schema(self) -> None:
        """Create the table and index if they don't exist.  Idempotent."""
        with self._pool.connection() as conn:
            for statement in _SCHEMA_STATEMENTS:
                conn.execute(statement)

    def save(self, record: WebhookRecord) -> str:
        try:
            params = (
                record.identifier,
                encode_json(record.headers),
                encode_json(record.body),
                encode_json(record.query),
            )
        except ValueError as exc:
            raise StorageWriteError(f"Webhook log is not storable as JSON: {exc}") from exc

        try:
            with self._pool.connection() as conn:
                conn.execute(_INSERT, params)
        except pg_errors.UniqueViolation as exc:
            raise StorageWriteError(
                f"A webhook log with identifier {record.identifier} already exists"
            ) from exc
        except psycopg.Error as exc:
            logger.warning("Insert of webhook %s failed", record.identifier, exc_info=True)
            raise StorageWriteError(f"Database write failed: {_describe(exc)}") from exc
        return record.identifier

    def list(self) -> list[str]:
        try:
            with self._pool.connection() as conn:
                rows = conn.execute(_SELECT_IDENTIFIERS).fetchall()
        except psycopg.Error as exc:
            logger.warning("Listing webhook logs failed", exc_info=True)
            raise StorageReadError(f"Database read failed: {_describe(exc)}") from exc
        return [row[0] for row in rows]

    def get(self, identifier: str) -> WebhookRecord:
        if not is_valid_identifier(identifier):
            raise NotFound(identifier)

        try:
            with self._pool.connection() as conn:
                row = conn.execute(_SELECT_ONE, (identifier,)).fetchone()
        except psycopg.Error as exc:
            logger.warning("Reading webhook %s failed", identifier, exc_info=True)
            raise StorageReadError(f"Database read failed: {_describe(exc)}") from exc

        if row is None:
            raise NotFound(identifier)

        document = {
            column: decode_json_column(value, column=column, identifier=identifier)
            for column, value in zip(_JSON_COLUMNS, row[1:4])
        }
        created_at = row[4] if isinstance(row[4], datetime) else None
        return WebhookRecord.from_document(identifier, document, received_at=created_at)
