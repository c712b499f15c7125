"""Tests for the PostgreSQL storage backend (against FakePool)."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from unittest.mock import patch

import pytest
from psycopg import OperationalError
from psycopg_pool import PoolTimeout

from webhook_logger.errors import NotFound, StorageReadError, StorageWriteError
from webhook_logger.storage import DatabaseStorage
from webhook_logger.storage.database import decode_json_column


class TestSchema:
    def test_init_schema_is_idempotent(self, database_storage, fake_pool):
        database_storage.init_schema()
        database_storage.init_schema()

        ddl = [statement for statement, _ in fake_pool.statements]
        assert len(ddl) == 4
        assert all("IF NOT EXISTS" in statement for statement in ddl)
        assert any("identifier TEXT NOT NULL UNIQUE" in statement for statement in ddl)

    def test_open_opens_pool_then_creates_schema(self, database_storage, fake_pool):
        database_storage.open()
        assert fake_pool.opened is True
        assert fake_pool.statements[0][0].startswith("CREATE TABLE IF NOT EXISTS webhook_logs")

    def test_close_closes_pool(self, database_storage, fake_pool):
        database_storage.close()
        assert fake_pool.closed is True


class TestFromUrl:
    @patch("webhook_logger.storage.database.ConnectionPool")
    def test_builds_unopened_bounded_pool(self, mock_pool_cls):
        backend = DatabaseStorage.from_url(
            "postgresql://u:p@db/hooks", min_size=2, max_size=8, timeout=5.0
        )

        assert isinstance(backend, DatabaseStorage)
        args, kwargs = mock_pool_cls.call_args
        assert args == ("postgresql://u:p@db/hooks",)
        assert kwargs["min_size"] == 2
        assert kwargs["max_size"] == 8
        assert kwargs["timeout"] == 5.0
        assert kwargs["open"] is False
        assert kwargs["kwargs"] == {"autocommit": True}


class TestSave:
    def test_insert_sends_json_text(self, database_storage, fake_pool, make_record):
        record = make_record({"a": [1, None]}, headers={"h": "v"}, query={"q": "1"})
        database_storage.save(record)

        statement, params = fake_pool.statements[-1]
        assert statement.startswith("INSERT INTO webhook_logs")
        assert params[0] == record.identifier
        assert [json.loads(p) for p in params[1:]] == [{"h": "v"}, {"a": [1, None]}, {"q": "1"}]

    def test_unstorable_body_never_reaches_the_database(
        self, database_storage, fake_pool, make_record
    ):
        with pytest.raises(StorageWriteError):
            database_storage.save(make_record({"a": float("nan")}))
        assert fake_pool.statements == []

    def test_unique_violation_is_write_error(self, database_storage, make_record):
        record = make_record()
        database_storage.save(record)

        with pytest.raises(StorageWriteError) as exc_info:
            database_storage.save(record)
        assert exc_info.value.message == (
            f"A webhook log with identifier {record.identifier} already exists"
        )

    def test_connection_failure_is_write_error_without_conninfo(
        self, database_storage, fake_pool, make_record
    ):
        fake_pool.error = OperationalError(
            'connection to server at "db.internal" (10.0.0.5), port 5432 failed: password authentication failed'
        )

        with pytest.raises(StorageWriteError) as exc_info:
            database_storage.save(make_record())

        assert exc_info.value.message.startswith("Database write failed: OperationalError")
        assert "db.internal" not in exc_info.value.message
        assert isinstance(exc_info.value.__cause__, OperationalError)

    def test_pool_exhaustion_is_write_error(self, database_storage, fake_pool, make_record):
        fake_pool.error = PoolTimeout("couldn't get a connection after 30.00 sec")
        with pytest.raises(StorageWriteError) as exc_info:
            database_storage.save(make_record())
        assert "PoolTimeout" in exc_info.value.message


class TestRead:
    def test_list_orders_by_creation_descending(self, database_storage, fake_pool, make_record):
        records = [make_record({"n": n}) for n in range(3)]
        for record in records:
            database_storage.save(record)

        assert database_storage.list() == [r.identifier for r in reversed(records)]
        statement, _ = fake_pool.statements[-1]
        assert "ORDER BY created_at DESC, identifier DESC" in statement

    def test_list_failure_is_read_error(self, database_storage, fake_pool):
        fake_pool.error = OperationalError("server closed the connection unexpectedly")
        with pytest.raises(StorageReadError):
            database_storage.list()

    def test_get_failure_is_read_error(self, database_storage, fake_pool):
        fake_pool.error = OperationalError("server closed the connection unexpectedly")
        with pytest.raises(StorageReadError):
            database_storage.get("2024-05-01T12-00-01.250Z")

    def test_get_missing_row_is_not_found(self, database_storage):
        with pytest.raises(NotFound):
            database_storage.get("2024-05-01T12-00-01.250Z")

    def test_invalid_identifier_skips_query(self, database_storage, fake_pool):
        with pytest.raises(NotFound):
            database_storage.get("../x")
        assert fake_pool.statements == []

    def test_get_normalizes_parsed_columns(self, database_storage, fake_pool, make_record):
        fake_pool.parsed_json = True
        record = make_record({"a": {"b": [1, 2]}}, headers={"h": ["1", "2"]}, query={"q": "x"})
        database_storage.save(record)

        loaded = database_storage.get(record.identifier)
        assert loaded.body == {"a": {"b": [1, 2]}}
        assert loaded.headers == {"h": ["1", "2"]}
        assert loaded.query == {"q": "x"}

    def test_corrupt_column_is_read_error(self, database_storage, fake_pool, make_record):
        record = make_record()
        database_storage.save(record)
        fake_pool.rows[record.identifier]["body"] = "{not json"

        with pytest.raises(StorageReadError) as exc_info:
            database_storage.get(record.identifier)
        assert "malformed body column" in exc_info.value.message

    def test_received_at_falls_back_to_created_at(self, database_storage, fake_pool):
        created_at = datetime(2024, 6, 1, 9, 0, tzinfo=timezone.utc)
        fake_pool.rows["imported-1"] = {
            "headers": "{}",
            "body": '{"x": 1}',
            "query": "{}",
            "created_at": created_at,
        }

        record = database_storage.get("imported-1")
        assert record.received_at == created_at
        assert record.body == {"x": 1}


class TestDecodeJsonColumn:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            ('{"a": 1}', {"a": 1}),
            (b'[1, 2]', [1, 2]),
            (memoryview(b'"text"'), "text"),
            ("null", None),
            ({"already": "parsed"}, {"already": "parsed"}),
            ([1, 2], [1, 2]),
            (None, None),
            (3, 3),
        ],
    )
    def test_normalizes_both_representations(self, raw, expected):
        assert decode_json_column(raw, column="body", identifier="x") == expected

    def test_malformed_text_raises(self):
        with pytest.raises(StorageReadError):
            decode_json_column("{", column="headers", identifier="x")
