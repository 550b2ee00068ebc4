"""Tests for engine options and slow query logging in database.py."""
import logging
import time
from types import SimpleNamespace

from app.config import settings
from app.database import (
    SLOW_QUERY_PREVIEW_CHARS,
    _after_cursor_execute,
    _before_cursor_execute,
    _engine_options,
)


class TestEngineOptions:
    """Pool arguments follow the configured sizes."""

    def test_postgres_uses_configured_pool(self):
        options = _engine_options("postgresql+asyncpg://localhost/wheel_shop")
        assert options["pool_size"] == settings.DB_POOL_SIZE
        assert options["max_overflow"] == settings.DB_MAX_OVERFLOW
        assert options["pool_pre_ping"] is True

    def test_sqlite_gets_no_pool_arguments(self):
        options = _engine_options("sqlite+aiosqlite:///./test.db")
        assert "pool_size" not in options
        assert "max_overflow" not in options
        assert options["echo"] == settings.sqlalchemy_echo


class TestSlowQueryLogging:
    """Statements over the threshold are logged without their values."""

    def test_slow_statement_is_logged(self, caplog):
        conn = SimpleNamespace(info={"query_start_time": time.monotonic() - 5})
        statement = "SELECT * FROM audit_logs WHERE entity_id = $1 " + "x" * 300

        with caplog.at_level(logging.WARNING, logger="app.database"):
            _after_cursor_execute(conn, None, statement, ("secret@example.com",), None, False)

        [record] = caplog.records
        message = record.getMessage()
        assert "1 params" in message
        assert "secret@example.com" not in message
        assert message.endswith("...")
        assert statement[:SLOW_QUERY_PREVIEW_CHARS] in message
        assert "query_start_time" not in conn.info

    def test_fast_statement_is_not_logged(self, caplog):
        conn = SimpleNamespace(info={})
        _before_cursor_execute(conn, None, "SELECT 1", (), None, False)

        with caplog.at_level(logging.WARNING, logger="app.database"):
            _after_cursor_execute(conn, None, "SELECT 1", (), None, False)

        assert caplog.records == []
