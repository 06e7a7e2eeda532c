import logging

from siteservices.core.config import Settings
from siteservices.core.logging import APP_LOGGER, _parse_headers, configure_logging, init_tracer
from siteservices.db import to_async_dsn


def test_parse_headers_skips_malformed_pairs():
    assert _parse_headers("api-key=abc, x-team = ops ,broken,=nokey") == {"api-key": "abc", "x-team": "ops"}
    assert _parse_headers(None) == {}


def test_configure_logging_stamps_environment():
    logger = configure_logging(Settings(log_level="debug", environment="staging"))

    assert logger.name == APP_LOGGER
    assert logger.level == logging.DEBUG
    assert logging.getLogger("sqlalchemy.engine").level == logging.WARNING
    handler = next(item for item in logging.getLogger().handlers if item.name == "console")
    record = logging.LogRecord("x", logging.INFO, __file__, 1, "hello", None, None)
    assert all(item.filter(record) for item in handler.filters)
    assert record.environment == "staging"


def test_tracer_disabled_by_default():
    assert init_tracer(Settings()) is None


def test_postgres_dsn_is_rewritten_for_asyncpg():
    assert to_async_dsn("postgresql://u:p@db/site") == "postgresql+asyncpg://u:p@db/site"
    assert to_async_dsn("postgres://u:p@db/site") == "postgresql+asyncpg://u:p@db/site"
    assert to_async_dsn("sqlite+aiosqlite:///tmp.db") == "sqlite+aiosqlite:///tmp.db"
