"""
Database Configuration

SECURITY:
- SQLAlchemy echo disabled in production so bound values (emails, audit
  snapshots) never reach the logs
- Connection string never logged

Pool size and the slow statement threshold come from settings
(DB_POOL_SIZE, DB_MAX_OVERFLOW, DB_SLOW_QUERY_MS).
"""

import logging
import time

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase
from app.config import settings

logger = logging.getLogger(__name__)

SLOW_QUERY_THRESHOLD_MS = settings.DB_SLOW_QUERY_MS
# Statements are cut to this length in slow query warnings
SLOW_QUERY_PREVIEW_CHARS = 200


def _engine_options(database_url: str) -> dict:
    """Pool arguments for the engine; SQLite connections are not pooled the same way."""
    options = {
        "echo": settings.sqlalchemy_echo,  # Disabled in production
        "future": True,
    }
    if database_url.startswith("sqlite"):
        return options
    options.update(
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
        pool_recycle=3600,      # Recycle connections after 1 hour
        pool_pre_ping=True,     # Drop connections the server closed
    )
    return options


engine = create_async_engine(settings.DATABASE_URL, **_engine_options(settings.DATABASE_URL))


# Slow query logging
def _before_cursor_execute(conn, cursor, statement, parameters, context, executemany):
    conn.info["query_start_time"] = time.monotonic()


def _after_cursor_execute(conn, cursor, statement, parameters, context, executemany):
    start = conn.info.pop("query_start_time", None)
    if start is None:
        return
    duration_ms = (time.monotonic() - start) * 1000
    if duration_ms >= SLOW_QUERY_THRESHOLD_MS:
        param_count = len(parameters) if parameters else 0
        preview = statement[:SLOW_QUERY_PREVIEW_CHARS]
        if len(statement) > SLOW_QUERY_PREVIEW_CHARS:
            preview += "..."
        # Only the parameter count is logged: values may hold customer data
        logger.warning(
            "Slow query (%.0fms, %d params): %s", duration_ms, param_count, preview
        )


event.listen(engine.sync_engine, "before_cursor_execute", _before_cursor_execute)
event.listen(engine.sync_engine, "after_cursor_execute", _after_cursor_execute)

# Session factory; instances stay readable after commit so audit snapshots
# can be taken once the business change is stored
async_session_maker = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    """Base class for all models."""

    pass


async def get_db() -> AsyncSession:
    """Dependency to get database session.

    Note: Endpoints are responsible for calling commit() when needed; the
    audit trail commits its own entry right after.
    """
    session = async_session_maker()
    try:
        yield session
    finally:
        await session.close()


async def init_db():
    """Create any missing tables (Alembic owns the real schema history)."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
