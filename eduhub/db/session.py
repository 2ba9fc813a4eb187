"""Database engines, session factory and the store client lifecycle.

A single :class:`Database` is built when this module is imported and handed to
request handlers through :func:`eduhub.api.v1.dependencies.get_db`. Building it
does not open any connection; :meth:`Database.connect` verifies connectivity at
startup and, in local development, falls back to a SQLite file when the
configured server cannot be reached.
"""

from __future__ import annotations

import logging
import os
import time
from time import perf_counter
from typing import Any, Optional

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.engine.url import URL, make_url
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.orm import Session, sessionmaker

from eduhub.core.config import settings

logger = logging.getLogger(__name__)

SQLITE_FALLBACK_URL = "sqlite+aiosqlite:///./eduhub_local.db"


def _prepare_asyncpg_connection(url: str) -> tuple[str, dict[str, object]]:
    """Move libpq ``sslmode`` out of asyncpg URLs into ``connect_args``."""

    try:
        parsed_url = make_url(url)
    except Exception:
        return url, {}

    if not parsed_url.drivername.startswith("postgresql+asyncpg"):
        return url, {}

    query = dict(parsed_url.query)
    sslmode = query.pop("sslmode", None)

    connect_args: dict[str, object] = {}
    if isinstance(sslmode, str):
        # asyncpg understands the libpq mode names directly.
        connect_args["ssl"] = False if sslmode.lower() == "disable" else sslmode.lower()

    sanitized_url = parsed_url.set(query=query).render_as_string(hide_password=False)
    return sanitized_url, connect_args


def _derive_sync_connection_parameters(async_url: str) -> tuple[str, dict[str, Any]]:
    """Return a synchronous SQLAlchemy URL matching the async configuration."""

    try:
        parsed_url: URL = make_url(async_url)
    except Exception:
        return async_url.replace("+asyncpg", "+psycopg2"), {}

    drivername = parsed_url.drivername
    connect_args: dict[str, Any] = {}

    if drivername.startswith("postgresql"):
        parsed_url = parsed_url.set(drivername="postgresql+psycopg2")
    elif drivername == "sqlite+aiosqlite":
        parsed_url = parsed_url.set(drivername="sqlite")
        connect_args["check_same_thread"] = False

    return parsed_url.render_as_string(hide_password=False), connect_args


def _should_enable_sqlite_fallback() -> bool:
    environment = (settings.ENVIRONMENT or "").lower()
    if os.getenv("DISABLE_SQLITE_FALLBACK") == "1":
        return False
    return environment in {"development", "local"}


def install_slow_query_logger(engine: Engine, threshold_ms: int | None = None) -> None:
    """Warn whenever a statement on *engine* runs longer than the budget."""

    if threshold_ms is None:
        threshold_ms = settings.SQLALCHEMY_SLOW_QUERY_THRESHOLD_MS
    threshold_ms = max(threshold_ms or 0, 0)
    if threshold_ms == 0:
        return

    marker = "_eduhub_slow_query_hook"
    if getattr(engine, marker, False):
        return
    setattr(engine, marker, True)

    def _before_cursor_execute(conn, cursor, statement, parameters, context, executemany):
        context._eduhub_query_start = perf_counter()

    def _after_cursor_execute(conn, cursor, statement, parameters, context, executemany):
        start = getattr(context, "_eduhub_query_start", None)
        if start is None:
            return

        elapsed_ms = (perf_counter() - start) * 1000.0
        if elapsed_ms < threshold_ms:
            return

        snippet = " ".join(statement.split()) if isinstance(statement, str) else str(statement)
        if len(snippet) > 200:
            snippet = snippet[:197] + "..."

        logger.warning("Slow SQL (%.1f ms) - %s", elapsed_ms, snippet)

    event.listen(engine, "before_cursor_execute", _before_cursor_execute)
    event.listen(engine, "after_cursor_execute", _after_cursor_execute)


class Database:
    """Store client owning the engines and the session factory."""

    def __init__(self, database_url: str | None = None, *, allow_fallback: bool = True) -> None:
        self.allow_fallback = allow_fallback
        self.async_engine: AsyncEngine
        self.sync_engine: Engine
        self.SessionLocal: sessionmaker
        self._configure(str(database_url or settings.DATABASE_URL))

    def _configure(self, target_url: str) -> None:
        async_url, async_connect_args = _prepare_asyncpg_connection(target_url)
        sync_url, sync_connect_args = _derive_sync_connection_parameters(async_url)

        self.url = async_url
        self.async_engine = create_async_engine(
            async_url,
            echo=settings.SQLALCHEMY_ECHO,
            connect_args=async_connect_args,
        )
        self.sync_engine = create_engine(
            sync_url,
            echo=settings.SQLALCHEMY_ECHO,
            pool_pre_ping=True,
            connect_args=sync_connect_args,
        )
        install_slow_query_logger(self.sync_engine)
        self.SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=self.sync_engine)

    @property
    def dialect(self) -> str:
        return self.sync_engine.dialect.name

    def session(self) -> Session:
        return self.SessionLocal()

    def _ping(self) -> None:
        with self.sync_engine.connect() as connection:
            connection.execute(text("SELECT 1"))

    def _ping_with_retry(self) -> None:
        """Ping the server, backing off exponentially on transient failures."""

        if self.dialect == "sqlite":
            self._ping()
            return

        max_retries = max(int(settings.DATABASE_CONNECTION_MAX_RETRIES or 1), 1)
        backoff = max(float(settings.DATABASE_CONNECTION_RETRY_BACKOFF_SECONDS or 1.0), 0.1)

        last_exc: Optional[Exception] = None
        for attempt in range(1, max_retries + 1):
            try:
                self._ping()
                return
            except (OperationalError, OSError) as exc:
                last_exc = exc
                if attempt >= max_retries:
                    break
                delay = min(30.0, backoff * (2 ** (attempt - 1)))
                logger.warning(
                    "Database connection failed (attempt %s/%s): %s. Retrying in %.1f s.",
                    attempt,
                    max_retries,
                    exc,
                    delay,
                )
                time.sleep(delay)

        if last_exc is not None:
            raise last_exc

    def connect(self) -> None:
        """Verify the connection, switching to SQLite locally when unreachable."""

        logger.info("Connecting to database: %s", make_url(self.url).render_as_string(hide_password=True))
        try:
            self._ping_with_retry()
        except (OperationalError, OSError) as exc:
            if self.allow_fallback and _should_enable_sqlite_fallback():
                logger.warning(
                    "Database '%s' unreachable (%s). Falling back to SQLite.",
                    make_url(self.url).render_as_string(hide_password=True),
                    exc,
                )
                self.disconnect()
                self.allow_fallback = False
                self._configure(SQLITE_FALLBACK_URL)
                self._ping()
                return

            logger.error("Database connection failed: %s", exc)
            raise
        logger.info("Database connected")

    def disconnect(self) -> None:
        self.sync_engine.dispose()
        try:
            self.async_engine.sync_engine.dispose()
        except SQLAlchemyError as exc:  # pragma: no cover
            logger.debug("Async engine dispose failed: %s", exc)
        logger.info("Database disconnected")

    def health_check(self) -> bool:
        try:
            self._ping()
        except (SQLAlchemyError, OSError) as exc:
            logger.error("Database health check failed: %s", exc)
            return False
        return True


database = Database()
