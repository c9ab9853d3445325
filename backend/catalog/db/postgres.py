"""Shared plumbing for the PostgreSQL repositories.

Each Postgres repository subclasses PostgresRepository, declares its
``CREATE_TABLE_SQL`` and uses the ``_fetch_one``/``_fetch_all``/``_execute``
helpers. Rows are returned as dictionaries through RealDictCursor and any
psycopg2 failure is logged and re-raised as StorageError.
"""

from __future__ import annotations

import contextlib
import logging
from typing import TYPE_CHECKING, Any, cast

import psycopg2
import psycopg2.extensions
import psycopg2.extras

from catalog.core import errors

if TYPE_CHECKING:
    from collections.abc import Iterator

    from catalog.core import config

logger = logging.getLogger(__name__)


def _cast[T](value: object, dtype: type[T]) -> T | None:  # type: ignore[misc]
    """Cast a value to a specific type, returning None if value is None."""
    if value is None:
        return None

    return cast(T, value)


class PostgresRepository:
    """Base class holding settings and connection helpers."""

    CREATE_TABLE_SQL: str = ""

    def __init__(self, settings: config.Settings) -> None:
        """Initialize repository with database settings.

        Args:
            settings: Application settings containing database connection URL.
        """
        self.settings = settings
        self._ensure_schema()

    def _connection(self) -> psycopg2.extensions.connection:
        """Create a new database connection returning dictionary rows."""
        return psycopg2.connect(
            self.settings.database_url,
            cursor_factory=psycopg2.extras.RealDictCursor,
        )

    @contextlib.contextmanager
    def _cursor(self) -> Iterator[psycopg2.extensions.cursor]:
        """Yield a cursor inside a committed transaction.

        Raises:
            StorageError: If psycopg2 reports any database error.
        """
        try:
            with contextlib.closing(self._connection()) as conn:
                with conn, conn.cursor() as cur:
                    yield cur
        except psycopg2.Error as exc:
            logger.error("Database operation failed: %s", exc)
            raise errors.StorageError(f"Database operation failed: {exc}") from exc

    def _ensure_schema(self) -> None:
        """Create the repository's table if it doesn't exist."""
        if self.CREATE_TABLE_SQL:
            with self._cursor() as cur:
                cur.execute(self.CREATE_TABLE_SQL)

    def _execute(self, sql: str, params: Any = None) -> int:
        """Run a statement and return the affected row count."""
        with self._cursor() as cur:
            cur.execute(sql, params)
            return int(cur.rowcount)

    def _fetch_one(self, sql: str, params: Any = None) -> dict[str, Any] | None:
        with self._cursor() as cur:
            cur.execute(sql, params)
            row = cur.fetchone()
            return dict(row) if row is not None else None

    def _fetch_all(self, sql: str, params: Any = None) -> list[dict[str, Any]]:
        with self._cursor() as cur:
            cur.execute(sql, params)
            return [dict(row) for row in cur.fetchall()]

    def _count(self, sql: str, params: Any = None) -> int:
        row = self._fetch_one(sql, params)
        if row is None:
            return 0
        return int(next(iter(row.values())) or 0)

