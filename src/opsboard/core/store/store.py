"""
Key-value-ish access to the local relational store.

Route handlers only need two primitives: run a statement with parameters,
and query the rows a statement returns. ``Store`` provides exactly those over
a SQLite file and reports failures as ``StoreError``.

Example:
    >>> store = Store(Path(".opsboard/dashboard.db"))
    >>> store.run("INSERT INTO agents (id, name) VALUES (?, ?)", ("a1", "Scout"))
    >>> store.query("SELECT name FROM agents")
    [{'name': 'Scout'}]
"""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from opsboard.core.store.connection import get_connection, init_db

logger = logging.getLogger(__name__)

Params = Sequence[Any] | dict[str, Any]


class StoreError(Exception):
    """A statement against the local store failed."""

    pass


class Store:
    """
    SQLite-backed store with ``run`` and ``query`` primitives.

    Each call opens its own connection, so a Store can be shared between
    request handlers.

    Attributes:
        db_path: Path to the SQLite database file
    """

    def __init__(self, db_path: Path | str) -> None:
        self.db_path = Path(db_path)

    def initialize(self, *, force_recreate: bool = False) -> None:
        """Create the database file and schema if needed."""
        init_db(self.db_path, force_recreate=force_recreate).close()

    def run(self, sql: str, params: Params = ()) -> None:
        """
        Execute a statement and commit it.

        Args:
            sql: SQL statement with ``?`` or ``:name`` placeholders
            params: Statement parameters

        Raises:
            StoreError: If the statement fails
        """
        try:
            with get_connection(self.db_path) as conn:
                conn.execute(sql, params)
                conn.commit()
        except sqlite3.Error as e:
            logger.error("Database statement failed: %s", e)
            raise StoreError(f"Database error: {e}") from e

    def query(self, sql: str, params: Params = ()) -> list[dict[str, Any]]:
        """
        Execute a query and return every row.

        Args:
            sql: SQL query with ``?`` or ``:name`` placeholders
            params: Query parameters

        Returns:
            Rows as dictionaries

        Raises:
            StoreError: If the query fails
        """
        try:
            with get_connection(self.db_path) as conn:
                rows: list[dict[str, Any]] = conn.execute(sql, params).fetchall()
                return rows
        except sqlite3.Error as e:
            logger.error("Database query failed: %s", e)
            raise StoreError(f"Database error: {e}") from e
