"""
SQLite connections for the opsboard store.

Every connection runs in WAL mode with foreign keys enforced and returns rows
as plain dicts, which is what the API routes serialize. A database file is
created and migrated on first use, so callers never need a setup step.
"""

import logging
import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

from opsboard.core.store.schema import create_schema, needs_migration

logger = logging.getLogger(__name__)

# Milliseconds a writer waits for a competing transaction before failing
BUSY_TIMEOUT_MS = 5000


def dict_factory(cursor: sqlite3.Cursor, row: tuple[Any, ...]) -> dict[str, Any]:
    """Row factory mapping column names to values."""
    return {column[0]: value for column, value in zip(cursor.description, row)}


def configure_connection(conn: sqlite3.Connection) -> None:
    """
    Apply the store's pragmas and row factory to a connection.

    Example:
        >>> conn = sqlite3.connect(":memory:")
        >>> configure_connection(conn)
        >>> conn.execute("SELECT 1 AS one").fetchone()
        {'one': 1}
    """
    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute("PRAGMA foreign_keys=ON")
    conn.execute(f"PRAGMA busy_timeout={BUSY_TIMEOUT_MS}")
    conn.row_factory = dict_factory


def _open(db_path: Path) -> sqlite3.Connection:
    conn = sqlite3.connect(str(db_path))
    configure_connection(conn)
    return conn


def init_db(db_path: Path | str, *, force_recreate: bool = False) -> sqlite3.Connection:
    """
    Create or migrate the store database.

    Args:
        db_path: Path to the SQLite database file
        force_recreate: Delete an existing file first

    Returns:
        Configured connection to the migrated database
    """
    db_path = Path(db_path)

    if force_recreate and db_path.exists():
        logger.info("Recreating store database at %s", db_path)
        db_path.unlink()

    db_path.parent.mkdir(parents=True, exist_ok=True)
    conn = _open(db_path)

    if needs_migration(conn):
        logger.debug("Applying store schema to %s", db_path)
        create_schema(conn)

    return conn


@contextmanager
def get_connection(db_path: Path | str) -> Iterator[sqlite3.Connection]:
    """
    Open a connection for the duration of a ``with`` block.

    Uncommitted work is rolled back if the block raises, and the connection
    is always closed.

    Args:
        db_path: Path to the SQLite database file

    Yields:
        Configured SQLite connection
    """
    db_path = Path(db_path)

    if not db_path.exists():
        init_db(db_path).close()

    conn = _open(db_path)
    try:
        yield conn
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()
