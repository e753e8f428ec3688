"""Database connection manager for SQLite."""

import sqlite3
from contextlib import contextmanager
from pathlib import Path

from .schema import SCHEMA


def get_connection(db_path: Path | str) -> sqlite3.Connection:
    """Get a database connection with row factory enabled.

    The connection runs in autocommit mode; multi-statement writes go through
    ``transaction()``.
    """
    conn = sqlite3.connect(db_path, timeout=10, isolation_level=None)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


@contextmanager
def transaction(db_path: Path | str):
    """Yield a connection inside BEGIN IMMEDIATE; commit on success, roll back on error."""
    conn = get_connection(db_path)
    try:
        conn.execute("BEGIN IMMEDIATE")
        yield conn
        conn.execute("COMMIT")
    except Exception:
        if conn.in_transaction:
            conn.execute("ROLLBACK")
        raise
    finally:
        conn.close()


def init_database(db_path: Path | str) -> None:
    """Initialize the database with schema."""
    Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    conn = get_connection(db_path)
    conn.executescript(SCHEMA)
    conn.close()
