"""Database connection manager for SQLite."""

import logging
import sqlite3
from contextlib import contextmanager

from clinic_desk import config
from clinic_desk.errors import PersistenceError

from .schema import SCHEMA

logger = logging.getLogger(__name__)

DB_PATH = config.DB_PATH


def _casefold(value):
    return value.casefold() if isinstance(value, str) else value


def get_connection() -> sqlite3.Connection:
    """Get a database connection with row factory enabled.

    Registers CASEFOLD(), a Unicode-aware replacement for SQLite's ASCII-only LOWER().
    """
    conn = sqlite3.connect(DB_PATH)
    conn.row_factory = sqlite3.Row
    conn.create_function("CASEFOLD", 1, _casefold, deterministic=True)
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


@contextmanager
def open_connection():
    """Yield a connection, commit on success and turn sqlite errors into PersistenceError."""
    conn = get_connection()
    try:
        yield conn
        conn.commit()
    except sqlite3.Error as e:
        conn.rollback()
        logger.error("Database error: %s", e)
        raise PersistenceError(f"Database error: {e}", e) from e
    finally:
        conn.close()


def init_database() -> None:
    """Initialize the database with schema."""
    conn = get_connection()
    conn.executescript(SCHEMA)
    conn.commit()
    conn.close()
