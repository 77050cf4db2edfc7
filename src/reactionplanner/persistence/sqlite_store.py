"""SQLite persistence helpers for the reaction planner.

Each plan is a single JSON blob stored under a key, so the file behaves like
a small key-value store.
"""

from __future__ import annotations

import logging
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS document (
  key TEXT PRIMARY KEY,
  payload JSON NOT NULL,
  updated_utc TEXT
);
"""

MEMORY = ":memory:"


def connect(database: str | Path) -> sqlite3.Connection:
    """Open (and create) a planner database.

    The connection may be used from the store's debounce timer thread; the
    store serialises access itself.
    """
    if str(database) == MEMORY:
        return sqlite3.connect(MEMORY, check_same_thread=False)
    path = Path(database).expanduser()
    path.parent.mkdir(parents=True, exist_ok=True)
    return sqlite3.connect(path, check_same_thread=False)


def ensure_schema(connection: sqlite3.Connection) -> None:
    connection.executescript(SCHEMA_SQL)
    connection.commit()


def save_document(
    connection: sqlite3.Connection,
    key: str,
    payload: str,
    updated_utc: str | None = None,
) -> None:
    """Insert or replace the JSON text stored under ``key``."""
    updated_utc = updated_utc or _utc_now()
    connection.execute(
        "INSERT INTO document (key, payload, updated_utc) VALUES (?, ?, ?)"
        " ON CONFLICT(key) DO UPDATE SET payload = excluded.payload,"
        " updated_utc = excluded.updated_utc",
        (key, payload, updated_utc),
    )
    connection.commit()
    logger.debug("Saved document %r (%d bytes)", key, len(payload))


def load_document(connection: sqlite3.Connection, key: str) -> Optional[str]:
    row = connection.execute(
        "SELECT payload FROM document WHERE key = ?", (key,)
    ).fetchone()
    return None if row is None else str(row[0])


def delete_document(connection: sqlite3.Connection, key: str) -> bool:
    """Remove ``key``; returns whether anything was stored."""
    cursor = connection.execute("DELETE FROM document WHERE key = ?", (key,))
    connection.commit()
    return cursor.rowcount > 0


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()
