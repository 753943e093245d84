"""
Schema version of the collections store.

One row in `schema_version`: the version string and when it was recorded.
`ensure_version()` stamps a fresh database and reports (but does not
migrate) a database written by another version.
"""
import logging
import sqlite3

from ..constants import TABLE_SCHEMA_VERSION

_log = logging.getLogger(__name__)


def _ensure_table(conn: sqlite3.Connection) -> None:
    conn.execute(
        f"""
        CREATE TABLE IF NOT EXISTS {TABLE_SCHEMA_VERSION}(
            id         INTEGER PRIMARY KEY CHECK (id=1),
            version    TEXT NOT NULL,
            applied_at TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%fZ', 'now'))
        )
        """
    )


def get_current_version(conn: sqlite3.Connection) -> str | None:
    _ensure_table(conn)
    row = conn.execute(f"SELECT version FROM {TABLE_SCHEMA_VERSION} WHERE id=1").fetchone()
    return row[0] if row else None


def set_current_version(conn: sqlite3.Connection, version: str) -> None:
    _ensure_table(conn)
    conn.execute(
        f"""
        INSERT INTO {TABLE_SCHEMA_VERSION}(id, version) VALUES (1, ?)
        ON CONFLICT(id) DO UPDATE SET version=excluded.version,
                                      applied_at=strftime('%Y-%m-%dT%H:%M:%fZ', 'now')
        """,
        (version,),
    )


def ensure_version(conn: sqlite3.Connection, expected: str) -> str:
    """Stamp `expected` on a new database; return the stored version either way."""
    current = get_current_version(conn)
    if current is None:
        set_current_version(conn, expected)
        return expected
    if current != expected:
        _log.warning("Store schema version is %s, this build expects %s", current, expected)
    return current
