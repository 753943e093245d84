from pathlib import Path
import sqlite3
import sys

from ..constants import TABLE_COLLECTIONS

SQL = rf"""
/* ======================== KEY-VALUE COLLECTIONS ======================== */

/* one row per collection; payload is the whole collection as a JSON array */
CREATE TABLE IF NOT EXISTS {TABLE_COLLECTIONS} (
    key        TEXT PRIMARY KEY,
    payload    TEXT NOT NULL DEFAULT '[]',
    updated_at TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%fZ', 'now'))
);

/* payload must always be a JSON array */
DROP TRIGGER IF EXISTS trg_kv_collections_payload_array_ins;
CREATE TRIGGER trg_kv_collections_payload_array_ins
BEFORE INSERT ON {TABLE_COLLECTIONS}
WHEN json_type(NEW.payload) IS NOT 'array'
BEGIN
  SELECT RAISE(ABORT, 'Collection payload must be a JSON array');
END;

DROP TRIGGER IF EXISTS trg_kv_collections_payload_array_upd;
CREATE TRIGGER trg_kv_collections_payload_array_upd
BEFORE UPDATE OF payload ON {TABLE_COLLECTIONS}
WHEN json_type(NEW.payload) IS NOT 'array'
BEGIN
  SELECT RAISE(ABORT, 'Collection payload must be a JSON array');
END;
"""


def apply_schema(conn: sqlite3.Connection) -> None:
    """Apply the (idempotent) schema on an open connection."""
    conn.executescript(SQL)


def init_schema(db_path: Path | str = "workshop.db") -> None:
    db_path = Path(db_path)
    db_path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(db_path)
    try:
        conn.execute("PRAGMA journal_mode=WAL;")
        apply_schema(conn)
        conn.commit()
    finally:
        conn.close()


if __name__ == "__main__":
    target = sys.argv[1] if len(sys.argv) > 1 else Path.cwd() / "data" / "workshop.db"
    init_schema(target)
    print(f"✓ DB applied to {target}")
