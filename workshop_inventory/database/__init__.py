# database/__init__.py
from __future__ import annotations

from pathlib import Path
import sqlite3

from .. import config
from ..constants import SCHEMA_VERSION
from . import schema as schema_module
from .kv_store import KeyValueStore
from .versioning import ensure_version


def get_connection(db_path: Path | str | None = None) -> sqlite3.Connection:
    """
    Returns a sqlite3.Connection with:
      - WAL mode
      - row_factory = sqlite3.Row (so rows behave like dicts and tuples)
      - isolation_level=None; KeyValueStore issues BEGIN/COMMIT itself
    Ensures the schema and version row are applied idempotently.
    """
    path = Path(db_path) if db_path is not None else config.DB_PATH
    path.parent.mkdir(parents=True, exist_ok=True)

    conn = sqlite3.connect(path, isolation_level=None)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode = WAL;")

    schema_module.apply_schema(conn)
    ensure_version(conn, SCHEMA_VERSION)

    return conn


def open_store(db_path: Path | str | None = None) -> KeyValueStore:
    return KeyValueStore(get_connection(db_path))


__all__ = [
    "get_connection",
    "open_store",
    "KeyValueStore",
]
