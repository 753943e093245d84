from __future__ import annotations

"""
Durable key-value persistence for whole collections.

Every collection (materials, stock transactions, workers, sofa models) is a
JSON array stored under its own key in a single SQLite table. Saves always
overwrite the whole collection; there is no partial update and no
append-only log.

Conventions:
- `load(key)` returns `list[dict]`; an unknown key loads as an empty list.
- Writes made inside `transaction()` commit together or not at all, which is
  how the ledger service keeps materials and transactions consistent.
- Payload encoding is deterministic (key order preserved, compact separators),
  so decoding and re-encoding a stored collection reproduces it byte for byte.
"""

import json
import logging
import sqlite3
from contextlib import contextmanager
from typing import Dict, Iterable, Iterator, List

from ..constants import TABLE_COLLECTIONS

_log = logging.getLogger(__name__)


class StoreError(Exception):
    """Raised when a stored payload cannot be decoded as a collection."""
    pass


def encode_collection(records: Iterable[dict]) -> str:
    return json.dumps(list(records), ensure_ascii=False, separators=(",", ":"))


def decode_collection(payload: str | None) -> List[Dict]:
    if not payload:
        return []
    try:
        data = json.loads(payload)
    except ValueError as e:
        raise StoreError(f"Stored collection is not valid JSON: {e}") from e
    if not isinstance(data, list):
        raise StoreError("Stored collection must be a JSON array.")
    return data


class KeyValueStore:
    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn
        self._depth = 0

    # ---------------------------- TX helper ----------------------------

    @contextmanager
    def transaction(self) -> Iterator["KeyValueStore"]:
        """
        Start an IMMEDIATE transaction, commit on success, rollback on error.
        Nested calls join the outermost transaction.
        """
        if self._depth > 0:
            self._depth += 1
            try:
                yield self
            finally:
                self._depth -= 1
            return

        self.conn.execute("BEGIN IMMEDIATE")
        self._depth = 1
        try:
            yield self
            self.conn.execute("COMMIT")
        except BaseException:
            self.conn.execute("ROLLBACK")
            _log.warning("Store transaction rolled back")
            raise
        finally:
            self._depth = 0

    @property
    def in_transaction(self) -> bool:
        return self._depth > 0

    # ---------------------------- Collections ----------------------------

    def load(self, key: str) -> List[Dict]:
        row = self.conn.execute(
            f"SELECT payload FROM {TABLE_COLLECTIONS} WHERE key=?", (key,)
        ).fetchone()
        return decode_collection(row[0]) if row else []

    def save(self, key: str, records: Iterable[dict]) -> None:
        payload = encode_collection(records)
        with self.transaction():
            self.conn.execute(
                f"""
                INSERT INTO {TABLE_COLLECTIONS}(key, payload)
                VALUES (?, ?)
                ON CONFLICT(key)
                DO UPDATE SET payload=excluded.payload,
                              updated_at=strftime('%Y-%m-%dT%H:%M:%fZ', 'now')
                """,
                (key, payload),
            )

    def raw_payload(self, key: str) -> str | None:
        """Return the stored JSON text of a collection (None if absent)."""
        row = self.conn.execute(
            f"SELECT payload FROM {TABLE_COLLECTIONS} WHERE key=?", (key,)
        ).fetchone()
        return row[0] if row else None

    def close(self) -> None:
        self.conn.close()
