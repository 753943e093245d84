# workshop_inventory/database/repositories/transactions_repo.py
from __future__ import annotations

"""
Stock Ledger: the `inventory_transactions` collection.

Each row is one movement (`in` or `out`) of one material. `quantity` is always
a positive magnitude; the direction lives in `type`. Worker / sofa model /
material names are snapshotted when the row is written and are never
refreshed from the catalogs afterwards.

This repository only stores rows. Keeping `Material.quantity` in step with the
ledger is the job of `modules.inventory.ledger.StockLedgerService`; writing
rows through this class directly does not touch any material.

Conventions:
- Persisted keys are camelCase; optional fields that are None are omitted.
- `date` is the business-effective ISO timestamp, `created_at` the write time.
- Listing order is newest business date first, then newest write first.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional, Union

from ...constants import TRANSACTIONS_KEY, TXN_TYPES
from ...utils.helpers import date_part
from ..kv_store import KeyValueStore


class DomainError(Exception):
    """Domain-level error raised for malformed ledger data."""
    pass


NOTE_TEXT = "text"
NOTE_COUNT = "count"


@dataclass(frozen=True)
class Note:
    """
    Typed replacement for the legacy free-form `notes` field.

    kind == "text":  free text remark
    kind == "count": number of units produced with this movement
    """
    kind: str
    value: Union[str, int, float]

    @classmethod
    def text(cls, value: str) -> "Note":
        return cls(NOTE_TEXT, str(value))

    @classmethod
    def count(cls, value: Union[int, float]) -> "Note":
        return cls(NOTE_COUNT, value)

    @property
    def units(self) -> Union[int, float, None]:
        return self.value if self.kind == NOTE_COUNT else None

    @classmethod
    def from_raw(cls, raw) -> Optional["Note"]:
        """
        Decode a stored or user-supplied notes value.

        Accepts the tagged form {"kind": ..., "value": ...}, an existing Note,
        and the two legacy shapes: a bare number (units produced) or a bare
        string (free text).
        """
        if raw is None or isinstance(raw, Note):
            return raw
        if isinstance(raw, dict):
            kind = raw.get("kind")
            if kind not in (NOTE_TEXT, NOTE_COUNT):
                raise DomainError(f"Unknown note kind: {kind!r}")
            return cls(kind, raw.get("value"))
        if isinstance(raw, bool):
            raise DomainError("A boolean is not a valid note.")
        if isinstance(raw, (int, float)):
            return cls.count(raw)
        if isinstance(raw, str):
            return cls.text(raw)
        raise DomainError(f"Unsupported note value: {raw!r}")

    def to_raw(self) -> Dict:
        return {"kind": self.kind, "value": self.value}

    def __str__(self) -> str:
        if self.kind == NOTE_COUNT:
            return f"{self.value:g}" if isinstance(self.value, float) else str(self.value)
        return str(self.value)


_OPTIONAL_KEYS = (
    ("worker_id", "workerId"),
    ("worker_name", "workerName"),
    ("sofa_model_id", "sofaModelId"),
    ("sofa_model_name", "sofaModelName"),
    ("sofa_details", "sofaDetails"),
)


@dataclass
class StockTransaction:
    id: str
    material_id: str
    material_name: str
    type: str
    quantity: float
    date: str
    created_at: str
    notes: Note | None = None
    worker_id: str | None = None
    worker_name: str | None = None
    sofa_model_id: str | None = None
    sofa_model_name: str | None = None
    sofa_details: str | None = None

    @property
    def signed_quantity(self) -> float:
        return self.quantity if self.type == "in" else -self.quantity

    def to_record(self) -> Dict:
        r: Dict = {
            "id": self.id,
            "materialId": self.material_id,
            "materialName": self.material_name,
            "type": self.type,
            "quantity": self.quantity,
        }
        if self.notes is not None:
            r["notes"] = self.notes.to_raw()
        r["date"] = self.date
        r["createdAt"] = self.created_at
        for attr, key in _OPTIONAL_KEYS:
            value = getattr(self, attr)
            if value is not None:
                r[key] = value
        return r

    @classmethod
    def from_record(cls, r: Dict) -> "StockTransaction":
        txn_type = r.get("type")
        if txn_type not in TXN_TYPES:
            raise DomainError(f"Transaction {r.get('id')!r} has unknown type {txn_type!r}")
        return cls(
            id=r["id"],
            material_id=r["materialId"],
            material_name=r.get("materialName", ""),
            type=txn_type,
            quantity=r.get("quantity", 0),
            date=r.get("date", ""),
            created_at=r.get("createdAt", ""),
            notes=Note.from_raw(r.get("notes")),
            **{attr: r.get(key) for attr, key in _OPTIONAL_KEYS},
        )


class TransactionsRepo:
    def __init__(self, store: KeyValueStore):
        self.store = store

    # ---------------------------- Collection I/O ----------------------------

    def load_all(self) -> list[StockTransaction]:
        """Rows in ledger (append) order."""
        return [StockTransaction.from_record(r) for r in self.store.load(TRANSACTIONS_KEY)]

    def save_all(self, transactions: List[StockTransaction]) -> None:
        self.store.save(TRANSACTIONS_KEY, [t.to_record() for t in transactions])

    # ---------------------------- Reads ----------------------------

    def list_transactions(self) -> list[StockTransaction]:
        rows = self.load_all()
        return sorted(rows, key=lambda t: (t.date, t.created_at), reverse=True)

    def get(self, transaction_id: str) -> StockTransaction | None:
        return next((t for t in self.load_all() if t.id == transaction_id), None)

    def find(
        self,
        *,
        material_id: Optional[str] = None,
        date_from: Optional[str] = None,   # inclusive 'YYYY-MM-DD'
        date_to: Optional[str] = None,     # inclusive 'YYYY-MM-DD'
        txn_type: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> list[StockTransaction]:
        """
        Filter the ledger by material, business date range and/or type.
        Ordering matches `list_transactions()`.
        """
        rows = self.list_transactions()
        if material_id is not None:
            rows = [t for t in rows if t.material_id == material_id]
        if date_from:
            rows = [t for t in rows if date_part(t.date) >= date_from]
        if date_to:
            rows = [t for t in rows if date_part(t.date) <= date_to]
        if txn_type is not None:
            rows = [t for t in rows if t.type == txn_type]
        if limit is not None:
            rows = rows[: max(0, int(limit))]
        return rows
