# workshop_inventory/database/repositories/catalog_repo.py
from __future__ import annotations

"""
Workers and sofa models: small id + name catalogs.

The ledger resolves names from here at write time and snapshots them into the
transaction. Renaming an entry later does not rewrite history.
"""

from dataclasses import dataclass, field
from typing import Dict, List

from ...constants import SOFA_MODELS_KEY, WORKERS_KEY
from ...utils import helpers
from ..kv_store import KeyValueStore


@dataclass
class CatalogEntry:
    id: str
    name: str
    created_at: str
    # record as loaded; keys not modelled here (e.g. payroll fields on workers) are written back as-is
    extra: Dict = field(default_factory=dict, repr=False, compare=False)

    def to_record(self) -> Dict:
        r = dict(self.extra)
        r.update({"id": self.id, "name": self.name})
        if self.created_at or "createdAt" in r:
            r["createdAt"] = self.created_at
        return r

    @classmethod
    def from_record(cls, r: Dict) -> "CatalogEntry":
        return cls(
            id=r["id"],
            name=r.get("name", ""),
            created_at=r.get("createdAt", ""),
            extra=dict(r),
        )


class _CatalogRepo:
    key: str = ""

    def __init__(self, store: KeyValueStore):
        self.store = store

    def load_all(self) -> list[CatalogEntry]:
        return [CatalogEntry.from_record(r) for r in self.store.load(self.key)]

    def save_all(self, entries: List[CatalogEntry]) -> None:
        self.store.save(self.key, [e.to_record() for e in entries])

    def list_entries(self) -> list[CatalogEntry]:
        return sorted(self.load_all(), key=lambda e: e.name.lower())

    def get(self, entry_id: str | None) -> CatalogEntry | None:
        if not entry_id:
            return None
        return next((e for e in self.load_all() if e.id == entry_id), None)

    def find_by_name(self, name: str) -> CatalogEntry | None:
        wanted = (name or "").strip().lower()
        return next((e for e in self.load_all() if e.name.strip().lower() == wanted), None)

    def name_of(self, entry_id: str | None) -> str | None:
        entry = self.get(entry_id)
        return entry.name if entry else None

    def create(self, name: str) -> CatalogEntry:
        entry = CatalogEntry(id=helpers.new_id(), name=name, created_at=helpers.now_iso())
        entries = self.load_all()
        entries.append(entry)
        self.save_all(entries)
        return entry

    def rename(self, entry_id: str, name: str) -> bool:
        entries = self.load_all()
        for e in entries:
            if e.id == entry_id:
                e.name = name
                self.save_all(entries)
                return True
        return False

    def delete(self, entry_id: str) -> bool:
        entries = self.load_all()
        kept = [e for e in entries if e.id != entry_id]
        if len(kept) == len(entries):
            return False
        self.save_all(kept)
        return True


class WorkersRepo(_CatalogRepo):
    key = WORKERS_KEY


class SofaModelsRepo(_CatalogRepo):
    key = SOFA_MODELS_KEY
