# workshop_inventory/database/repositories/materials_repo.py
from __future__ import annotations

"""
Material Registry: CRUD over the `inventory_materials` collection.

The registry holds no derived logic. `quantity` is stored here but owned by the
ledger service; an `update()` that sets it directly is a manual override (used
to correct drift) and is logged as such, never as an audited movement.

Every write is a full-collection cycle: load all -> change -> save all.
"""

import logging
from dataclasses import asdict, dataclass, fields
from typing import Dict, List

from ...constants import MATERIALS_KEY
from ...utils import helpers
from ...utils.loggers import get_audit_logger, log_event
from ..kv_store import KeyValueStore

_log = logging.getLogger(__name__)


class DomainError(Exception):
    """Domain-level error the CLI/UI can surface."""
    pass


# snake_case attribute -> persisted camelCase key
_FIELD_KEYS = {
    "id": "id",
    "name": "name",
    "category": "category",
    "unit": "unit",
    "quantity": "quantity",
    "min_stock": "minStock",
    "cost_per_unit": "costPerUnit",
    "supplier": "supplier",
    "created_at": "createdAt",
    "updated_at": "updatedAt",
}
_OPTIONAL = {"supplier"}
_READONLY = {"id", "created_at", "updated_at"}


@dataclass
class Material:
    id: str
    name: str
    category: str
    unit: str
    quantity: float
    min_stock: float
    cost_per_unit: float
    supplier: str | None
    created_at: str
    updated_at: str

    @property
    def is_low_stock(self) -> bool:
        return self.quantity <= self.min_stock

    @property
    def stock_value(self) -> float:
        return self.quantity * self.cost_per_unit

    def to_record(self) -> Dict:
        data = asdict(self)
        return {
            key: data[attr]
            for attr, key in _FIELD_KEYS.items()
            if not (attr in _OPTIONAL and data[attr] is None)
        }

    @classmethod
    def from_record(cls, r: Dict) -> "Material":
        return cls(
            id=r["id"],
            name=r.get("name", ""),
            category=r.get("category", ""),
            unit=r.get("unit", ""),
            quantity=r.get("quantity", 0),
            min_stock=r.get("minStock", 0),
            cost_per_unit=r.get("costPerUnit", 0),
            supplier=r.get("supplier"),
            created_at=r.get("createdAt", ""),
            updated_at=r.get("updatedAt", ""),
        )


MATERIAL_FIELDS = tuple(f.name for f in fields(Material))


class MaterialsRepo:
    def __init__(self, store: KeyValueStore):
        self.store = store

    # ---------------------------- Collection I/O ----------------------------

    def load_all(self) -> list[Material]:
        return [Material.from_record(r) for r in self.store.load(MATERIALS_KEY)]

    def save_all(self, materials: List[Material]) -> None:
        self.store.save(MATERIALS_KEY, [m.to_record() for m in materials])

    # ---------------------------- Reads ----------------------------

    def list_materials(self) -> list[Material]:
        return sorted(self.load_all(), key=lambda m: m.name.lower())

    def get(self, material_id: str) -> Material | None:
        return next((m for m in self.load_all() if m.id == material_id), None)

    def find_by_name(self, name: str) -> Material | None:
        wanted = (name or "").strip().lower()
        return next((m for m in self.load_all() if m.name.strip().lower() == wanted), None)

    def low_stock(self) -> list[Material]:
        """Materials at or under their reorder threshold (display-only flag)."""
        return [m for m in self.list_materials() if m.is_low_stock]

    # ---------------------------- Writes ----------------------------

    def create(
        self,
        name: str,
        category: str,
        unit: str,
        quantity: float = 0,
        min_stock: float = 0,
        cost_per_unit: float = 0,
        supplier: str | None = None,
    ) -> Material:
        stamp = helpers.now_iso()
        material = Material(
            id=helpers.new_id(),
            name=name,
            category=category,
            unit=unit,
            quantity=quantity,
            min_stock=min_stock,
            cost_per_unit=cost_per_unit,
            supplier=supplier,
            created_at=stamp,
            updated_at=stamp,
        )
        materials = self.load_all()
        materials.append(material)
        self.save_all(materials)
        _log.info("Material created: %s (%s)", material.name, material.id)
        return material

    def update(self, material_id: str, **changes) -> Material | None:
        """
        Merge `changes` into the material and refresh `updated_at`.
        Returns the updated material, or None if it does not exist.

        Setting `quantity` here bypasses the ledger: it is a manual override.
        """
        unknown = set(changes) - set(MATERIAL_FIELDS)
        if unknown:
            raise DomainError(f"Unknown material field(s): {', '.join(sorted(unknown))}")
        readonly = set(changes) & _READONLY
        if readonly:
            raise DomainError(f"Material field(s) cannot be changed: {', '.join(sorted(readonly))}")

        materials = self.load_all()
        target = next((m for m in materials if m.id == material_id), None)
        if target is None:
            return None

        if "quantity" in changes and changes["quantity"] != target.quantity:
            _log.warning(
                "Manual quantity override on %s: %s -> %s (not an audited movement)",
                target.name, target.quantity, changes["quantity"],
            )
            log_event(
                get_audit_logger(),
                "manual_override",
                "update",
                f"Quantity of {target.name} set directly",
                {"material_id": target.id, "before": target.quantity, "after": changes["quantity"]},
                level=logging.WARNING,
            )

        for attr, value in changes.items():
            setattr(target, attr, value)
        target.updated_at = helpers.now_iso()
        self.save_all(materials)
        return target

    def delete(self, material_id: str) -> bool:
        """
        Physically remove the material. Ledger rows that reference it are left
        in place (orphaned); their rollback becomes a quantity no-op.
        """
        materials = self.load_all()
        kept = [m for m in materials if m.id != material_id]
        if len(kept) == len(materials):
            return False
        self.save_all(kept)
        _log.info("Material deleted: %s", material_id)
        return True
