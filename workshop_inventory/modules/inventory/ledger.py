from __future__ import annotations

"""
Stock ledger service.

Two named ways to change a material's stock:

- `log_stock()`              audited: writes ledger rows, applies their deltas
- `adjust_without_record()`  unaudited: applies a signed change, writes no row
                             (sale confirmation uses this channel)

Ledger rows can then be edited (`edit_transaction`) or deleted
(`delete_transaction`); both first reverse the row's own recorded delta.

Each call is one load -> compute -> save cycle, and the materials and
transactions collections are saved inside one store transaction so they
commit together.

Failure modes are quiet on purpose: unknown materials in a batch are skipped,
unknown transactions make edit/delete a no-op, and a missing material makes
delete skip the quantity step. Callers validate input first
(see `utils.validators`).
"""

import logging
from dataclasses import dataclass, replace
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from ...database.kv_store import KeyValueStore
from ...database.repositories.catalog_repo import SofaModelsRepo, WorkersRepo
from ...database.repositories.materials_repo import Material, MaterialsRepo
from ...database.repositories.transactions_repo import Note, StockTransaction, TransactionsRepo
from ...utils import helpers
from ...utils.helpers import DateLike
from ...utils.loggers import get_audit_logger, log_event
from .reconciler import ApplyResult, QuantityReconciler, signed_delta

_log = logging.getLogger(__name__)

_UNSET: Any = object()


@dataclass
class StockLineItem:
    material_id: str
    quantity: float
    worker_id: str | None = None
    sofa_model_id: str | None = None
    sofa_details: str | None = None

    @classmethod
    def coerce(cls, item: Union["StockLineItem", Mapping]) -> "StockLineItem":
        """Accept a StockLineItem or a mapping with snake_case or camelCase keys."""
        if isinstance(item, cls):
            return item

        def pick(snake: str, camel: str):
            return item.get(snake, item.get(camel))

        return cls(
            material_id=pick("material_id", "materialId"),
            quantity=item.get("quantity", 0),
            worker_id=pick("worker_id", "workerId"),
            sofa_model_id=pick("sofa_model_id", "sofaModelId"),
            sofa_details=pick("sofa_details", "sofaDetails"),
        )


@dataclass(frozen=True)
class DriftReport:
    material_id: str
    material_name: str
    materialized: float
    ledger_balance: float

    @property
    def drift(self) -> float:
        return self.materialized - self.ledger_balance


def describe_sofa_details(model_name: str | None, notes: Note | None) -> str | None:
    """
    Display string for a production movement:
      'Classic 3-Seater'            no unit count
      'Classic 3-Seater (1 unit)'
      'Classic 3-Seater (4 units)'
    None when no sofa model is attached.
    """
    if not model_name:
        return None
    units = notes.units if notes is not None else None
    if units and units > 0:
        label = "unit" if units == 1 else "units"
        return f"{model_name} ({helpers.fmt_qty(units)} {label})"
    return model_name


class StockLedgerService:
    def __init__(self, store: KeyValueStore, reconciler: Optional[QuantityReconciler] = None):
        self.store = store
        self.materials = MaterialsRepo(store)
        self.transactions = TransactionsRepo(store)
        self.workers = WorkersRepo(store)
        self.sofa_models = SofaModelsRepo(store)
        self.reconciler = reconciler or QuantityReconciler()

    # ------------------------------------------------------------------
    # Batch stock operation
    # ------------------------------------------------------------------
    def log_stock(
        self,
        items: Iterable[Union[StockLineItem, Mapping]],
        txn_type: str,
        notes: Union[Note, str, int, float, None] = None,
        date: Optional[DateLike] = None,
    ) -> List[StockTransaction]:
        """
        Record one movement per line item, all sharing `txn_type` and `date`.

        - `notes` goes on the line at input position 0 only; if that line is
          skipped, no row carries it.
        - Lines whose material does not exist are skipped.
        - Lines are applied in order, each on its own; two lines for the same
          material apply one after the other.
        - Nothing is written when no line resolves.
        - An empty `date` means now.

        Returns the created transactions.
        """
        signed_delta(txn_type, 0)
        lines = [StockLineItem.coerce(i) for i in items]
        if not lines:
            return []

        business_date = helpers.to_iso_timestamp(date or None)
        note = Note.from_raw(notes)

        with self.store.transaction():
            materials = self.materials.load_all()
            by_id: Dict[str, Material] = {m.id: m for m in materials}
            worker_names = {e.id: e.name for e in self.workers.load_all()}
            model_names = {e.id: e.name for e in self.sofa_models.load_all()}

            created: List[StockTransaction] = []
            for pos, line in enumerate(lines):
                material = by_id.get(line.material_id)
                if material is None:
                    _log.debug("log_stock: skipping line %d, unknown material %r", pos, line.material_id)
                    continue

                txn = StockTransaction(
                    id=helpers.new_id(),
                    material_id=material.id,
                    material_name=material.name,
                    type=txn_type,
                    quantity=line.quantity,
                    date=business_date,
                    created_at=helpers.now_iso(),
                    notes=note if pos == 0 else None,
                    worker_id=line.worker_id,
                    worker_name=worker_names.get(line.worker_id) if line.worker_id else None,
                    sofa_model_id=line.sofa_model_id,
                    sofa_model_name=model_names.get(line.sofa_model_id) if line.sofa_model_id else None,
                    sofa_details=line.sofa_details,
                )
                self.reconciler.apply(material, txn_type, line.quantity, reason="log_stock")
                created.append(txn)

            if not created:
                _log.info("log_stock: no line item resolved to a material; nothing recorded")
                return []

            ledger = self.transactions.load_all()
            ledger.extend(created)
            self.materials.save_all(materials)
            self.transactions.save_all(ledger)

        _log.info("Logged %d stock-%s movement(s)", len(created), txn_type)
        log_event(
            get_audit_logger(),
            "log_stock",
            "apply",
            f"Recorded {len(created)} movement(s)",
            {"type": txn_type, "transaction_ids": [t.id for t in created]},
        )
        return created

    # ------------------------------------------------------------------
    # Edit-in-place
    # ------------------------------------------------------------------
    def edit_transaction(
        self,
        transaction_id: str,
        *,
        quantity: Any = _UNSET,
        txn_type: Any = _UNSET,
        date: Any = _UNSET,
        worker_id: Any = _UNSET,
        sofa_model_id: Any = _UNSET,
        notes: Any = _UNSET,
    ) -> StockTransaction | None:
        """
        Change a recorded movement and re-reconcile its material.

        Only the keywords passed are changed; everything else keeps its
        recorded value. The old delta is undone and the new one (from the
        merged values) applied as a single net adjustment, so re-saving a row
        unchanged never moves stock, even after a clamp. Worker and sofa
        model names are looked up again only when their id changes.

        Returns the updated transaction, or None (nothing changed) when the
        transaction or its material no longer exists.
        """
        with self.store.transaction():
            ledger = self.transactions.load_all()
            pos = next((i for i, t in enumerate(ledger) if t.id == transaction_id), None)
            if pos is None:
                _log.debug("edit_transaction: %r not found", transaction_id)
                return None
            old = ledger[pos]

            materials = self.materials.load_all()
            material = next((m for m in materials if m.id == old.material_id), None)
            if material is None:
                _log.debug("edit_transaction: material %r of %r not found", old.material_id, transaction_id)
                return None

            new_type = old.type if txn_type is _UNSET else txn_type
            new_quantity = old.quantity if quantity is _UNSET else quantity
            delta = self.reconciler.edit_delta(old.type, old.quantity, new_type, new_quantity)

            updated = replace(old, type=new_type, quantity=new_quantity)
            if date is not _UNSET and date:
                updated.date = helpers.to_iso_timestamp(date)
            # names are snapshots: only a different id takes a new one
            if worker_id is not _UNSET and worker_id != old.worker_id:
                updated.worker_id = worker_id
                updated.worker_name = self.workers.name_of(worker_id)
            model_changed = sofa_model_id is not _UNSET and sofa_model_id != old.sofa_model_id
            if model_changed:
                updated.sofa_model_id = sofa_model_id
                updated.sofa_model_name = self.sofa_models.name_of(sofa_model_id)
            if notes is not _UNSET:
                updated.notes = Note.from_raw(notes)
            if model_changed or notes is not _UNSET:
                updated.sofa_details = describe_sofa_details(updated.sofa_model_name, updated.notes)

            result = self.reconciler.apply_delta(material, delta, reason="edit_transaction")
            ledger[pos] = updated
            self.materials.save_all(materials)
            self.transactions.save_all(ledger)

        log_event(
            get_audit_logger(),
            "edit_transaction",
            "apply",
            f"Edited movement of {material.name}",
            {
                "transaction_id": transaction_id,
                "before": result.before,
                "after": result.after,
                "delta": result.delta,
            },
        )
        return updated

    # ------------------------------------------------------------------
    # Delete-with-rollback
    # ------------------------------------------------------------------
    def delete_transaction(self, transaction_id: str) -> bool:
        """
        Reverse the movement's recorded delta on its material, then remove
        the row. A row whose material is gone is removed without a quantity
        step. Returns False when the transaction does not exist.
        """
        with self.store.transaction():
            ledger = self.transactions.load_all()
            txn = next((t for t in ledger if t.id == transaction_id), None)
            if txn is None:
                _log.debug("delete_transaction: %r not found", transaction_id)
                return False

            materials = self.materials.load_all()
            material = next((m for m in materials if m.id == txn.material_id), None)
            result: ApplyResult | None = None
            if material is not None:
                result = self.reconciler.undo(material, txn, reason="delete_transaction")
                self.materials.save_all(materials)
            else:
                _log.info("delete_transaction: %r is orphaned, removing without rollback", transaction_id)

            self.transactions.save_all([t for t in ledger if t.id != transaction_id])

        log_event(
            get_audit_logger(),
            "delete_transaction",
            "rollback",
            f"Deleted movement of {txn.material_name}",
            {
                "transaction_id": transaction_id,
                "material_id": txn.material_id,
                "before": result.before if result else None,
                "after": result.after if result else None,
            },
        )
        return True

    # ------------------------------------------------------------------
    # Unaudited adjustment channel
    # ------------------------------------------------------------------
    def adjust_without_record(self, material_id: str, quantity_change: float) -> ApplyResult | None:
        """
        Apply a signed change to a material without writing a ledger row.

        Used by sale confirmation. The change cannot be rolled back through
        `delete_transaction()` and shows up as drift in `audit()`.
        Returns None (and changes nothing) for an unknown material.
        """
        with self.store.transaction():
            materials = self.materials.load_all()
            material = next((m for m in materials if m.id == material_id), None)
            if material is None:
                _log.debug("adjust_without_record: unknown material %r", material_id)
                return None
            result = self.reconciler.apply_delta(material, quantity_change, reason="adjust_without_record")
            self.materials.save_all(materials)

        _log.info("Unaudited adjustment on %s: %+g", material.name, quantity_change)
        log_event(
            get_audit_logger(),
            "adjust_without_record",
            "apply",
            f"Unaudited adjustment on {material.name}",
            {"material_id": material_id, "before": result.before, "after": result.after,
             "quantity_change": quantity_change},
        )
        return result

    # ------------------------------------------------------------------
    # Read side: history, balances, drift
    # ------------------------------------------------------------------
    def transactions_for(self, material_id: str) -> List[StockTransaction]:
        return self.transactions.find(material_id=material_id)

    def ledger_balance(self, material_id: str, *, clamp: bool = False) -> float:
        """Fold of the material's ledger rows in the order they were recorded."""
        rows = [t for t in self.transactions.load_all() if t.material_id == material_id]
        return self.reconciler.fold(rows, clamp=clamp)

    def orphaned_transactions(self) -> List[StockTransaction]:
        known = {m.id for m in self.materials.load_all()}
        return [t for t in self.transactions.load_all() if t.material_id not in known]

    def audit(self) -> List[DriftReport]:
        """
        Materials whose stored quantity differs from the sum of their ledger rows.

        Any quantity the ledger cannot explain shows up here: opening stock
        entered with the material, manual overrides, unaudited sale
        decrements, and overflow lost to the zero floor.
        """
        ledger = self.transactions.load_all()
        reports: List[DriftReport] = []
        for m in self.materials.list_materials():
            balance = self.reconciler.fold(t for t in ledger if t.material_id == m.id)
            if balance != m.quantity:
                reports.append(DriftReport(m.id, m.name, m.quantity, balance))
        return reports

    def rebuild_quantities(self, material_ids: Optional[Iterable[str]] = None) -> int:
        """
        Manual override: set quantity to the ledger balance (under the floor
        policy) for the given materials, or for all materials. Only correct
        for materials whose whole history is in the ledger.

        Returns the number of materials whose quantity changed.
        """
        wanted = set(material_ids) if material_ids is not None else None
        changed = 0
        with self.store.transaction():
            ledger = self.transactions.load_all()
            materials = self.materials.load_all()
            for m in materials:
                if wanted is not None and m.id not in wanted:
                    continue
                target = self.reconciler.floor(self.reconciler.fold(t for t in ledger if t.material_id == m.id))
                if target == m.quantity:
                    continue
                log_event(
                    get_audit_logger(),
                    "manual_override",
                    "rebuild",
                    f"Quantity of {m.name} rebuilt from ledger",
                    {"material_id": m.id, "before": m.quantity, "after": target},
                    level=logging.WARNING,
                )
                m.quantity = target
                m.updated_at = helpers.now_iso()
                changed += 1
            if changed:
                self.materials.save_all(materials)
        _log.info("rebuild_quantities: %d material(s) changed", changed)
        return changed
