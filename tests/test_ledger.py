# workshop_inventory/tests/test_ledger.py
from __future__ import annotations

import pytest

from workshop_inventory.constants import MATERIALS_KEY, TRANSACTIONS_KEY
from workshop_inventory.database.repositories import LedgerDomainError, Note
from workshop_inventory.modules.inventory.ledger import (
    StockLedgerService,
    StockLineItem,
    describe_sofa_details,
)
from workshop_inventory.modules.inventory.reconciler import QuantityReconciler


# ---------------------------
# Walkthrough: one material, in -> out (clamped) -> delete -> edit
# ---------------------------

def test_in_movement_adds_to_stock(ledger, mk_material, qty):
    m = mk_material(quantity=10)
    (txn,) = ledger.log_stock([{"material_id": m.id, "quantity": 5}], "in")
    assert qty(m.id) == 15
    assert txn.type == "in" and txn.quantity == 5
    assert txn.material_name == m.name


def test_out_movement_past_zero_clamps(ledger, mk_material, qty):
    m = mk_material(quantity=15)
    ledger.log_stock([{"material_id": m.id, "quantity": 20}], "out")
    assert qty(m.id) == 0


def test_deleting_a_clamped_out_restores_more_than_was_there(ledger, mk_material, qty):
    m = mk_material(quantity=15)
    (out,) = ledger.log_stock([{"material_id": m.id, "quantity": 20}], "out")
    assert qty(m.id) == 0

    assert ledger.delete_transaction(out.id) is True

    # the 5 lost to the floor is not recovered: 0 + 20, not 15
    assert qty(m.id) == 20
    assert qty(m.id) != 15
    assert ledger.transactions.get(out.id) is None


def test_batch_on_two_materials_creates_independent_rows(ledger, mk_material, qty):
    m1 = mk_material("M1", quantity=10)
    m2 = mk_material("M2", quantity=20)
    created = ledger.log_stock(
        [{"material_id": m1.id, "quantity": 3}, {"material_id": m2.id, "quantity": 4}], "in"
    )
    assert len(created) == 2
    assert len({t.id for t in created}) == 2
    assert [t.material_id for t in created] == [m1.id, m2.id]
    assert created[0].date == created[1].date
    assert qty(m1.id) == 13
    assert qty(m2.id) == 24


def test_edit_quantity_applies_the_difference(ledger, mk_material, qty):
    m = mk_material(quantity=10)
    (txn,) = ledger.log_stock([{"material_id": m.id, "quantity": 5}], "in")
    assert qty(m.id) == 15

    updated = ledger.edit_transaction(txn.id, quantity=8)

    assert qty(m.id) == 18
    assert updated.quantity == 8
    assert ledger.transactions.get(txn.id).quantity == 8


# ---------------------------
# log_stock rules
# ---------------------------

def test_rows_snapshot_catalog_names_and_business_date(ledger, mk_material):
    m = mk_material()
    worker = ledger.workers.create("Ramon")
    model = ledger.sofa_models.create("Classic 3-Seater")
    (txn,) = ledger.log_stock(
        [StockLineItem(m.id, 2, worker_id=worker.id, sofa_model_id=model.id,
                       sofa_details="Classic 3-Seater (2 units)")],
        "out",
        date="2024-05-01",
    )
    stored = ledger.transactions.get(txn.id)
    assert stored.worker_name == "Ramon"
    assert stored.sofa_model_name == "Classic 3-Seater"
    assert stored.sofa_details == "Classic 3-Seater (2 units)"
    assert stored.date == "2024-05-01T00:00:00.000Z"
    assert stored.created_at.endswith("Z")


def test_empty_date_defaults_to_now(ledger, mk_material, qty, monkeypatch):
    monkeypatch.setattr("workshop_inventory.utils.helpers.now_iso", lambda: "2030-01-01T08:00:00.000Z")
    m = mk_material(quantity=10)
    (txn,) = ledger.log_stock([{"material_id": m.id, "quantity": 5}], "in", date="")
    assert txn.date == "2030-01-01T08:00:00.000Z"
    assert qty(m.id) == 15


def test_camel_case_line_items_are_accepted(ledger, mk_material, qty):
    m = mk_material(quantity=1)
    ledger.log_stock([{"materialId": m.id, "quantity": 2}], "in")
    assert qty(m.id) == 3


def test_unknown_material_lines_are_skipped(ledger, mk_material, qty):
    m = mk_material(quantity=10)
    created = ledger.log_stock(
        [{"material_id": "ghost", "quantity": 1}, {"material_id": m.id, "quantity": 2}], "in"
    )
    assert [t.material_id for t in created] == [m.id]
    assert qty(m.id) == 12
    assert len(ledger.transactions.load_all()) == 1


def test_nothing_is_written_when_no_line_resolves(ledger, store):
    assert ledger.log_stock([], "in") == []
    assert ledger.log_stock([{"material_id": "ghost", "quantity": 1}], "in") == []
    assert store.raw_payload(TRANSACTIONS_KEY) is None
    assert store.raw_payload(MATERIALS_KEY) is None


def test_unknown_type_is_rejected_before_any_write(ledger, mk_material, qty):
    m = mk_material(quantity=10)
    with pytest.raises(LedgerDomainError):
        ledger.log_stock([{"material_id": m.id, "quantity": 1}], "sideways")
    assert qty(m.id) == 10
    assert ledger.transactions.load_all() == []


def test_notes_go_on_the_first_line_only(ledger, mk_material):
    a = mk_material("A")
    b = mk_material("B")
    first, second = ledger.log_stock(
        [{"material_id": a.id, "quantity": 1}, {"material_id": b.id, "quantity": 1}],
        "out",
        notes=3,
    )
    assert first.notes == Note.count(3)
    assert second.notes is None


def test_notes_are_dropped_when_the_first_line_is_skipped(ledger, mk_material):
    b = mk_material("B")
    (only,) = ledger.log_stock(
        [{"material_id": "ghost", "quantity": 1}, {"material_id": b.id, "quantity": 1}],
        "in",
        notes="restock",
    )
    assert only.notes is None


def test_same_material_twice_applies_each_line_in_order(ledger, mk_material, qty):
    m = mk_material(quantity=5)
    created = ledger.log_stock(
        [{"material_id": m.id, "quantity": 10}, {"material_id": m.id, "quantity": 3}], "out"
    )
    assert len(created) == 2
    # 5 - 10 -> 0 (clamped), then 0 - 3 -> 0
    assert qty(m.id) == 0

    m2 = mk_material("Other", quantity=5)
    ledger.log_stock([{"material_id": m2.id, "quantity": 3}, {"material_id": m2.id, "quantity": 4}], "in")
    assert qty(m2.id) == 12


def test_materials_and_ledger_commit_together(ledger, mk_material, qty, monkeypatch):
    m = mk_material(quantity=10)

    def boom(rows):
        raise RuntimeError("disk full")

    monkeypatch.setattr(ledger.transactions, "save_all", boom)
    with pytest.raises(RuntimeError):
        ledger.log_stock([{"material_id": m.id, "quantity": 5}], "in")
    assert qty(m.id) == 10


# ---------------------------
# Edit-in-place
# ---------------------------

def test_edit_with_identical_values_never_moves_stock(ledger, mk_material, qty):
    m = mk_material(quantity=15)
    (out,) = ledger.log_stock([{"material_id": m.id, "quantity": 20}], "out")
    assert qty(m.id) == 0

    ledger.edit_transaction(out.id, quantity=20, txn_type="out")
    assert qty(m.id) == 0
    ledger.edit_transaction(out.id)
    assert qty(m.id) == 0


def test_edit_switching_type_reverses_direction(ledger, mk_material, qty):
    m = mk_material(quantity=10)
    (txn,) = ledger.log_stock([{"material_id": m.id, "quantity": 5}], "in")
    ledger.edit_transaction(txn.id, txn_type="out")
    assert qty(m.id) == 5
    assert ledger.transactions.get(txn.id).type == "out"


def test_edit_keeps_fields_not_passed(ledger, mk_material):
    m = mk_material()
    worker = ledger.workers.create("Lito")
    (txn,) = ledger.log_stock(
        [StockLineItem(m.id, 2, worker_id=worker.id)], "out", notes="cut", date="2024-05-01"
    )
    updated = ledger.edit_transaction(txn.id, quantity=3, date="")
    assert updated.date == "2024-05-01T00:00:00.000Z"
    assert updated.worker_name == "Lito"
    assert updated.notes == Note.text("cut")
    assert updated.created_at == txn.created_at
    assert updated.material_name == txn.material_name


def test_edit_date_and_worker(ledger, mk_material):
    m = mk_material()
    w1 = ledger.workers.create("Lito")
    w2 = ledger.workers.create("Jessa")
    (txn,) = ledger.log_stock([StockLineItem(m.id, 2, worker_id=w1.id)], "out")

    updated = ledger.edit_transaction(txn.id, date="2024-06-02", worker_id=w2.id)
    assert updated.date == "2024-06-02T00:00:00.000Z"
    assert (updated.worker_id, updated.worker_name) == (w2.id, "Jessa")

    cleared = ledger.edit_transaction(txn.id, worker_id=None)
    assert cleared.worker_id is None and cleared.worker_name is None


def test_edit_recomputes_sofa_details(ledger, mk_material):
    m = mk_material()
    model = ledger.sofa_models.create("Classic 3-Seater")
    (txn,) = ledger.log_stock([StockLineItem(m.id, 2, sofa_model_id=model.id)], "out", notes=1)

    updated = ledger.edit_transaction(txn.id, notes=4)
    assert updated.sofa_details == "Classic 3-Seater (4 units)"

    updated = ledger.edit_transaction(txn.id, notes=1)
    assert updated.sofa_details == "Classic 3-Seater (1 unit)"

    updated = ledger.edit_transaction(txn.id, sofa_model_id=None)
    assert updated.sofa_model_name is None
    assert updated.sofa_details is None


def test_edit_of_missing_transaction_or_material_is_a_no_op(ledger, materials, mk_material, qty):
    assert ledger.edit_transaction("nope", quantity=1) is None

    m = mk_material(quantity=10)
    (txn,) = ledger.log_stock([{"material_id": m.id, "quantity": 5}], "in")
    materials.delete(m.id)
    assert ledger.edit_transaction(txn.id, quantity=9) is None
    assert ledger.transactions.get(txn.id).quantity == 5


def test_name_snapshot_survives_catalog_rename(ledger, mk_material):
    m = mk_material()
    worker = ledger.workers.create("Ramon")
    (txn,) = ledger.log_stock([StockLineItem(m.id, 1, worker_id=worker.id)], "in")
    ledger.workers.rename(worker.id, "Ray")
    ledger.materials.update(m.id, name="Foam 3in")

    stored = ledger.transactions.get(txn.id)
    assert stored.worker_name == "Ramon"
    assert stored.material_name == "Foam 2in"


def test_edit_resending_the_same_ids_keeps_name_snapshots(ledger, mk_material, qty):
    m = mk_material(quantity=10)
    worker = ledger.workers.create("Ramon")
    model = ledger.sofa_models.create("Classic 3-Seater")
    (txn,) = ledger.log_stock(
        [StockLineItem(m.id, 5, worker_id=worker.id, sofa_model_id=model.id)], "out", notes=2
    )

    ledger.workers.rename(worker.id, "Ramon Cruz")
    ledger.sofa_models.rename(model.id, "Classic 3-Seater v2")
    updated = ledger.edit_transaction(
        txn.id, quantity=6, worker_id=worker.id, sofa_model_id=model.id, notes=3
    )
    assert updated.worker_name == "Ramon"
    assert updated.sofa_model_name == "Classic 3-Seater"
    assert updated.sofa_details == "Classic 3-Seater (3 units)"

    ledger.workers.delete(worker.id)
    ledger.sofa_models.delete(model.id)
    updated = ledger.edit_transaction(txn.id, quantity=7, worker_id=worker.id, sofa_model_id=model.id)
    assert updated.worker_name == "Ramon"
    assert updated.sofa_model_name == "Classic 3-Seater"
    assert ledger.transactions.get(txn.id).worker_name == "Ramon"
    assert qty(m.id) == 3


# ---------------------------
# Delete-with-rollback
# ---------------------------

def test_delete_of_in_movement_subtracts(ledger, mk_material, qty):
    m = mk_material(quantity=10)
    (txn,) = ledger.log_stock([{"material_id": m.id, "quantity": 5}], "in")
    ledger.delete_transaction(txn.id)
    assert qty(m.id) == 10


def test_delete_unknown_transaction_returns_false(ledger):
    assert ledger.delete_transaction("nope") is False


def test_orphaned_row_is_removed_without_touching_stock(ledger, materials, mk_material, qty):
    m = mk_material(quantity=10)
    keep = mk_material("Keep", quantity=7)
    (txn,) = ledger.log_stock([{"material_id": m.id, "quantity": 5}], "in")
    materials.delete(m.id)

    assert [t.id for t in ledger.orphaned_transactions()] == [txn.id]
    assert ledger.delete_transaction(txn.id) is True
    assert ledger.transactions.load_all() == []
    assert qty(keep.id) == 7


def test_rollback_is_exact_when_negative_stock_is_allowed(store, mk_material, qty):
    ledger = StockLedgerService(store, QuantityReconciler(allow_negative=True))
    m = mk_material(quantity=15)
    (out,) = ledger.log_stock([{"material_id": m.id, "quantity": 20}], "out")
    assert qty(m.id) == -5
    ledger.delete_transaction(out.id)
    assert qty(m.id) == 15


def test_quantity_matches_ledger_while_nothing_clamps(ledger, mk_material, qty):
    m = mk_material(quantity=0)
    ledger.log_stock([{"material_id": m.id, "quantity": 10}], "in")
    (b,) = ledger.log_stock([{"material_id": m.id, "quantity": 4}], "out")
    (c,) = ledger.log_stock([{"material_id": m.id, "quantity": 2.5}], "in")
    ledger.edit_transaction(b.id, quantity=6)
    ledger.delete_transaction(c.id)
    ledger.log_stock([{"material_id": m.id, "quantity": 20}], "in")

    assert qty(m.id) == ledger.ledger_balance(m.id) == 24
    assert ledger.audit() == []


# ---------------------------
# Unaudited channel, audit and rebuild
# ---------------------------

def test_adjust_without_record_writes_no_ledger_row(ledger, mk_material, qty):
    m = mk_material(quantity=10)
    res = ledger.adjust_without_record(m.id, -3)
    assert (res.before, res.after) == (10, 7)
    assert qty(m.id) == 7
    assert ledger.transactions.load_all() == []
    assert ledger.adjust_without_record("ghost", -1) is None


def test_audit_reports_drift_and_rebuild_resets_it(ledger, mk_material, qty):
    clean = mk_material("Clean", quantity=0)
    drifting = mk_material("Drifting", quantity=0)
    ledger.log_stock(
        [{"material_id": clean.id, "quantity": 5}, {"material_id": drifting.id, "quantity": 5}], "in"
    )
    ledger.adjust_without_record(drifting.id, -2)

    (report,) = ledger.audit()
    assert report.material_id == drifting.id
    assert (report.materialized, report.ledger_balance, report.drift) == (3, 5, -2)

    assert ledger.rebuild_quantities() == 1
    assert qty(drifting.id) == 5
    assert qty(clean.id) == 5
    assert ledger.audit() == []


def test_rebuild_only_named_materials(ledger, mk_material, qty):
    a = mk_material("A", quantity=9)
    b = mk_material("B", quantity=9)
    assert ledger.rebuild_quantities([a.id]) == 1
    assert qty(a.id) == 0
    assert qty(b.id) == 9


def test_ledger_balance_with_clamp_replays_the_floor(ledger, mk_material):
    m = mk_material(quantity=0)
    ledger.log_stock([{"material_id": m.id, "quantity": 3}], "out")
    ledger.log_stock([{"material_id": m.id, "quantity": 2}], "in")
    assert ledger.ledger_balance(m.id) == -1
    assert ledger.ledger_balance(m.id, clamp=True) == 2


def test_transactions_for_lists_newest_first(ledger, mk_material):
    m = mk_material()
    other = mk_material("Other")
    (old,) = ledger.log_stock([{"material_id": m.id, "quantity": 1}], "in", date="2024-01-01")
    (new,) = ledger.log_stock([{"material_id": m.id, "quantity": 1}], "in", date="2024-02-01")
    ledger.log_stock([{"material_id": other.id, "quantity": 1}], "in")
    assert [t.id for t in ledger.transactions_for(m.id)] == [new.id, old.id]


def test_describe_sofa_details():
    assert describe_sofa_details(None, Note.count(2)) is None
    assert describe_sofa_details("Accent Chair", None) == "Accent Chair"
    assert describe_sofa_details("Accent Chair", Note.text("rush")) == "Accent Chair"
    assert describe_sofa_details("Accent Chair", Note.count(2.5)) == "Accent Chair (2.5 units)"
