# workshop_inventory/tests/test_sales_hook.py
from __future__ import annotations

from workshop_inventory.modules.sales import (
    MaterialUpdate,
    confirm_sale_stock,
    material_updates_for_sale,
)


def test_only_material_lines_become_updates():
    items = [
        {"type": "sofa", "sofa_model_id": "s1", "quantity": 1},
        {"type": "material", "material_id": "m1", "quantity": 3},
        {"type": "material", "materialId": "m2", "quantity": 1.5},
        {"type": "material", "quantity": 9},
    ]
    assert material_updates_for_sale(items) == [
        MaterialUpdate("m1", -3),
        MaterialUpdate("m2", -1.5),
    ]


def test_confirmed_sale_decrements_without_ledger_rows(ledger, mk_material, qty):
    foam = mk_material("Foam", quantity=10)
    wire = mk_material("Wire", quantity=2)
    results = confirm_sale_stock(ledger, [
        {"type": "material", "material_id": foam.id, "quantity": 4},
        {"type": "material", "material_id": wire.id, "quantity": 5},
        {"type": "material", "material_id": "ghost", "quantity": 1},
    ])

    assert qty(foam.id) == 6
    assert qty(wire.id) == 0
    assert results[1].discarded == 3
    assert results[2] is None
    assert ledger.transactions.load_all() == []


def test_sale_decrement_cannot_be_rolled_back_and_shows_as_drift(ledger, mk_material, qty):
    m = mk_material(quantity=0)
    (txn,) = ledger.log_stock([{"material_id": m.id, "quantity": 10}], "in")
    confirm_sale_stock(ledger, [{"type": "material", "material_id": m.id, "quantity": 4}])

    (report,) = ledger.audit()
    assert report.drift == -4

    ledger.delete_transaction(txn.id)
    # only the logged movement is reversed; the sale's 4 stay gone
    assert qty(m.id) == 0
