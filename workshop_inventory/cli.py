"""
Command-line front end for the stock ledger.

    python -m workshop_inventory --db data/workshop.db seed
    python -m workshop_inventory log in "Foam 2in:5" "Staple Wire:2" --worker Ramon
    python -m workshop_inventory history --material "Foam 2in"
    python -m workshop_inventory audit

Materials, workers and sofa models may be given by id or by name. Input is
validated here, before anything reaches the ledger service.
"""
from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Optional, Sequence

from .database import open_store
from .database.kv_store import StoreError
from .database.repositories.catalog_repo import SofaModelsRepo, WorkersRepo
from .database.repositories.materials_repo import DomainError as MaterialsDomainError
from .database.repositories.transactions_repo import DomainError as LedgerDomainError
from .database.repositories.transactions_repo import Note, StockTransaction
from .database.seeders.default_data import seed
from .modules.inventory.ledger import StockLedgerService, StockLineItem, describe_sofa_details
from .modules.inventory.reconciler import QuantityReconciler
from .modules.inventory.report import write_stock_report
from .modules.sales.inventory_hook import confirm_sale_stock
from .utils.helpers import date_part, fmt_money, fmt_qty
from .utils.loggers import get_logger
from .utils.validators import (
    is_non_negative_number,
    is_strictly_positive_number,
    line_item_errors,
    non_empty,
    parse_quantity,
)


class UsageError(Exception):
    """Bad command-line input; reported without a traceback."""


# -----------------------------
# Resolution helpers
# -----------------------------

def _resolve_material_id(ledger: StockLedgerService, ref: str) -> str:
    material = ledger.materials.get(ref) or ledger.materials.find_by_name(ref)
    if material is None:
        raise UsageError(f"Unknown material: {ref!r}")
    return material.id


def _resolve_catalog_id(
    repo: WorkersRepo | SofaModelsRepo, ref: Optional[str], what: str
) -> Optional[str]:
    if not ref:
        return None
    entry = repo.get(ref) or repo.find_by_name(ref)
    if entry is None:
        raise UsageError(f"Unknown {what}: {ref!r}")
    return entry.id


def _parse_pairs(ledger: StockLedgerService, pairs: Sequence[str]) -> List[dict]:
    """'NAME:QTY' arguments -> validated line item dicts."""
    items = []
    for raw in pairs:
        ref, sep, qty = raw.rpartition(":")
        if not sep:
            raise UsageError(f"Expected MATERIAL:QTY, got {raw!r}")
        items.append({"material_id": ref.strip(), "quantity": qty.strip()})

    errors = line_item_errors(items)
    if errors:
        raise UsageError("\n".join(errors))

    for item in items:
        item["material_id"] = _resolve_material_id(ledger, item["material_id"])
        item["quantity"] = parse_quantity(item["quantity"])
    return items


def _note_from_args(args) -> Optional[Note]:
    if getattr(args, "units", None) is not None:
        return Note.count(parse_quantity(args.units))
    if non_empty(getattr(args, "note", None)):
        return Note.text(args.note.strip())
    return None


def _print_transactions(rows: Sequence[StockTransaction]) -> None:
    if not rows:
        print("No transactions.")
        return
    for t in rows:
        sign = "+" if t.type == "in" else "-"
        extra = " | ".join(
            x for x in (t.worker_name, t.sofa_details or t.sofa_model_name,
                        str(t.notes) if t.notes is not None else None) if x
        )
        print(f"{t.id}  {date_part(t.date)}  {t.type.upper():3}  {t.material_name:<24} "
              f"{sign}{fmt_qty(t.quantity):>8}  {extra}")


# -----------------------------
# Commands
# -----------------------------

def cmd_seed(ledger: StockLedgerService, args) -> int:
    print("Demo data seeded." if seed(ledger.store) else "Store already has materials; nothing seeded.")
    return 0


def cmd_materials(ledger: StockLedgerService, args) -> int:
    rows = ledger.materials.low_stock() if args.low else ledger.materials.list_materials()
    if not rows:
        print("No materials.")
        return 0
    for m in rows:
        flag = " LOW" if m.is_low_stock else ""
        print(f"{m.id}  {m.name:<24} {fmt_qty(m.quantity):>8} {m.unit:<10} "
              f"min {fmt_qty(m.min_stock):>6}  @ {fmt_money(m.cost_per_unit)}{flag}")
    return 0


def cmd_add_material(ledger: StockLedgerService, args) -> int:
    if not non_empty(args.name):
        raise UsageError("Material name is required.")
    for label, value in (("quantity", args.quantity), ("min stock", args.min_stock), ("cost", args.cost)):
        if not is_non_negative_number(value):
            raise UsageError(f"{label.capitalize()} cannot be negative.")
    m = ledger.materials.create(
        args.name.strip(), args.category, args.unit,
        quantity=args.quantity, min_stock=args.min_stock,
        cost_per_unit=args.cost, supplier=args.supplier,
    )
    print(m.id)
    return 0


def cmd_log(ledger: StockLedgerService, args) -> int:
    items = _parse_pairs(ledger, args.items)
    worker_id = _resolve_catalog_id(ledger.workers, args.worker, "worker")
    model_id = _resolve_catalog_id(ledger.sofa_models, args.model, "sofa model")
    note = _note_from_args(args)
    details = describe_sofa_details(ledger.sofa_models.name_of(model_id), note)
    lines = [
        StockLineItem(i["material_id"], i["quantity"], worker_id=worker_id,
                      sofa_model_id=model_id, sofa_details=details)
        for i in items
    ]
    created = ledger.log_stock(lines, args.type, notes=note, date=args.date)
    _print_transactions(created)
    return 0


def cmd_edit(ledger: StockLedgerService, args) -> int:
    changes = {}
    if args.quantity is not None:
        if not is_strictly_positive_number(args.quantity):
            raise UsageError("Quantity must be greater than zero.")
        changes["quantity"] = parse_quantity(args.quantity)
    if args.type is not None:
        changes["txn_type"] = args.type
    if args.date is not None:
        changes["date"] = args.date
    if args.worker is not None:
        changes["worker_id"] = _resolve_catalog_id(ledger.workers, args.worker, "worker")
    if args.model is not None:
        changes["sofa_model_id"] = _resolve_catalog_id(ledger.sofa_models, args.model, "sofa model")
    note = _note_from_args(args)
    if note is not None:
        changes["notes"] = note

    updated = ledger.edit_transaction(args.transaction_id, **changes)
    if updated is None:
        print("Transaction or its material not found; nothing changed.", file=sys.stderr)
        return 1
    _print_transactions([updated])
    return 0


def cmd_delete(ledger: StockLedgerService, args) -> int:
    if not ledger.delete_transaction(args.transaction_id):
        print("Transaction not found.", file=sys.stderr)
        return 1
    print("Deleted.")
    return 0


def cmd_sell(ledger: StockLedgerService, args) -> int:
    items = _parse_pairs(ledger, args.items)
    sale_lines = [{"type": "material", "material_id": i["material_id"], "quantity": i["quantity"]} for i in items]
    for res, line in zip(confirm_sale_stock(ledger, sale_lines), sale_lines):
        if res is not None:
            note = f" ({fmt_qty(res.discarded)} short)" if res.clamped else ""
            print(f"{line['material_id']}  {fmt_qty(res.before)} -> {fmt_qty(res.after)}{note}")
    return 0


def cmd_history(ledger: StockLedgerService, args) -> int:
    material_id = _resolve_material_id(ledger, args.material) if args.material else None
    rows = ledger.transactions.find(
        material_id=material_id, date_from=args.date_from, date_to=args.date_to,
        txn_type=args.type, limit=args.limit,
    )
    _print_transactions(rows)
    return 0


def cmd_audit(ledger: StockLedgerService, args) -> int:
    reports = ledger.audit()
    orphans = ledger.orphaned_transactions()
    for r in reports:
        print(f"{r.material_id}  {r.material_name:<24} stored {fmt_qty(r.materialized):>8}  "
              f"ledger {fmt_qty(r.ledger_balance):>8}  drift {r.drift:+g}")
    if orphans:
        print(f"{len(orphans)} orphaned transaction(s) reference deleted materials.")
    if not reports and not orphans:
        print("Ledger and stock levels agree.")
    return 0


def cmd_rebuild(ledger: StockLedgerService, args) -> int:
    if not args.yes:
        raise UsageError("Rebuilding overwrites stored quantities; pass --yes to confirm.")
    ids = [_resolve_material_id(ledger, ref) for ref in args.materials] or None
    print(f"{ledger.rebuild_quantities(ids)} material(s) updated.")
    return 0


def cmd_report(ledger: StockLedgerService, args) -> int:
    print(write_stock_report(ledger, args.output, recent=args.recent))
    return 0


# -----------------------------
# Parser
# -----------------------------

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="workshop_inventory", description="Workshop stock ledger")
    parser.add_argument("--db", help="Path to the SQLite store (default: $WORKSHOP_INVENTORY_DB or ./data/workshop.db)")
    parser.add_argument("--allow-negative", action="store_true", default=None,
                        help="Let stock go below zero instead of clamping at zero")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("seed", help="Fill an empty store with demo data")
    p.set_defaults(func=cmd_seed)

    p = sub.add_parser("materials", help="List materials")
    p.add_argument("--low", action="store_true", help="Only materials at or under reorder level")
    p.set_defaults(func=cmd_materials)

    p = sub.add_parser("add-material", help="Register a material")
    p.add_argument("name")
    p.add_argument("--category", default="")
    p.add_argument("--unit", default="pcs")
    p.add_argument("--quantity", type=parse_quantity, default=0)
    p.add_argument("--min-stock", type=parse_quantity, default=0)
    p.add_argument("--cost", type=parse_quantity, default=0)
    p.add_argument("--supplier")
    p.set_defaults(func=cmd_add_material)

    def add_meta(p):
        p.add_argument("--worker", help="Worker id or name")
        p.add_argument("--model", help="Sofa model id or name")
        p.add_argument("--date", help="Business date (YYYY-MM-DD or ISO timestamp)")
        group = p.add_mutually_exclusive_group()
        group.add_argument("--units", help="Units produced")
        group.add_argument("--note", help="Free-text note")

    p = sub.add_parser("log", help="Record stock movements (one batch)")
    p.add_argument("type", choices=("in", "out"))
    p.add_argument("items", nargs="+", metavar="MATERIAL:QTY")
    add_meta(p)
    p.set_defaults(func=cmd_log)

    p = sub.add_parser("edit", help="Edit a recorded movement")
    p.add_argument("transaction_id")
    p.add_argument("--quantity")
    p.add_argument("--type", choices=("in", "out"))
    add_meta(p)
    p.set_defaults(func=cmd_edit)

    p = sub.add_parser("delete", help="Delete a movement and roll its quantity back")
    p.add_argument("transaction_id")
    p.set_defaults(func=cmd_delete)

    p = sub.add_parser("sell", help="Apply a confirmed sale's material lines (no ledger entry)")
    p.add_argument("items", nargs="+", metavar="MATERIAL:QTY")
    p.set_defaults(func=cmd_sell)

    p = sub.add_parser("history", help="List movements")
    p.add_argument("--material")
    p.add_argument("--from", dest="date_from")
    p.add_argument("--to", dest="date_to")
    p.add_argument("--type", choices=("in", "out"))
    p.add_argument("--limit", type=int)
    p.set_defaults(func=cmd_history)

    p = sub.add_parser("audit", help="Compare stored quantities with the ledger")
    p.set_defaults(func=cmd_audit)

    p = sub.add_parser("rebuild", help="Reset quantities to their ledger balance")
    p.add_argument("materials", nargs="*", metavar="MATERIAL")
    p.add_argument("--yes", action="store_true")
    p.set_defaults(func=cmd_rebuild)

    p = sub.add_parser("report", help="Write an HTML stock snapshot")
    p.add_argument("output")
    p.add_argument("--recent", type=int, default=20)
    p.set_defaults(func=cmd_report)

    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logger = get_logger()
    if args.verbose:
        logger.setLevel(logging.DEBUG)

    store = open_store(args.db)
    try:
        ledger = StockLedgerService(store, QuantityReconciler(allow_negative=args.allow_negative))
        return args.func(ledger, args)
    except (UsageError, MaterialsDomainError, LedgerDomainError, StoreError, ValueError) as e:
        print(f"error: {e}", file=sys.stderr)
        return 2
    finally:
        store.close()


if __name__ == "__main__":
    sys.exit(main())
