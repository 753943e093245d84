# workshop_inventory/tests/conftest.py
# ---------------------------------------------------------------------
# Ground rules:
# - Every test gets its own SQLite file under tmp_path (no shared DB)
# - conn.row_factory = sqlite3.Row, WAL, schema applied by get_connection()
# - The audit log goes to a per-session temp file, never ./data
# - The stock floor policy defaults to clamping; tests that need negative
#   stock build their own QuantityReconciler(allow_negative=True)
# - pytest-qt owns QApplication for the table model tests (qapp fixture)
# ---------------------------------------------------------------------

from __future__ import annotations

import os
import sqlite3

import pytest

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

from workshop_inventory.database import get_connection
from workshop_inventory.database.kv_store import KeyValueStore
from workshop_inventory.database.repositories import (
    MaterialsRepo,
    SofaModelsRepo,
    TransactionsRepo,
    WorkersRepo,
)
from workshop_inventory.modules.inventory.ledger import StockLedgerService
from workshop_inventory.modules.inventory.reconciler import QuantityReconciler
from workshop_inventory.utils.loggers import get_audit_logger


# ---------- Audit log: once per session, into a temp dir ----------
@pytest.fixture(scope="session", autouse=True)
def _audit_log_to_tmp(tmp_path_factory):
    path = tmp_path_factory.mktemp("logs") / "stock_audit.log"
    get_audit_logger(str(path))
    return path


@pytest.fixture(autouse=True)
def _default_floor_policy(monkeypatch):
    monkeypatch.delenv("WORKSHOP_INVENTORY_ALLOW_NEGATIVE", raising=False)


# ---------- Per-test database ----------
@pytest.fixture()
def db_path(tmp_path):
    return tmp_path / "workshop.db"


@pytest.fixture()
def conn(db_path):
    con = get_connection(db_path)
    try:
        yield con
    finally:
        con.close()


@pytest.fixture()
def store(conn: sqlite3.Connection) -> KeyValueStore:
    return KeyValueStore(conn)


@pytest.fixture()
def materials(store) -> MaterialsRepo:
    return MaterialsRepo(store)


@pytest.fixture()
def transactions(store) -> TransactionsRepo:
    return TransactionsRepo(store)


@pytest.fixture()
def workers(store) -> WorkersRepo:
    return WorkersRepo(store)


@pytest.fixture()
def sofa_models(store) -> SofaModelsRepo:
    return SofaModelsRepo(store)


@pytest.fixture()
def ledger(store) -> StockLedgerService:
    return StockLedgerService(store, QuantityReconciler(allow_negative=False))


# ---------- Handy factories ----------
@pytest.fixture()
def mk_material(materials):
    """Create a material with sensible defaults; returns the Material."""
    def _mk(name="Foam 2in", quantity=10, **kw):
        kw.setdefault("category", "Foam")
        kw.setdefault("unit", "sheet")
        return materials.create(name, quantity=quantity, **kw)
    return _mk


@pytest.fixture()
def qty(materials):
    """Current stored quantity of a material by id."""
    def _qty(material_id):
        m = materials.get(material_id)
        return None if m is None else m.quantity
    return _qty
