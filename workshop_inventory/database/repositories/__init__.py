# database/repositories/__init__.py
"""
Repository layer public API.

Usage:
    from workshop_inventory.database.repositories import (
        # Materials
        MaterialsRepo, Material, MaterialsDomainError,
        # Stock ledger
        TransactionsRepo, StockTransaction, Note, LedgerDomainError,
        # Catalogs
        WorkersRepo, SofaModelsRepo, CatalogEntry,
    )
"""

# ---------------- Materials ----------------
from .materials_repo import (
    MaterialsRepo,
    Material,
    DomainError as MaterialsDomainError,
)

# --------------- Stock ledger --------------
from .transactions_repo import (
    TransactionsRepo,
    StockTransaction,
    Note,
    DomainError as LedgerDomainError,
)

# ---------------- Catalogs -----------------
from .catalog_repo import WorkersRepo, SofaModelsRepo, CatalogEntry

__all__ = [
    # materials_repo
    "MaterialsRepo",
    "Material",
    "MaterialsDomainError",
    # transactions_repo
    "TransactionsRepo",
    "StockTransaction",
    "Note",
    "LedgerDomainError",
    # catalog_repo
    "WorkersRepo",
    "SofaModelsRepo",
    "CatalogEntry",
]
