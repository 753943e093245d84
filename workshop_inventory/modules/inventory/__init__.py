# workshop_inventory/modules/inventory/__init__.py
# Table models live in .model and are imported from there (they need PySide6).

from .ledger import DriftReport, StockLedgerService, StockLineItem, describe_sofa_details
from .reconciler import ApplyResult, QuantityReconciler, inverse_delta, signed_delta

__all__ = [
    "StockLedgerService",
    "StockLineItem",
    "DriftReport",
    "describe_sofa_details",
    "QuantityReconciler",
    "ApplyResult",
    "signed_delta",
    "inverse_delta",
]
