"""Stock ledger and quantity reconciliation for a small sofa workshop."""

__version__ = "1.0.0"
