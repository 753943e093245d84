import os
from pathlib import Path

from .constants import AUDIT_LOG_FILE_NAME, DATA_DIR, DB_FILE_NAME

_TRUTHY = {"1", "true", "yes", "on"}

DATA_PATH = Path(os.environ.get("WORKSHOP_INVENTORY_DATA_DIR", Path.cwd() / DATA_DIR))
DB_PATH = Path(os.environ.get("WORKSHOP_INVENTORY_DB", DATA_PATH / DB_FILE_NAME))
AUDIT_LOG_PATH = Path(
    os.environ.get("WORKSHOP_INVENTORY_LOG_FILE", DATA_PATH / AUDIT_LOG_FILE_NAME)
)


def allow_negative_stock() -> bool:
    """
    Stock floor policy. Off by default: quantities are clamped at zero.
    Read on every call so tests and the CLI can flip it through the environment.
    """
    raw = os.environ.get("WORKSHOP_INVENTORY_ALLOW_NEGATIVE", "")
    return raw.strip().lower() in _TRUTHY
