# utils/validators.py
"""
Input checks for callers of the stock core (CLI, forms).

The ledger service itself rejects nothing beyond its skip/no-op rules, so
anything that must not reach it (blank material selection, zero or negative
quantity, negative stock figures) is caught here first.
"""

from typing import Iterable, List, Mapping


def non_empty(text: str) -> bool:
    """
    True if `text` is not None/empty after stripping whitespace.
    """
    return bool(text and str(text).strip())


# ---- Numeric parsing & validators ----

def try_parse_float(x):
    """
    Best-effort parse to float.

    Returns:
        (ok: bool, value: float|None)

    ok == False means parsing failed and value is None.
    """
    try:
        return True, float(x)
    except (TypeError, ValueError):
        return False, None


def parse_float(x) -> float:
    """
    Strict parse to float; raises ValueError with a clear message on failure.
    """
    ok, val = try_parse_float(x)
    if not ok:
        raise ValueError(f"Could not parse '{x}' as a number.")
    return val  # type: ignore[return-value]


def parse_quantity(x):
    """
    Parse a quantity, keeping whole numbers as int so stored records stay
    '5' rather than '5.0'.
    """
    val = parse_float(x)
    return int(val) if val.is_integer() else val


def is_non_negative_number(x) -> bool:
    """
    True iff x parses to a float and value >= 0.
    """
    ok, val = try_parse_float(x)
    return bool(ok and val is not None and val >= 0)


def is_strictly_positive_number(x) -> bool:
    """
    True iff x parses to a float and value > 0.
    """
    ok, val = try_parse_float(x)
    return bool(ok and val is not None and val > 0)


# ---- Stock logging form rules ----

def line_item_errors(items: Iterable[Mapping]) -> List[str]:
    """
    Validate stock line items the way the stock-log form does before submit.

    Returns a list of human-readable problems (empty when everything is fine).
    """
    errors: List[str] = []
    rows = list(items)
    if not rows:
        return ["Add at least one material."]
    for pos, item in enumerate(rows, start=1):
        material_id = item.get("material_id") or item.get("materialId")
        if not non_empty(material_id):
            errors.append(f"Line {pos}: select a material.")
        if not is_strictly_positive_number(item.get("quantity")):
            errors.append(f"Line {pos}: quantity must be greater than zero.")
    return errors
