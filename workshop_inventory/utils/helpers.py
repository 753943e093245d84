# utils/helpers.py
from datetime import date, datetime, timezone
import logging
import uuid
from typing import Union, Optional

NumberLike = Union[float, int, str]
DateLike = Union[str, date, datetime]

_log = logging.getLogger(__name__)


def now_iso() -> str:
    """Current UTC instant as an ISO-8601 string with millisecond precision."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def new_id() -> str:
    return str(uuid.uuid4())


def to_iso_timestamp(value: Optional[DateLike]) -> str:
    """
    Normalize a business date to the stored ISO-8601 form.

    - None           -> now (UTC)
    - datetime       -> its ISO form (naive values are taken as UTC)
    - date           -> midnight UTC of that day
    - 'YYYY-MM-DD'   -> midnight UTC of that day
    - other strings  -> parsed with datetime.fromisoformat ('Z' suffix accepted)

    Raises ValueError for strings that are not ISO dates.
    """
    if value is None:
        return now_iso()
    if isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        value = datetime.fromisoformat(text)
    if not isinstance(value, datetime):
        value = datetime(value.year, value.month, value.day)
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    return value.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def date_part(timestamp: Optional[str]) -> str:
    """'2024-05-01T10:00:00.000Z' -> '2024-05-01' (empty string for None)."""
    return (timestamp or "")[:10]


def fmt_qty(v: NumberLike) -> str:
    """Compact quantity display: 5 -> '5', 2.5 -> '2.5'."""
    try:
        return f"{float(v):g}"
    except (TypeError, ValueError):
        return str(v) if v is not None else ""


def fmt_money(
    v: NumberLike,
    places: int = 2,
    *,
    strict: bool = False,
    sentinel: Optional[str] = None,
) -> str:
    """
    Format a number as money with thousands separators and a fixed number of decimals.

    Behavior on parse failure:
      - By default (strict=False, sentinel=None), returns str(v).
      - If `sentinel` is provided (e.g., "N/A"), returns that sentinel instead.
      - If `strict=True`, raises ValueError on parse failures.
    """
    try:
        x = float(v)
    except (TypeError, ValueError) as e:
        _log.debug("fmt_money: failed to parse %r as float: %s", v, e)
        if strict:
            raise ValueError(f"Could not parse {v!r} as a number.") from e
        return str(sentinel) if sentinel is not None else str(v)
    return f"{x:,.{places}f}"
