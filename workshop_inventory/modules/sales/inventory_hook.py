from __future__ import annotations

"""
Stock side of sale confirmation.

A confirmed sale consumes raw materials sold as `material` lines. Those
decrements go through the ledger service's unaudited channel: no ledger row
is written and `delete_transaction()` can never reverse them. Sofa lines do
not touch material stock.
"""

import logging
from dataclasses import dataclass
from typing import Iterable, List, Mapping, Optional

from ..inventory.ledger import StockLedgerService
from ..inventory.reconciler import ApplyResult

_log = logging.getLogger(__name__)

SALE_ITEM_MATERIAL = "material"


@dataclass(frozen=True)
class MaterialUpdate:
    material_id: str
    quantity_change: float


def material_updates_for_sale(items: Iterable[Mapping]) -> List[MaterialUpdate]:
    """
    One negative change per material line of the sale, in line order.
    Lines of other kinds, and material lines without a material id, are ignored.
    """
    updates: List[MaterialUpdate] = []
    for item in items:
        if item.get("type") != SALE_ITEM_MATERIAL:
            continue
        material_id = item.get("material_id") or item.get("materialId")
        if not material_id:
            continue
        updates.append(MaterialUpdate(material_id, -item.get("quantity", 0)))
    return updates


def confirm_sale_stock(
    ledger: StockLedgerService, items: Iterable[Mapping]
) -> List[Optional[ApplyResult]]:
    """
    Apply the sale's material decrements one by one. Each entry of the result
    is the reconciler outcome, or None when the material no longer exists.
    """
    updates = material_updates_for_sale(items)
    results = [ledger.adjust_without_record(u.material_id, u.quantity_change) for u in updates]
    _log.info("Sale confirmed: %d material line(s) decremented", sum(r is not None for r in results))
    return results
