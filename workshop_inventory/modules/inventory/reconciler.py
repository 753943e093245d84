from __future__ import annotations

"""
Quantity Reconciler: the one place where a material's stock level changes.

Every caller that moves stock (batch logging, edit, delete-with-rollback, the
unaudited sale decrement, drift rebuild) goes through `apply_delta()`.

Floor policy
------------
By default the result is floored at zero: `quantity = max(0, quantity + delta)`.
The floor throws the negative overflow away, so an `out` that hits zero cannot
be undone exactly by the matching `in` (clamp-then-rollback drift). The
overflow is reported in `ApplyResult.discarded` and logged.

With `allow_negative=True` there is no floor; stock may go negative
(back-order) and apply/undo are exact inverses.
"""

import logging
from dataclasses import dataclass
from typing import Iterable, Optional

from ... import config
from ...constants import TXN_IN, TXN_OUT
from ...database.repositories.materials_repo import Material
from ...database.repositories.transactions_repo import DomainError, StockTransaction
from ...utils import helpers
from ...utils.loggers import get_audit_logger, log_event

_log = logging.getLogger(__name__)


def signed_delta(txn_type: str, quantity: float) -> float:
    """+quantity for an `in` movement, -quantity for an `out` movement."""
    if txn_type == TXN_IN:
        return quantity
    if txn_type == TXN_OUT:
        return -quantity
    raise DomainError(f"Unknown transaction type: {txn_type!r} (expected 'in' or 'out')")


def inverse_delta(txn_type: str, quantity: float) -> float:
    """The delta that cancels a recorded movement: `out` -> +quantity, `in` -> -quantity."""
    return -signed_delta(txn_type, quantity)


@dataclass(frozen=True)
class ApplyResult:
    before: float
    after: float
    delta: float
    discarded: float = 0

    @property
    def clamped(self) -> bool:
        return self.discarded > 0


class QuantityReconciler:
    def __init__(self, allow_negative: Optional[bool] = None):
        self.allow_negative = (
            config.allow_negative_stock() if allow_negative is None else bool(allow_negative)
        )

    def floor(self, value: float) -> float:
        return value if self.allow_negative else max(0, value)

    # ---------------------------- Mutation ----------------------------

    def apply_delta(self, material: Material, delta: float, *, reason: str = "") -> ApplyResult:
        """
        Add `delta` to the material's quantity (in place), apply the floor
        policy and refresh `updated_at`.
        """
        before = material.quantity
        raw = before + delta
        after = self.floor(raw)
        discarded = after - raw

        material.quantity = after
        material.updated_at = helpers.now_iso()

        if discarded > 0:
            _log.warning(
                "Stock of %s clamped at zero: %s %+g would give %s, %s discarded",
                material.name, before, delta, raw, discarded,
            )
            log_event(
                get_audit_logger(),
                reason or "apply",
                "clamp",
                f"Negative overflow discarded for {material.name}",
                {
                    "material_id": material.id,
                    "before": before,
                    "delta": delta,
                    "discarded": discarded,
                },
                level=logging.WARNING,
            )
        return ApplyResult(before=before, after=after, delta=delta, discarded=discarded)

    def apply(self, material: Material, txn_type: str, quantity: float, *, reason: str = "") -> ApplyResult:
        return self.apply_delta(material, signed_delta(txn_type, quantity), reason=reason)

    def undo(self, material: Material, transaction: StockTransaction, *, reason: str = "") -> ApplyResult:
        """Reverse a transaction using its own recorded type and quantity."""
        return self.apply_delta(
            material, inverse_delta(transaction.type, transaction.quantity), reason=reason
        )

    # ---------------------------- Read-side ----------------------------

    @staticmethod
    def edit_delta(old_type: str, old_quantity: float, new_type: str, new_quantity: float) -> float:
        """Undo of the old movement plus the new movement, as one net delta."""
        return inverse_delta(old_type, old_quantity) + signed_delta(new_type, new_quantity)

    def fold(
        self,
        transactions: Iterable[StockTransaction],
        opening: float = 0,
        *,
        clamp: bool = False,
    ) -> float:
        """
        Reduce ledger rows left to right by signed quantity.

        clamp=True floors every prefix at zero, reproducing what the
        materialized quantity would be if each row had been applied in order
        under the zero floor.
        """
        total = opening
        for t in transactions:
            total += signed_delta(t.type, t.quantity)
            if clamp:
                total = max(0, total)
        return total
