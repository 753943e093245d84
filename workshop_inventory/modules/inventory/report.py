from __future__ import annotations

"""
Read-only stock snapshot, rendered to HTML with Jinja2.

Building a snapshot never writes to the store and never touches quantities.
"""

import logging
from pathlib import Path
from typing import Dict, Optional

from jinja2 import Template

from ...constants import APP_NAME
from ...utils.helpers import date_part, fmt_money, fmt_qty, now_iso
from .ledger import StockLedgerService

_log = logging.getLogger(__name__)

TEMPLATE_PATH = Path(__file__).resolve().parents[2] / "resources" / "templates" / "stock_report.html"


def stock_snapshot(ledger: StockLedgerService, recent: int = 20) -> Dict:
    """Template context: every material with its stock value, plus the latest movements."""
    materials = ledger.materials.list_materials()
    movements = ledger.transactions.find(limit=recent) if recent > 0 else []

    rows = [
        {
            "id": m.id,
            "name": m.name,
            "category": m.category,
            "unit": m.unit,
            "quantity": fmt_qty(m.quantity),
            "min_stock": fmt_qty(m.min_stock),
            "cost_per_unit": fmt_money(m.cost_per_unit),
            "value": fmt_money(m.stock_value),
            "supplier": m.supplier or "",
            "low": m.is_low_stock,
        }
        for m in materials
    ]
    return {
        "app_name": APP_NAME,
        "generated_at": now_iso(),
        "materials": rows,
        "low_stock_count": sum(1 for r in rows if r["low"]),
        "total_value": fmt_money(sum(m.stock_value for m in materials)),
        "movements": [
            {
                "date": date_part(t.date),
                "type": t.type,
                "material": t.material_name,
                "quantity": fmt_qty(t.quantity),
                "worker": t.worker_name or "",
                "details": t.sofa_details or (str(t.notes) if t.notes is not None else ""),
            }
            for t in movements
        ],
    }


def render_stock_report(context: Dict, template_path: Optional[Path] = None) -> str:
    path = Path(template_path) if template_path else TEMPLATE_PATH
    template_content = path.read_text(encoding="utf-8")
    template = Template(template_content, autoescape=True)
    return template.render(**context)


def write_stock_report(ledger: StockLedgerService, dest: Path | str, recent: int = 20) -> Path:
    dest = Path(dest)
    dest.parent.mkdir(parents=True, exist_ok=True)
    dest.write_text(render_stock_report(stock_snapshot(ledger, recent=recent)), encoding="utf-8")
    _log.info("Stock report written to %s", dest)
    return dest
