"""
utils/loggers.py

Purpose
-------
Application logging plus an append-only JSON-lines audit trail for stock
mutations that bypass or distort the ledger (manual overrides, unaudited
adjustments, clamps, rollbacks).

Public API
----------
- get_logger(name="workshop_inventory") -> logging.Logger
- get_audit_logger(file_path=None, level=logging.INFO) -> logging.Logger
- log_event(logger, op, phase, message, extra: dict = {})
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Optional

from .. import config

__all__ = ["get_logger", "get_audit_logger", "log_event"]

_AUDIT_LOGGER_NAME = "workshop_inventory.audit"


def get_logger(name="workshop_inventory"):
    logger = logging.getLogger(name)
    if not logger.handlers:
        logger.setLevel(logging.INFO)
        ch = logging.StreamHandler()
        ch.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s"))
        logger.addHandler(ch)
    return logger


def get_audit_logger(file_path: Optional[str] = None, level: int = logging.INFO) -> logging.Logger:
    """
    Return the audit logger, writing JSON lines to the configured audit log file.
    Reuses the same logger (no duplicate handlers) across calls.

    Records still propagate to the parent logger, so `caplog` and the
    application handler see them too.
    """
    logger = logging.getLogger(_AUDIT_LOGGER_NAME)
    logger.setLevel(level)

    if any(getattr(h, "_audit_handler", False) for h in logger.handlers):
        return logger

    log_file = Path(file_path) if file_path else config.AUDIT_LOG_PATH
    try:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handler: logging.Handler = logging.FileHandler(
            str(log_file), mode="a", encoding="utf-8", delay=True
        )
        handler.setLevel(level)
    except OSError:
        # no writable log location; keep the trail on stderr instead
        handler = logging.StreamHandler()
        handler.setLevel(logging.WARNING)

    handler.setFormatter(_JsonLineFormatter())
    handler._audit_handler = True  # type: ignore[attr-defined]
    logger.addHandler(handler)
    return logger


class _JsonLineFormatter(logging.Formatter):
    """
    Minimal JSON-lines formatter:
      {"ts":"2025-09-16T12:00:01.123Z","level":"INFO","name":"...","msg":"...","extra":{...}}
    """
    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        payload = {
            "ts": datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z"),
            "level": record.levelname,
            "name": record.name,
            "msg": record.getMessage(),
        }
        if hasattr(record, "extra_payload") and isinstance(record.extra_payload, dict):
            payload["extra"] = record.extra_payload
        return json.dumps(payload, ensure_ascii=False, default=str)


def log_event(
    logger: logging.Logger,
    op: str,
    phase: str,
    message: str,
    extra: Dict[str, object] | None = None,
    level: int = logging.INFO,
) -> None:
    """
    Log a structured audit event.

    Args:
        logger: Obtained from get_audit_logger().
        op: Operation name, e.g. "log_stock", "adjust_without_record", "manual_override".
        phase: Phase within the operation, e.g. "apply", "rollback", "clamp".
        message: Human-readable short message.
        extra: Optional additional key/values (ids, quantities, deltas).
        level: Logging level (default INFO).
    """
    extra_payload = {"op": op, "phase": phase}
    if extra:
        for k, v in extra.items():
            if k not in extra_payload:
                extra_payload[k] = v

    logger.log(level, message, extra={"extra_payload": extra_payload})
