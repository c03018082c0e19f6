from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any

LOGGER_NAMESPACE = "invdash"


def get_logger(name: str) -> logging.Logger:
    qualified = name if name.startswith(LOGGER_NAMESPACE) else f"{LOGGER_NAMESPACE}.{name}"
    logger = logging.getLogger(qualified)
    root = logging.getLogger(LOGGER_NAMESPACE)
    if not root.handlers:
        root.setLevel(logging.INFO)
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter("%(message)s"))
        root.addHandler(handler)
    return logger


def log_action(
    logger: logging.Logger,
    module: str,
    action: str,
    trace_id: str | None,
    outcome: str,
    **context: Any,
) -> None:
    """Write one JSON line describing an operator-triggered action."""
    level = logging.WARNING if outcome in {"error", "partial"} else logging.INFO
    record = {
        "ts": datetime.now(timezone.utc).isoformat(),
        "level": logging.getLevelName(level),
        "module": module,
        "action": action,
        "trace_id": trace_id,
        "outcome": outcome,
    }
    if context:
        record["context"] = context
    logger.log(level, json.dumps(record, default=str, sort_keys=True))
