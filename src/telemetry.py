"""Logging and telemetry for the storefront chat gateway.

Emits structured log records to stdout and appends them to an append-only
log file for local review. Message text, tokens and keys are never logged.
"""

import json
import logging
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

logger = logging.getLogger("gateway")

_MAX_DETAIL_CHARS = 500
_LINE_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"


def setup_logging(log_file: Optional[str], level: str = "INFO") -> None:
    """Attach stdout and append-only file handlers to the gateway logger.

    Safe to call more than once; handlers are only added the first time.
    A falsy ``log_file`` keeps logging on stdout only.

    Raises:
        ValueError: If ``level`` is not a logging level name.
    """
    numeric = logging.getLevelName(level.upper())
    if not isinstance(numeric, int):
        raise ValueError("Unknown log level: {}".format(level))
    logger.setLevel(numeric)

    if logger.handlers:
        return

    formatter = logging.Formatter(_LINE_FORMAT, datefmt="%Y-%m-%dT%H:%M:%S")
    handlers: List[logging.Handler] = [logging.StreamHandler()]
    if log_file:
        log_path = Path(log_file)
        os.makedirs(log_path.parent, exist_ok=True)
        handlers.append(logging.FileHandler(log_path, mode="a"))

    for handler in handlers:
        handler.setFormatter(formatter)
        logger.addHandler(handler)


def truncate(text: str, limit: int = _MAX_DETAIL_CHARS) -> str:
    """Shorten upstream bodies before they go into a log line."""
    if len(text) <= limit:
        return text
    return text[:limit] + "...[truncated]"


def log_event(event: str, *, level: int = logging.INFO, **fields: Any) -> None:
    """Log a single structured event as one JSON line.

    Fields whose value is None are dropped so lines stay short.
    """
    record: Dict[str, Any] = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "event": event,
    }
    record.update({k: v for k, v in fields.items() if v is not None})
    logger.log(level, json.dumps(record, default=str))


def log_chat_result(
    *,
    request_id: str,
    model: str,
    outcome: str,
    status_code: Optional[int] = None,
    error: Optional[str] = None,
) -> None:
    """Log the terminal outcome of one chat call.

    Args:
        request_id: Gateway-assigned request ID.
        model: The model name sent to the endpoint.
        outcome: Result kind (e.g. "ok", "api_error", "moderation_blocked").
        status_code: Upstream HTTP status if a response was received.
        error: Diagnostic detail for failed calls.
    """
    log_event(
        "chat_completion",
        level=logging.INFO if error is None else logging.WARNING,
        request_id=request_id,
        model=model,
        outcome=outcome,
        status_code=status_code,
        error=truncate(error) if error else None,
    )
