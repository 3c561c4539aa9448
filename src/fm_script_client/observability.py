"""
Structured `fm_call` records for every request a script client sends.

Records are emitted on the client's own logger with the call details as
LogRecord attributes. Session tokens and credentials never reach a record:
token path segments are masked and sensitive field names are dropped.
"""

from __future__ import annotations

import logging
import re
import time
from typing import Any, Dict, Optional

SENSITIVE_FIELDS = frozenset({"authorization", "password", "token", "access_token"})

# Attributes every LogRecord already owns; extras must not shadow them.
_RECORD_ATTRS = frozenset(
    logging.LogRecord("", logging.INFO, "", 0, "", None, None).__dict__
) | {"message", "asctime"}

_SESSION_SEGMENT = re.compile(r"(/sessions/)[^/?#]+")


def redact_endpoint(endpoint: str) -> str:
    """'/fmi/data/v1/databases/db/sessions/abc' -> '.../sessions/{token}'"""
    return _SESSION_SEGMENT.sub(r"\1{token}", endpoint)


def call_fields(**fields: Any) -> Dict[str, Any]:
    """Clean call details for use as `extra`: no Nones, secrets or collisions."""
    cleaned: Dict[str, Any] = {}
    for key, value in fields.items():
        if value is None or key.lower() in SENSITIVE_FIELDS or key in _RECORD_ATTRS:
            continue
        cleaned[key] = redact_endpoint(value) if key == "endpoint" else value
    return cleaned


def log_fm_call(
    logger: logging.Logger,
    *,
    started: float,
    status: Any,
    error_type: Optional[str] = None,
    **fields: Any,
) -> None:
    """Emit one `fm_call` record; `started` is a `time.perf_counter()` value."""
    logger.info(
        "fm_call",
        extra=call_fields(
            status=status,
            error_type=error_type,
            duration_ms=int((time.perf_counter() - started) * 1000),
            **fields,
        ),
    )


__all__ = ["SENSITIVE_FIELDS", "call_fields", "log_fm_call", "redact_endpoint"]
