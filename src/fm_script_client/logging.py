import logging
from typing import Any, Iterable, Optional

from .observability import SENSITIVE_FIELDS

# fm_call attributes, rendered first and in this order
FM_CALL_FIELDS = (
    "api_style",
    "method",
    "endpoint",
    "script",
    "status",
    "error_type",
    "duration_ms",
    "attempt",
)

_STANDARD_ATTRS = frozenset(
    logging.LogRecord("", logging.INFO, "", 0, "", None, None).__dict__
) | {"message", "asctime"}


class LogfmtFormatter(logging.Formatter):
    """
    logfmt lines for script client records.
    Known fm_call fields come first; any other `extra` follows sorted by name.
    Sensitive field names are rendered as `***`.
    """

    def __init__(self, field_order: Iterable[str] = FM_CALL_FIELDS):
        super().__init__()
        self.field_order = tuple(field_order)

    def format(self, record: logging.LogRecord) -> str:
        kv = [f"level={record.levelname.lower()}", f"logger={record.name}"]

        msg = record.getMessage()
        if msg:
            kv.append(f"event={self._fmt_val(msg)}")

        extras = {
            k: v
            for k, v in record.__dict__.items()
            if k not in _STANDARD_ATTRS and not k.startswith("_") and v is not None
        }
        ordered = [k for k in self.field_order if k in extras]
        ordered += sorted(k for k in extras if k not in self.field_order)
        for key in ordered:
            val = "***" if key.lower() in SENSITIVE_FIELDS else extras[key]
            kv.append(f"{key}={self._fmt_val(val)}")

        if record.exc_info and record.exc_info[0] is not None:
            kv.append(f"exc_type={record.exc_info[0].__name__}")

        return " ".join(kv)

    @staticmethod
    def _fmt_val(val: Any) -> str:
        if isinstance(val, (int, float, bool)):
            return str(val)
        s = str(val)
        if not s or any(c in s for c in ' ="'):
            s = '"' + s.replace('"', '\\"') + '"'
        return s


def setup_logging(
    level: str = "INFO", logger_name: Optional[str] = "fm_script_client"
) -> None:
    """
    Attach a single logfmt handler to the package logger (root when
    `logger_name` is None). Calling it again replaces that handler.
    """
    log = logging.getLogger(logger_name)
    for h in list(log.handlers):
        if isinstance(h.formatter, LogfmtFormatter):
            log.removeHandler(h)

    handler = logging.StreamHandler()
    handler.setFormatter(LogfmtFormatter())
    log.addHandler(handler)
    log.setLevel(getattr(logging, level.upper(), logging.INFO))


__all__ = ["setup_logging", "LogfmtFormatter", "FM_CALL_FIELDS"]
