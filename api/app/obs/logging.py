"""JSON log output for the order core.

Every record is rendered as one JSON object. The request id comes from
:data:`~api.app.middlewares.request_id.request_id_ctx`; ``tenant``,
``location`` and ``user`` are taken from the ``extra`` passed by callers
(see :meth:`~api.app.domain.TenantContext.log_extra`).
"""

import json
import logging
import re
from datetime import datetime, timezone
from typing import Any

from ..middlewares.request_id import request_id_ctx

EMAIL_RE = re.compile(r"[\w.+-]+@[\w-]+\.[\w.-]+", re.I)
PHONE_RE = re.compile(r"\b\d{10}\b")
# UPI / card references recorded when a bill is settled
PAYMENT_REF_RE = re.compile(r"(?i)\b((?:utr|upi|ref)\b[-:=\s]*)([A-Za-z0-9]{6,})")

CONTEXT_FIELDS = (
    "tenant",
    "location",
    "user",
    "route",
    "status",
    "latency_ms",
)

# Driver loggers that flood DEBUG output with connection chatter.
QUIET_LOGGERS = ("aiosqlite", "asyncio")


def _redact_pii(text: str) -> str:
    """Mask emails, phone numbers and payment references."""
    text = EMAIL_RE.sub("***", text)
    text = PHONE_RE.sub("***", text)
    return PAYMENT_REF_RE.sub(lambda m: m.group(1) + "***", text)


class RequestIdFilter(logging.Filter):
    """Attach request id from context to log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.req_id = request_id_ctx.get(None)
        return True


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        data: dict[str, Any] = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "req_id": getattr(record, "req_id", None),
        }
        for name in CONTEXT_FIELDS:
            data[name] = getattr(record, name, None)
        data["msg"] = _redact_pii(record.getMessage())
        if record.exc_info:
            data["exc"] = self.formatException(record.exc_info)
        return json.dumps(data, default=str)


def configure_logging(level: int | str = logging.INFO) -> None:
    """Send every logger through a single JSON handler on the root logger."""

    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())
    handler.addFilter(RequestIdFilter())

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
