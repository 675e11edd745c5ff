from __future__ import annotations

import json
import logging
import os
import sys
from datetime import datetime, timezone
from typing import Any

from graficontrol.context import get_correlation_id


_BASE_RECORD_KEYS = frozenset(logging.makeLogRecord({}).__dict__) | {"message", "asctime", "correlation_id"}
_MAX_ERROR_LENGTH = 500

# Only these ``extra`` keys reach the output; anything else (card data,
# payloads) is dropped.
_HTTP_FIELDS = {"method", "path", "status_code", "duration_ms"}
_TENANT_FIELDS = {"company_id", "actor_user_id", "reason"}
_FULFILLMENT_FIELDS = {"order_id", "quote_id", "transaction_id", "previous_status", "status", "entries_created"}
_BILLING_FIELDS = {
    "subscription_id",
    "intent_id",
    "payment_id",
    "event",
    "billing_provider_customer_id",
    "billing_provider_subscription_id",
}
_KNOWN_FIELDS = frozenset(_HTTP_FIELDS | _TENANT_FIELDS | _FULFILLMENT_FIELDS | _BILLING_FIELDS | {"count", "error"})

_default_record_factory = logging.getLogRecordFactory()


def _record_factory(*args: Any, **kwargs: Any) -> logging.LogRecord:
    record = _default_record_factory(*args, **kwargs)
    record.correlation_id = get_correlation_id()
    return record


class JsonLogFormatter(logging.Formatter):
    """One JSON object per line: level, logger, message, correlation id and whitelisted fields."""

    def __init__(self, service: str = "graficontrol-api") -> None:
        super().__init__()
        self.service = service

    def format(self, record: logging.LogRecord) -> str:
        fields = {
            key: value
            for key, value in record.__dict__.items()
            if key in _KNOWN_FIELDS and key not in _BASE_RECORD_KEYS
        }
        if isinstance(fields.get("error"), str):
            fields["error"] = fields["error"][:_MAX_ERROR_LENGTH]
        if record.exc_info:
            fields["exception"] = self.formatException(record.exc_info)

        payload: dict[str, Any] = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "service": self.service,
            "logger": record.name,
            "msg": record.getMessage(),
            "correlation_id": getattr(record, "correlation_id", None),
            "fields": fields,
        }
        return json.dumps(payload, default=str)


def configure_logging(service: str = "graficontrol-api") -> None:
    root_logger = logging.getLogger()
    if getattr(root_logger, "_graficontrol_configured", False):
        return

    level = getattr(logging, os.getenv("LOG_LEVEL", "INFO").upper(), logging.INFO)

    handler = logging.StreamHandler(stream=sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(JsonLogFormatter(service))

    logging.setLogRecordFactory(_record_factory)
    root_logger.handlers.clear()
    root_logger.setLevel(level)
    root_logger.addHandler(handler)
    # Request lines are already emitted by RequestLoggingMiddleware.
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    root_logger._graficontrol_configured = True  # type: ignore[attr-defined]
