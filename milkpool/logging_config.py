"""Structured logging configuration with correlation ID and pool context."""

import json
import logging
from contextvars import ContextVar
from datetime import datetime, timezone

# Context variable to store the current request's correlation ID
correlation_id_var: ContextVar[str] = ContextVar("correlation_id", default="")

# Keys passed via ``extra=`` that are copied into the JSON document
CONTEXT_FIELDS: tuple[str, ...] = (
    "pool_id",
    "new_pool_id",
    "batch_id",
    "batch_code",
    "collection_id",
    "collection_ids",
    "qc_status",
    "quantity_liters",
    "remaining_liters",
    "avg_fat",
    "milk_used",
    "active_pools",
    "operation",
    "method",
    "path",
    "status_code",
    "duration_ms",
)


class JsonFormatter(logging.Formatter):
    """Formats log records as JSON, including any known domain context."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry: dict[str, object] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "correlation_id": getattr(record, "correlation_id", "N/A") or "N/A",
        }

        for field in CONTEXT_FIELDS:
            if field in record.__dict__:
                log_entry[field] = record.__dict__[field]

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        if record.stack_info:
            log_entry["stack_info"] = self.formatStack(record.stack_info)

        # Decimals and dates from the ledger serialize as strings
        return json.dumps(log_entry, default=str)


class CorrelationIdFilter(logging.Filter):
    """Injects the current request's correlation ID into every log record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = correlation_id_var.get()
        return True


def configure_logging(log_level: str = "INFO") -> None:
    """
    Set up structured JSON logging with correlation ID support.

    Idempotent: the JSON handler is installed once; later calls only change
    the level, so pytest's capture handler stays attached.

    Args:
        log_level: Logging level string (e.g. "INFO", "DEBUG", "WARNING").
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(log_level.upper())

    already_configured = any(
        isinstance(h.formatter, JsonFormatter)
        for h in root_logger.handlers
        if h.formatter is not None
    )
    if already_configured:
        return

    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())
    handler.addFilter(CorrelationIdFilter())
    root_logger.addHandler(handler)

    # SQL echo goes through sqlalchemy.engine; keep it out of INFO output
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
