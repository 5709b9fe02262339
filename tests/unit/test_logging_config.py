"""Unit tests for structured logging."""

import json
import logging
import sys
from decimal import Decimal

from milkpool.logging_config import (
    CorrelationIdFilter,
    JsonFormatter,
    configure_logging,
    correlation_id_var,
)


def _record(**extra: object) -> logging.LogRecord:
    record = logging.LogRecord(
        name="milkpool.test",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg="Folded milk into pool",
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestJsonFormatter:
    def test_basic_fields(self):
        payload = json.loads(JsonFormatter().format(_record()))
        assert payload["level"] == "INFO"
        assert payload["logger"] == "milkpool.test"
        assert payload["message"] == "Folded milk into pool"
        assert payload["correlation_id"] == "N/A"

    def test_context_fields_are_copied_and_decimals_serialized(self):
        record = _record(pool_id=3, quantity_liters=Decimal("12.500"), unrelated="x")
        payload = json.loads(JsonFormatter().format(record))
        assert payload["pool_id"] == 3
        assert payload["quantity_liters"] == "12.500"
        assert "unrelated" not in payload

    def test_exception_is_included(self):
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            record = _record()
            record.exc_info = sys.exc_info()
        payload = json.loads(JsonFormatter().format(record))
        assert "RuntimeError: boom" in payload["exception"]


class TestCorrelationIdFilter:
    def test_injects_current_correlation_id(self):
        token = correlation_id_var.set("abc-123")
        try:
            record = _record()
            assert CorrelationIdFilter().filter(record)
            assert record.correlation_id == "abc-123"
        finally:
            correlation_id_var.reset(token)


class TestConfigureLogging:
    def test_is_idempotent(self):
        root = logging.getLogger()
        configure_logging("INFO")
        configure_logging("DEBUG")
        json_handlers = [h for h in root.handlers if isinstance(h.formatter, JsonFormatter)]
        assert len(json_handlers) == 1
        assert root.level == logging.DEBUG
        assert logging.getLogger("sqlalchemy.engine").level == logging.WARNING

        for handler in json_handlers:
            root.removeHandler(handler)
        root.setLevel(logging.WARNING)
