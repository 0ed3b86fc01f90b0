"""Tests for the structured logging system (lekka_kernel/logging_config.py)."""

import json
import logging
from datetime import UTC, date, datetime
from io import StringIO
from pathlib import PurePosixPath
from uuid import uuid4

import pytest

from lekka_kernel.exceptions import PreviewTenantMismatchError
from lekka_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    get_logger,
    reset_logging,
)


@pytest.fixture(autouse=True)
def _clean_logging():
    """Reset logging state between tests, then restore the suite's configuration."""
    reset_logging()
    LogContext.clear()
    yield
    LogContext.clear()
    reset_logging()
    configure_logging(level=logging.DEBUG)


def _make_handler() -> tuple[logging.Handler, StringIO]:
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    return handler, stream


def _parse_all_logs(stream: StringIO) -> list[dict]:
    lines = stream.getvalue().strip().split("\n")
    return [json.loads(line) for line in lines if line]


def _parse_log(stream: StringIO) -> dict:
    return _parse_all_logs(stream)[0]


# ---------------------------------------------------------------------------
# StructuredFormatter tests
# ---------------------------------------------------------------------------


class TestStructuredFormatter:
    def test_basic_json_output(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        get_logger("test").info("hello")

        record = _parse_log(stream)
        assert record["level"] == "INFO"
        assert record["message"] == "hello"
        assert record["logger"] == "lekka_kernel.test"
        assert "ts" in record

    def test_extra_fields_included(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        get_logger("test").info("number_reserved", extra={"number": "PV-2025-00001", "attempt": 1})

        record = _parse_log(stream)
        assert record["number"] == "PV-2025-00001"
        assert record["attempt"] == 1

    def test_context_fields_included(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        LogContext.set(correlation_id="abc-123", tenant_id="tenant-a")
        get_logger("test").info("test_msg")

        record = _parse_log(stream)
        assert record["correlation_id"] == "abc-123"
        assert record["tenant_id"] == "tenant-a"

    def test_kernel_exception_fields_extracted(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        try:
            raise PreviewTenantMismatchError("p-1", "tenant-b")
        except PreviewTenantMismatchError:
            get_logger("test").error("confirm_failed", exc_info=True)

        record = _parse_log(stream)
        assert record["exc_type"] == "PreviewTenantMismatchError"
        assert record["exc_code"] == "PREVIEW_TENANT_MISMATCH"
        assert record["exc_preview_id"] == "p-1"
        assert record["exc_tenant_id"] == "tenant-b"
        assert "traceback" in record

    def test_non_json_values_serialized(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        uid = uuid4()
        get_logger("test").info(
            "with_values",
            extra={
                "preview": uid,
                "codes": {"B", "A"},
                "at": datetime(2025, 4, 1, 9, 30, tzinfo=UTC),
                "on": date(2025, 4, 1),
                "path": PurePosixPath("/documents/PV-2025-00001.pdf"),
            },
        )

        record = _parse_log(stream)
        assert record["preview"] == str(uid)
        assert record["codes"] == ["A", "B"]
        assert record["at"] == "2025-04-01T09:30:00+00:00"
        assert record["on"] == "2025-04-01"
        assert record["path"] == "/documents/PV-2025-00001.pdf"

    def test_level_filtering(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        logger = get_logger("test")
        logger.info("first")
        logger.debug("second")

        assert [r["message"] for r in _parse_all_logs(stream)] == ["first"]


# ---------------------------------------------------------------------------
# LogContext tests
# ---------------------------------------------------------------------------


class TestLogContext:
    def test_bind_restores_previous_value(self):
        LogContext.set(correlation_id="outer")
        with LogContext.bind(correlation_id="inner", preview_id="p-1"):
            assert LogContext.get_all() == {"correlation_id": "inner", "preview_id": "p-1"}
        assert LogContext.get_all() == {"correlation_id": "outer"}

    def test_bind_skips_none(self):
        with LogContext.bind(tenant_id="tenant-a", actor_id=None):
            assert LogContext.get_all() == {"tenant_id": "tenant-a"}

    def test_unknown_field_rejected(self):
        with pytest.raises(KeyError):
            LogContext.set(event_id="x")

    def test_clear(self):
        LogContext.set(doc_type="journal")
        LogContext.clear()
        assert LogContext.get_all() == {}


# ---------------------------------------------------------------------------
# configure_logging tests
# ---------------------------------------------------------------------------


class TestConfigureLogging:
    def test_idempotent(self):
        h1, _ = _make_handler()
        configure_logging(handler=h1)
        h2, _ = _make_handler()
        configure_logging(handler=h2)

        handlers = logging.getLogger("lekka_kernel").handlers
        assert h1 in handlers
        assert h2 not in handlers

    def test_get_logger_returns_child(self):
        assert get_logger("services.posting_orchestrator").name == "lekka_kernel.services.posting_orchestrator"
