"""
Tests for transfer_kernel.logging_config -- structured JSON logging.

Verifies:
- JSON output format (valid JSON, expected fields)
- LogContext propagation and bind/restore semantics
- Kernel exception attributes surfaced as exc_* fields
- configure_logging idempotency
"""

import json
import logging
from decimal import Decimal
from io import StringIO
from uuid import uuid4

import pytest

from transfer_kernel.exceptions import InsufficientRoleLevelError, TransferNotFoundError
from transfer_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    get_logger,
    reset_logging,
)


@pytest.fixture(autouse=True)
def _clean_logging():
    """Reset logging state before and after each test."""
    reset_logging()
    LogContext.clear()
    yield
    reset_logging()
    LogContext.clear()
    configure_logging(level=logging.DEBUG)


def _make_handler():
    """Create a handler that writes to a StringIO buffer."""
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    return handler, stream


def _parse_log(stream):
    """Parse the last JSON line from a StringIO stream."""
    lines = stream.getvalue().strip().split("\n")
    return json.loads(lines[-1])


def _parse_all_logs(stream):
    lines = stream.getvalue().strip().split("\n")
    return [json.loads(line) for line in lines if line]


# ---------------------------------------------------------------------------
# StructuredFormatter tests
# ---------------------------------------------------------------------------


class TestStructuredFormatter:
    """Tests for JSON log output."""

    def test_basic_json_output(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        get_logger("test").info("transfer_initiated")

        record = _parse_log(stream)
        assert record["message"] == "transfer_initiated"
        assert record["level"] == "INFO"
        assert record["logger"] == "transfer_kernel.test"
        assert "ts" in record

    def test_extra_fields(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        get_logger("test").info(
            "approval_recorded",
            extra={"current_approvals": 1, "required_approvals": 2},
        )

        record = _parse_log(stream)
        assert record["current_approvals"] == 1
        assert record["required_approvals"] == 2

    def test_context_fields_included(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        LogContext.set(tenant_id="tenant-1", transfer_id="trf-9")
        get_logger("test").info("with_context")

        record = _parse_log(stream)
        assert record["tenant_id"] == "tenant-1"
        assert record["transfer_id"] == "trf-9"

    def test_exception_fields(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        try:
            raise ValueError("bad amount")
        except ValueError:
            get_logger("test").exception("failed")

        record = _parse_log(stream)
        assert record["exc_type"] == "ValueError"
        assert record["exc_message"] == "bad amount"
        assert "traceback" in record

    def test_kernel_exception_attributes_extracted(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        try:
            raise InsufficientRoleLevelError("user-1", required_level=7, actual_level=5)
        except InsufficientRoleLevelError:
            get_logger("test").exception("approval_rejected")

        record = _parse_log(stream)
        assert record["exc_code"] == "INSUFFICIENT_ROLE_LEVEL"
        assert record["exc_required_level"] == 7
        assert record["exc_actual_level"] == 5
        assert record["exc_user_id"] == "user-1"

    def test_no_context_fields_when_empty(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        get_logger("test").info("bare_message")

        record = _parse_log(stream)
        assert "tenant_id" not in record
        assert "request_id" not in record

    def test_uuid_and_decimal_serialized(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        uid = uuid4()
        get_logger("test").info(
            "with_values", extra={"rule_id": uid, "amount": Decimal("75000.00")},
        )

        record = _parse_log(stream)
        assert record["rule_id"] == str(uid)
        assert record["amount"] == "75000.00"

    def test_valid_json_every_line(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        logger = get_logger("test")
        logger.info("first")
        logger.warning("second", extra={"k": "v"})
        logger.debug("third")

        logs = _parse_all_logs(stream)
        # Default level is INFO; the debug line is dropped.
        assert len(logs) == 2
        for record in logs:
            assert {"ts", "level", "logger", "message"} <= set(record)


# ---------------------------------------------------------------------------
# LogContext tests
# ---------------------------------------------------------------------------


class TestLogContext:
    """Tests for context propagation."""

    def test_set_and_get(self):
        LogContext.set(tenant_id="t", actor_id="a")
        assert LogContext.get_all() == {"tenant_id": "t", "actor_id": "a"}

    def test_clear(self):
        LogContext.set(request_id="r")
        LogContext.clear()
        assert LogContext.get_all() == {}

    def test_bind_context_manager(self):
        LogContext.set(tenant_id="outer")
        with LogContext.bind(tenant_id="inner"):
            assert LogContext.get_all()["tenant_id"] == "inner"
        assert LogContext.get_all()["tenant_id"] == "outer"

    def test_bind_restores_none(self):
        assert "transfer_id" not in LogContext.get_all()
        with LogContext.bind(transfer_id="temp"):
            assert LogContext.get_all()["transfer_id"] == "temp"
        assert "transfer_id" not in LogContext.get_all()

    def test_bind_stringifies_and_ignores_unknown_fields(self):
        uid = uuid4()
        with LogContext.bind(transfer_id=uid, producer="ignored"):
            ctx = LogContext.get_all()
        assert ctx == {"transfer_id": str(uid)}

    def test_additive_set(self):
        LogContext.set(tenant_id="a")
        LogContext.set(actor_id="b")
        ctx = LogContext.get_all()
        assert ctx["tenant_id"] == "a"
        assert ctx["actor_id"] == "b"

    def test_all_fields(self):
        LogContext.set(
            correlation_id="c",
            request_id="r",
            tenant_id="t",
            actor_id="a",
            transfer_id="x",
        )
        ctx = LogContext.get_all()
        assert len(ctx) == 5
        assert ctx["request_id"] == "r"


# ---------------------------------------------------------------------------
# configure_logging tests
# ---------------------------------------------------------------------------


class TestConfigureLogging:
    """Tests for initialization."""

    def test_idempotent(self):
        h1, _ = _make_handler()
        configure_logging(handler=h1)
        h2, _ = _make_handler()
        configure_logging(handler=h2)  # second call is no-op
        handlers = logging.getLogger("transfer_kernel").handlers
        assert h1 in handlers
        assert h2 not in handlers

    def test_get_logger_returns_child(self):
        assert get_logger("services.approval").name == "transfer_kernel.services.approval"

    def test_logger_hierarchy(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler, level=logging.DEBUG)
        get_logger("deep.nested.module").debug("hierarchy_test")

        record = _parse_log(stream)
        assert record["message"] == "hierarchy_test"
        assert record["logger"] == "transfer_kernel.deep.nested.module"

    def test_kernel_error_serializes_to_dict(self):
        err = TransferNotFoundError("trf-1")
        assert err.to_dict() == {
            "kind": "not_found",
            "code": "TRANSFER_NOT_FOUND",
            "message": "Transfer not found: trf-1",
            "details": {"transfer_id": "trf-1"},
        }
