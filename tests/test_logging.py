"""Tests for the structured logging system (insights_kernel/logging_config.py)."""

import json
import logging
from decimal import Decimal
from io import StringIO
from uuid import uuid4

import pytest

from insights_kernel.exceptions import QueryFailure
from insights_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    get_logger,
)


def _make_handler() -> tuple[logging.Handler, StringIO]:
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    return handler, stream


def _parse_all_logs(stream: StringIO) -> list[dict]:
    return [json.loads(line) for line in stream.getvalue().splitlines() if line]


# ---------------------------------------------------------------------------
# StructuredFormatter
# ---------------------------------------------------------------------------


class TestStructuredFormatter:
    def test_one_json_object_per_line(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        logger = get_logger("batch.executor")
        logger.info("batch_run_started")
        logger.warning("key_group_failed", extra={"group_index": 2})
        logger.debug("aggregate_started")

        logs = _parse_all_logs(stream)
        # DEBUG is below the default INFO level
        assert [r["message"] for r in logs] == ["batch_run_started", "key_group_failed"]
        assert logs[0]["level"] == "INFO"
        assert logs[0]["logger"] == "insights.batch.executor"
        assert logs[1]["group_index"] == 2
        assert all("ts" in r for r in logs)

    def test_run_context_fields(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        with LogContext.bind(run_id="run-1", report_name="daily", strategy="pre-aggregation"):
            get_logger("test").info("batch_processed")

        [record] = _parse_all_logs(stream)
        assert record["run_id"] == "run-1"
        assert record["report_name"] == "daily"
        assert record["strategy"] == "pre-aggregation"
        assert "collection" not in record

    def test_uuid_and_decimal_serialized(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        uid = uuid4()
        get_logger("test").info("values", extra={"run": uid, "amount": Decimal("1.50")})

        [record] = _parse_all_logs(stream)
        assert record["run"] == str(uid)
        assert record["amount"] == "1.50"

    def test_insights_error_fields_extracted(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        try:
            raise QueryFailure("daily", "transaction", "page", 1, batch_index=1)
        except QueryFailure:
            get_logger("test").error("run_aborted", exc_info=True)

        [record] = _parse_all_logs(stream)
        assert record["exc_type"] == "QueryFailure"
        assert record["exc_code"] == "QUERY_FAILURE"
        assert record["exc_stage"] == "page"
        assert record["exc_batches_processed"] == 1
        assert "traceback" in record


# ---------------------------------------------------------------------------
# LogContext
# ---------------------------------------------------------------------------


class TestLogContext:
    def test_nested_bind_is_additive(self):
        with LogContext.bind(run_id="r"):
            with LogContext.bind(collection="transaction"):
                assert LogContext.get_all() == {"run_id": "r", "collection": "transaction"}
            assert LogContext.get_all() == {"run_id": "r"}

    def test_none_values_leave_field_untouched(self):
        with LogContext.bind(report_name="outer"):
            with LogContext.bind(report_name=None, strategy="post-aggregation"):
                assert LogContext.get_all() == {
                    "report_name": "outer",
                    "strategy": "post-aggregation",
                }

    def test_clear(self):
        with LogContext.bind(run_id="r"):
            LogContext.clear()
            assert LogContext.get_all() == {}

    def test_bind_restores_previous(self):
        with LogContext.bind(report_name="outer"):
            with LogContext.bind(report_name="inner"):
                assert LogContext.get_all()["report_name"] == "inner"
            assert LogContext.get_all()["report_name"] == "outer"
        assert LogContext.get_all() == {}

    def test_bind_restores_on_error(self):
        try:
            with LogContext.bind(run_id="temp"):
                raise RuntimeError
        except RuntimeError:
            pass
        assert "run_id" not in LogContext.get_all()

    def test_unknown_field_rejected(self):
        with pytest.raises(TypeError, match="batch_size"):
            LogContext.bind(batch_size="10")


# ---------------------------------------------------------------------------
# configure_logging
# ---------------------------------------------------------------------------


class TestConfigureLogging:
    def test_idempotent(self):
        h1, _ = _make_handler()
        configure_logging(handler=h1)
        h2, _ = _make_handler()
        configure_logging(handler=h2)
        assert logging.getLogger("insights").handlers == [h1]

    def test_debug_level(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler, level=logging.DEBUG)
        get_logger("db.mongo").debug("aggregate_started")

        [record] = _parse_all_logs(stream)
        assert record["logger"] == "insights.db.mongo"

    def test_stream_used_without_handler(self):
        stream = StringIO()
        configure_logging(stream=stream)
        get_logger("test").info("report_saved")

        [record] = _parse_all_logs(stream)
        assert record["message"] == "report_saved"
