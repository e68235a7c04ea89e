"""
Unit tests for contextual logging.
"""

import logging

from mdb_context.observability.logging import (clear_correlation_id, clear_entity_context,
                                               get_correlation_id, get_logger,
                                               get_logging_context, log_operation,
                                               set_correlation_id, set_entity_context)


class TestCorrelationId:
    def test_generated_when_missing(self):
        correlation_id = set_correlation_id()
        assert correlation_id
        assert get_correlation_id() == correlation_id

    def test_explicit_and_cleared(self):
        set_correlation_id("req-1")
        assert get_logging_context()["correlation_id"] == "req-1"
        clear_correlation_id()
        assert "correlation_id" not in get_logging_context()


class TestEntityContext:
    def test_set_and_clear(self):
        set_entity_context("Order", operation="save")
        context = get_logging_context()
        assert context["entity_type"] == "Order"
        assert context["operation"] == "save"
        clear_entity_context()
        assert "entity_type" not in get_logging_context()

    def test_token_restores_outer_context(self):
        outer = set_entity_context("Order", operation="save")
        inner = set_entity_context("ActivityRecord", operation="save")
        assert get_logging_context()["entity_type"] == "ActivityRecord"

        clear_entity_context(inner)
        assert get_logging_context()["entity_type"] == "Order"

        clear_entity_context(outer)
        assert "entity_type" not in get_logging_context()


class TestContextualLogger:
    def test_adapter_adds_context(self, caplog):
        set_correlation_id("req-2")
        logger = get_logger("mdb_context.test")
        with caplog.at_level(logging.INFO, logger="mdb_context.test"):
            logger.info("hello")

        record = caplog.records[-1]
        assert record.correlation_id == "req-2"

    def test_log_operation_failure_message(self, caplog):
        logger = logging.getLogger("mdb_context.test.ops")
        with caplog.at_level(logging.WARNING, logger="mdb_context.test.ops"):
            log_operation(
                logger, "insert_many", level=logging.WARNING, success=False, duration_ms=12.5
            )

        record = caplog.records[-1]
        assert record.getMessage() == "Operation failed: insert_many (duration: 12.50ms)"
        assert record.duration_ms == 12.5
        assert record.success is False
