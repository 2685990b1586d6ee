"""Tests for service layer structured logging.

These tests verify that production, sales and import operations emit
structured log entries with appropriate context information.
"""

import logging

import pytest

from src.services import material_transaction_service, production_service, sales_service
from src.services.exceptions import InsufficientStock
from src.services.logging_utils import configure_logging, get_service_logger, log_operation


class TestLoggingUtilities:
    """Tests for logging utility functions."""

    def test_get_service_logger_returns_logger(self):
        """get_service_logger returns a configured Logger instance."""
        logger = get_service_logger("test_module")
        assert isinstance(logger, logging.Logger)
        assert logger.name == "pack_tracker.services.test_module"

    def test_get_service_logger_extracts_module_name(self):
        """get_service_logger extracts module name from full path."""
        logger = get_service_logger("src.services.production_service")
        assert logger.name == "pack_tracker.services.production_service"

    def test_log_operation_logs_at_info_level(self, caplog):
        """log_operation logs at INFO level by default."""
        logger = get_service_logger("test")

        with caplog.at_level(logging.INFO):
            log_operation(logger, operation="test_op", outcome="success", entity_id=123)

        assert "test_op: success" in caplog.text
        assert caplog.records[0].levelno == logging.INFO

    def test_log_operation_logs_at_custom_level(self, caplog):
        """log_operation respects custom log level."""
        logger = get_service_logger("test")

        with caplog.at_level(logging.DEBUG):
            log_operation(
                logger, operation="debug_op", outcome="debug_outcome", level=logging.DEBUG
            )

        assert "debug_op: debug_outcome" in caplog.text

    def test_log_operation_includes_extra_context(self, caplog):
        """log_operation includes extra context in log records."""
        logger = get_service_logger("test")

        with caplog.at_level(logging.INFO):
            log_operation(
                logger, operation="context_test", outcome="success", product_id=42, quantity=24
            )

        assert len(caplog.records) == 1
        record = caplog.records[0]
        assert record.operation == "context_test"
        assert record.outcome == "success"
        assert record.product_id == 42
        assert record.quantity == 24

    def test_configure_logging_does_not_raise(self):
        configure_logging(logging.WARNING)


class TestServiceOperationLogging:
    """Engines log each outcome."""

    def test_produce_success_logged(self, test_db, water, caplog):
        with caplog.at_level(logging.INFO, logger="pack_tracker.services"):
            log = production_service.produce(water["id"], 2)

        records = [r for r in caplog.records if getattr(r, "operation", None) == "produce"]
        assert len(records) == 1
        assert records[0].outcome == "success"
        assert records[0].production_log_id == log["id"]
        assert records[0].quantity == 2

    def test_insufficient_stock_logged_as_warning(self, test_db, water, caplog):
        with caplog.at_level(logging.INFO, logger="pack_tracker.services"):
            with pytest.raises(InsufficientStock):
                sales_service.sell(water["id"], 1)

        records = [r for r in caplog.records if getattr(r, "operation", None) == "sell"]
        assert len(records) == 1
        assert records[0].outcome == "insufficient_stock"
        assert records[0].levelno == logging.WARNING
        assert records[0].requested == 1

    def test_import_logged(self, test_db, bottle, caplog):
        with caplog.at_level(logging.INFO, logger="pack_tracker.services"):
            material_transaction_service.import_material(bottle["id"], 5, 1)

        assert "import_material: success" in caplog.text
