"""Tests for logging configuration."""

import logging

import pytest

from erp_sync_core.exceptions import clear_correlation_id, set_correlation_id
from erp_sync_core.utils.logger import (
    LOGGER_NAME,
    AzureQueueHandler,
    ContextAwareLogger,
    CorrelationIdFilter,
    configure_logging,
    get_logger,
    reset_logging,
)


@pytest.fixture(autouse=True)
def _reset_logger():
    yield
    reset_logging()


class TestContextAwareLogger:
    def test_extra_rendered_into_message_and_kept_on_record(self, caplog):
        logger = ContextAwareLogger(logging.getLogger(LOGGER_NAME))

        with caplog.at_level(logging.INFO, logger=LOGGER_NAME):
            logger.info("Order inserted", extra={"external_id": "EXT-1", "item_count": 2})

        record = caplog.records[-1]
        assert record.getMessage() == "Order inserted | external_id=EXT-1 | item_count=2"
        assert record.external_id == "EXT-1"

    def test_message_without_extra_is_unchanged(self, caplog):
        logger = ContextAwareLogger(logging.getLogger(LOGGER_NAME))

        with caplog.at_level(logging.WARNING, logger=LOGGER_NAME):
            logger.warning("Plain message")

        assert caplog.records[-1].getMessage() == "Plain message"


class TestConfigureLogging:
    def test_console_only_by_default(self):
        logger = configure_logging("test_fn", log_level="DEBUG", enable_queue=False)

        handlers = logging.getLogger(LOGGER_NAME).handlers
        assert len(handlers) == 1
        assert not isinstance(handlers[0], AzureQueueHandler)
        assert get_logger() is logger

    def test_queue_handler_added_when_enabled(self):
        configure_logging(
            "test_fn",
            log_level="INFO",
            enable_queue=True,
            queue_name="logs",
            connection_string="UseDevelopmentStorage=true",
        )

        handlers = logging.getLogger(LOGGER_NAME).handlers
        assert any(isinstance(h, AzureQueueHandler) for h in handlers)
        for handler in handlers[:]:
            if isinstance(handler, AzureQueueHandler):
                handler.log_buffer.clear()
            handler.close()
            logging.getLogger(LOGGER_NAME).removeHandler(handler)


class TestCorrelationIdFilter:
    def test_stamps_current_correlation_id(self):
        record = logging.LogRecord(LOGGER_NAME, logging.INFO, __file__, 1, "msg", None, None)
        set_correlation_id("corr-9")
        try:
            CorrelationIdFilter().filter(record)
        finally:
            clear_correlation_id()
        assert record.correlation_id == "corr-9"


class TestAzureQueueHandler:
    def test_entry_contains_context_and_correlation(self):
        handler = AzureQueueHandler(queue_name="logs", connection_string="UseDevelopmentStorage=true")
        record = logging.LogRecord(LOGGER_NAME, logging.ERROR, __file__, 10, "boom", None, None)
        record.correlation_id = "corr-1"
        record.external_id = "EXT-1"

        entry = handler.build_entry(record)

        assert entry["level"] == "ERROR"
        assert entry["message"] == "boom"
        assert entry["correlation_id"] == "corr-1"
        assert entry["context"] == {"external_id": "EXT-1"}

    def test_buffers_until_batch_size(self, monkeypatch):
        monkeypatch.delenv("AzureWebJobsStorage", raising=False)
        handler = AzureQueueHandler(queue_name="logs", connection_string="", batch_size=5)
        record = logging.LogRecord(LOGGER_NAME, logging.INFO, __file__, 1, "msg", None, None)

        handler.emit(record)
        handler.emit(record)

        # No connection string: flush keeps the buffer
        handler.flush()
        assert len(handler.log_buffer) == 2
