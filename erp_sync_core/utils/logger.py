"""
Logging for the ERP sync core.

- ContextAwareLogger renders ``extra`` attributes into the console line as
  pipe-delimited ``key=value`` pairs while keeping them on the record.
- CorrelationIdFilter stamps the current sync run's correlation id.
- AzureQueueHandler optionally ships structured entries to a storage queue.
"""

import logging
import os
import sys
import traceback
from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from azure.storage.queue import QueueClient

from ..config import get_config
from ..exceptions import get_correlation_id
from .json_utils import dumps

LOGGER_NAME = "erp_sync_core"

_function_logger = None

_STANDARD_RECORD_FIELDS = {
    "name",
    "msg",
    "args",
    "levelname",
    "levelno",
    "pathname",
    "filename",
    "module",
    "exc_info",
    "exc_text",
    "stack_info",
    "lineno",
    "funcName",
    "created",
    "msecs",
    "relativeCreated",
    "thread",
    "threadName",
    "processName",
    "process",
    "taskName",
    "message",
    "correlation_id",
}


class ContextAwareLogger:
    """
    Logger wrapper that formats extra attributes in message while preserving them.

    This keeps extras visible in console output even when the host (Azure
    Functions) replaces the formatters.
    """

    def __init__(self, logger: logging.Logger):
        self.logger = logger

    def _log_with_formatted_extra(self, level: str, msg: str, **kwargs: Any) -> None:
        extra = kwargs.pop("extra", {}) or {}

        if extra:
            extra_str = " | ".join([f"{k}={v}" for k, v in extra.items()])
            full_msg = f"{msg} | {extra_str}"
        else:
            full_msg = msg

        log_method = getattr(self.logger, level)
        log_method(full_msg, extra=extra, **kwargs)

    def info(self, msg: str, **kwargs: Any) -> None:
        self._log_with_formatted_extra("info", msg, **kwargs)

    def error(self, msg: str, **kwargs: Any) -> None:
        self._log_with_formatted_extra("error", msg, **kwargs)

    def warning(self, msg: str, **kwargs: Any) -> None:
        self._log_with_formatted_extra("warning", msg, **kwargs)

    def debug(self, msg: str, **kwargs: Any) -> None:
        self._log_with_formatted_extra("debug", msg, **kwargs)

    def exception(self, msg: str, **kwargs: Any) -> None:
        self._log_with_formatted_extra("exception", msg, **kwargs)


class CorrelationIdFilter(logging.Filter):
    """Adds the current correlation id (if any) to every record."""

    def filter(self, record: logging.LogRecord) -> bool:
        correlation_id = get_correlation_id()
        if correlation_id:
            record.correlation_id = correlation_id
        return True


class AzureQueueHandler(logging.Handler):
    """
    Logging handler that batches structured log entries into an Azure Storage Queue.
    """

    def __init__(
        self,
        queue_name: str,
        connection_string: Optional[str] = None,
        batch_size: int = 10,
    ):
        super().__init__()
        self.queue_name = queue_name
        self.connection_string = connection_string or os.getenv("AzureWebJobsStorage")
        self.batch_size = batch_size
        self.log_buffer: List[Dict[str, Any]] = []

        if not self.connection_string:
            sys.stderr.write("Azure Storage connection string not provided\n")

    def build_entry(self, record: logging.LogRecord) -> Dict[str, Any]:
        """Convert a record into the JSON-serializable queue entry."""
        log_entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if hasattr(record, "correlation_id"):
            log_entry["correlation_id"] = record.correlation_id

        context = {
            key: value
            for key, value in record.__dict__.items()
            if key not in _STANDARD_RECORD_FIELDS
            and not key.startswith("_")
            and not callable(value)
        }
        if context:
            log_entry["context"] = context

        if record.exc_info and record.exc_info[0]:
            log_entry["exception"] = {
                "type": record.exc_info[0].__name__,
                "message": str(record.exc_info[1]),
                "traceback": [
                    line.rstrip() for line in traceback.format_exception(*record.exc_info)
                ],
            }

        return log_entry

    def emit(self, record: logging.LogRecord) -> None:
        try:
            self.log_buffer.append(self.build_entry(record))
            if len(self.log_buffer) >= self.batch_size:
                self.flush()
        except Exception:
            self.handleError(record)

    def flush(self) -> None:
        """Send any buffered log records to the queue."""
        if not self.log_buffer or not self.connection_string:
            return

        try:
            queue_client = QueueClient.from_connection_string(
                conn_str=self.connection_string, queue_name=self.queue_name
            )
            for log_entry in self.log_buffer:
                queue_client.send_message(dumps(log_entry))
            self.log_buffer.clear()
        except Exception as e:
            sys.stderr.write(f"Error sending logs to Azure Queue: {str(e)}\n")

    def close(self) -> None:
        self.flush()
        super().close()


def configure_logging(
    function_name: str,
    log_level: Optional[Union[int, str]] = None,
    enable_queue: Optional[bool] = None,
    queue_name: Optional[str] = None,
    connection_string: Optional[str] = None,
) -> ContextAwareLogger:
    """
    Configure logging with console and optional queue output.

    Args:
        function_name: Name of the function or command being run
        log_level: Logging level (default: from config)
        enable_queue: Whether to ship logs to the Azure queue (default: from feature flags)
        queue_name: Queue to send logs to (default: from config)
        connection_string: Azure Storage connection string (default: from config)

    Returns:
        The configured logger wrapped with ContextAwareLogger
    """
    global _function_logger

    app_config = get_config()

    if log_level is None:
        log_level = app_config.logging.level
    if enable_queue is None:
        enable_queue = app_config.features.enable_logs_queue
    if connection_string is None:
        connection_string = app_config.queue.connection_string
    if queue_name is None:
        queue_name = app_config.queue.logs_queue_name

    if isinstance(log_level, str):
        log_level = getattr(logging, log_level.upper(), logging.INFO)

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(log_level)

    for handler in logger.handlers[:]:
        logger.removeHandler(handler)

    correlation_filter = CorrelationIdFilter()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(logging.Formatter("%(message)s"))
    console_handler.addFilter(correlation_filter)
    logger.addHandler(console_handler)

    if enable_queue:
        queue_handler = AzureQueueHandler(queue_name=queue_name, connection_string=connection_string)
        queue_handler.setLevel(log_level)
        queue_handler.addFilter(correlation_filter)
        logger.addHandler(queue_handler)

    wrapped_logger = ContextAwareLogger(logger)
    wrapped_logger.info(
        "Logger configured",
        extra={
            "function_name": function_name,
            "queue_logging": enable_queue,
            "queue_name": queue_name if enable_queue else None,
        },
    )
    _function_logger = wrapped_logger
    return wrapped_logger


def get_logger() -> ContextAwareLogger:
    """
    Get the configured logger, or a wrapper around the package logger.

    Returns:
        ContextAwareLogger instance
    """
    if _function_logger is not None:
        return _function_logger

    logger = logging.getLogger(LOGGER_NAME)
    if logger.level == logging.NOTSET:
        level = get_config().logging.level
        logger.setLevel(getattr(logging, level, logging.INFO))
    return ContextAwareLogger(logger)


def reset_logging() -> None:
    """Forget the logger installed by configure_logging."""
    global _function_logger
    _function_logger = None
