"""
Centralized logging configuration for the PDF conversion service.

Provides structured logging with batch_id tagging so that all lines emitted
while converting one batch of URLs can be correlated.
"""

import json
import logging
import sys
from typing import Optional


class ConversionLogger:
    """
    Structured logger for conversion batches.

    Adds contextual information like batch_id to all log messages.
    """

    def __init__(self, name: str, batch_id: Optional[str] = None):
        """
        Initialize conversion logger.

        Args:
            name: Logger name (usually __name__)
            batch_id: Optional batch identifier for correlation
        """
        self.logger = logging.getLogger(name)
        self.batch_id = batch_id

    def _format_message(self, message: str) -> str:
        """Add contextual prefix to message."""
        if self.batch_id:
            return f"[batch:{self.batch_id[:8]}] {message}"
        return message

    def debug(self, message: str, **kwargs):
        self.logger.debug(self._format_message(message), **kwargs)

    def info(self, message: str, **kwargs):
        self.logger.info(self._format_message(message), **kwargs)

    def warning(self, message: str, **kwargs):
        self.logger.warning(self._format_message(message), **kwargs)

    def error(self, message: str, **kwargs):
        self.logger.error(self._format_message(message), **kwargs)

    def exception(self, message: str, **kwargs):
        """Log exception with traceback."""
        self.logger.exception(self._format_message(message), **kwargs)


class JsonFormatter(logging.Formatter):
    """One JSON object per line, for log aggregators."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "time": self.formatTime(record),
            "level": record.levelname,
            "name": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            entry["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(entry)


def setup_logging(level: str = "INFO", format: str = "simple") -> None:
    """
    Configure global logging settings.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        format: Log format ("simple" or "json")
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    # Remove existing handlers
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(log_level)

    if format == "json":
        formatter = JsonFormatter()
    else:
        formatter = logging.Formatter(
            "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S"
        )

    handler.setFormatter(formatter)
    root_logger.addHandler(handler)
    root_logger.setLevel(log_level)


def get_logger(name: str, batch_id: Optional[str] = None) -> ConversionLogger:
    """
    Get a conversion logger instance.

    Args:
        name: Logger name (usually __name__)
        batch_id: Optional batch identifier

    Returns:
        ConversionLogger instance
    """
    return ConversionLogger(name, batch_id)
