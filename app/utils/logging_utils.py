"""
Logging Utilities

This module provides centralized logging configuration for the FastAPI
application. It ensures consistent log formatting with request ID tracing
across all operations, including the background sweep and subprocess calls.
"""
import logging
from typing import Optional, Union


LOGGER_NAME = "downloader"


class RequestIdFilter(logging.Filter):
    """Give records logged outside a request a placeholder request_id."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "request_id"):
            record.request_id = "-"
        return True


def setup_logger(
    log_level: Union[int, str] = logging.INFO,
    logger_name: str = LOGGER_NAME
) -> logging.Logger:
    """
    Configure the application logger.

    Args:
        log_level: Logging level constant or name ("DEBUG", "INFO", ...).
                  Defaults to logging.INFO.
        logger_name: Name for the logger instance. Defaults to "downloader".

    Returns:
        Configured Logger instance ready for use with get_request_logger().

    Example:
        >>> logger = setup_logger(log_level="DEBUG")
        >>> request_logger = get_request_logger("a1b2c3d4")
        >>> request_logger.info("Download started")
        2025-12-22 10:30:45 | INFO | [a1b2c3d4] Download started
    """
    if isinstance(log_level, str):
        log_level = logging.getLevelName(log_level.upper())
        if not isinstance(log_level, int):
            log_level = logging.INFO

    log_format = logging.Formatter(
        '%(asctime)s | %(levelname)s | [%(request_id)s] %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    logger = logging.getLogger(logger_name)
    logger.setLevel(log_level)

    # Prevent duplicate handlers if logger already configured
    if not logger.handlers:
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(log_format)
        console_handler.addFilter(RequestIdFilter())
        logger.addHandler(console_handler)

    return logger


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Child logger of the application logger, e.g. get_logger("ytdlp")."""
    if not name:
        return logging.getLogger(LOGGER_NAME)
    return logging.getLogger(f"{LOGGER_NAME}.{name}")


def get_request_logger(
    request_id: str,
    base_logger: Optional[logging.Logger] = None
) -> logging.LoggerAdapter:
    """
    Create a logger adapter with the request ID for tracing.

    The LoggerAdapter injects the request_id into all log messages, enabling
    end-to-end tracing of a single request through probing, extraction and
    streaming.
    """
    if base_logger is None:
        base_logger = logging.getLogger(LOGGER_NAME)

    return logging.LoggerAdapter(base_logger, {"request_id": request_id})
