"""Centralized logging configuration for order email parsing.

This module provides structured logging with context fields for the
classification and extraction pipeline. Logs always go to the console;
rotating files are added when LOG_DIR is set.

Usage:
    from mail_orders.logging_config import get_logger

    logger = get_logger(__name__)
    logger.info("Routing email", extra={'email_id': email.id, 'retailer': 'Coolblue'})
"""

import logging
import os
from logging.handlers import RotatingFileHandler

# Log directory from environment; file logging is disabled when unset
LOG_DIR = os.getenv("LOG_DIR", "")


class StructuredFormatter(logging.Formatter):
    """Custom formatter that adds context fields to log records.

    Supports the following context fields via extra={} parameter:
    - email_id: Message ID from the mailbox provider
    - retailer: Resolved retailer name
    - parse_method: regex, ai or hybrid
    - language: Detected language code
    """

    def format(self, record):
        """Format log record with context fields."""
        record.email_id = getattr(record, "email_id", None)
        record.retailer = getattr(record, "retailer", None)
        record.parse_method = getattr(record, "parse_method", None)
        record.language = getattr(record, "language", None)

        return super().format(record)


def get_logger(name: str) -> logging.Logger:
    """Get configured logger for order parsing.

    Creates a logger with:
    - Console handler (INFO level)
    - Rotating file handler for all logs (DEBUG level, only with LOG_DIR)
    - Separate error file handler (ERROR level, only with LOG_DIR)

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured logging.Logger instance
    """
    logger = logging.getLogger(name)

    # Skip if already configured (prevents duplicate handlers)
    if logger.handlers:
        return logger

    logger.setLevel(logging.DEBUG)
    logger.propagate = False

    console = logging.StreamHandler()
    console.setLevel(logging.INFO)
    console.setFormatter(
        StructuredFormatter("[%(levelname)s] [email:%(email_id)s] %(message)s")
    )
    logger.addHandler(console)

    if not LOG_DIR:
        return logger

    os.makedirs(LOG_DIR, exist_ok=True)
    file_format = StructuredFormatter(
        "[%(asctime)s] [%(levelname)s] [%(name)s] "
        "[email:%(email_id)s retailer:%(retailer)s method:%(parse_method)s "
        "lang:%(language)s] %(message)s"
    )

    # ========================================
    # File Handler (rotating, all levels)
    # ========================================
    file_handler = RotatingFileHandler(
        os.path.join(LOG_DIR, "order_parsing.log"),
        maxBytes=10 * 1024 * 1024,  # 10MB per file
        backupCount=30,
        encoding="utf-8",
    )
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(file_format)
    logger.addHandler(file_handler)

    # ========================================
    # Error File Handler (errors only)
    # ========================================
    error_handler = RotatingFileHandler(
        os.path.join(LOG_DIR, "order_parsing_errors.log"),
        maxBytes=10 * 1024 * 1024,
        backupCount=30,
        encoding="utf-8",
    )
    error_handler.setLevel(logging.ERROR)
    error_handler.setFormatter(file_format)
    logger.addHandler(error_handler)

    return logger
