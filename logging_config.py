"""
Centralized logging configuration for the document delivery admin.

Deliveries run in worker threads (one per single-order send, one per batch),
so every log line carries the name of the thread that wrote it. That is
what ties a provider error back to the order it belongs to.

Features:
    - Thread name in every log message
    - Console output (always enabled)
    - Rotating file logs (optional, for production)
    - Separate error log for ERROR/CRITICAL messages
    - Per-order loggers for delivery workers

Log Format:
    2026-10-19 10:15:30 [INFO    ] [MainThread] doc_delivery.app - Starting application
    2026-10-19 10:15:31 [INFO    ] [Deliver-1f3a9c2e] doc_delivery.order.1f3a9c2e - Sending
    2026-10-19 10:15:32 [ERROR   ] [Batch] doc_delivery.services.email_service - Send failed

Usage:
    # At application startup
    from logging_config import setup_logging, get_logger

    setup_logging(log_level=logging.INFO, enable_file_logging=True)

    # In modules
    logger = get_logger(__name__)

    # In delivery workers
    order_logger = get_delivery_logger(order_id)
"""

import logging
import sys
import threading
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional


APP_LOGGER_NAME = "doc_delivery"


# =============================================================================
# THREAD CONTEXT FILTER
# =============================================================================

class ThreadContextFilter(logging.Filter):
    """
    Stamps thread_name and thread_id onto every record.

    Used by the format string to show which worker wrote the line.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        current_thread = threading.current_thread()
        record.thread_name = current_thread.name
        record.thread_id = threading.get_ident()

        # Context only; never drops a record
        return True


# =============================================================================
# LOGGING SETUP
# =============================================================================

def setup_logging(
    app_name: str = APP_LOGGER_NAME,
    log_level: int = logging.INFO,
    log_dir: Optional[Path] = None,
    enable_file_logging: bool = True,
) -> logging.Logger:
    """
    Configure application logging with thread context.

    This sets up:
    1. Console handler (always enabled)
    2. Rotating file handler (optional)
    3. Error file handler (optional) - ERROR/CRITICAL only
    4. Thread context filter on every handler

    Args:
        app_name: Name of the application root logger
        log_level: Minimum log level (default: INFO)
        log_dir: Directory for log files (default: ./logs next to this file)
        enable_file_logging: Whether to write to log files (default: True)

    Returns:
        Configured application root logger
    """
    logger = logging.getLogger(app_name)
    logger.setLevel(log_level)
    logger.propagate = False

    # Allows re-configuration (app factory may run more than once in tests)
    logger.handlers.clear()

    formatter = logging.Formatter(
        fmt="%(asctime)s [%(levelname)-8s] [%(thread_name)s] %(name)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )
    thread_filter = ThreadContextFilter()

    # ---------------------------------------------------------------------
    # Console Handler (always enabled)
    # ---------------------------------------------------------------------
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(formatter)
    console_handler.addFilter(thread_filter)
    logger.addHandler(console_handler)

    # ---------------------------------------------------------------------
    # File Handlers (optional)
    # ---------------------------------------------------------------------
    if enable_file_logging:
        if log_dir is None:
            log_dir = Path(__file__).parent / "logs"
        log_dir.mkdir(parents=True, exist_ok=True)

        app_log_file = log_dir / f"{app_name}.log"
        file_handler = RotatingFileHandler(
            filename=app_log_file,
            maxBytes=10 * 1024 * 1024,  # 10 MB per file
            backupCount=5,
            encoding="utf-8"
        )
        file_handler.setLevel(log_level)
        file_handler.setFormatter(formatter)
        file_handler.addFilter(thread_filter)
        logger.addHandler(file_handler)

        error_log_file = log_dir / f"{app_name}_error.log"
        error_handler = RotatingFileHandler(
            filename=error_log_file,
            maxBytes=10 * 1024 * 1024,
            backupCount=5,
            encoding="utf-8"
        )
        error_handler.setLevel(logging.ERROR)
        error_handler.setFormatter(formatter)
        error_handler.addFilter(thread_filter)
        logger.addHandler(error_handler)

        logger.info(f"File logging enabled: {app_log_file}")

    logger.info(f"Logging configured at level {logging.getLevelName(log_level)}")
    return logger


# =============================================================================
# LOGGER FACTORY FUNCTIONS
# =============================================================================

def get_logger(name: str) -> logging.Logger:
    """
    Get a child logger under the application namespace.

    Example:
        logger = get_logger("services.delivery_service")
        # Logger name: "doc_delivery.services.delivery_service"
    """
    if not name.startswith(APP_LOGGER_NAME):
        name = f"{APP_LOGGER_NAME}.{name}"
    return logging.getLogger(name)


def get_delivery_logger(order_id: str) -> logging.Logger:
    """
    Get a logger for one order's delivery.

    Only the first 8 characters of the order id are used in the name,
    e.g. "doc_delivery.order.1f3a9c2e".
    """
    short_id = order_id[:8]
    return logging.getLogger(f"{APP_LOGGER_NAME}.order.{short_id}")


def set_thread_name(name: str) -> None:
    """Rename the current thread; shows up in the [thread_name] log field."""
    threading.current_thread().name = name
