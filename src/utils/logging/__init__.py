"""
Structured logging for the table synchronization client

Provides console or JSON formatted logging, optional rotating log files,
and a context logger that stamps every record with endpoint details.

Usage:
    from utils.logging import setup_logging, get_logger

    # Setup logging (call once at process startup)
    setup_logging(level="INFO", log_file="/var/log/tablesync/sync.log")

    logger = get_logger(__name__)
    logger.info("Sync started", extra={"table": "people", "role": "dest"})
"""

from .config import configure_from_env, get_logger, setup_logging, shutdown_logging
from .formatters import ConsoleFormatter, JSONFormatter
from .handlers import ContextLogger

__all__ = [
    "setup_logging",
    "get_logger",
    "configure_from_env",
    "shutdown_logging",
    "JSONFormatter",
    "ConsoleFormatter",
    "ContextLogger",
]
