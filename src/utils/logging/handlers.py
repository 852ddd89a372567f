"""
Logger wrappers.

Provides ContextLogger for stamping endpoint details onto log records.
"""

import logging


class ContextLogger:
    """
    Logger wrapper that adds contextual information to all log messages

    Usage:
        logger = ContextLogger("tablesync.client", table="people", role="dest")
        logger.info("Committed batch", pending=500)
        # Record carries table, role and pending as extra fields
    """

    def __init__(self, name: str, **context):
        self.logger = logging.getLogger(name)
        self.context = context

    def log(self, level: int, msg: str, *args, exc_info=None, **kwargs) -> None:
        """Log at an explicit level, merging stored and per-call context."""
        extra = {**self.context, **kwargs}
        self.logger.log(level, msg, *args, exc_info=exc_info, extra=extra)

    def debug(self, msg: str, *args, **kwargs) -> None:
        self.log(logging.DEBUG, msg, *args, **kwargs)

    def info(self, msg: str, *args, **kwargs) -> None:
        self.log(logging.INFO, msg, *args, **kwargs)

    def warning(self, msg: str, *args, **kwargs) -> None:
        self.log(logging.WARNING, msg, *args, **kwargs)

    def error(self, msg: str, *args, exc_info=None, **kwargs) -> None:
        self.log(logging.ERROR, msg, *args, exc_info=exc_info, **kwargs)

    def update_context(self, **context) -> None:
        """Update the context for this logger."""
        self.context.update(context)
