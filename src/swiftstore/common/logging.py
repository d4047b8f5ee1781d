"""
Logging utilities for swiftstore.

The library only emits DEBUG records (requests, cache activity). Handlers and
formatting are left to the application.
"""

import logging
from typing import Any, Dict, Optional


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Logger instance
    """
    return logging.getLogger(name)


def log_with_context(
    logger: logging.Logger,
    level: int,
    msg: str,
    **kwargs: Any,
) -> None:
    """
    Log with structured context fields.

    Args:
        logger: Logger instance
        level: Log level (logging.DEBUG, etc.)
        msg: Log message
        **kwargs: Additional context fields (http_method, http_status, ...)

    Example:
        log_with_context(
            logger, logging.DEBUG, "Swift request",
            http_method="HEAD",
            path="/photos",
            http_status=204,
        )
    """
    if logger.isEnabledFor(level):
        logger.log(level, msg, extra=kwargs)


def _extract_instance_context(obj: Any) -> Dict[str, Any]:
    """
    Extract loggable context from instance attributes.

    Looks for the identifiers that entity handles carry.
    """
    ctx: Dict[str, Any] = {}

    for attr in ["account_name", "container_name", "object_name"]:
        value = getattr(obj, attr, None)
        if value is not None:
            ctx[attr] = value

    return ctx


class LoggedClass:
    """
    Mixin providing logging infrastructure for classes.

    Provides:
    - self._logger: Logger instance
    - self._log(): Log with auto-extracted context

    Example:
        class Container(LoggedClass):
            def __init__(self, account, name):
                self.container_name = name
                super().__init__()

            def invalidate(self):
                self._log(logging.DEBUG, "Dropping cached headers")
    """

    log_component: Optional[str] = None  # Optional logger name suffix

    def __init__(self, *args, **kwargs):
        logger_name = self.__class__.__module__
        if self.log_component:
            logger_name = f"{logger_name}.{self.log_component}"
        self._logger = get_logger(logger_name)
        super().__init__(*args, **kwargs)

    def _log(self, level: int, msg: str, **extra: Any) -> None:
        """
        Log with automatic context extraction from instance.

        Args:
            level: Log level
            msg: Log message
            **extra: Additional context fields
        """
        context = _extract_instance_context(self)
        context.update(extra)
        log_with_context(self._logger, level, msg, **context)
