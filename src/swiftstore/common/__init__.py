"""Infrastructure shared by all swiftstore modules: errors and logging."""

from swiftstore.common.exceptions import ErrorCategory, SwiftError, is_status
from swiftstore.common.logging import LoggedClass, get_logger, log_with_context

__all__ = [
    "ErrorCategory",
    "LoggedClass",
    "SwiftError",
    "get_logger",
    "is_status",
    "log_with_context",
]
