"""
Exception types and error classification for swiftstore.

Provides:
- ErrorCategory enum for callers that implement their own retry policy
- Typed exception hierarchy for local validation, status, header,
  integrity, bulk and usage errors
- is_status() for matching an unexpected-status error against one code
"""

from enum import Enum
from http import HTTPStatus
from typing import Any, Iterable, Mapping, Optional, Sequence, Tuple


class ErrorCategory(Enum):
    """
    Classification of error types for handling decisions.

    The library never retries on its own; the category only tells callers
    whether retrying could plausibly help.

    Categories:
        TRANSIENT: Temporary failures (5xx, 429)
        AUTH: Authentication failures (401, expired tokens)
        PERMANENT: Failures that won't succeed on retry (404, 4xx, local
                   validation, checksum mismatch)
        UNKNOWN: Unclassified errors
    """

    TRANSIENT = "transient"
    AUTH = "auth"
    PERMANENT = "permanent"
    UNKNOWN = "unknown"


def status_text(status_code: int) -> str:
    """Return the standard reason phrase for a status code, or ""."""
    try:
        return HTTPStatus(status_code).phrase
    except ValueError:
        return ""


class SwiftError(Exception):
    """
    Base exception for all swiftstore errors.

    Attributes:
        message: Human-readable error description
        category: Error classification for retry decisions
        cause: Original exception if wrapping
        context: Additional context dict for debugging
    """

    category: ErrorCategory = ErrorCategory.UNKNOWN

    def __init__(
        self,
        message: str,
        cause: Optional[Exception] = None,
        context: Optional[dict] = None,
    ):
        self.message = message
        self.cause = cause
        self.context = context or {}
        super().__init__(message)

    @property
    def is_retryable(self) -> bool:
        """Whether retrying the same request could succeed."""
        return self.category in (
            ErrorCategory.TRANSIENT,
            ErrorCategory.AUTH,
            ErrorCategory.UNKNOWN,
        )

    def __str__(self) -> str:
        parts = [self.message]
        if self.cause:
            parts.append(f"Caused by: {self.cause}")
        return " | ".join(parts)


# =============================================================================
# Local Validation Errors (zero I/O)
# =============================================================================


class ValidationError(SwiftError):
    """Base class for errors detected before any request is sent."""

    category = ErrorCategory.PERMANENT


class NoContainerNameError(ValidationError):
    """An object name was given, but the container name is missing or empty."""

    def __init__(self, context: Optional[dict] = None):
        super().__init__("missing container name", context=context)


class MalformedContainerNameError(ValidationError):
    """The container name contains a slash."""

    def __init__(self, container_name: str):
        super().__init__(
            "container name may not contain slashes",
            context={"container_name": container_name},
        )
        self.container_name = container_name


class InvalidObjectNameError(ValidationError):
    """The object name is empty."""

    def __init__(self, container_name: str):
        super().__init__(
            "object name may not be empty",
            context={"container_name": container_name},
        )


# =============================================================================
# Response Errors
# =============================================================================


class UnexpectedStatusCodeError(SwiftError):
    """
    A response did not carry one of the expected status codes.

    Attributes:
        expected_status: Status codes that would have been accepted
        status_code: Actual response status
        headers: Actual response headers
        response_body: Captured (bounded) response body, for diagnostics only
    """

    def __init__(
        self,
        expected_status: Sequence[int],
        status_code: int,
        headers: Optional[Mapping[str, str]] = None,
        response_body: bytes = b"",
    ):
        self.expected_status: Tuple[int, ...] = tuple(expected_status)
        self.status_code = status_code
        self.headers = headers if headers is not None else {}
        self.response_body = response_body

        expected = "/".join(str(code) for code in self.expected_status)
        message = f"expected {expected} response, got {status_code} instead"
        if response_body:
            message += ": " + response_body.decode("utf-8", errors="replace")
        super().__init__(message, context={"http_status": status_code})
        self.category = classify_http_status(status_code)


class MalformedHeaderError(SwiftError):
    """A successful response contained a header that could not be decoded."""

    category = ErrorCategory.PERMANENT

    def __init__(self, key: str, cause: Exception):
        super().__init__(f"Bad header {key}: {cause}", context={"header": key})
        self.key = key
        self.parse_error = cause

    def __str__(self) -> str:
        return self.message


class MalformedResponseError(SwiftError):
    """A successful response carried a body that could not be decoded."""

    category = ErrorCategory.PERMANENT

    def __init__(self, what: str, cause: Exception):
        super().__init__(f"Bad {what} in response body", cause=cause)
        self.what = what


class ChecksumMismatchError(SwiftError):
    """The Etag of an uploaded object does not match the MD5 of the data sent."""

    category = ErrorCategory.PERMANENT

    def __init__(self, expected: str, actual: str):
        super().__init__(
            "Etag on uploaded object does not match MD5 checksum of uploaded data",
            context={"expected_etag": expected, "actual_etag": actual},
        )
        self.expected = expected
        self.actual = actual


class NotSupportedError(SwiftError):
    """The server does not support the requested operation."""

    category = ErrorCategory.PERMANENT

    def __init__(self, feature: str):
        super().__init__(
            "operation not supported by this Swift server",
            context={"feature": feature},
        )
        self.feature = feature

    def __str__(self) -> str:
        return self.message


class NotLargeObjectError(SwiftError):
    """The object is neither a static nor a dynamic large object."""

    category = ErrorCategory.PERMANENT

    def __init__(self, full_name: str):
        super().__init__(f"{full_name} is not a large object")
        self.full_name = full_name


# =============================================================================
# Usage Errors
# =============================================================================


class DownloadConsumedError(SwiftError):
    """A second projection was requested from the same download."""

    category = ErrorCategory.PERMANENT

    def __init__(self) -> None:
        super().__init__("download body has already been consumed")


class PipeClosedError(SwiftError):
    """Write to an upload pipe whose reading side has gone away."""

    category = ErrorCategory.PERMANENT

    def __init__(self, cause: Optional[Exception] = None):
        super().__init__("write to closed upload pipe", cause=cause)


# =============================================================================
# Bulk Errors
# =============================================================================


class BulkObjectError(SwiftError):
    """
    Error for a single object in a bulk operation.

    Only ever produced as part of a BulkError.
    """

    category = ErrorCategory.PERMANENT

    def __init__(self, container_name: str, object_name: str, status_code: int):
        self.container_name = container_name
        self.object_name = object_name
        self.status_code = status_code
        super().__init__(
            f"{container_name}/{object_name}: {status_code} {status_text(status_code)}"
        )

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, BulkObjectError):
            return NotImplemented
        return (self.container_name, self.object_name, self.status_code) == (
            other.container_name,
            other.object_name,
            other.status_code,
        )

    def __hash__(self) -> int:
        return hash((self.container_name, self.object_name, self.status_code))

    def __repr__(self) -> str:
        return (
            f"BulkObjectError({self.container_name!r}, {self.object_name!r}, "
            f"{self.status_code})"
        )


class BulkError(SwiftError):
    """
    A bulk upload or bulk delete finished with some (or all) items failing.

    The message condenses object errors into a count so that it fits on one
    line; the full detail stays available on the attributes.

    Attributes:
        status_code: Overall status of the operation
        archive_error: Archive-level error text (may be empty)
        object_errors: Per-object failures (may be empty)
    """

    def __init__(
        self,
        status_code: int,
        archive_error: str = "",
        object_errors: Optional[Iterable[BulkObjectError]] = None,
    ):
        self.status_code = status_code
        self.archive_error = archive_error
        self.object_errors = list(object_errors or [])

        message = f"{status_code} {status_text(status_code)}"
        if archive_error:
            message += ": " + archive_error
        if self.object_errors:
            message += f" (+{len(self.object_errors)} object errors)"
        super().__init__(message, context={"http_status": status_code})
        self.category = classify_http_status(status_code)


# =============================================================================
# Error Classification Utilities
# =============================================================================


def classify_http_status(status_code: int) -> ErrorCategory:
    """
    Classify HTTP status code into error category.

    Args:
        status_code: HTTP response status

    Returns:
        Appropriate ErrorCategory
    """
    if 200 <= status_code < 300:
        return ErrorCategory.UNKNOWN  # Not an error

    if status_code == 401:
        return ErrorCategory.AUTH

    if status_code in (408, 429):
        return ErrorCategory.TRANSIENT

    if 400 <= status_code < 500:
        return ErrorCategory.PERMANENT

    if status_code >= 500:
        return ErrorCategory.TRANSIENT

    return ErrorCategory.UNKNOWN


def is_status(err: Optional[BaseException], code: int) -> bool:
    """
    Check whether err is an UnexpectedStatusCodeError for exactly this code.

    Example:
        try:
            await container.delete()
        except SwiftError as e:
            if not is_status(e, 404):
                raise
            # container does not exist -> just what we wanted

    Args:
        err: Any exception (or None)
        code: HTTP status code to match

    Returns:
        True only if err is an unexpected-status error with that actual status
    """
    if isinstance(err, UnexpectedStatusCodeError):
        return err.status_code == code
    return False
