"""Async client for OpenStack Swift object storage."""

__version__ = "0.1.0"

from swiftstore.account import Account
from swiftstore.bulk import BulkResponse, parse_bulk_response
from swiftstore.capabilities import Capabilities
from swiftstore.common.exceptions import (
    BulkError,
    BulkObjectError,
    ChecksumMismatchError,
    DownloadConsumedError,
    ErrorCategory,
    InvalidObjectNameError,
    MalformedContainerNameError,
    MalformedHeaderError,
    MalformedResponseError,
    NoContainerNameError,
    NotLargeObjectError,
    NotSupportedError,
    PipeClosedError,
    SwiftError,
    UnexpectedStatusCodeError,
    ValidationError,
    is_status,
)
from swiftstore.config import SwiftConfig
from swiftstore.container import Container
from swiftstore.download import DownloadedObject, DownloadStream
from swiftstore.headers import AccountHeaders, ContainerHeaders, Headers, ObjectHeaders
from swiftstore.large_object import LargeObject, SegmentInfo, SegmentingStrategy
from swiftstore.listing import ContainerInfo, ObjectInfo
from swiftstore.object import Object
from swiftstore.request import Request, RequestOptions, Response
from swiftstore.transport import AiohttpTransport, Transport, TransportResponse
from swiftstore.upload import UploadResult, UploadWriter

__all__ = [
    "__version__",
    # Entities
    "Account",
    "Container",
    "Object",
    "LargeObject",
    "SegmentInfo",
    "SegmentingStrategy",
    # Headers
    "Headers",
    "AccountHeaders",
    "ContainerHeaders",
    "ObjectHeaders",
    # Requests and transport
    "Request",
    "RequestOptions",
    "Response",
    "Transport",
    "TransportResponse",
    "AiohttpTransport",
    "SwiftConfig",
    # Payloads
    "DownloadedObject",
    "DownloadStream",
    "UploadResult",
    "UploadWriter",
    "Capabilities",
    "ContainerInfo",
    "ObjectInfo",
    "BulkResponse",
    "parse_bulk_response",
    # Errors
    "SwiftError",
    "ErrorCategory",
    "ValidationError",
    "NoContainerNameError",
    "MalformedContainerNameError",
    "InvalidObjectNameError",
    "UnexpectedStatusCodeError",
    "MalformedHeaderError",
    "MalformedResponseError",
    "ChecksumMismatchError",
    "NotSupportedError",
    "NotLargeObjectError",
    "DownloadConsumedError",
    "PipeClosedError",
    "BulkObjectError",
    "BulkError",
    "is_status",
]
