"""
Request executor and status classifier.

A Request names its target by (container name, object name) relative to the
account, validates those names locally, sends the exchange through the
Transport and checks the status against the expected set. Expected sets come
from EXPECTED_STATUS unless the operation or the caller overrides them.
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple, Union
from urllib.parse import quote

from multidict import CIMultiDict, CIMultiDictProxy

from swiftstore.common.exceptions import (
    InvalidObjectNameError,
    MalformedContainerNameError,
    NoContainerNameError,
    UnexpectedStatusCodeError,
)
from swiftstore.common.logging import get_logger, log_with_context
from swiftstore.headers import Headers
from swiftstore.transport import (
    SCOPE_ACCOUNT,
    SCOPE_CLUSTER,
    RequestBody,
    ResponseStream,
    Transport,
    TransportResponse,
)

logger = get_logger(__name__)

DEFAULT_MAX_ERROR_BODY_BYTES = 4096

KIND_ACCOUNT = "account"
KIND_CONTAINER = "container"
KIND_OBJECT = "object"
KIND_CLUSTER = "cluster"

# (entity kind, method) -> acceptable status codes
EXPECTED_STATUS: Dict[Tuple[str, str], Tuple[int, ...]] = {
    (KIND_ACCOUNT, "HEAD"): (200, 204),
    (KIND_ACCOUNT, "GET"): (200, 204),
    (KIND_ACCOUNT, "PUT"): (201, 202),
    (KIND_ACCOUNT, "POST"): (204,),
    (KIND_ACCOUNT, "DELETE"): (204,),
    (KIND_CONTAINER, "HEAD"): (200, 204),
    (KIND_CONTAINER, "GET"): (200, 204),
    (KIND_CONTAINER, "PUT"): (201, 202),
    (KIND_CONTAINER, "POST"): (204,),
    (KIND_CONTAINER, "DELETE"): (204,),
    (KIND_OBJECT, "HEAD"): (200,),
    (KIND_OBJECT, "GET"): (200,),
    (KIND_OBJECT, "PUT"): (201,),
    (KIND_OBJECT, "POST"): (202,),
    (KIND_OBJECT, "DELETE"): (204,),
    (KIND_CLUSTER, "GET"): (200,),
}


@dataclass
class RequestOptions:
    """
    Per-call extras for any operation.

    Attributes:
        headers: Additional raw headers (sent after the operation's own)
        params: Additional query parameters
        expected_status: Replaces the operation's acceptable status codes
    """

    headers: Optional[Mapping[str, str]] = None
    params: Optional[Mapping[str, str]] = None
    expected_status: Optional[Sequence[int]] = None


@dataclass
class Response:
    """A checked response: headers plus either buffered content or a stream."""

    status: int
    headers: Union[CIMultiDictProxy, CIMultiDict]
    content: bytes = b""
    stream: Optional[ResponseStream] = None

    def json(self) -> Any:
        if not self.content:
            return None
        return json.loads(self.content)


async def read_bounded(stream: ResponseStream, limit: int) -> bytes:
    """Read at most ``limit`` bytes from a stream (all of it if limit < 0)."""
    if limit < 0:
        return await stream.read(-1)
    chunks = []
    remaining = limit
    while remaining > 0:
        chunk = await stream.read(remaining)
        if not chunk:
            break
        chunks.append(chunk)
        remaining -= len(chunk)
    return b"".join(chunks)


async def check_status(
    response: TransportResponse,
    expected_status: Sequence[int],
    max_body_bytes: int = DEFAULT_MAX_ERROR_BODY_BYTES,
) -> None:
    """
    Check a response against the acceptable status codes.

    On mismatch, up to ``max_body_bytes`` of the body are attached to the
    error for diagnostics and the body stream is closed.

    Raises:
        UnexpectedStatusCodeError: If the status is not acceptable
    """
    if response.status in expected_status:
        return

    body = b""
    if response.stream is not None:
        try:
            body = await read_bounded(response.stream, max_body_bytes)
        finally:
            await response.stream.close()

    raise UnexpectedStatusCodeError(
        expected_status=expected_status,
        status_code=response.status,
        headers=response.headers,
        response_body=body,
    )


@dataclass
class Request:
    """
    One request against the account, a container or an object.

    Attributes:
        method: HTTP method
        container_name: Target container (None for account requests)
        object_name: Target object (None for account/container requests)
        headers: Headers of the operation itself
        options: Caller-supplied extras
        params: Query parameters of the operation itself
        body: bytes or async iterable of bytes
        expected_status: Operation-specific acceptable codes (else the table)
        stream: Leave the body open in the returned Response
        path: Explicit path for cluster-scoped requests (e.g. "/info")
    """

    method: str
    container_name: Optional[str] = None
    object_name: Optional[str] = None
    headers: Union[Headers, Mapping[str, str], None] = None
    options: Optional[RequestOptions] = None
    params: Dict[str, str] = field(default_factory=dict)
    body: RequestBody = None
    expected_status: Optional[Sequence[int]] = None
    stream: bool = False
    path: Optional[str] = None

    @property
    def kind(self) -> str:
        if self.path is not None:
            return KIND_CLUSTER
        if self.object_name is not None:
            return KIND_OBJECT
        if self.container_name is not None:
            return KIND_CONTAINER
        return KIND_ACCOUNT

    def validate(self) -> None:
        """
        Check the target names without touching the network.

        Raises:
            NoContainerNameError: Object name without (non-empty) container name
            MalformedContainerNameError: Container name contains "/"
            InvalidObjectNameError: Empty object name
        """
        if self.path is not None:
            return
        if self.object_name is not None and not self.container_name:
            raise NoContainerNameError(context={"object_name": self.object_name})
        if self.container_name is not None:
            if self.container_name == "":
                raise NoContainerNameError()
            if "/" in self.container_name:
                raise MalformedContainerNameError(self.container_name)
        if self.object_name == "":
            raise InvalidObjectNameError(self.container_name or "")

    def url_path(self) -> str:
        if self.path is not None:
            return self.path
        if self.container_name is None:
            return ""
        path = "/" + quote(self.container_name, safe="")
        if self.object_name is not None:
            path += "/" + quote(self.object_name, safe="/")
        return path

    def resolved_expected_status(self) -> Tuple[int, ...]:
        if self.options is not None and self.options.expected_status:
            return tuple(self.options.expected_status)
        if self.expected_status:
            return tuple(self.expected_status)
        return EXPECTED_STATUS.get((self.kind, self.method.upper()), (200,))

    def _request_headers(self) -> CIMultiDict:
        if isinstance(self.headers, Headers):
            headers = self.headers.to_request_headers()
        else:
            headers = CIMultiDict(self.headers or {})
        if self.options is not None and self.options.headers:
            for key, value in self.options.headers.items():
                headers[key] = value
        return headers

    def _request_params(self) -> Dict[str, str]:
        params = dict(self.params)
        if self.options is not None and self.options.params:
            params.update(self.options.params)
        return params

    async def execute(
        self,
        transport: Transport,
        max_error_body: int = DEFAULT_MAX_ERROR_BODY_BYTES,
    ) -> Response:
        """
        Validate, send and check the request.

        Args:
            transport: Transport to send through
            max_error_body: Bytes of an error body to keep for diagnostics

        Returns:
            Response with buffered content, or with an open stream if
            ``stream`` was set (the caller must close it)

        Raises:
            ValidationError: Local name validation failed (nothing was sent)
            UnexpectedStatusCodeError: Status not in the expected set
        """
        self.validate()
        expected = self.resolved_expected_status()
        path = self.url_path()

        response = await transport.request(
            self.method,
            path,
            headers=self._request_headers(),
            params=self._request_params() or None,
            body=self.body,
            scope=SCOPE_CLUSTER if self.kind == KIND_CLUSTER else SCOPE_ACCOUNT,
        )
        log_with_context(
            logger,
            logging.DEBUG,
            "Swift request",
            http_method=self.method,
            path=path or "/",
            http_status=response.status,
        )

        await check_status(response, expected, max_error_body)

        if self.stream:
            return Response(
                status=response.status,
                headers=response.headers,
                stream=response.stream,
            )

        content = b""
        if response.stream is not None:
            try:
                content = await response.stream.read(-1)
            finally:
                await response.stream.close()
        return Response(status=response.status, headers=response.headers, content=content)
