"""
Transport collaborator.

The rest of the library only talks to the ``Transport`` protocol: send one
request relative to the account storage URL (or the cluster root), get back a
status, headers and an open body stream. ``AiohttpTransport`` is the
production implementation; tests substitute an in-memory one.
"""

from dataclasses import dataclass
from typing import AsyncIterable, Mapping, Optional, Protocol, Union

import aiohttp
from multidict import CIMultiDict, CIMultiDictProxy

from swiftstore.common.logging import LoggedClass
from swiftstore.config import SwiftConfig

RequestBody = Union[bytes, AsyncIterable[bytes], None]

SCOPE_ACCOUNT = "account"
SCOPE_CLUSTER = "cluster"


class ResponseStream(Protocol):
    """Incremental reader over a response body."""

    async def read(self, n: int = -1) -> bytes:
        """Return up to n bytes (all remaining bytes if n < 0); b"" at EOF."""
        ...

    async def close(self) -> None:
        """Release the underlying connection. Idempotent."""
        ...


@dataclass
class TransportResponse:
    """Raw result of one request/response exchange."""

    status: int
    headers: Union[CIMultiDictProxy, CIMultiDict]
    stream: Optional[ResponseStream] = None


class Transport(Protocol):
    """
    Performs single HTTP exchanges against the storage service.

    Implementations apply authentication and base URL resolution. Paths are
    relative to ``storage_url`` (scope "account") or to the cluster root
    (scope "cluster", used for /info). Implementations must not retry.
    """

    storage_url: str

    async def request(
        self,
        method: str,
        path: str,
        *,
        headers: Mapping[str, str],
        params: Optional[Mapping[str, str]] = None,
        body: RequestBody = None,
        scope: str = SCOPE_ACCOUNT,
    ) -> TransportResponse:
        ...


class AiohttpResponseStream:
    """ResponseStream over an aiohttp.ClientResponse."""

    def __init__(self, response: aiohttp.ClientResponse):
        self._response = response
        self._closed = False

    async def read(self, n: int = -1) -> bytes:
        if self._closed:
            return b""
        return await self._response.content.read(n)

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._response.release()


class AiohttpTransport(LoggedClass):
    """
    Transport backed by an aiohttp.ClientSession.

    Usage:
        config = SwiftConfig.from_env()
        async with AiohttpTransport(config) as transport:
            account = Account(transport)
            hdr = await account.headers()

    Session management:
        By default, the transport creates and owns its session. Pass a shared
        session to the constructor to reuse a connection pool; the caller
        then remains responsible for closing it.
    """

    log_component = "transport"

    def __init__(
        self,
        config: SwiftConfig,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        self.config = config
        self.storage_url = config.storage_url
        self._session = session
        self._owns_session = session is None
        super().__init__()

    async def __aenter__(self) -> "AiohttpTransport":
        await self._ensure_session()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def _ensure_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            connector = aiohttp.TCPConnector(
                limit=self.config.max_connections,
                limit_per_host=self.config.max_connections,
            )
            self._session = aiohttp.ClientSession(
                connector=connector,
                timeout=aiohttp.ClientTimeout(total=self.config.timeout_seconds),
            )
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        """Close the HTTP session if this transport created it."""
        if self._owns_session and self._session and not self._session.closed:
            await self._session.close()
        self._session = None

    def _url(self, path: str, scope: str) -> str:
        base = self.config.cluster_url if scope == SCOPE_CLUSTER else self.storage_url
        return base + path

    async def request(
        self,
        method: str,
        path: str,
        *,
        headers: Mapping[str, str],
        params: Optional[Mapping[str, str]] = None,
        body: RequestBody = None,
        scope: str = SCOPE_ACCOUNT,
    ) -> TransportResponse:
        session = await self._ensure_session()

        request_headers = CIMultiDict(headers)
        request_headers["User-Agent"] = self.config.user_agent
        if scope == SCOPE_ACCOUNT:
            request_headers["X-Auth-Token"] = self.config.auth_token

        # aiohttp would otherwise add its own Content-Type for bytes bodies
        skip = ("Content-Type",) if "Content-Type" not in request_headers else ()

        response = await session.request(
            method,
            self._url(path, scope),
            headers=request_headers,
            params=dict(params) if params else None,
            data=body,
            skip_auto_headers=skip,
            allow_redirects=False,
        )
        return TransportResponse(
            status=response.status,
            headers=response.headers,
            stream=AiohttpResponseStream(response),
        )
