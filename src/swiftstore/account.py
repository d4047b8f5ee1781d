"""
Account handle, the entry point of the client.

Usage:
    config = SwiftConfig.from_env()
    async with AiohttpTransport(config) as transport:
        account = Account(transport)
        container = await account.container("photos").ensure_exists()
        await container.object("cat.jpg").upload(data)
"""

import logging
from typing import AsyncIterator, Iterable, Optional, Tuple
from urllib.parse import unquote, urlsplit

from swiftstore.bulk import bulk_delete, bulk_upload
from swiftstore.capabilities import Capabilities
from swiftstore.container import Container
from swiftstore.entity import Entity
from swiftstore.headers import AccountHeaders
from swiftstore.listing import ContainerInfo, paginate
from swiftstore.object import Object
from swiftstore.request import DEFAULT_MAX_ERROR_BODY_BYTES, Request, RequestOptions
from swiftstore.transport import Transport
from swiftstore.upload import UploadContent

DEFAULT_UPLOAD_CHUNK_SIZE = 65536


class Account(Entity):
    """
    Handle for the account behind a Transport's storage URL.

    Args:
        transport: Sends the requests; owns authentication
        max_error_body_bytes: Bytes of an error body kept on
            UnexpectedStatusCodeError (default from the transport's config)
        upload_chunk_size: Chunk size for streamed uploads and downloads
    """

    headers_class = AccountHeaders

    def __init__(
        self,
        transport: Transport,
        *,
        max_error_body_bytes: Optional[int] = None,
        upload_chunk_size: Optional[int] = None,
    ):
        self.transport = transport
        config = getattr(transport, "config", None)
        if max_error_body_bytes is None:
            max_error_body_bytes = getattr(
                config, "max_error_body_bytes", DEFAULT_MAX_ERROR_BODY_BYTES
            )
        if upload_chunk_size is None:
            upload_chunk_size = getattr(config, "upload_chunk_size", DEFAULT_UPLOAD_CHUNK_SIZE)
        self.max_error_body_bytes = max_error_body_bytes
        self.upload_chunk_size = upload_chunk_size
        self.account_name = unquote(urlsplit(transport.storage_url).path.rstrip("/").rsplit("/", 1)[-1])
        self._capabilities: Optional[Capabilities] = None
        super().__init__()

    @property
    def name(self) -> str:
        """Account name as it appears in the storage URL (e.g. "AUTH_test")."""
        return self.account_name

    @property
    def account(self) -> "Account":
        return self

    def _target(self) -> Tuple[Optional[str], Optional[str]]:
        return None, None

    def __repr__(self) -> str:
        return f"Account({self.account_name!r})"

    def container(self, name: str) -> Container:
        """Handle for a container in this account (no request is sent)."""
        return Container(self, name)

    async def headers(self, options: Optional[RequestOptions] = None) -> AccountHeaders:
        return await super().headers(options)

    async def create(
        self,
        headers: Optional[AccountHeaders] = None,
        options: Optional[RequestOptions] = None,
    ) -> None:
        """
        Create the account. Only reseller admins may do this; regular users
        get UnexpectedStatusCodeError (403).
        """
        await self._execute(self._request("PUT", headers=headers, options=options))
        self.invalidate()

    def invalidate(self) -> None:
        """Drop cached headers and cached capabilities."""
        self._capabilities = None
        super().invalidate()

    async def capabilities(self) -> Capabilities:
        """
        Return the cluster capabilities (GET /info), fetched on first use.

        Raises:
            UnexpectedStatusCodeError: If /info is not available
            MalformedResponseError: If the document cannot be parsed
        """
        if self._capabilities is None:
            self._log(logging.DEBUG, "Fetching capabilities")
            response = await self._execute(Request("GET", path="/info"))
            self._capabilities = Capabilities.from_json(response.content)
        return self._capabilities

    def container_infos(
        self,
        prefix: Optional[str] = None,
        limit: Optional[int] = None,
        options: Optional[RequestOptions] = None,
    ) -> AsyncIterator[ContainerInfo]:
        """Iterate over the listing entries of this account."""
        return paginate(self, ContainerInfo, prefix=prefix, limit=limit, options=options)

    async def containers(
        self,
        prefix: Optional[str] = None,
        limit: Optional[int] = None,
        options: Optional[RequestOptions] = None,
    ) -> AsyncIterator[Container]:
        """Iterate over handles of the listed containers."""
        async for info in self.container_infos(prefix, limit, options):
            yield self.container(info.name)

    async def bulk_upload(
        self,
        upload_path: str,
        archive_format: str,
        content: UploadContent,
        options: Optional[RequestOptions] = None,
    ) -> int:
        """Upload an archive for server-side extraction; returns files created."""
        return await bulk_upload(self, upload_path, archive_format, content, options)

    async def bulk_delete(
        self,
        objects: Iterable[Object],
        containers: Optional[Iterable[Container]] = None,
        options: Optional[RequestOptions] = None,
    ) -> Tuple[int, int]:
        """Delete many objects and containers; returns (deleted, not found)."""
        return await bulk_delete(self, objects, containers or (), options)
