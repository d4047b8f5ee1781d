"""Object handle."""

import hashlib
import hmac
from datetime import datetime
from typing import TYPE_CHECKING, Optional, Tuple, Union
from urllib.parse import quote, urlencode, urlsplit

from swiftstore.common.exceptions import InvalidObjectNameError
from swiftstore.download import DownloadedObject
from swiftstore.entity import Entity
from swiftstore.headers import ObjectHeaders
from swiftstore.large_object import LargeObject, SegmentingStrategy, open_large_object
from swiftstore.request import Request, RequestOptions
from swiftstore.upload import (
    UploadContent,
    UploadResult,
    WriterCallback,
    upload,
    upload_with_writer,
)

if TYPE_CHECKING:
    from swiftstore.account import Account
    from swiftstore.container import Container

TEMP_URL_METHODS = ("GET", "HEAD", "PUT", "POST", "DELETE")


class Object(Entity):
    """
    Handle for one object. Creating a handle does not touch the service.

    Example:
        obj = account.container("backups").object("2024/db.tar")
        await obj.upload(data)
        async with await obj.download() as dl:
            content = await dl.as_bytes()
    """

    headers_class = ObjectHeaders

    def __init__(self, container: "Container", name: str):
        if not name:
            raise InvalidObjectNameError(container.name)
        self._container = container
        self.object_name = name
        super().__init__()

    @property
    def name(self) -> str:
        return self.object_name

    @property
    def container(self) -> "Container":
        return self._container

    @property
    def container_name(self) -> str:
        return self._container.name

    @property
    def account(self) -> "Account":
        return self._container.account

    @property
    def full_name(self) -> str:
        """Container and object name joined by a slash, for messages."""
        return f"{self._container.name}/{self.object_name}"

    def _target(self) -> Tuple[Optional[str], Optional[str]]:
        return self._container.name, self.object_name

    def __repr__(self) -> str:
        return f"Object({self.full_name!r})"

    async def headers(self, options: Optional[RequestOptions] = None) -> ObjectHeaders:
        return await super().headers(options)

    async def upload(
        self,
        content: UploadContent = None,
        headers: Optional[ObjectHeaders] = None,
        options: Optional[RequestOptions] = None,
    ) -> UploadResult:
        """
        Create or replace the object with ``content``.

        Raises:
            UnexpectedStatusCodeError: If the PUT fails
            ChecksumMismatchError: If the returned Etag does not match what was sent
        """
        return await upload(self, content, headers=headers, options=options)

    async def upload_with_writer(
        self,
        callback: WriterCallback,
        headers: Optional[ObjectHeaders] = None,
        options: Optional[RequestOptions] = None,
    ) -> UploadResult:
        """Create or replace the object with whatever ``callback`` writes."""
        return await upload_with_writer(self, callback, headers=headers, options=options)

    async def download(self, options: Optional[RequestOptions] = None) -> DownloadedObject:
        """
        Start a GET and hand out the open body.

        A full (200) response refreshes the header cache from the response
        headers. The returned DownloadedObject must be consumed or closed.

        Raises:
            UnexpectedStatusCodeError: If the GET fails (e.g. 404)
            MalformedHeaderError: If a known response header cannot be decoded
        """
        response = await self._execute(
            self._request("GET", options=options, expected_status=(200, 206), stream=True)
        )
        try:
            hdr = ObjectHeaders.from_response(response.headers)
        except Exception:
            if response.stream is not None:
                await response.stream.close()
            raise
        if response.status == 200:
            self._store_headers(hdr.copy())
        return DownloadedObject(
            response.status, hdr, response.stream, self.account.upload_chunk_size
        )

    async def update(
        self,
        headers: Optional[ObjectHeaders] = None,
        options: Optional[RequestOptions] = None,
    ) -> None:
        """
        POST new metadata.

        Object POSTs replace all user metadata; headers not sent are removed.
        """
        await super().update(headers, options)

    async def delete(self, options: Optional[RequestOptions] = None) -> None:
        """
        Raises:
            UnexpectedStatusCodeError: If the DELETE fails (404 if missing)
        """
        await self._execute(self._request("DELETE", options=options))
        self.invalidate()

    async def copy_to(
        self,
        target: "Object",
        headers: Optional[ObjectHeaders] = None,
        options: Optional[RequestOptions] = None,
    ) -> None:
        """Server-side copy of this object to ``target``."""
        Request("GET", self._container.name, self.object_name).validate()
        request_headers = headers.copy() if headers is not None else ObjectHeaders()
        request_headers.raw["X-Copy-From"] = (
            "/" + quote(self._container.name, safe="") + "/" + quote(self.object_name, safe="/")
        )
        request_headers.raw["Content-Length"] = "0"
        await target._execute(
            target._request(
                "PUT",
                headers=request_headers,
                options=options,
                body=b"",
                expected_status=(201,),
            )
        )
        target.invalidate()

    def temp_url(
        self,
        key: str,
        method: str,
        expires_at: Union[datetime, int, float],
    ) -> str:
        """
        Build a temporary URL that grants ``method`` on this object until
        ``expires_at`` without a token. No request is sent.

        The key must match the account's or container's Temp-URL-Key.
        """
        Request(method, self._container.name, self.object_name).validate()
        method = method.upper()
        if method not in TEMP_URL_METHODS:
            raise ValueError(f"method {method!r} cannot be used in a temporary URL")
        if isinstance(expires_at, datetime):
            expires = int(expires_at.timestamp())
        else:
            expires = int(expires_at)

        storage_url = self.account.transport.storage_url.rstrip("/")
        object_path = (
            "/" + quote(self._container.name, safe="") + "/" + quote(self.object_name, safe="/")
        )
        signed_path = urlsplit(storage_url).path + "/" + self._container.name + "/" + self.object_name
        payload = f"{method}\n{expires}\n{signed_path}"
        signature = hmac.new(key.encode("utf-8"), payload.encode("utf-8"), hashlib.sha256).hexdigest()
        query = urlencode({"temp_url_sig": signature, "temp_url_expires": str(expires)})
        return f"{storage_url}{object_path}?{query}"

    def as_new_large_object(
        self,
        segment_container: "Container",
        segment_prefix: str,
        strategy: SegmentingStrategy = SegmentingStrategy.STATIC,
    ) -> LargeObject:
        """
        Start a new large object stored under this name. Nothing is sent
        until the first append().
        """
        return LargeObject(self, strategy, segment_container, segment_prefix)

    async def as_large_object(self) -> LargeObject:
        """
        Open this object as an existing large object.

        Raises:
            NotLargeObjectError: If it is neither a static nor a dynamic large object
        """
        return await open_large_object(self)
