"""
Download results.

A DownloadedObject wraps one open response body. Exactly one projection
(``as_bytes``, ``as_string`` or ``as_stream``) may be taken from it; asking
for a second one raises DownloadConsumedError instead of returning a
truncated body.
"""

from typing import AsyncIterator, Optional

from swiftstore.common.exceptions import DownloadConsumedError
from swiftstore.headers import ObjectHeaders
from swiftstore.transport import ResponseStream

DEFAULT_CHUNK_SIZE = 65536


class DownloadStream:
    """
    Incremental reader over a downloaded body.

    Must be closed by the caller; use it as an async context manager::

        async with (await obj.download()).as_stream() as stream:
            async for chunk in stream:
                ...
    """

    def __init__(self, stream: Optional[ResponseStream], chunk_size: int = DEFAULT_CHUNK_SIZE):
        self._stream = stream
        self._chunk_size = chunk_size
        self.bytes_read = 0

    async def read(self, n: int = -1) -> bytes:
        """
        Return up to n bytes that are available (everything left if n < 0).

        Returns b"" at end of body.
        """
        if self._stream is None:
            return b""
        data = await self._stream.read(n)
        self.bytes_read += len(data)
        return data

    async def close(self) -> None:
        if self._stream is not None:
            await self._stream.close()

    def __aiter__(self) -> AsyncIterator[bytes]:
        return self._iterate()

    async def _iterate(self) -> AsyncIterator[bytes]:
        while True:
            chunk = await self.read(self._chunk_size)
            if not chunk:
                return
            yield chunk

    async def __aenter__(self) -> "DownloadStream":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()


class DownloadedObject:
    """
    Result of Object.download().

    Attributes:
        status: Response status (200, or 206 for range requests)
        headers: Response headers
    """

    def __init__(
        self,
        status: int,
        headers: ObjectHeaders,
        stream: Optional[ResponseStream],
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ):
        self.status = status
        self.headers = headers
        self._stream = stream
        self._chunk_size = chunk_size
        self._consumed = False

    @property
    def consumed(self) -> bool:
        return self._consumed

    def _take(self) -> DownloadStream:
        if self._consumed:
            raise DownloadConsumedError()
        self._consumed = True
        return DownloadStream(self._stream, self._chunk_size)

    async def as_bytes(self) -> bytes:
        """Read the whole body and release the connection."""
        stream = self._take()
        try:
            return await stream.read(-1)
        finally:
            await stream.close()

    async def as_string(self, encoding: str = "utf-8") -> str:
        """Read the whole body and decode it."""
        data = await self.as_bytes()
        return data.decode(encoding)

    def as_stream(self) -> DownloadStream:
        """Hand out the open body. The caller must close it."""
        return self._take()

    async def close(self) -> None:
        """Discard the body without reading it."""
        if not self._consumed:
            self._consumed = True
            if self._stream is not None:
                await self._stream.close()

    async def __aenter__(self) -> "DownloadedObject":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
