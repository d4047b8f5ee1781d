"""
Upload pipeline.

Any supported content source is turned into an async stream of chunks that
is hashed (MD5) while it is sent. After a successful PUT the digest is
compared with the Etag returned by the server.

The writer-driven mode runs the caller's callback as a separate task that
writes into a bounded in-memory pipe; the request sender reads from the same
pipe. The pipe is closed on every exit path of the callback, and aborted when
the sender fails so that the callback cannot block forever.
"""

import asyncio
import hashlib
import inspect
from dataclasses import dataclass
from typing import (
    TYPE_CHECKING,
    Any,
    AsyncIterable,
    AsyncIterator,
    Awaitable,
    Callable,
    IO,
    Iterable,
    Mapping,
    Optional,
    Union,
)

from swiftstore.common.exceptions import ChecksumMismatchError, PipeClosedError
from swiftstore.headers import ObjectHeaders

if TYPE_CHECKING:
    from swiftstore.object import Object
    from swiftstore.request import RequestOptions

UploadContent = Union[
    bytes, bytearray, memoryview, str, IO[bytes], AsyncIterable[bytes], Iterable[bytes], None
]


@dataclass(frozen=True)
class UploadResult:
    """What was sent in a successful upload."""

    etag: str
    size_bytes: int


async def iter_content(content: UploadContent, chunk_size: int) -> AsyncIterator[bytes]:
    """
    Turn an upload source into an async stream of byte chunks.

    Supported sources: None, bytes-like, str (UTF-8), objects with a sync or
    async ``read(size)``, async iterables and sync iterables of bytes.
    """
    if content is None:
        return
    if isinstance(content, (bytes, bytearray, memoryview)):
        data = bytes(content)
        for start in range(0, len(data), chunk_size):
            yield data[start:start + chunk_size]
        return
    if isinstance(content, str):
        async for chunk in iter_content(content.encode("utf-8"), chunk_size):
            yield chunk
        return
    if hasattr(content, "read"):
        blocking = not inspect.iscoroutinefunction(content.read)
        while True:
            if blocking:
                chunk = await asyncio.to_thread(content.read, chunk_size)
            else:
                chunk = content.read(chunk_size)
            if inspect.isawaitable(chunk):
                chunk = await chunk
            if not chunk:
                return
            yield bytes(chunk)
    if hasattr(content, "__aiter__"):
        async for chunk in content:
            if chunk:
                yield bytes(chunk)
        return
    if isinstance(content, Iterable):
        for chunk in content:
            if chunk:
                yield bytes(chunk)
        return
    raise TypeError(f"cannot upload content of type {type(content).__name__}")


class HashingBody:
    """Async iterable request body that hashes what it hands out."""

    def __init__(self, chunks: AsyncIterable[bytes]):
        self._chunks = chunks
        self._md5 = hashlib.md5(usedforsecurity=False)
        self.bytes_sent = 0

    def __aiter__(self) -> AsyncIterator[bytes]:
        return self._iterate()

    async def _iterate(self) -> AsyncIterator[bytes]:
        async for chunk in self._chunks:
            if not chunk:
                continue
            self._md5.update(chunk)
            self.bytes_sent += len(chunk)
            yield chunk

    def hexdigest(self) -> str:
        return self._md5.hexdigest()


_EOF = object()


class UploadPipe:
    """
    Bounded in-memory channel between a writer task and the request body.

    ``write()`` waits while the channel is full. ``close()`` signals end of
    stream (or an error to raise on the reading side). ``abort()`` is used by
    the reading side when it gives up; pending and later writes then raise
    PipeClosedError.
    """

    def __init__(self, maxsize: int = 1):
        self._queue: "asyncio.Queue[Any]" = asyncio.Queue(maxsize=maxsize)
        self._closed = False
        self._aborted: Optional[BaseException] = None

    async def write(self, data: bytes) -> int:
        self._check_open()
        if data:
            await self._queue.put(bytes(data))
        self._check_open()
        return len(data)

    def _check_open(self) -> None:
        if isinstance(self._aborted, Exception):
            raise PipeClosedError(cause=self._aborted)
        if self._aborted is not None:
            raise PipeClosedError()
        if self._closed:
            raise PipeClosedError()

    async def close(self, error: Optional[BaseException] = None) -> None:
        if self._closed or self._aborted is not None:
            self._closed = True
            return
        self._closed = True
        await self._queue.put(error if error is not None else _EOF)

    def abort(self, error: BaseException) -> None:
        self._aborted = error
        while not self._queue.empty():
            self._queue.get_nowait()

    async def chunks(self) -> AsyncIterator[bytes]:
        while True:
            item = await self._queue.get()
            if item is _EOF:
                return
            if isinstance(item, BaseException):
                raise item
            yield item


class UploadWriter:
    """Writing end handed to upload_with_writer callbacks."""

    def __init__(self, pipe: UploadPipe):
        self._pipe = pipe

    async def write(self, data: bytes) -> int:
        return await self._pipe.write(data)


WriterCallback = Callable[[UploadWriter], Awaitable[Any]]


def verify_checksum(response_headers: Mapping[str, str], computed: str) -> None:
    """
    Compare the Etag the server returned with the digest of the sent bytes.

    Raises:
        ChecksumMismatchError: If the server returned a different Etag
    """
    etag = response_headers.get("Etag")
    if not etag:
        return
    actual = etag.strip().strip('"').lower()
    if actual != computed.lower():
        raise ChecksumMismatchError(expected=computed, actual=actual)


async def _send(
    obj: "Object",
    body: Any,
    headers: Optional[ObjectHeaders],
    options: Optional["RequestOptions"],
    content_length: Optional[int] = None,
) -> Mapping[str, str]:
    request_headers = headers.copy() if headers is not None else ObjectHeaders()
    if content_length is not None:
        request_headers.raw["Content-Length"] = str(content_length)
    response = await obj._execute(
        obj._request("PUT", headers=request_headers, options=options, body=body)
    )
    return response.headers


async def upload(
    obj: "Object",
    content: UploadContent = None,
    headers: Optional[ObjectHeaders] = None,
    options: Optional["RequestOptions"] = None,
) -> UploadResult:
    """
    Upload content into obj, verifying the returned Etag.

    ``None`` (or an empty source) creates a zero-length object.

    Raises:
        UnexpectedStatusCodeError: If the PUT fails
        ChecksumMismatchError: If the Etag does not match the sent bytes
    """
    chunk_size = obj.account.upload_chunk_size
    if content is None or isinstance(content, (bytes, bytearray, memoryview, str)):
        data = content.encode("utf-8") if isinstance(content, str) else bytes(content or b"")
        digest = hashlib.md5(data, usedforsecurity=False).hexdigest()
        response_headers = await _send(obj, data, headers, options, content_length=len(data))
        size = len(data)
    else:
        body = HashingBody(iter_content(content, chunk_size))
        response_headers = await _send(obj, body, headers, options)
        digest = body.hexdigest()
        size = body.bytes_sent

    obj.invalidate()
    verify_checksum(response_headers, digest)
    return UploadResult(etag=digest, size_bytes=size)


async def upload_with_writer(
    obj: "Object",
    callback: WriterCallback,
    headers: Optional[ObjectHeaders] = None,
    options: Optional["RequestOptions"] = None,
) -> UploadResult:
    """
    Upload whatever ``callback`` writes into the given UploadWriter.

    The callback runs concurrently with the request. If it raises, that
    error is what the caller sees; otherwise a failure of the request is
    raised (and the callback's pending write fails with PipeClosedError).

    Example:
        async def produce(writer):
            for row in rows:
                await writer.write(row.encode())

        await obj.upload_with_writer(produce)
    """
    obj._request("PUT").validate()
    pipe = UploadPipe()
    body = HashingBody(pipe.chunks())

    async def run_writer() -> None:
        try:
            await callback(UploadWriter(pipe))
        except BaseException as e:
            await pipe.close(e)
            raise
        await pipe.close()

    writer_task = asyncio.create_task(run_writer())
    try:
        response_headers = await _send(obj, body, headers, options)
    except BaseException as send_error:
        pipe.abort(send_error)
        if isinstance(send_error, asyncio.CancelledError):
            writer_task.cancel()
        (writer_result,) = await asyncio.gather(writer_task, return_exceptions=True)
        if (
            isinstance(writer_result, BaseException)
            and writer_result is not send_error
            and not isinstance(writer_result, (PipeClosedError, asyncio.CancelledError))
        ):
            raise writer_result from send_error
        raise
    await writer_task

    obj.invalidate()
    digest = body.hexdigest()
    verify_checksum(response_headers, digest)
    return UploadResult(etag=digest, size_bytes=body.bytes_sent)
