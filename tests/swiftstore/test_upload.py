"""
Tests for object uploads.

Test coverage:
- Reader-based upload from every supported content source
- Boundary sizes around the chunk size
- Checksum verification against the returned Etag
- Writer-driven upload, including failures on either side
"""

import asyncio
import hashlib
import io
import threading

import pytest

from swiftstore.common.exceptions import (
    ChecksumMismatchError,
    PipeClosedError,
    UnexpectedStatusCodeError,
)
from swiftstore.headers import ObjectHeaders
from swiftstore.upload import UploadPipe, iter_content, verify_checksum

CHUNK_SIZE = 16  # matches the account fixture


async def async_chunks(*chunks):
    for chunk in chunks:
        await asyncio.sleep(0)
        yield chunk


class AsyncReader:
    def __init__(self, data: bytes):
        self._buffer = io.BytesIO(data)

    async def read(self, n: int = -1) -> bytes:
        return self._buffer.read(n)


class ThreadRecordingReader(io.BytesIO):
    """Blocking reader that remembers which threads called read()."""

    def __init__(self, data: bytes):
        super().__init__(data)
        self.threads = set()

    def read(self, n: int = -1) -> bytes:
        self.threads.add(threading.get_ident())
        return super().read(n)


class TestUploadSources:
    """Test the content sources accepted by upload()."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "content,expected",
        [
            (None, b""),
            (b"hello", b"hello"),
            (bytearray(b"hello"), b"hello"),
            (memoryview(b"hello"), b"hello"),
            ("héllo", "héllo".encode("utf-8")),
        ],
    )
    async def test_in_memory_sources(self, swift, container, content, expected):
        result = await container.object("o").upload(content)
        assert swift.object_data("test", "o") == expected
        assert result.size_bytes == len(expected)
        assert result.etag == hashlib.md5(expected).hexdigest()
        sent = swift.requests[-1]
        assert sent.headers["Content-Length"] == str(len(expected))

    @pytest.mark.asyncio
    async def test_file_like_source(self, swift, container):
        data = bytes(range(256)) * 3
        await container.object("o").upload(io.BytesIO(data))
        assert swift.object_data("test", "o") == data

    @pytest.mark.asyncio
    async def test_blocking_reads_run_off_the_event_loop(self, swift, container):
        reader = ThreadRecordingReader(b"x" * (3 * CHUNK_SIZE))
        await container.object("o").upload(reader)

        assert swift.object_data("test", "o") == b"x" * (3 * CHUNK_SIZE)
        assert reader.threads
        assert threading.get_ident() not in reader.threads

    @pytest.mark.asyncio
    async def test_async_reader_source(self, swift, container):
        await container.object("o").upload(AsyncReader(b"streamed content"))
        assert swift.object_data("test", "o") == b"streamed content"

    @pytest.mark.asyncio
    async def test_async_iterable_source(self, swift, container):
        await container.object("o").upload(async_chunks(b"a", b"", b"bc"))
        assert swift.object_data("test", "o") == b"abc"

    @pytest.mark.asyncio
    async def test_unsupported_source(self, container):
        with pytest.raises(TypeError):
            await container.object("o").upload(12345)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("size", [0, CHUNK_SIZE - 1, CHUNK_SIZE, CHUNK_SIZE + 1, 5 * CHUNK_SIZE])
    async def test_sizes_around_chunk_boundary(self, swift, container, size):
        data = bytes((i * 7) % 251 for i in range(size))
        result = await container.object("o").upload(io.BytesIO(data))
        assert swift.object_data("test", "o") == data
        assert result.size_bytes == size
        assert result.etag == hashlib.md5(data).hexdigest()

    @pytest.mark.asyncio
    async def test_headers_are_sent(self, swift, container):
        hdr = ObjectHeaders()
        hdr.content_type.set("text/csv")
        hdr.metadata.set("source", "export")
        await container.object("report.csv").upload(b"a,b\n", headers=hdr)

        stored = (await container.object("report.csv").headers())
        assert stored.content_type.get() == "text/csv"
        assert stored.metadata.get("source") == "export"

    @pytest.mark.asyncio
    async def test_upload_invalidates_cache(self, swift, container):
        obj = container.object("o")
        await obj.upload(b"one")
        assert (await obj.headers()).size_bytes.get() == 3
        await obj.upload(b"three")
        assert obj.is_cached is False
        assert (await obj.headers()).size_bytes.get() == 5

    @pytest.mark.asyncio
    async def test_upload_into_missing_container(self, account):
        with pytest.raises(UnexpectedStatusCodeError) as exc_info:
            await account.container("missing").object("o").upload(b"data")
        assert exc_info.value.status_code == 404


class TestChecksum:
    """Test Etag verification."""

    @pytest.mark.asyncio
    async def test_mismatch_raises_although_status_was_201(self, swift, container):
        swift.corrupt_etags = True
        with pytest.raises(ChecksumMismatchError) as exc_info:
            await container.object("o").upload(b"data")
        assert exc_info.value.expected == hashlib.md5(b"data").hexdigest()
        assert exc_info.value.actual == "0" * 32

    @pytest.mark.asyncio
    async def test_mismatch_on_streamed_upload(self, swift, container):
        swift.corrupt_etags = True
        with pytest.raises(ChecksumMismatchError):
            await container.object("o").upload(async_chunks(b"data"))

    def test_etag_comparison_ignores_quotes_and_case(self):
        digest = hashlib.md5(b"data").hexdigest()
        verify_checksum({"Etag": f'"{digest.upper()}"'}, digest)

    def test_missing_etag_is_accepted(self):
        verify_checksum({}, "d41d8cd98f00b204e9800998ecf8427e")


class TestUploadWithWriter:
    """Test writer-driven uploads."""

    @pytest.mark.asyncio
    async def test_content_matches_direct_upload(self, swift, container):
        data = b"".join(bytes([i]) * (i + 1) for i in range(40))

        async def produce(writer):
            for start in range(0, len(data), 13):
                await writer.write(data[start:start + 13])

        via_writer = await container.object("writer").upload_with_writer(produce)
        direct = await container.object("direct").upload(data)

        assert swift.object_data("test", "writer") == swift.object_data("test", "direct")
        assert via_writer == direct

    @pytest.mark.asyncio
    async def test_callback_writing_nothing(self, swift, container):
        async def produce(writer):
            return None

        result = await container.object("empty").upload_with_writer(produce)
        assert swift.object_data("test", "empty") == b""
        assert result.size_bytes == 0

    @pytest.mark.asyncio
    async def test_callback_error_is_returned(self, swift, container):
        class ExportFailed(Exception):
            pass

        async def produce(writer):
            await writer.write(b"partial")
            raise ExportFailed("database went away")

        with pytest.raises(ExportFailed):
            await container.object("o").upload_with_writer(produce)
        assert "o" not in swift.containers["test"].objects

    @pytest.mark.asyncio
    async def test_sender_error_is_returned_and_writer_unblocked(self, swift, container):
        writes_failed = []

        async def produce(writer):
            try:
                for _ in range(10):
                    await writer.write(b"chunk")
            except PipeClosedError:
                writes_failed.append(True)
                raise

        swift.fail_next(503)
        with pytest.raises(UnexpectedStatusCodeError) as exc_info:
            await container.object("o").upload_with_writer(produce)
        assert exc_info.value.status_code == 503
        assert writes_failed == [True]

    @pytest.mark.asyncio
    async def test_checksum_mismatch(self, swift, container):
        swift.corrupt_etags = True

        async def produce(writer):
            await writer.write(b"data")

        with pytest.raises(ChecksumMismatchError):
            await container.object("o").upload_with_writer(produce)


class TestUploadPipe:
    """Test the bounded pipe between writer and sender."""

    @pytest.mark.asyncio
    async def test_write_after_close(self):
        pipe = UploadPipe()
        await pipe.close()
        with pytest.raises(PipeClosedError):
            await pipe.write(b"x")

    @pytest.mark.asyncio
    async def test_write_after_abort(self):
        pipe = UploadPipe()
        pipe.abort(RuntimeError("sender gone"))
        with pytest.raises(PipeClosedError) as exc_info:
            await pipe.write(b"x")
        assert isinstance(exc_info.value.cause, RuntimeError)

    @pytest.mark.asyncio
    async def test_error_on_close_reaches_reader(self):
        pipe = UploadPipe()
        await pipe.close(ValueError("bad row"))
        with pytest.raises(ValueError):
            async for _ in pipe.chunks():
                pass

    @pytest.mark.asyncio
    async def test_iter_content_chunks_bytes(self):
        chunks = [c async for c in iter_content(b"abcdefghij", 4)]
        assert chunks == [b"abcd", b"efgh", b"ij"]
