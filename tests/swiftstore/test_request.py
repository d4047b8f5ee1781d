"""
Tests for the request executor.

Test coverage:
- Local name validation (no request sent)
- URL path construction
- Expected status resolution and error capture
- Header/param merging from RequestOptions
"""

import inspect

import pytest

from swiftstore.common.exceptions import (
    InvalidObjectNameError,
    MalformedContainerNameError,
    NoContainerNameError,
    UnexpectedStatusCodeError,
)
from swiftstore.headers import ContainerHeaders, ObjectHeaders
from swiftstore.large_object import SegmentingStrategy
from swiftstore.request import EXPECTED_STATUS, Request, RequestOptions, read_bounded


async def _drain(iterator):
    return [item async for item in iterator]


async def _write_nothing(writer):
    await writer.write(b"")


async def _call(result):
    if inspect.isawaitable(result):
        return await result
    return result


# Each entry performs one operation with ``bad`` as the invalid container.
ENTITY_OPERATIONS = {
    "container.headers": lambda account, bad: bad.headers(),
    "container.exists": lambda account, bad: bad.exists(),
    "container.update": lambda account, bad: bad.update(ContainerHeaders()),
    "container.create": lambda account, bad: bad.create(),
    "container.delete": lambda account, bad: bad.delete(),
    "container.ensure_exists": lambda account, bad: bad.ensure_exists(),
    "container.object_infos": lambda account, bad: _drain(bad.object_infos()),
    "container.objects": lambda account, bad: _drain(bad.objects()),
    "object.headers": lambda account, bad: bad.object("o").headers(),
    "object.exists": lambda account, bad: bad.object("o").exists(),
    "object.update": lambda account, bad: bad.object("o").update(ObjectHeaders()),
    "object.delete": lambda account, bad: bad.object("o").delete(),
    "object.upload": lambda account, bad: bad.object("o").upload(b"data"),
    "object.upload_with_writer": lambda account, bad: bad.object("o").upload_with_writer(
        _write_nothing
    ),
    "object.download": lambda account, bad: bad.object("o").download(),
    "object.copy_to.source": lambda account, bad: bad.object("o").copy_to(
        account.container("dst").object("o")
    ),
    "object.copy_to.target": lambda account, bad: account.container("src").object(
        "o"
    ).copy_to(bad.object("o")),
    "object.temp_url": lambda account, bad: _call(
        bad.object("o").temp_url("key", "GET", 1700000000)
    ),
    "object.as_large_object": lambda account, bad: bad.object("o").as_large_object(),
    "large_object.append": lambda account, bad: account.container("c").object(
        "big"
    ).as_new_large_object(bad, "seg/").append(b"data"),
    "large_object.write_manifest": lambda account, bad: account.container("c").object(
        "big"
    ).as_new_large_object(bad, "seg/").write_manifest(),
    "large_object.write_manifest.dynamic": lambda account, bad: account.container(
        "c"
    ).object("big").as_new_large_object(
        bad, "seg/", SegmentingStrategy.DYNAMIC
    ).write_manifest(),
    "account.bulk_delete": lambda account, bad: account.bulk_delete([bad.object("o")]),
}


class TestValidation:
    """Test zero-I/O name validation."""

    @pytest.mark.asyncio
    async def test_object_without_container(self, swift):
        with pytest.raises(NoContainerNameError):
            await Request("HEAD", object_name="foo").execute(swift)
        assert swift.count() == 0

    @pytest.mark.asyncio
    async def test_empty_container_name(self, swift):
        with pytest.raises(NoContainerNameError):
            await Request("HEAD", container_name="").execute(swift)
        assert swift.count() == 0

    @pytest.mark.asyncio
    async def test_container_name_with_slash(self, swift):
        with pytest.raises(MalformedContainerNameError):
            await Request("HEAD", container_name="a/b", object_name="c").execute(swift)
        assert swift.count() == 0

    @pytest.mark.asyncio
    async def test_empty_object_name(self, swift):
        with pytest.raises(InvalidObjectNameError):
            await Request("PUT", container_name="a", object_name="").execute(swift)
        assert swift.count() == 0

    @pytest.mark.asyncio
    async def test_object_handle_with_bad_container_sends_nothing(self, swift, account):
        obj = account.container("a/b").object("c")
        with pytest.raises(MalformedContainerNameError):
            await obj.upload(b"data")
        with pytest.raises(MalformedContainerNameError):
            await obj.headers()
        assert swift.count() == 0

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "container_name,error",
        [("a/b", MalformedContainerNameError), ("", NoContainerNameError)],
    )
    @pytest.mark.parametrize("operation", sorted(ENTITY_OPERATIONS))
    async def test_every_operation_rejects_bad_container(
        self, swift, account, operation, container_name, error
    ):
        """No entity operation reaches the transport with an invalid container name."""
        with pytest.raises(error):
            await ENTITY_OPERATIONS[operation](account, account.container(container_name))
        assert swift.count() == 0

    @pytest.mark.asyncio
    async def test_writer_callback_not_started_for_bad_container(self, swift, account):
        calls = []

        async def produce(writer):
            calls.append(writer)

        with pytest.raises(MalformedContainerNameError):
            await account.container("a/b").object("o").upload_with_writer(produce)
        assert calls == []
        assert swift.count() == 0

    @pytest.mark.asyncio
    async def test_account_handle_with_empty_container_sends_nothing(self, swift, account):
        with pytest.raises(NoContainerNameError):
            await account.container("").create()
        assert swift.count() == 0


class TestUrlPath:
    """Test request path construction."""

    def test_account_path_is_empty(self):
        assert Request("GET").url_path() == ""

    def test_container_is_fully_quoted(self):
        assert Request("GET", "my container").url_path() == "/my%20container"

    def test_object_keeps_slashes(self):
        request = Request("GET", "c", "dir/sub dir/file?.txt")
        assert request.url_path() == "/c/dir/sub%20dir/file%3F.txt"

    def test_cluster_path(self):
        assert Request("GET", path="/info").url_path() == "/info"


class TestExpectedStatus:
    """Test expected status resolution."""

    def test_defaults_come_from_table(self):
        assert Request("HEAD").resolved_expected_status() == (200, 204)
        assert Request("PUT", "c").resolved_expected_status() == (201, 202)
        assert Request("POST", "c", "o").resolved_expected_status() == (202,)
        assert Request("GET", path="/info").resolved_expected_status() == (200,)

    def test_table_covers_all_entity_methods(self):
        for kind in ("account", "container", "object"):
            for method in ("HEAD", "GET", "PUT", "POST", "DELETE"):
                assert (kind, method) in EXPECTED_STATUS

    def test_options_override_operation(self):
        request = Request(
            "PUT",
            "c",
            "o",
            expected_status=(201,),
            options=RequestOptions(expected_status=[201, 202]),
        )
        assert request.resolved_expected_status() == (201, 202)

    @pytest.mark.asyncio
    async def test_unexpected_status_captures_bounded_body(self, swift):
        swift.fail_next(500, b"x" * 100)
        with pytest.raises(UnexpectedStatusCodeError) as exc_info:
            await Request("HEAD", "c").execute(swift, max_error_body=10)
        assert exc_info.value.status_code == 500
        assert exc_info.value.response_body == b"x" * 10
        assert swift.open_streams() == []

    @pytest.mark.asyncio
    async def test_options_expected_status_accepts_404(self, swift):
        response = await Request(
            "HEAD", "missing", options=RequestOptions(expected_status=[404])
        ).execute(swift)
        assert response.status == 404


class TestExecute:
    """Test request sending."""

    @pytest.mark.asyncio
    async def test_options_headers_and_params_are_merged(self, swift):
        swift.add_container("c")
        hdr = ObjectHeaders()
        hdr.content_type.set("text/plain")
        await Request(
            "GET",
            "c",
            headers=hdr,
            params={"format": "json"},
            options=RequestOptions(
                headers={"Content-Type": "application/json", "X-Trace": "1"},
                params={"limit": "5"},
            ),
        ).execute(swift)

        sent = swift.requests[-1]
        assert sent.headers["Content-Type"] == "application/json"
        assert sent.headers["X-Trace"] == "1"
        assert sent.params == {"format": "json", "limit": "5"}

    @pytest.mark.asyncio
    async def test_buffered_response_closes_stream(self, swift):
        swift.add_container("c")
        response = await Request("GET", "c", params={"format": "json"}).execute(swift)
        assert response.json() == []
        assert response.stream is None
        assert swift.open_streams() == []

    @pytest.mark.asyncio
    async def test_streamed_response_stays_open(self, swift):
        swift.add_object("c", "o", b"payload")
        response = await Request("GET", "c", "o", stream=True).execute(swift)
        assert await response.stream.read(-1) == b"payload"
        assert len(swift.open_streams()) == 1
        await response.stream.close()

    @pytest.mark.asyncio
    async def test_cluster_scope(self, swift):
        await Request("GET", path="/info").execute(swift)
        assert swift.requests[-1].scope == "cluster"


class TestReadBounded:
    """Test bounded reads over partial streams."""

    @pytest.mark.asyncio
    async def test_reads_across_partial_chunks(self, swift):
        swift.max_read = 3
        swift.add_object("c", "o", b"0123456789")
        response = await Request("GET", "c", "o", stream=True).execute(swift)
        assert await read_bounded(response.stream, 7) == b"0123456"
        await response.stream.close()
