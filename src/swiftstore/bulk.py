"""
Bulk upload (archive extraction) and bulk delete.

Both operations answer with a JSON document that reports an overall status,
an archive-level error and per-object failures. ``BulkResponse`` parses it;
``raise_for_errors`` turns failures into a single BulkError.
"""

import logging
from typing import TYPE_CHECKING, Iterable, List, Optional, Sequence, Tuple
from urllib.parse import quote, unquote

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from swiftstore.common.exceptions import (
    BulkError,
    BulkObjectError,
    MalformedResponseError,
    NotSupportedError,
)
from swiftstore.common.logging import get_logger, log_with_context
from swiftstore.request import Request, RequestOptions
from swiftstore.upload import UploadContent, iter_content

if TYPE_CHECKING:
    from swiftstore.account import Account
    from swiftstore.container import Container
    from swiftstore.object import Object

logger = get_logger(__name__)

ARCHIVE_FORMATS = ("tar", "tar.gz", "tar.bz2")


class BulkResponse(BaseModel):
    """Response document of a bulk operation."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    response_status: str = Field(alias="Response Status")
    response_body: str = Field("", alias="Response Body")
    errors: List[Tuple[str, str]] = Field(default_factory=list, alias="Errors")
    number_deleted: int = Field(0, alias="Number Deleted")
    number_not_found: int = Field(0, alias="Number Not Found")
    number_files_created: int = Field(0, alias="Number Files Created")

    @field_validator("response_status")
    @classmethod
    def _require_status_code(cls, value: str) -> str:
        if not value.strip().split(" ", 1)[0].isdigit():
            raise ValueError(f"no status code in {value!r}")
        return value

    @property
    def status_code(self) -> int:
        return _parse_status(self.response_status)

    def object_errors(self) -> List[BulkObjectError]:
        result = []
        for path, status in self.errors:
            container_name, object_name = split_object_path(path)
            result.append(
                BulkObjectError(container_name, object_name, _parse_status(status))
            )
        return result

    def raise_for_errors(self) -> None:
        """
        Raises:
            BulkError: If the overall status is not 2xx or any item failed
        """
        status = self.status_code
        if self.errors or not 200 <= status < 300:
            raise BulkError(status, self.response_body, self.object_errors())


def _parse_status(value: str) -> int:
    # "400 Bad Request" -> 400
    try:
        return int(value.strip().split(" ", 1)[0])
    except ValueError:
        return 0


def split_object_path(path: str) -> Tuple[str, str]:
    """Split "/container/some/object" into ("container", "some/object")."""
    path = unquote(path).lstrip("/")
    container_name, _, object_name = path.partition("/")
    return container_name, object_name


def parse_bulk_response(body: bytes) -> BulkResponse:
    """
    Parse a bulk response body.

    Raises:
        MalformedResponseError: If the body is not a bulk response document
    """
    try:
        return BulkResponse.model_validate_json(body or b"{}")
    except ValidationError as e:
        raise MalformedResponseError("bulk response", e) from e


async def bulk_upload(
    account: "Account",
    upload_path: str,
    archive_format: str,
    content: UploadContent,
    options: Optional[RequestOptions] = None,
) -> int:
    """
    Upload an archive and let the server extract it.

    Args:
        account: Target account
        upload_path: "" (one container per top-level directory), "container"
            or "container/prefix"
        archive_format: "tar", "tar.gz" or "tar.bz2"
        content: Archive bytes or any supported upload source

    Returns:
        Number of files created

    Raises:
        NotSupportedError: If the cluster has no bulk upload middleware
        BulkError: If the archive or some of its files were rejected
    """
    if archive_format not in ARCHIVE_FORMATS:
        raise ValueError(f"unknown archive format {archive_format!r}")
    capabilities = await account.capabilities()
    if capabilities.bulk_upload is None:
        raise NotSupportedError("bulk_upload")

    container_name: Optional[str] = None
    object_name: Optional[str] = None
    upload_path = upload_path.strip("/")
    if upload_path:
        container_name, _, rest = upload_path.partition("/")
        object_name = rest or None

    request = Request(
        "PUT",
        container_name=container_name,
        object_name=object_name,
        headers={"Accept": "application/json"},
        options=options,
        params={"extract-archive": archive_format},
        body=iter_content(content, account.upload_chunk_size),
        expected_status=(200, 201),
    )
    response = await request.execute(account.transport, account.max_error_body_bytes)
    result = parse_bulk_response(response.content)
    log_with_context(
        logger,
        logging.DEBUG,
        "Bulk upload finished",
        files_created=result.number_files_created,
        object_errors=len(result.errors),
    )
    result.raise_for_errors()
    return result.number_files_created


def _chunks(items: Sequence[str], size: int) -> Iterable[Sequence[str]]:
    for start in range(0, len(items), size):
        yield items[start:start + size]


async def bulk_delete(
    account: "Account",
    objects: Iterable["Object"],
    containers: Iterable["Container"] = (),
    options: Optional[RequestOptions] = None,
) -> Tuple[int, int]:
    """
    Delete many objects (and then containers) with as few requests as possible.

    Objects are deleted before containers so that containers emptied by this
    call can be removed by it. Requests are split according to the cluster's
    max_deletes_per_request.

    Returns:
        (number deleted, number not found)

    Raises:
        ValidationError: If any name is invalid (nothing is sent)
        NotSupportedError: If the cluster has no bulk delete middleware
        BulkError: If some deletions failed; counts are in ``context``
    """
    objects = list(objects)
    containers = list(containers)

    paths: List[str] = []
    for obj in objects:
        Request("DELETE", obj.container.name, obj.name).validate()
        paths.append("/" + quote(obj.container.name, safe="") + "/" + quote(obj.name, safe="/"))
    for container in containers:
        Request("DELETE", container.name).validate()
        paths.append("/" + quote(container.name, safe=""))
    if not paths:
        return 0, 0

    capabilities = await account.capabilities()
    if capabilities.bulk_delete is None:
        raise NotSupportedError("bulk_delete")
    chunk_size = max(1, capabilities.bulk_delete.max_deletes_per_request)

    deleted = 0
    not_found = 0
    status = 200
    archive_error = ""
    object_errors: List[BulkObjectError] = []

    for chunk in _chunks(paths, chunk_size):
        request = Request(
            "POST",
            headers={"Accept": "application/json", "Content-Type": "text/plain"},
            options=options,
            params={"bulk-delete": "true"},
            body=("\n".join(chunk) + "\n").encode("utf-8"),
            expected_status=(200,),
        )
        response = await request.execute(account.transport, account.max_error_body_bytes)
        result = parse_bulk_response(response.content)
        deleted += result.number_deleted
        not_found += result.number_not_found
        object_errors.extend(result.object_errors())
        if not 200 <= result.status_code < 300 and 200 <= status < 300:
            status = result.status_code
            archive_error = result.response_body

    for entity in [*objects, *containers]:
        entity.invalidate()

    log_with_context(
        logger,
        logging.DEBUG,
        "Bulk delete finished",
        deleted=deleted,
        not_found=not_found,
        object_errors=len(object_errors),
    )
    if object_errors or not 200 <= status < 300:
        error = BulkError(status, archive_error, object_errors)
        error.context.update({"number_deleted": deleted, "number_not_found": not_found})
        raise error
    return deleted, not_found
