"""
Paginated container and object listings.

Listings are requested as JSON and walked page by page with ``marker`` until
the server returns an empty page.
"""

from datetime import datetime
from typing import TYPE_CHECKING, Any, AsyncIterator, Dict, List, Optional, Type, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from swiftstore.common.exceptions import MalformedResponseError
from swiftstore.request import RequestOptions

if TYPE_CHECKING:
    from swiftstore.entity import Entity

DEFAULT_PAGE_SIZE = 10000

M = TypeVar("M", bound=BaseModel)


class ContainerInfo(BaseModel):
    """One entry of an account listing."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    name: str
    object_count: int = Field(0, alias="count")
    size_bytes: int = Field(0, alias="bytes")
    last_modified: Optional[datetime] = None


class ObjectInfo(BaseModel):
    """
    One entry of a container listing.

    With a delimiter, pseudo-directories come back as entries that only carry
    ``subdir``.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    name: Optional[str] = None
    subdir: Optional[str] = None
    etag: str = Field("", alias="hash")
    size_bytes: int = Field(0, alias="bytes")
    content_type: str = ""
    last_modified: Optional[datetime] = None
    symlink_path: Optional[str] = None

    @property
    def is_subdir(self) -> bool:
        return self.subdir is not None


def _marker_of(entry: Dict[str, Any]) -> str:
    return entry.get("name") or entry.get("subdir") or ""


async def paginate(
    entity: "Entity",
    model: Type[M],
    prefix: Optional[str] = None,
    delimiter: Optional[str] = None,
    limit: Optional[int] = None,
    page_size: int = DEFAULT_PAGE_SIZE,
    options: Optional[RequestOptions] = None,
) -> AsyncIterator[M]:
    """
    Yield listing entries of an account or container.

    Args:
        entity: Account (lists containers) or Container (lists objects)
        model: Entry model to parse into
        prefix: Only entries whose name starts with this
        delimiter: Roll up names below this delimiter into subdir entries
        limit: Stop after this many entries in total
        page_size: Entries requested per page
        options: Extra headers/params for every page request

    Raises:
        UnexpectedStatusCodeError: If a page request fails
        MalformedResponseError: If a page is not a JSON list of entries
    """
    marker = ""
    yielded = 0
    while True:
        params = {"format": "json", "limit": str(page_size)}
        if marker:
            params["marker"] = marker
        if prefix:
            params["prefix"] = prefix
        if delimiter:
            params["delimiter"] = delimiter

        response = await entity._execute(
            entity._request("GET", params=params, options=options)
        )
        try:
            page: List[Dict[str, Any]] = response.json() or []
            entries = [model.model_validate(entry) for entry in page]
        except (ValueError, TypeError, ValidationError) as e:
            raise MalformedResponseError("listing", e) from e

        if not entries:
            return
        for entry in entries:
            yield entry
            yielded += 1
            if limit is not None and yielded >= limit:
                return
        marker = _marker_of(page[-1])
