"""
Static and dynamic large objects.

A large object is a manifest object whose content is the concatenation of
segment objects. Static large objects (SLO) list their segments explicitly in
a JSON manifest; dynamic large objects (DLO) name a container/prefix and
include every object below it.
"""

import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, List, Optional
from urllib.parse import quote

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError

from swiftstore.bulk import split_object_path
from swiftstore.common.exceptions import (
    MalformedResponseError,
    NotLargeObjectError,
    NotSupportedError,
)
from swiftstore.common.logging import LoggedClass
from swiftstore.headers import ObjectHeaders
from swiftstore.listing import ObjectInfo, paginate
from swiftstore.request import Request, RequestOptions
from swiftstore.upload import UploadContent

if TYPE_CHECKING:
    from swiftstore.container import Container
    from swiftstore.object import Object


class SegmentingStrategy(Enum):
    STATIC = "static"
    DYNAMIC = "dynamic"


class ManifestEntry(BaseModel):
    """
    One SLO segment as stored in the manifest.

    ``?multipart-manifest=get`` returns name/hash/bytes, the raw format
    returns path/etag/size_bytes; both are accepted.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    path: str = Field(validation_alias=AliasChoices("path", "name"))
    etag: str = Field("", validation_alias=AliasChoices("etag", "hash"))
    size_bytes: int = Field(0, validation_alias=AliasChoices("size_bytes", "bytes"))


@dataclass
class SegmentInfo:
    """A segment of a large object."""

    object: "Object"
    size_bytes: int
    etag: str

    def manifest_entry(self) -> dict:
        return {
            "path": "/" + self.object.container.name + "/" + self.object.name,
            "etag": self.etag,
            "size_bytes": self.size_bytes,
        }


@dataclass
class LargeObject(LoggedClass):
    """
    Segments plus manifest of one large object.

    Usage:
        lo = obj.as_new_large_object(segments, "backup-2024/", SegmentingStrategy.STATIC)
        for part in parts:
            await lo.append(part)
        await lo.write_manifest()
    """

    object: "Object"
    strategy: SegmentingStrategy
    segment_container: "Container"
    segment_prefix: str
    segments: List[SegmentInfo] = field(default_factory=list)

    def __post_init__(self) -> None:
        LoggedClass.__init__(self)

    @property
    def container_name(self) -> str:
        return self.object.container.name

    @property
    def object_name(self) -> str:
        return self.object.name

    @property
    def size_bytes(self) -> int:
        return sum(segment.size_bytes for segment in self.segments)

    def next_segment_object(self) -> "Object":
        name = f"{self.segment_prefix}{len(self.segments) + 1:010d}"
        return self.segment_container.object(name)

    async def append(
        self,
        content: UploadContent,
        headers: Optional[ObjectHeaders] = None,
        options: Optional[RequestOptions] = None,
    ) -> SegmentInfo:
        """
        Upload ``content`` as the next segment.

        The segment is checksum-verified like any other upload. The manifest
        is not touched; call write_manifest() afterwards.
        """
        segment_object = self.next_segment_object()
        result = await segment_object.upload(content, headers=headers, options=options)
        segment = SegmentInfo(segment_object, result.size_bytes, result.etag)
        self.segments.append(segment)
        self._log(
            logging.DEBUG,
            "Appended segment",
            segment=segment_object.full_name,
            size_bytes=result.size_bytes,
        )
        return segment

    async def write_manifest(
        self,
        headers: Optional[ObjectHeaders] = None,
        options: Optional[RequestOptions] = None,
    ) -> None:
        """
        Create or replace the manifest object.

        Raises:
            NotSupportedError: If static large objects are not available
            UnexpectedStatusCodeError: If the PUT fails
        """
        Request("PUT", self.container_name, self.object_name).validate()
        Request("PUT", self.segment_container.name).validate()
        request_headers = headers.copy() if headers is not None else ObjectHeaders()

        if self.strategy is SegmentingStrategy.STATIC:
            capabilities = await self.object.account.capabilities()
            if capabilities.slo is None:
                raise NotSupportedError("slo")
            body = json.dumps([s.manifest_entry() for s in self.segments]).encode("utf-8")
            params = {"multipart-manifest": "put"}
        else:
            request_headers.large_object_manifest.set(
                quote(self.segment_container.name, safe="") + "/" + quote(self.segment_prefix)
            )
            body = b""
            params = {}

        request_headers.raw["Content-Length"] = str(len(body))
        await self.object._execute(
            self.object._request(
                "PUT",
                headers=request_headers,
                options=options,
                params=params,
                body=body,
            )
        )
        self.object.invalidate()

    async def delete_segments(self, options: Optional[RequestOptions] = None) -> None:
        """Delete all segment objects (the manifest stays)."""
        for segment in self.segments:
            await segment.object.delete(options=options)
        self.segments = []


async def open_large_object(obj: "Object") -> LargeObject:
    """
    Read the segment layout of an existing large object.

    Raises:
        NotLargeObjectError: If obj is neither an SLO nor a DLO
        MalformedResponseError: If the SLO manifest cannot be parsed
    """
    hdr = await obj.headers()
    account = obj.account

    if hdr.is_static_large_object.get():
        response = await obj._execute(
            obj._request(
                "GET",
                params={"multipart-manifest": "get", "format": "raw"},
            )
        )
        try:
            entries = [ManifestEntry.model_validate(e) for e in response.json() or []]
        except (ValueError, TypeError, ValidationError) as e:
            raise MalformedResponseError("large object manifest", e) from e

        segments = []
        for entry in entries:
            container_name, object_name = split_object_path(entry.path)
            segment_object = account.container(container_name).object(object_name)
            segments.append(SegmentInfo(segment_object, entry.size_bytes, entry.etag.strip('"')))

        segment_container = segments[0].object.container if segments else obj.container
        names = [s.object.name for s in segments]
        prefix = _common_prefix(names)
        return LargeObject(obj, SegmentingStrategy.STATIC, segment_container, prefix, segments)

    manifest = hdr.large_object_manifest.get()
    if manifest:
        container_name, prefix = split_object_path(manifest)
        segment_container = account.container(container_name)
        segments = []
        async for info in paginate(segment_container, ObjectInfo, prefix=prefix):
            if info.name is None:
                continue
            segments.append(
                SegmentInfo(segment_container.object(info.name), info.size_bytes, info.etag)
            )
        return LargeObject(obj, SegmentingStrategy.DYNAMIC, segment_container, prefix, segments)

    raise NotLargeObjectError(obj.full_name)


def _common_prefix(names: List[str]) -> str:
    if not names:
        return ""
    first, last = min(names), max(names)
    length = 0
    while length < len(first) and length < len(last) and first[length] == last[length]:
        length += 1
    return first[:length]
