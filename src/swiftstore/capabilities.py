"""
Cluster capabilities as reported by ``GET /info``.

Only the sections the client acts on are modelled; everything else is kept
as extra fields on the model.
"""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from swiftstore.common.exceptions import MalformedResponseError


class SwiftSection(BaseModel):
    """Core limits of the cluster."""

    model_config = ConfigDict(extra="allow")

    version: str = ""
    max_file_size: int = 0
    max_meta_name_length: int = 128
    max_meta_value_length: int = 256
    max_container_name_length: int = 256
    max_object_name_length: int = 1024
    account_listing_limit: int = 10000
    container_listing_limit: int = 10000
    policies: List[dict] = Field(default_factory=list)


class BulkDeleteSection(BaseModel):
    model_config = ConfigDict(extra="allow")

    max_deletes_per_request: int = 10000
    max_failed_deletes: int = 1000


class BulkUploadSection(BaseModel):
    model_config = ConfigDict(extra="allow")

    max_containers_per_extraction: int = 10000
    max_failed_extractions: int = 1000


class StaticLargeObjectSection(BaseModel):
    model_config = ConfigDict(extra="allow")

    max_manifest_segments: int = 1000
    max_manifest_size: int = 8388608
    min_segment_size: int = 1


class TempURLSection(BaseModel):
    model_config = ConfigDict(extra="allow")

    methods: List[str] = Field(default_factory=list)
    allowed_digests: List[str] = Field(default_factory=lambda: ["sha1", "sha256", "sha512"])


class Capabilities(BaseModel):
    """
    Parsed /info document.

    A section that is None means the corresponding middleware is not
    installed on the cluster.
    """

    model_config = ConfigDict(extra="allow")

    swift: SwiftSection = Field(default_factory=SwiftSection)
    bulk_delete: Optional[BulkDeleteSection] = None
    bulk_upload: Optional[BulkUploadSection] = None
    slo: Optional[StaticLargeObjectSection] = None
    tempurl: Optional[TempURLSection] = None

    @classmethod
    def from_json(cls, body: bytes) -> "Capabilities":
        """
        Parse the body of GET /info.

        Raises:
            MalformedResponseError: If the body is not a valid capabilities document
        """
        try:
            return cls.model_validate_json(body or b"{}")
        except ValidationError as e:
            raise MalformedResponseError("capabilities", e) from e
