"""
Typed header views for accounts, containers and objects.

Every Headers instance wraps a single case-insensitive raw mapping
(``Headers.raw``). Known fields are declared on the subclasses and accessed
through bound accessors::

    hdr = ObjectHeaders()
    hdr.content_type.set("application/json")
    hdr.metadata.set("owner", "alice")
    hdr.metadata.clear("stale")     # sends "", the server removes the key

Anything not modelled is still available through ``hdr.raw`` or the generic
``get``/``set``/``clear``/``delete`` methods.
"""

from datetime import datetime, timezone
from email.utils import format_datetime, parsedate_to_datetime
from typing import Any, ClassVar, Dict, Generic, List, Mapping, Optional, Tuple, TypeVar, Union

from multidict import CIMultiDict, CIMultiDictProxy

from swiftstore.common.exceptions import MalformedHeaderError

T = TypeVar("T")
H = TypeVar("H", bound="Headers")

RawHeaders = Union[Mapping[str, str], CIMultiDict, CIMultiDictProxy, None]


# =============================================================================
# Field Declarations
# =============================================================================


class Field(Generic[T]):
    """
    Declares a header field on a Headers subclass.

    Reading the attribute from a Headers instance yields a FieldAccessor bound
    to that instance.
    """

    empty: Any = ""

    def __init__(self, key: str, read_only: bool = False):
        self.key = key
        self.read_only = read_only
        self.name = key

    def __set_name__(self, owner: type, name: str) -> None:
        self.name = name

    def __get__(self, instance: Optional["Headers"], owner: type) -> Any:
        if instance is None:
            return self
        return FieldAccessor(instance, self)

    def parse(self, value: str) -> T:
        raise NotImplementedError

    def format(self, value: T) -> str:
        raise NotImplementedError


class StringField(Field[str]):
    """Free-form string header. Never malformed."""

    empty = ""

    def parse(self, value: str) -> str:
        return value

    def format(self, value: str) -> str:
        return value


class UInt64Field(Field[int]):
    """Non-negative integer header (byte and object counts, quotas)."""

    empty = 0

    def parse(self, value: str) -> int:
        number = int(value.strip())
        if number < 0:
            raise ValueError(f"negative value {number}")
        return number

    def format(self, value: int) -> str:
        if value < 0:
            raise ValueError(f"{self.key} may not be negative")
        return str(int(value))


class BoolField(Field[bool]):
    """Boolean header ("True"/"False", case-insensitive)."""

    empty = False
    _TRUE = {"true", "1", "yes", "on"}
    _FALSE = {"false", "0", "no", "off"}

    def parse(self, value: str) -> bool:
        lowered = value.strip().lower()
        if lowered in self._TRUE:
            return True
        if lowered in self._FALSE:
            return False
        raise ValueError(f"not a boolean: {value!r}")

    def format(self, value: bool) -> str:
        return "True" if value else "False"


class HTTPTimestampField(Field[Optional[datetime]]):
    """RFC 1123 date header such as Last-Modified."""

    empty = None

    def parse(self, value: str) -> datetime:
        parsed = parsedate_to_datetime(value)
        if parsed is None:
            raise ValueError(f"not an HTTP date: {value!r}")
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed

    def format(self, value: Optional[datetime]) -> str:
        if value is None:
            raise ValueError(f"{self.key} needs a datetime")
        return format_datetime(value.astimezone(timezone.utc), usegmt=True)


class UnixTimestampField(Field[Optional[datetime]]):
    """Seconds-since-epoch header such as X-Timestamp or X-Delete-At."""

    empty = None

    def parse(self, value: str) -> datetime:
        return datetime.fromtimestamp(float(value), tz=timezone.utc)

    def format(self, value: Optional[datetime]) -> str:
        if value is None:
            raise ValueError(f"{self.key} needs a datetime")
        return str(int(value.timestamp()))


class FieldAccessor(Generic[T]):
    """A Field bound to one Headers instance."""

    def __init__(self, headers: "Headers", field: Field[T]):
        self._headers = headers
        self._field = field

    @property
    def key(self) -> str:
        return self._field.key

    def exists(self) -> bool:
        """True if the header is present (even with an empty value)."""
        return self._field.key in self._headers.raw

    def get(self) -> T:
        """
        Return the parsed value, or the field's empty value if absent.

        Raises:
            MalformedHeaderError: If the raw value cannot be parsed
        """
        raw = self._headers.raw.get(self._field.key)
        if raw is None or raw == "":
            return self._field.empty
        try:
            return self._field.parse(raw)
        except (ValueError, TypeError, OverflowError) as e:
            raise MalformedHeaderError(self._field.key, e) from e

    def set(self, value: T) -> None:
        self._check_writable()
        self._headers.raw[self._field.key] = self._field.format(value)

    def clear(self) -> None:
        """Set the header to "", which tells the server to remove it."""
        self._check_writable()
        self._headers.raw[self._field.key] = ""

    def delete(self) -> None:
        """Drop the header from the map; an update leaves it unchanged."""
        self._headers.raw.popall(self._field.key, None)

    def validate(self) -> None:
        self.get()

    def _check_writable(self) -> None:
        if self._field.read_only:
            raise AttributeError(f"{self._field.key} is read-only")

    def __repr__(self) -> str:
        return f"<{self._field.__class__.__name__} {self._field.key}>"


class MetadataField:
    """
    Declares the user metadata namespace of a Headers subclass.

    Keys are exposed without the prefix; the prefix is added on write.
    """

    def __init__(self, prefix: str):
        self.prefix = prefix

    def __set_name__(self, owner: type, name: str) -> None:
        self.name = name

    def __get__(self, instance: Optional["Headers"], owner: type) -> Any:
        if instance is None:
            return self
        return MetadataAccessor(instance, self.prefix)


class MetadataAccessor:
    """User metadata of one Headers instance."""

    def __init__(self, headers: "Headers", prefix: str):
        self._headers = headers
        self._prefix = prefix

    def exists(self, key: str) -> bool:
        return self._prefix + key in self._headers.raw

    def get(self, key: str) -> str:
        return self._headers.raw.get(self._prefix + key, "")

    def set(self, key: str, value: str) -> None:
        self._headers.raw[self._prefix + key] = value

    def clear(self, key: str) -> None:
        """Works like set(key, ""). The server deletes the key on update."""
        self._headers.raw[self._prefix + key] = ""

    def delete(self, key: str) -> None:
        """Remove the key from the map; the server-side value stays as-is."""
        self._headers.raw.popall(self._prefix + key, None)

    def keys(self) -> List[str]:
        """Metadata keys (lower-cased, prefix stripped)."""
        return [key for key, _ in self.items()]

    def items(self) -> List[Tuple[str, str]]:
        prefix = self._prefix.lower()
        result = []
        for key, value in self._headers.raw.items():
            if key.lower().startswith(prefix) and len(key) > len(prefix):
                result.append((key[len(prefix):].lower(), value))
        return result

    def to_dict(self) -> Dict[str, str]:
        return dict(self.items())

    def __contains__(self, key: str) -> bool:
        return self.exists(key)

    def __len__(self) -> int:
        return len(self.items())


# =============================================================================
# Headers
# =============================================================================


class Headers:
    """
    Semantic view over a raw case-insensitive header map.

    Subclasses declare Field attributes; ``validate()`` parses all of them.
    """

    _fields: ClassVar[Tuple[Field, ...]] = ()

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        fields: Dict[str, Field] = {}
        for klass in reversed(cls.__mro__):
            for name, value in vars(klass).items():
                if isinstance(value, Field):
                    fields[name] = value
        cls._fields = tuple(fields.values())

    def __init__(self, raw: RawHeaders = None):
        self.raw: CIMultiDict = CIMultiDict(raw or {})

    @classmethod
    def from_response(cls: type, raw: RawHeaders) -> "Headers":
        """
        Build and validate headers received from the server.

        Raises:
            MalformedHeaderError: If any declared field cannot be decoded
        """
        headers = cls(raw)
        headers.validate()
        return headers

    def validate(self) -> None:
        """Parse every declared field; raise on the first malformed one."""
        for field in self._fields:
            FieldAccessor(self, field).validate()

    # -- generic access -------------------------------------------------------

    def get(self, key: str, default: str = "") -> str:
        return self.raw.get(key, default)

    def set(self, key: str, value: str) -> None:
        self.raw[key] = value

    def clear(self, key: str) -> None:
        self.raw[key] = ""

    def delete(self, key: str) -> None:
        self.raw.popall(key, None)

    def __contains__(self, key: object) -> bool:
        return key in self.raw

    def __len__(self) -> int:
        return len(self.raw)

    # -- encoding -------------------------------------------------------------

    def to_request_headers(self) -> CIMultiDict:
        """Full raw header set, for create-style requests."""
        return CIMultiDict(self.raw)

    def changed_since(self: H, previous: Optional["Headers"]) -> H:
        """
        Return only the headers whose value differs from ``previous``.

        Keys absent from self are not emitted: for an update that means
        "leave unchanged". Cleared values ("") are kept because they carry a
        deletion instruction.
        """
        changed = type(self)()
        for key in set(k.lower() for k in self.raw.keys()):
            value = self.raw[key]
            if previous is None or previous.raw.get(key) != value:
                changed.raw[key] = value
        return changed

    def copy(self: H) -> H:
        return type(self)(self.raw)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Headers):
            return NotImplemented
        return _normalized(self.raw) == _normalized(other.raw)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({dict(self.raw.items())!r})"


def _normalized(raw: CIMultiDict) -> Dict[str, str]:
    return {key.lower(): value for key, value in raw.items()}


class AccountHeaders(Headers):
    """Headers of an account (HEAD/POST on the storage URL)."""

    metadata = MetadataField("X-Account-Meta-")
    bytes_used = UInt64Field("X-Account-Bytes-Used", read_only=True)
    container_count = UInt64Field("X-Account-Container-Count", read_only=True)
    object_count = UInt64Field("X-Account-Object-Count", read_only=True)
    bytes_used_quota = UInt64Field("X-Account-Meta-Quota-Bytes")
    temp_url_key = StringField("X-Account-Meta-Temp-URL-Key")
    temp_url_key_2 = StringField("X-Account-Meta-Temp-URL-Key-2")
    created_at = UnixTimestampField("X-Timestamp", read_only=True)


class ContainerHeaders(Headers):
    """Headers of a container."""

    metadata = MetadataField("X-Container-Meta-")
    bytes_used = UInt64Field("X-Container-Bytes-Used", read_only=True)
    object_count = UInt64Field("X-Container-Object-Count", read_only=True)
    bytes_used_quota = UInt64Field("X-Container-Meta-Quota-Bytes")
    object_count_quota = UInt64Field("X-Container-Meta-Quota-Count")
    read_acl = StringField("X-Container-Read")
    write_acl = StringField("X-Container-Write")
    sync_key = StringField("X-Container-Sync-Key")
    sync_to = StringField("X-Container-Sync-To")
    history_location = StringField("X-History-Location")
    versions_location = StringField("X-Versions-Location")
    storage_policy = StringField("X-Storage-Policy")
    temp_url_key = StringField("X-Container-Meta-Temp-URL-Key")
    temp_url_key_2 = StringField("X-Container-Meta-Temp-URL-Key-2")
    created_at = UnixTimestampField("X-Timestamp", read_only=True)


class ObjectHeaders(Headers):
    """Headers of an object."""

    metadata = MetadataField("X-Object-Meta-")
    content_type = StringField("Content-Type")
    content_disposition = StringField("Content-Disposition")
    content_encoding = StringField("Content-Encoding")
    size_bytes = UInt64Field("Content-Length", read_only=True)
    etag = StringField("Etag")
    updated_at = HTTPTimestampField("Last-Modified", read_only=True)
    expires_at = UnixTimestampField("X-Delete-At")
    delete_after = UInt64Field("X-Delete-After")
    large_object_manifest = StringField("X-Object-Manifest")
    is_static_large_object = BoolField("X-Static-Large-Object", read_only=True)
    symlink_target = StringField("X-Symlink-Target")
    created_at = UnixTimestampField("X-Timestamp", read_only=True)
