"""Container handle."""

from typing import TYPE_CHECKING, AsyncIterator, Optional, Tuple

from swiftstore.entity import Entity
from swiftstore.headers import ContainerHeaders
from swiftstore.listing import ObjectInfo, paginate
from swiftstore.object import Object
from swiftstore.request import RequestOptions

if TYPE_CHECKING:
    from swiftstore.account import Account


class Container(Entity):
    """
    Handle for one container. Creating a handle does not touch the service;
    the name is validated when the first request is sent.
    """

    headers_class = ContainerHeaders

    def __init__(self, account: "Account", name: str):
        self._account = account
        self.container_name = name
        super().__init__()

    @property
    def name(self) -> str:
        return self.container_name

    @property
    def account(self) -> "Account":
        return self._account

    def _target(self) -> Tuple[Optional[str], Optional[str]]:
        return self.container_name, None

    def __repr__(self) -> str:
        return f"Container({self.container_name!r})"

    def object(self, name: str) -> Object:
        """Handle for an object in this container (no request is sent)."""
        return Object(self, name)

    async def headers(self, options: Optional[RequestOptions] = None) -> ContainerHeaders:
        return await super().headers(options)

    async def create(
        self,
        headers: Optional[ContainerHeaders] = None,
        options: Optional[RequestOptions] = None,
    ) -> None:
        """
        Create the container, or update its headers if it already exists.

        Raises:
            UnexpectedStatusCodeError: If the PUT fails
        """
        await self._execute(self._request("PUT", headers=headers, options=options))
        self.invalidate()

    async def delete(self, options: Optional[RequestOptions] = None) -> None:
        """
        Raises:
            UnexpectedStatusCodeError: 404 if missing, 409 if not empty
        """
        await self._execute(self._request("DELETE", options=options))
        self.invalidate()

    async def ensure_exists(self) -> "Container":
        """Create the container unless it is already there."""
        if not await self.exists():
            await self.create()
        return self

    def object_infos(
        self,
        prefix: Optional[str] = None,
        delimiter: Optional[str] = None,
        limit: Optional[int] = None,
        options: Optional[RequestOptions] = None,
    ) -> AsyncIterator[ObjectInfo]:
        """
        Iterate over the listing entries of this container.

        With a delimiter, pseudo-directories appear as entries with ``subdir`` set.
        """
        return paginate(
            self, ObjectInfo, prefix=prefix, delimiter=delimiter, limit=limit, options=options
        )

    async def objects(
        self,
        prefix: Optional[str] = None,
        delimiter: Optional[str] = None,
        limit: Optional[int] = None,
        options: Optional[RequestOptions] = None,
    ) -> AsyncIterator[Object]:
        """Iterate over handles of the listed objects (pseudo-directories are skipped)."""
        async for info in self.object_infos(prefix, delimiter, limit, options):
            if info.name is None:
                continue
            yield self.object(info.name)
