"""
Header cache shared by Account, Container and Object handles.

Each handle holds at most one header snapshot. It is filled by the first
successful HEAD, dropped by ``invalidate()`` or by a successful mutation of
the same handle, and never expires on its own. Handles are cheap; callers
working concurrently on the same entity should each use their own handle.
"""

import logging
from typing import TYPE_CHECKING, Any, ClassVar, Optional, Tuple, Type

from swiftstore.common.exceptions import UnexpectedStatusCodeError, is_status
from swiftstore.common.logging import LoggedClass
from swiftstore.headers import Headers
from swiftstore.request import Request, RequestOptions, Response

if TYPE_CHECKING:
    from swiftstore.account import Account


class Entity(LoggedClass):
    """Base class for entity handles with a lazily fetched header snapshot."""

    headers_class: ClassVar[Type[Headers]] = Headers

    def __init__(self) -> None:
        self._cached_headers: Optional[Headers] = None
        super().__init__()

    @property
    def account(self) -> "Account":
        raise NotImplementedError

    def _target(self) -> Tuple[Optional[str], Optional[str]]:
        """(container name, object name) of this entity."""
        raise NotImplementedError

    def _request(self, method: str, **kwargs: Any) -> Request:
        container_name, object_name = self._target()
        return Request(
            method,
            container_name=container_name,
            object_name=object_name,
            **kwargs,
        )

    async def _execute(self, request: Request) -> Response:
        account = self.account
        return await request.execute(account.transport, account.max_error_body_bytes)

    @property
    def is_cached(self) -> bool:
        return self._cached_headers is not None

    async def headers(self, options: Optional[RequestOptions] = None) -> Any:
        """
        Return the entity's headers, fetching them on the first call.

        The returned object is a copy; modifying it does not touch the cache.

        Raises:
            UnexpectedStatusCodeError: If the entity does not exist (404) or
                the HEAD fails otherwise
            MalformedHeaderError: If a known header cannot be decoded
        """
        if self._cached_headers is None:
            self._log(logging.DEBUG, "Fetching headers")
            response = await self._execute(self._request("HEAD", options=options))
            self._cached_headers = self.headers_class.from_response(response.headers)
        return self._cached_headers.copy()

    async def exists(self) -> bool:
        """
        Check whether the entity exists.

        Only a 404 turns into False; every other error propagates.
        """
        try:
            await self.headers()
        except UnexpectedStatusCodeError as e:
            if is_status(e, 404):
                return False
            raise
        return True

    def invalidate(self) -> None:
        """Drop the cached headers. Safe to call when nothing is cached."""
        if self._cached_headers is not None:
            self._log(logging.DEBUG, "Dropping cached headers")
        self._cached_headers = None

    def _store_headers(self, headers: Headers) -> None:
        self._cached_headers = headers

    async def update(
        self,
        headers: Optional[Headers] = None,
        options: Optional[RequestOptions] = None,
    ) -> None:
        """
        Send a POST with the given headers, then invalidate the cache.

        The new state is not guessed; the next headers() call re-fetches.

        Raises:
            UnexpectedStatusCodeError: If the POST fails (e.g. 404)
        """
        await self._execute(self._request("POST", headers=headers, options=options))
        self.invalidate()
