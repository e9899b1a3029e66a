"""
Packument operations.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from yarl import URL

from ..errors import InvalidResponseError, PackageNotFoundError, error_from_status
from ..logging import truncate_for_log
from ..packument import CorgiPackument, Packument
from ..resilience import parse_retry_after
from ..urls import escape_package_name

if TYPE_CHECKING:
    from ..cache import CacheMode
    from ..context import RequestContext
    from ..types import RegistryRequest, RegistryResponse

PACKUMENT_ACCEPT = "application/json"
CORGI_ACCEPT = "application/vnd.npm.install-v1+json; q=1.0, application/json; q=0.8, */*"


def raise_for_status(response: RegistryResponse, *, package: str | None = None) -> None:
    """Raise the mapped RegistryError for a non-2xx response."""
    if response.ok:
        return
    url = str(response.url)
    if response.status == 404 and package is not None:
        raise PackageNotFoundError(package=package, url=url)
    raise error_from_status(
        response.status,
        url,
        body=truncate_for_log(response.text(), 500),
        retry_after=parse_retry_after(response.header("Retry-After")),
    )


def decode_json(response: RegistryResponse) -> Any:
    """Decode a JSON body, raising InvalidResponseError on malformed payloads."""
    try:
        return response.json()
    except ValueError as exc:
        raise InvalidResponseError(str(exc), http_status=response.status, url=str(response.url), cause=exc) from exc


class PackumentMixin:
    """
    Packument fetching for OroClient.

    Requires ``self.registry``, ``self.request()`` and ``self.send()`` on the
    implementing class.
    """

    registry: URL

    async def _packument_response(
        self,
        name: str,
        accept: str,
        *,
        cache_mode: CacheMode | str | None = None,
        context: RequestContext | None = None,
    ) -> RegistryResponse:
        request = self.request("GET", escape_package_name(name), headers={"Accept": accept})
        response = await self.send(request, cache_mode=cache_mode, context=context)
        raise_for_status(response, package=name)
        return response

    async def packument_bytes(
        self,
        name: str,
        *,
        cache_mode: CacheMode | str | None = None,
        context: RequestContext | None = None,
    ) -> bytes:
        """Raw body of the full packument for ``name``."""
        response = await self._packument_response(name, PACKUMENT_ACCEPT, cache_mode=cache_mode, context=context)
        return response.body

    async def corgi_packument_bytes(
        self,
        name: str,
        *,
        cache_mode: CacheMode | str | None = None,
        context: RequestContext | None = None,
    ) -> bytes:
        """Raw body of the abbreviated (corgi) packument for ``name``."""
        response = await self._packument_response(name, CORGI_ACCEPT, cache_mode=cache_mode, context=context)
        return response.body

    async def packument(
        self,
        name: str,
        *,
        cache_mode: CacheMode | str | None = None,
        context: RequestContext | None = None,
    ) -> Packument:
        """
        Fetch the full packument for ``name``.

        Raises:
            PackageNotFoundError: The registry has no such package.
            InvalidResponseError: The body is not a packument.
        """
        response = await self._packument_response(name, PACKUMENT_ACCEPT, cache_mode=cache_mode, context=context)
        data = decode_json(response)
        try:
            return Packument.from_dict(data, name=name)
        except ValueError as exc:
            raise InvalidResponseError(str(exc), http_status=response.status, url=str(response.url), cause=exc) from exc

    async def corgi_packument(
        self,
        name: str,
        *,
        cache_mode: CacheMode | str | None = None,
        context: RequestContext | None = None,
    ) -> CorgiPackument:
        """Fetch the abbreviated packument for ``name``."""
        response = await self._packument_response(name, CORGI_ACCEPT, cache_mode=cache_mode, context=context)
        data = decode_json(response)
        try:
            return CorgiPackument.from_dict(data, name=name)
        except ValueError as exc:
            raise InvalidResponseError(str(exc), http_status=response.status, url=str(response.url), cause=exc) from exc


__all__ = ["PackumentMixin", "PACKUMENT_ACCEPT", "CORGI_ACCEPT", "raise_for_status", "decode_json"]
