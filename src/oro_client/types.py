"""
Request and response types shared by the transport, cache and API layers.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from multidict import CIMultiDict, CIMultiDictProxy
from yarl import URL

from .serialization import JSONDecodeError, fast_json_dumps, fast_json_loads

Headers = CIMultiDict[str]

SAFE_METHODS = frozenset({"GET", "HEAD", "OPTIONS"})


def make_headers(headers: Any = None) -> CIMultiDict[str]:
    """Build an ordered, case-insensitive header map from any mapping or pair list."""
    if headers is None:
        return CIMultiDict()
    if isinstance(headers, (CIMultiDict, CIMultiDictProxy)):
        return CIMultiDict(headers)
    if isinstance(headers, dict):
        return CIMultiDict((str(k), str(v)) for k, v in headers.items())
    return CIMultiDict((str(k), str(v)) for k, v in headers)


@dataclass
class RegistryRequest:
    """A single HTTP request to a registry."""

    method: str
    url: URL
    headers: CIMultiDict[str] = field(default_factory=CIMultiDict)
    json: Any = None
    cacheable: bool = True

    def __post_init__(self) -> None:
        self.method = self.method.upper()
        if not isinstance(self.url, URL):
            self.url = URL(str(self.url))
        if not isinstance(self.headers, CIMultiDict):
            self.headers = make_headers(self.headers)

    @property
    def is_safe(self) -> bool:
        return self.method in SAFE_METHODS

    def body_bytes(self) -> bytes | None:
        if self.json is None:
            return None
        return fast_json_dumps(self.json)

    def copy(self) -> RegistryRequest:
        return RegistryRequest(
            method=self.method,
            url=self.url,
            headers=CIMultiDict(self.headers),
            json=self.json,
            cacheable=self.cacheable,
        )


@dataclass
class RegistryResponse:
    """A fully buffered registry response."""

    url: URL
    status: int
    headers: CIMultiDict[str] = field(default_factory=CIMultiDict)
    body: bytes = b""
    from_cache: bool = False
    revalidated: bool = False

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    def text(self, encoding: str = "utf-8") -> str:
        return self.body.decode(encoding, errors="replace")

    def json(self) -> Any:
        """Decode the body as JSON. Raises ValueError on malformed payloads."""
        try:
            return fast_json_loads(self.body)
        except JSONDecodeError as exc:
            raise ValueError(f"Response from {self.url} is not valid JSON: {exc}") from exc

    def header(self, name: str, default: str | None = None) -> str | None:
        return self.headers.get(name, default)


__all__ = [
    "Headers",
    "SAFE_METHODS",
    "make_headers",
    "RegistryRequest",
    "RegistryResponse",
]
