"""
HTTP caching policy (RFC 9111) for a private client cache.

``CachePolicy`` captures what is needed to decide, for a stored response,
whether it may be stored at all, whether it can be served without contacting
the registry, and which conditional headers revalidate it.
"""

from __future__ import annotations

import time
from email.utils import formatdate, parsedate_to_datetime
from enum import Enum
from typing import Any

from multidict import CIMultiDict

from ..types import make_headers

STORABLE_STATUSES = frozenset({200, 203, 204, 300, 301, 308, 404, 405, 410, 414, 501})

# Headers a 304 must not overwrite on the stored response.
_NOT_UPDATED_ON_304 = frozenset({"content-length", "content-encoding", "transfer-encoding", "content-range"})

# Hop-by-hop headers are never stored.
_HOP_BY_HOP = frozenset(
    {
        "connection",
        "keep-alive",
        "proxy-authenticate",
        "proxy-authorization",
        "te",
        "trailer",
        "transfer-encoding",
        "upgrade",
    }
)

HEURISTIC_FRACTION = 0.1


class CacheMode(str, Enum):
    """How a request interacts with the HTTP cache (mirrors the Fetch ``cache`` option)."""

    DEFAULT = "default"
    NO_STORE = "no-store"
    RELOAD = "reload"
    NO_CACHE = "no-cache"
    FORCE_CACHE = "force-cache"
    ONLY_IF_CACHED = "only-if-cached"

    @classmethod
    def parse(cls, value: CacheMode | str) -> CacheMode:
        if isinstance(value, cls):
            return value
        normalized = str(value).strip().lower().replace("_", "-")
        try:
            return cls(normalized)
        except ValueError:
            raise ValueError(f"Invalid cache mode: {value!r}") from None


def parse_cache_control(value: str | None) -> dict[str, str | None]:
    """
    Parse a Cache-Control header into ``{directive: argument}``.

    Directive names are lower-cased; directives without an argument map to None.
    """
    directives: dict[str, str | None] = {}
    if not value:
        return directives
    for part in value.split(","):
        part = part.strip()
        if not part:
            continue
        name, sep, arg = part.partition("=")
        name = name.strip().lower()
        if name in directives:
            continue
        directives[name] = arg.strip().strip('"') if sep else None
    return directives


def _seconds(value: str | None) -> float | None:
    if value is None:
        return None
    try:
        return max(0.0, float(int(value)))
    except ValueError:
        return None


def parse_http_date(value: str | None) -> float | None:
    """Parse an HTTP date into epoch seconds, None when absent or invalid."""
    if not value:
        return None
    try:
        return parsedate_to_datetime(value).timestamp()
    except (TypeError, ValueError, IndexError, OverflowError):
        return None


def format_http_date(ts: float) -> str:
    return formatdate(ts, usegmt=True)


class CachePolicy:
    """
    Cache policy for one request/response pair.

    Example:
        >>> policy = CachePolicy("GET", url, request.headers, 200, response.headers)
        >>> policy.is_storable()
        True
        >>> policy.satisfies_without_revalidation(request.headers)
        True
    """

    def __init__(
        self,
        method: str,
        url: str,
        request_headers: Any,
        status: int,
        response_headers: Any,
        *,
        response_time: float | None = None,
    ) -> None:
        self.method = method.upper()
        self.url = str(url)
        self.status = status
        self.request_headers = make_headers(request_headers)
        self.response_headers = make_headers(response_headers)
        self.response_time = time.time() if response_time is None else response_time
        self._req_cc = parse_cache_control(self.request_headers.get("Cache-Control"))
        self._res_cc = parse_cache_control(self.response_headers.get("Cache-Control"))

    # ------------------------------------------------------------------
    # Storability
    # ------------------------------------------------------------------

    def is_storable(self) -> bool:
        if self.method != "GET":
            return False
        if self.status not in STORABLE_STATUSES:
            return False
        if "no-store" in self._req_cc or "no-store" in self._res_cc:
            return False
        if "*" in self._vary_fields():
            return False
        return True

    # ------------------------------------------------------------------
    # Freshness
    # ------------------------------------------------------------------

    def date(self) -> float:
        """Response ``Date``, falling back to when the response was received."""
        parsed = parse_http_date(self.response_headers.get("Date"))
        return parsed if parsed is not None else self.response_time

    def max_age(self) -> float:
        """Freshness lifetime in seconds."""
        if not self.is_storable() or "no-cache" in self._res_cc:
            return 0.0

        max_age = _seconds(self._res_cc.get("max-age"))
        if max_age is not None:
            return max_age

        if "Expires" in self.response_headers:
            expires = parse_http_date(self.response_headers.get("Expires"))
            # An invalid Expires (e.g. "0") means already expired.
            if expires is None:
                return 0.0
            return max(0.0, expires - self.date())

        last_modified = parse_http_date(self.response_headers.get("Last-Modified"))
        if last_modified is not None:
            return max(0.0, (self.date() - last_modified) * HEURISTIC_FRACTION)

        return 0.0

    def age(self, now: float | None = None) -> float:
        """Current age: the ``Age`` header plus the time spent in this cache."""
        now = time.time() if now is None else now
        age_header = _seconds(self.response_headers.get("Age")) or 0.0
        resident = max(0.0, now - self.response_time)
        return age_header + resident

    def time_to_live(self, now: float | None = None) -> float:
        return max(0.0, self.max_age() - self.age(now))

    def is_stale(self, now: float | None = None) -> bool:
        return self.max_age() <= self.age(now)

    # ------------------------------------------------------------------
    # Matching
    # ------------------------------------------------------------------

    def _vary_fields(self) -> list[str]:
        fields: list[str] = []
        for value in self.response_headers.getall("Vary", []):
            for name in value.split(","):
                name = name.strip().lower()
                if name:
                    fields.append(name)
        return fields

    def vary_matches(self, request_headers: Any) -> bool:
        """Check that the headers named by ``Vary`` match the original request."""
        fields = self._vary_fields()
        if "*" in fields:
            return False
        headers = make_headers(request_headers)
        for name in fields:
            if self.request_headers.get(name) != headers.get(name):
                return False
        return True

    def satisfies_without_revalidation(self, request_headers: Any, now: float | None = None) -> bool:
        """True when the stored response can be replayed for ``request_headers`` as is."""
        now = time.time() if now is None else now
        headers = make_headers(request_headers)
        req_cc = parse_cache_control(headers.get("Cache-Control"))

        if not self.vary_matches(headers):
            return False
        if "no-cache" in req_cc or "no-cache" in headers.get("Pragma", "").lower():
            return False
        if "no-cache" in self._res_cc:
            return False

        age = self.age(now)
        requested_max_age = _seconds(req_cc.get("max-age"))
        if requested_max_age is not None and age > requested_max_age:
            return False

        min_fresh = _seconds(req_cc.get("min-fresh"))
        if min_fresh is not None and self.time_to_live(now) < min_fresh:
            return False

        if self.is_stale(now):
            if "must-revalidate" in self._res_cc:
                return False
            if "max-stale" not in req_cc:
                return False
            max_stale = _seconds(req_cc.get("max-stale"))
            # A bare max-stale accepts any staleness.
            if max_stale is not None and age - self.max_age() > max_stale:
                return False
        return True

    # ------------------------------------------------------------------
    # Revalidation
    # ------------------------------------------------------------------

    def has_validators(self) -> bool:
        return "ETag" in self.response_headers or "Last-Modified" in self.response_headers

    def revalidation_headers(self, request_headers: Any) -> CIMultiDict[str]:
        """Request headers for a conditional request revalidating this entry."""
        headers = make_headers(request_headers)
        headers.popall("If-None-Match", None)
        headers.popall("If-Modified-Since", None)
        etag = self.response_headers.get("ETag")
        if etag:
            headers["If-None-Match"] = etag
        last_modified = self.response_headers.get("Last-Modified")
        if last_modified and self.method == "GET":
            headers["If-Modified-Since"] = last_modified
        return headers

    def revalidated(
        self,
        request_headers: Any,
        response_headers: Any,
        *,
        response_time: float | None = None,
    ) -> CachePolicy:
        """
        Policy for the stored response after a ``304 Not Modified``.

        Headers from the 304 replace the stored ones, except those describing
        the stored body.
        """
        merged = CIMultiDict(self.response_headers)
        fresh = make_headers(response_headers)
        replaced: set[str] = set()
        for name, value in fresh.items():
            lname = name.lower()
            if lname in _NOT_UPDATED_ON_304 or lname in _HOP_BY_HOP:
                continue
            if lname not in replaced:
                merged.popall(name, None)
                replaced.add(lname)
            merged.add(name, value)
        # The Age of the stored copy restarts at the revalidation.
        merged.popall("Age", None)
        if "Age" in fresh:
            merged["Age"] = fresh["Age"]

        return CachePolicy(
            self.method,
            self.url,
            request_headers,
            self.status,
            merged,
            response_time=response_time,
        )

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def storable_response_headers(self) -> list[tuple[str, str]]:
        return [(k, v) for k, v in self.response_headers.items() if k.lower() not in _HOP_BY_HOP]

    def vary_request_headers(self) -> list[tuple[str, str]]:
        fields = set(self._vary_fields())
        return [(k, v) for k, v in self.request_headers.items() if k.lower() in fields]


__all__ = [
    "STORABLE_STATUSES",
    "CacheMode",
    "CachePolicy",
    "parse_cache_control",
    "parse_http_date",
    "format_http_date",
]
