"""
Registry URL helpers.
"""

from __future__ import annotations

from urllib.parse import quote

from yarl import URL

from .errors import InvalidUrlError

DEFAULT_REGISTRY = "https://registry.npmjs.org/"


def parse_url(value: str | URL) -> URL:
    """Parse an absolute http(s) URL, raising InvalidUrlError otherwise."""
    if isinstance(value, URL):
        url = value
    else:
        try:
            url = URL(str(value).strip())
        except (TypeError, ValueError) as exc:
            raise InvalidUrlError(url=str(value), cause=exc) from exc

    if url.scheme not in ("http", "https") or not url.host:
        raise InvalidUrlError("Expected an absolute http(s) URL", url=str(value))
    return url


def parse_registry_url(value: str | URL) -> URL:
    """
    Parse and normalize a registry base URL.

    The path always ends with ``/`` so that relative joins keep any path
    prefix (``https://host/npm/`` + ``lodash`` -> ``https://host/npm/lodash``).
    Query strings and fragments are dropped.
    """
    url = parse_url(value)
    path = url.raw_path or "/"
    if not path.endswith("/"):
        path += "/"
    return url.with_query(None).with_fragment(None).with_path(path, encoded=True)


def escape_package_name(name: str) -> str:
    """
    Escape a package name for use as a single path segment.

    ``@scope/pkg`` becomes ``@scope%2Fpkg``; the leading ``@`` is kept.
    """
    name = name.strip()
    if not name:
        raise ValueError("Package name cannot be empty")
    return quote(name, safe="@")


def join_registry(registry: URL, path: str) -> URL:
    """Join an already-encoded relative path onto a registry base URL."""
    base = str(parse_registry_url(registry))
    return URL(base + path.lstrip("/"), encoded=True)


def packument_url(registry: URL, name: str) -> URL:
    """URL of the packument document for ``name``."""
    return join_registry(registry, escape_package_name(name))


def resolve_url(registry: URL, value: str | URL) -> URL:
    """Resolve a possibly relative URL (e.g. a tarball path) against the registry."""
    url = value if isinstance(value, URL) else URL(str(value))
    if url.is_absolute():
        return parse_url(url)
    return join_registry(registry, str(value))


def host_matches_no_proxy(host: str | None, domains: list[str] | tuple[str, ...]) -> bool:
    """
    Check a host against a no-proxy domain list.

    ``*`` matches every host. Other entries match the host itself or any
    subdomain of it; a leading dot is ignored.
    """
    if not host:
        return False
    host = host.lower().rstrip(".")
    for entry in domains:
        entry = entry.strip().lower()
        if not entry:
            continue
        if entry == "*":
            return True
        entry = entry.lstrip(".")
        if ":" in entry:
            entry = entry.split(":", 1)[0]
        if host == entry or host.endswith("." + entry):
            return True
    return False


def split_domains(value: str | list[str] | tuple[str, ...] | None) -> list[str]:
    """Split a comma separated NO_PROXY style string into entries."""
    if not value:
        return []
    if isinstance(value, str):
        value = value.split(",")
    return [d.strip() for d in value if d and d.strip()]


__all__ = [
    "DEFAULT_REGISTRY",
    "parse_url",
    "parse_registry_url",
    "escape_package_name",
    "join_registry",
    "packument_url",
    "resolve_url",
    "host_matches_no_proxy",
    "split_domains",
]
