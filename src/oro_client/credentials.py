"""
Registry credentials and nerf-dart matching.

npm scopes credentials to a "nerf dart": the registry URL without scheme,
userinfo, query or fragment, e.g. ``//registry.npmjs.org/``. A request gets
the credentials of the longest nerf dart that prefixes its own URL.
"""

from __future__ import annotations

import base64
from dataclasses import dataclass
from typing import Literal

from yarl import URL

from .urls import parse_url

CredentialKind = Literal["token", "basic", "encoded_basic"]


def nerf_dart(url: str | URL) -> str:
    """
    Compute the nerf dart for a URL.

    Example:
        >>> nerf_dart("https://user:pw@registry.example.com:8080/npm/pkg?x=1")
        '//registry.example.com:8080/npm/'
    """
    parsed = parse_url(url)
    host = parsed.raw_host or ""
    if parsed.port is not None and not parsed.is_default_port():
        host = f"{host}:{parsed.port}"
    path = parsed.raw_path or "/"
    # The last segment of a non-directory path is a document, not a prefix.
    if not path.endswith("/"):
        path = path.rsplit("/", 1)[0] + "/"
    return f"//{host}{path}"


@dataclass(frozen=True)
class Credentials:
    """Credentials for one registry."""

    kind: CredentialKind
    token: str | None = None
    username: str | None = None
    password: str | None = None

    @classmethod
    def from_token(cls, token: str) -> Credentials:
        if not token:
            raise ValueError("token cannot be empty")
        return cls(kind="token", token=token)

    @classmethod
    def basic(cls, username: str, password: str | None = None) -> Credentials:
        if not username:
            raise ValueError("username cannot be empty")
        return cls(kind="basic", username=username, password=password)

    @classmethod
    def encoded_basic(cls, encoded: str) -> Credentials:
        """Pre-encoded ``user:password`` (npm's legacy ``_auth``)."""
        if not encoded:
            raise ValueError("encoded credentials cannot be empty")
        return cls(kind="encoded_basic", token=encoded)

    def authorization_header(self) -> str:
        if self.kind == "token":
            return f"Bearer {self.token}"
        if self.kind == "basic":
            raw = f"{self.username}:{self.password or ''}".encode("utf-8")
            return "Basic " + base64.b64encode(raw).decode("ascii")
        return f"Basic {self.token}"

    def __repr__(self) -> str:
        # Never leak secrets into logs or tracebacks.
        who = f" username={self.username!r}" if self.username else ""
        return f"Credentials(kind={self.kind!r}{who})"


class CredentialStore:
    """Maps registry nerf darts to credentials."""

    def __init__(self, entries: dict[str, Credentials] | None = None) -> None:
        self._entries: dict[str, Credentials] = {}
        for registry, creds in (entries or {}).items():
            self.add(registry, creds)

    def add(self, registry: str | URL, credentials: Credentials) -> None:
        """Register credentials for a registry URL (or a ``//host/path/`` nerf dart)."""
        key = str(registry)
        if key.startswith("//"):
            key = nerf_dart("https:" + key)
        else:
            key = nerf_dart(key)
        self._entries[key] = credentials

    def for_url(self, url: str | URL) -> Credentials | None:
        """Return the credentials with the longest nerf dart prefix of ``url``."""
        target = nerf_dart(url)
        best: tuple[int, Credentials] | None = None
        for dart, creds in self._entries.items():
            if target.startswith(dart) and (best is None or len(dart) > best[0]):
                best = (len(dart), creds)
        return best[1] if best else None

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, registry: object) -> bool:
        if not isinstance(registry, (str, URL)):
            return False
        return self.for_url(registry) is not None


__all__ = ["Credentials", "CredentialStore", "nerf_dart"]
