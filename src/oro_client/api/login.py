"""
Registry login flows.

Two flows exist:

- web login: ``POST /-/v1/login`` returns a URL for the user's browser and a
  ``doneUrl`` that is polled until it hands out a token
- CouchDB login: ``PUT /-/user/org.couchdb.user:<name>`` with the password,
  optionally with a one-time password in the ``npm-otp`` header

Login requests are never cached.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any
from urllib.parse import quote

from yarl import URL

from ..errors import (
    IncorrectPasswordError,
    InvalidResponseError,
    LoginTimeoutError,
    NoSuchUserError,
    OTPRequiredError,
)
from ..resilience import parse_retry_after
from ..urls import join_registry, parse_registry_url
from .packument import decode_json, raise_for_status

if TYPE_CHECKING:
    from ..context import RequestContext

DEFAULT_LOGIN_RETRY = 1.0


@dataclass(frozen=True)
class LoginWeb:
    """URLs for a pending web login."""

    login_url: str
    done_url: str


@dataclass(frozen=True)
class LoginToken:
    token: str = field(repr=False)


@dataclass(frozen=True)
class LoginRetry:
    """The web login is not finished yet; poll again after ``retry_after`` seconds."""

    retry_after: float


@dataclass(frozen=True)
class WebOTPChallenge:
    """The registry wants the user to complete a second factor in the browser."""

    auth_url: str
    done_url: str


def _required_str(data: Any, key: str, url: str) -> str:
    value = data.get(key) if isinstance(data, dict) else None
    if not isinstance(value, str) or not value:
        raise InvalidResponseError(f"Login response is missing {key!r}", url=url)
    return value


class LoginMixin:
    """
    Login operations for OroClient.

    Requires ``self.registry``, ``self.request()`` and ``self.send()`` on the
    implementing class.
    """

    registry: URL

    def _login_base(self, registry: str | URL | None) -> URL:
        return parse_registry_url(registry) if registry else self.registry

    async def login_web(
        self,
        *,
        hostname: str | None = None,
        registry: str | URL | None = None,
        context: RequestContext | None = None,
    ) -> LoginWeb:
        """Start a web login. Open ``login_url`` in a browser, then poll ``done_url``."""
        url = join_registry(self._login_base(registry), "-/v1/login")
        request = self.request(
            "POST",
            url,
            headers={"npm-auth-type": "web", "npm-command": "login"},
            json={"hostname": hostname} if hostname else {},
            cacheable=False,
        )
        response = await self.send(request, context=context)
        raise_for_status(response)
        data = decode_json(response)
        return LoginWeb(
            login_url=_required_str(data, "loginUrl", str(url)),
            done_url=_required_str(data, "doneUrl", str(url)),
        )

    async def fetch_login_token(
        self,
        done_url: str | URL,
        *,
        context: RequestContext | None = None,
    ) -> LoginToken | LoginRetry:
        """Poll ``done_url`` once."""
        request = self.request("GET", done_url, cacheable=False)
        response = await self.send(request, context=context)

        if response.status == 202:
            retry_after = parse_retry_after(response.header("Retry-After"))
            return LoginRetry(retry_after=retry_after if retry_after is not None else DEFAULT_LOGIN_RETRY)

        raise_for_status(response)
        data = decode_json(response)
        return LoginToken(token=_required_str(data, "token", str(response.url)))

    async def wait_for_login_token(
        self,
        done_url: str | URL,
        *,
        timeout: float = 300.0,
        context: RequestContext | None = None,
    ) -> LoginToken:
        """
        Poll ``done_url`` until the web login completes.

        Raises:
            LoginTimeoutError: If no token arrives within ``timeout`` seconds.
        """
        deadline = time.monotonic() + timeout
        while True:
            result = await self.fetch_login_token(done_url, context=context)
            if isinstance(result, LoginToken):
                return result
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                raise LoginTimeoutError(timeout=timeout)
            await asyncio.sleep(min(result.retry_after, remaining))

    async def login_couch(
        self,
        username: str,
        password: str,
        *,
        otp: str | None = None,
        registry: str | URL | None = None,
        context: RequestContext | None = None,
    ) -> LoginToken | WebOTPChallenge:
        """
        Log in with a username and password.

        Raises:
            OTPRequiredError: A one-time password is needed (retry with ``otp``).
            IncorrectPasswordError: The credentials were rejected.
            NoSuchUserError: The registry has no such user.
        """
        url = join_registry(self._login_base(registry), f"-/user/org.couchdb.user:{quote(username, safe='')}")
        headers = {"npm-auth-type": "legacy", "npm-command": "login"}
        if otp:
            headers["npm-otp"] = otp
        document = {
            "_id": f"org.couchdb.user:{username}",
            "name": username,
            "password": password,
            "type": "user",
            "roles": [],
            "date": datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z"),
        }
        request = self.request("PUT", url, headers=headers, json=document, cacheable=False)
        response = await self.send(request, context=context)

        if response.status == 401:
            challenge = (response.header("WWW-Authenticate") or "").lower()
            if "otp" in challenge:
                try:
                    data = response.json()
                except ValueError:
                    data = None
                if isinstance(data, dict) and data.get("authUrl") and data.get("doneUrl"):
                    return WebOTPChallenge(auth_url=str(data["authUrl"]), done_url=str(data["doneUrl"]))
                raise OTPRequiredError(auth_url=data.get("authUrl") if isinstance(data, dict) else None)
            raise IncorrectPasswordError()
        if response.status == 404:
            raise NoSuchUserError(username=username)

        raise_for_status(response)
        data = decode_json(response)
        return LoginToken(token=_required_str(data, "token", str(url)))


__all__ = [
    "LoginMixin",
    "LoginWeb",
    "LoginToken",
    "LoginRetry",
    "WebOTPChallenge",
]
