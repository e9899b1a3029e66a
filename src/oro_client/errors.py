"""
Error taxonomy for oro-client.

Every exception derives from ``OroClientError`` and carries an ``ErrorCode``,
a ``retryable`` flag, an optional user-facing ``help`` hint and an
``ErrorContext`` identifying the request. Registry statuses map onto the
hierarchy through ``error_from_status``.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Standardized error codes for the registry client."""

    # Registry response errors (1xxx)
    REGISTRY_ERROR = "ERR_1000"
    RESPONSE_ERROR = "ERR_1001"
    PACKAGE_NOT_FOUND = "ERR_1002"
    AUTHENTICATION = "ERR_1003"
    RATE_LIMIT = "ERR_1004"
    REGISTRY_UNAVAILABLE = "ERR_1005"
    REGISTRY_TIMEOUT = "ERR_1006"
    INVALID_RESPONSE = "ERR_1007"

    # Transport errors (2xxx)
    REQUEST_ERROR = "ERR_2000"
    INVALID_URL = "ERR_2001"

    # Login errors (3xxx)
    LOGIN_ERROR = "ERR_3000"
    OTP_REQUIRED = "ERR_3001"
    INCORRECT_PASSWORD = "ERR_3002"
    NO_SUCH_USER = "ERR_3003"
    LOGIN_TIMEOUT = "ERR_3004"

    # Cache errors (4xxx)
    CACHE_ERROR = "ERR_4000"
    CACHE_READ_ERROR = "ERR_4001"
    CACHE_WRITE_ERROR = "ERR_4002"
    CACHE_MISS = "ERR_4003"

    # Configuration errors (6xxx)
    CONFIG_ERROR = "ERR_6000"
    INVALID_CONFIG = "ERR_6001"

    # Internal errors (9xxx)
    INTERNAL_ERROR = "ERR_9000"


@dataclass
class ErrorContext:
    """Which request an error belongs to."""

    request_id: str | None = None
    trace_id: str | None = None
    registry: str | None = None
    method: str | None = None
    url: str | None = None
    attempt: int = 1
    extra: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "request_id": self.request_id,
            "trace_id": self.trace_id,
            "registry": self.registry,
            "method": self.method,
            "url": self.url,
            "attempt": self.attempt,
            **self.extra,
        }


class OroClientError(Exception):
    """
    Base exception for all oro-client errors.

    Attributes:
        code: Standardized error code for programmatic handling
        message: Human-readable error message
        help: Hint shown to users on how to fix the problem
        retryable: Whether the operation can be retried
        context: Structured debugging context
        cause: Original exception that caused this error
    """

    code: ErrorCode = ErrorCode.INTERNAL_ERROR
    retryable: bool = False
    help: str | None = None

    def __init__(
        self,
        message: str,
        *,
        code: ErrorCode | None = None,
        retryable: bool | None = None,
        help: str | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        if retryable is not None:
            self.retryable = retryable
        if help is not None:
            self.help = help
        self.context = context or ErrorContext()
        self.cause = cause

    def __str__(self) -> str:
        parts = [f"[{self.code.value}] {self.message}"]
        if self.context.request_id:
            parts.append(f"(request_id={self.context.request_id})")
        return " ".join(parts)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "code": self.code.value,
            "message": self.message,
            "help": self.help,
            "retryable": self.retryable,
            "context": self.context.to_dict(),
            "cause": str(self.cause) if self.cause else None,
        }


# =============================================================================
# Registry Errors
# =============================================================================


class RegistryError(OroClientError):
    """Base class for errors reported by the registry."""

    code = ErrorCode.REGISTRY_ERROR
    retryable = False
    http_status: int | None = None

    def __init__(
        self,
        message: str,
        *,
        http_status: int | None = None,
        url: str | None = None,
        **kwargs,
    ):
        super().__init__(message, **kwargs)
        if http_status is not None:
            self.http_status = http_status
        self.url = url
        if url and not self.context.url:
            self.context.url = url


class ResponseError(RegistryError):
    """Registry answered with an unexpected status."""

    code = ErrorCode.RESPONSE_ERROR
    help = "Check that the registry URL is correct and that the registry is reachable."

    def __init__(
        self,
        message: str | None = None,
        *,
        http_status: int | None = None,
        url: str | None = None,
        body: str | None = None,
        **kwargs,
    ):
        if message is None:
            message = f"Registry request failed: {url} (status {http_status})"
        super().__init__(message, http_status=http_status, url=url, **kwargs)
        self.body = body


class PackageNotFoundError(RegistryError):
    """Package does not exist in the registry."""

    code = ErrorCode.PACKAGE_NOT_FOUND
    help = "Make sure the package name is spelled correctly and that you have access to it."

    def __init__(
        self,
        message: str = "Package was not found in registry",
        *,
        package: str | None = None,
        **kwargs,
    ):
        if package:
            message = f"Package was not found in registry: {package}"
        kwargs.setdefault("http_status", 404)
        super().__init__(message, **kwargs)
        self.package = package


class AuthenticationError(RegistryError):
    """Missing or rejected credentials. Not retryable."""

    code = ErrorCode.AUTHENTICATION
    help = "Log in to the registry, or configure a token for it."

    def __init__(
        self,
        message: str = "Registry rejected the request credentials",
        **kwargs,
    ):
        kwargs.setdefault("http_status", 401)
        super().__init__(message, **kwargs)


class RateLimitError(RegistryError):
    """HTTP 429. Retried after ``retry_after`` seconds when the registry says so."""

    code = ErrorCode.RATE_LIMIT
    retryable = True

    def __init__(
        self,
        message: str = "Registry rate limit exceeded",
        *,
        retry_after: float | None = None,
        **kwargs,
    ):
        kwargs.setdefault("http_status", 429)
        super().__init__(message, **kwargs)
        self.retry_after = retry_after


class RegistryUnavailableError(RegistryError):
    """Registry is temporarily unavailable. Retryable."""

    code = ErrorCode.REGISTRY_UNAVAILABLE
    retryable = True

    def __init__(
        self,
        message: str = "Registry service unavailable",
        **kwargs,
    ):
        kwargs.setdefault("http_status", 503)
        super().__init__(message, **kwargs)


class RegistryTimeoutError(RegistryError):
    """Request to the registry timed out. Retryable."""

    code = ErrorCode.REGISTRY_TIMEOUT
    retryable = True
    help = "The registry took too long to answer. Try raising the request timeout."

    def __init__(
        self,
        message: str = "Request timed out",
        *,
        timeout: float | None = None,
        **kwargs,
    ):
        kwargs.setdefault("http_status", 504)
        super().__init__(message, **kwargs)
        self.timeout = timeout


class InvalidResponseError(RegistryError):
    """Registry returned a body that could not be understood."""

    code = ErrorCode.INVALID_RESPONSE
    retryable = False

    def __init__(
        self,
        message: str = "Invalid response from registry",
        **kwargs,
    ):
        super().__init__(message, **kwargs)


# =============================================================================
# Transport Errors
# =============================================================================


class RequestError(OroClientError):
    """Request could not be sent or the connection failed."""

    code = ErrorCode.REQUEST_ERROR
    retryable = True
    help = "Check your network connection and proxy settings."


class InvalidUrlError(OroClientError):
    """URL could not be parsed or is not usable as a registry URL."""

    code = ErrorCode.INVALID_URL
    retryable = False

    def __init__(
        self,
        message: str = "Invalid URL",
        *,
        url: str | None = None,
        **kwargs,
    ):
        if url is not None:
            message = f"{message}: {url!r}"
        super().__init__(message, **kwargs)
        self.url = url


# =============================================================================
# Login Errors
# =============================================================================


class LoginError(OroClientError):
    """Base class for login failures."""

    code = ErrorCode.LOGIN_ERROR
    retryable = False


class OTPRequiredError(LoginError):
    """Registry demands a one-time password."""

    code = ErrorCode.OTP_REQUIRED
    help = "Re-run the login with the one-time password from your authenticator."

    def __init__(
        self,
        message: str = "A one-time password is required to log in",
        *,
        auth_url: str | None = None,
        **kwargs,
    ):
        super().__init__(message, **kwargs)
        self.auth_url = auth_url


class IncorrectPasswordError(LoginError):
    """Username/password pair was rejected."""

    code = ErrorCode.INCORRECT_PASSWORD

    def __init__(self, message: str = "Incorrect username or password", **kwargs):
        super().__init__(message, **kwargs)


class NoSuchUserError(LoginError):
    """The user does not exist on the registry."""

    code = ErrorCode.NO_SUCH_USER

    def __init__(
        self,
        message: str = "No such user",
        *,
        username: str | None = None,
        **kwargs,
    ):
        if username:
            message = f"No such user: {username}"
        super().__init__(message, **kwargs)
        self.username = username


class LoginTimeoutError(LoginError):
    """Web login was not completed in time."""

    code = ErrorCode.LOGIN_TIMEOUT
    help = "Finish the login in your browser before the timeout expires."

    def __init__(
        self,
        message: str = "Timed out waiting for web login to complete",
        *,
        timeout: float | None = None,
        **kwargs,
    ):
        super().__init__(message, **kwargs)
        self.timeout = timeout


# =============================================================================
# Cache Errors
# =============================================================================


class CacheError(OroClientError):
    """Cache backend failure. The HTTP cache degrades to the network instead of raising these."""

    code = ErrorCode.CACHE_ERROR
    retryable = False


class CacheReadError(CacheError):
    """Failed to read from cache."""

    code = ErrorCode.CACHE_READ_ERROR


class CacheWriteError(CacheError):
    """Failed to write to cache."""

    code = ErrorCode.CACHE_WRITE_ERROR


class CacheMissError(CacheError):
    """Request was restricted to the cache and nothing was stored."""

    code = ErrorCode.CACHE_MISS
    help = "Run once with network access, or switch off only-if-cached mode."

    def __init__(
        self,
        message: str = "Response is not in the cache",
        *,
        url: str | None = None,
        **kwargs,
    ):
        if url:
            message = f"Response is not in the cache: {url}"
        super().__init__(message, **kwargs)
        self.url = url


# =============================================================================
# Configuration Errors
# =============================================================================


class ConfigError(OroClientError):
    """Problem with Settings or one of its sections."""

    code = ErrorCode.CONFIG_ERROR
    retryable = False


class InvalidConfigError(ConfigError):
    """A configuration value failed parsing or validation."""

    code = ErrorCode.INVALID_CONFIG


# =============================================================================
# Error Mapping from HTTP Status Codes
# =============================================================================


def error_from_status(
    status: int,
    url: str,
    message: str | None = None,
    *,
    body: str | None = None,
    retry_after: float | None = None,
    context: ErrorContext | None = None,
) -> RegistryError:
    """
    Create an appropriate RegistryError from an HTTP status code.

    Args:
        status: HTTP status code; every 5xx other than 504 is RegistryUnavailableError
        url: URL that was requested
        message: Optional override for the error message
        body: Response body excerpt, kept on generic response errors
        retry_after: Seconds from a Retry-After header, for 429s
        context: Additional error context

    Returns:
        Appropriate RegistryError subclass
    """
    ctx = context or ErrorContext(url=url)

    if status in (401, 403):
        return AuthenticationError(
            message or f"Registry rejected the request credentials: {url}",
            http_status=status,
            url=url,
            context=ctx,
        )
    if status == 429:
        return RateLimitError(
            message or "Registry rate limit exceeded",
            retry_after=retry_after,
            url=url,
            context=ctx,
        )
    if status in (408, 504):
        return RegistryTimeoutError(message or f"Registry timed out: {url}", http_status=status, url=url, context=ctx)
    if 500 <= status < 600:
        # Only 500, 502 and 503 are transient
        return RegistryUnavailableError(
            message or f"Registry unavailable: {url} (status {status})",
            http_status=status,
            url=url,
            retryable=status in (500, 502, 503),
            context=ctx,
        )
    return ResponseError(message, http_status=status, url=url, body=body, context=ctx)


def is_retryable(error: BaseException) -> bool:
    """
    Check if an error is retryable.

    Args:
        error: Exception to check

    Returns:
        True if the error is retryable
    """
    if isinstance(error, asyncio.CancelledError):
        return False
    if isinstance(error, OroClientError):
        return error.retryable

    retryable_types = (
        asyncio.TimeoutError,
        ConnectionError,
        TimeoutError,
    )
    return isinstance(error, retryable_types)


__all__ = [
    # Base
    "ErrorCode",
    "ErrorContext",
    "OroClientError",
    # Registry errors
    "RegistryError",
    "ResponseError",
    "PackageNotFoundError",
    "AuthenticationError",
    "RateLimitError",
    "RegistryUnavailableError",
    "RegistryTimeoutError",
    "InvalidResponseError",
    # Transport errors
    "RequestError",
    "InvalidUrlError",
    # Login errors
    "LoginError",
    "OTPRequiredError",
    "IncorrectPasswordError",
    "NoSuchUserError",
    "LoginTimeoutError",
    # Cache errors
    "CacheError",
    "CacheReadError",
    "CacheWriteError",
    "CacheMissError",
    # Config errors
    "ConfigError",
    "InvalidConfigError",
    # Utilities
    "error_from_status",
    "is_retryable",
]
