"""
Async client for the npm registry API.

Example:
    ```python
    from oro_client import OroClient

    async with OroClient.builder().cache("~/.cache/oro").build() as client:
        packument = await client.corgi_packument("@types/node")
    ```
"""

from .api import LoginRetry, LoginToken, LoginWeb, WebOTPChallenge
from .cache import CacheMode, FSCache, HttpCache, MemoryCache
from .client import OroClient, OroClientBuilder
from .config import Settings, configure, get_settings, load_env
from .context import RequestContext
from .credentials import Credentials, CredentialStore, nerf_dart
from .errors import (
    AuthenticationError,
    CacheMissError,
    ErrorCode,
    IncorrectPasswordError,
    InvalidResponseError,
    InvalidUrlError,
    LoginError,
    LoginTimeoutError,
    NoSuchUserError,
    OroClientError,
    OTPRequiredError,
    PackageNotFoundError,
    RateLimitError,
    RegistryError,
    RegistryTimeoutError,
    RegistryUnavailableError,
    RequestError,
    ResponseError,
)
from .hooks import HookManager, InMemoryMetricsHook, OpenTelemetryHook
from .logging import StructuredLogger, configure_logging, get_logger
from .packument import CorgiPackument, Dist, Packument, VersionMetadata
from .sync import corgi_packument_sync, packument_sync
from .types import RegistryRequest, RegistryResponse
from .version import __version__

__all__ = [
    "__version__",
    # Client
    "OroClient",
    "OroClientBuilder",
    "RegistryRequest",
    "RegistryResponse",
    "RequestContext",
    # Models
    "Packument",
    "CorgiPackument",
    "VersionMetadata",
    "Dist",
    "LoginWeb",
    "LoginToken",
    "LoginRetry",
    "WebOTPChallenge",
    # Credentials
    "Credentials",
    "CredentialStore",
    "nerf_dart",
    # Cache
    "CacheMode",
    "HttpCache",
    "FSCache",
    "MemoryCache",
    # Config
    "Settings",
    "configure",
    "get_settings",
    "load_env",
    # Observability
    "HookManager",
    "InMemoryMetricsHook",
    "OpenTelemetryHook",
    "StructuredLogger",
    "configure_logging",
    "get_logger",
    # Sync
    "packument_sync",
    "corgi_packument_sync",
    # Errors
    "ErrorCode",
    "OroClientError",
    "RegistryError",
    "ResponseError",
    "PackageNotFoundError",
    "AuthenticationError",
    "RateLimitError",
    "RegistryUnavailableError",
    "RegistryTimeoutError",
    "InvalidResponseError",
    "RequestError",
    "InvalidUrlError",
    "LoginError",
    "OTPRequiredError",
    "IncorrectPasswordError",
    "NoSuchUserError",
    "LoginTimeoutError",
    "CacheMissError",
]
