"""
Registry connection configuration.
"""

from __future__ import annotations

from dataclasses import dataclass

from ..urls import DEFAULT_REGISTRY


@dataclass
class RegistryConfig:
    """Configuration for talking to an npm registry."""

    # Endpoint
    registry: str = DEFAULT_REGISTRY
    token: str | None = None
    user_agent: str | None = None

    # Request settings
    timeout: float = 60.0
    connect_timeout: float | None = 10.0
    fetch_retries: int = 2
    retry_min_backoff: float = 0.5
    retry_max_backoff: float = 30.0
    max_concurrency: int = 50

    # Proxy
    proxy: bool = False
    proxy_url: str | None = None
    no_proxy_domain: str | None = None

    def __post_init__(self):
        """Validate configuration after initialization."""
        if self.timeout <= 0:
            raise ValueError("timeout must be positive")
        if self.connect_timeout is not None and self.connect_timeout <= 0:
            raise ValueError("connect_timeout must be positive")
        if self.fetch_retries < 0:
            raise ValueError("fetch_retries cannot be negative")
        if self.retry_min_backoff < 0:
            raise ValueError("retry_min_backoff cannot be negative")
        if self.retry_max_backoff < self.retry_min_backoff:
            raise ValueError("retry_max_backoff must be >= retry_min_backoff")
        if self.max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")
        if not self.registry.startswith(("http://", "https://")):
            raise ValueError("registry must be a valid HTTP(S) URL")
        if self.proxy_url and not self.proxy_url.startswith(("http://", "https://")):
            raise ValueError("proxy_url must be a valid HTTP(S) URL")


__all__ = ["RegistryConfig"]
