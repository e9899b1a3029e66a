"""
Async npm registry client.

``OroClient`` owns the request pipeline:

1. attach ``User-Agent`` and the credentials of the matching registry
2. consult the HTTP cache (when one is configured)
3. perform the request over aiohttp, retrying transient failures
4. emit hooks and structured logs for every request and attempt

Registry operations (packuments, login, tarballs) live in the ``api`` mixins.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, TypeVar

import aiohttp
from multidict import CIMultiDict
from yarl import URL

from .api import LoginMixin, PackumentMixin, TarballMixin
from .cache import CacheBackend, CacheCore, CacheMode, CacheSettings, HttpCache, build_cache_core
from .config import Settings, get_settings
from .context import RequestContext
from .credentials import Credentials, CredentialStore
from .errors import (
    ErrorContext,
    InvalidUrlError,
    OroClientError,
    RegistryTimeoutError,
    RequestError,
    error_from_status,
)
from .hooks import HookManager
from .logging import RequestLog, ResponseLog, StructuredLogger, Timer, get_logger, truncate_for_log
from .resilience import RetryConfig, parse_retry_after
from .types import RegistryRequest, RegistryResponse, make_headers
from .urls import DEFAULT_REGISTRY, host_matches_no_proxy, parse_registry_url, parse_url, resolve_url, split_domains
from .version import __version__

R = TypeVar("R")

DEFAULT_USER_AGENT = f"oro-client/{__version__}"

# aiohttp decodes these; the headers no longer describe the body we keep.
_DECODED_BODY_HEADERS = ("Content-Encoding", "Content-Length")


class OroClient(PackumentMixin, LoginMixin, TarballMixin):
    """
    Client for an npm-compatible registry.

    Example:
        ```python
        async with OroClient.builder().cache("~/.cache/oro").build() as client:
            packument = await client.packument("react")
            print(packument.latest.version)
        ```
    """

    def __init__(
        self,
        *,
        registry: str | URL = DEFAULT_REGISTRY,
        retry: RetryConfig | None = None,
        timeout: float = 60.0,
        connect_timeout: float | None = 10.0,
        cache: HttpCache | None = None,
        credentials: CredentialStore | None = None,
        user_agent: str | None = None,
        proxy: bool = False,
        proxy_url: str | URL | None = None,
        no_proxy_domains: list[str] | None = None,
        max_concurrency: int = 50,
        hooks: HookManager | None = None,
        logger: StructuredLogger | None = None,
        log_requests: bool = True,
        log_responses: bool = True,
    ) -> None:
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be >= 1")
        self.registry = parse_registry_url(registry)
        self.retry = retry or RetryConfig()
        self.timeout = aiohttp.ClientTimeout(total=timeout, connect=connect_timeout)
        self.hooks = hooks or HookManager()
        self.logger = logger or get_logger()
        self.cache = cache or HttpCache(CacheCore(None), hooks=self.hooks)
        self.credentials = credentials or CredentialStore()
        self.user_agent = user_agent or DEFAULT_USER_AGENT
        self.proxy = proxy
        self.proxy_url = parse_url(proxy_url) if proxy_url else None
        self.no_proxy_domains = list(no_proxy_domains or [])
        self.log_requests = log_requests
        self.log_responses = log_responses
        self._semaphore = asyncio.Semaphore(max_concurrency)
        self._session: aiohttp.ClientSession | None = None

    @staticmethod
    def builder() -> OroClientBuilder:
        return OroClientBuilder()

    @classmethod
    def from_settings(
        cls,
        settings: Settings | None = None,
        *,
        hooks: HookManager | None = None,
        logger: StructuredLogger | None = None,
    ) -> OroClient:
        """Build a client from a Settings object (the global settings by default)."""
        settings = settings or get_settings()
        reg = settings.registry

        builder = (
            cls.builder()
            .registry(reg.registry)
            .fetch_retries(reg.fetch_retries)
            .retry_backoff(reg.retry_min_backoff, reg.retry_max_backoff)
            .timeout(reg.timeout, connect=reg.connect_timeout)
            .max_concurrency(reg.max_concurrency)
            .proxy(reg.proxy)
            .cache_settings(CacheSettings.from_config(settings.cache))
            .cache_mode(settings.cache.mode)
            .logger(
                logger or StructuredLogger.from_config(settings.logging),
                log_requests=settings.logging.log_requests,
                log_responses=settings.logging.log_responses,
                log_cache=settings.logging.log_cache,
            )
        )
        if reg.proxy_url:
            builder.proxy_url(reg.proxy_url)
        if reg.no_proxy_domain:
            builder.no_proxy_domain(reg.no_proxy_domain)
        if reg.token:
            builder.credentials(reg.registry, Credentials.from_token(reg.token))
        if reg.user_agent:
            builder.user_agent(reg.user_agent)
        if hooks is not None:
            builder.hooks(hooks)
        return builder.build()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> OroClient:
        await self.cache.core.ensure_ready()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=self.timeout,
                trust_env=self.proxy,
                headers={"User-Agent": self.user_agent},
            )
        return self._session

    async def close(self) -> None:
        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None
        await self.cache.core.close()

    # ------------------------------------------------------------------
    # Request building
    # ------------------------------------------------------------------

    def url(self, value: str | URL) -> URL:
        """Resolve a path or URL against the configured registry."""
        return resolve_url(self.registry, value)

    def request(
        self,
        method: str,
        url: str | URL,
        *,
        headers: Any = None,
        json: Any = None,
        cacheable: bool = True,
    ) -> RegistryRequest:
        return RegistryRequest(
            method=method,
            url=self.url(url),
            headers=make_headers(headers),
            json=json,
            cacheable=cacheable,
        )

    def _prepare(self, request: RegistryRequest) -> RegistryRequest:
        prepared = request.copy()
        prepared.headers.setdefault("User-Agent", self.user_agent)
        if "Authorization" not in prepared.headers:
            creds = self.credentials.for_url(prepared.url)
            if creds is not None:
                prepared.headers["Authorization"] = creds.authorization_header()
        if prepared.json is not None:
            prepared.headers.setdefault("Content-Type", "application/json")
        return prepared

    def _proxy_for(self, url: URL) -> URL | None:
        if self.proxy_url is None or host_matches_no_proxy(url.host, self.no_proxy_domains):
            return None
        return self.proxy_url

    # ------------------------------------------------------------------
    # Pipeline
    # ------------------------------------------------------------------

    async def send(
        self,
        request: RegistryRequest,
        *,
        cache_mode: CacheMode | str | None = None,
        context: RequestContext | None = None,
    ) -> RegistryResponse:
        """
        Send a request through the cache and transport.

        Non-2xx responses are returned, not raised; callers map them with
        ``error_from_status``. Transport failures raise OroClientError.
        """
        ctx = RequestContext.ensure(context)
        prepared = self._prepare(request)
        url = str(prepared.url)
        timer = Timer()

        await self.hooks.emit(
            "request.start",
            {"method": prepared.method, "url": url, "host": prepared.url.host},
            ctx,
        )
        with self.logger.request_context(prepared.method, url, str(self.registry), ctx.request_id):
            try:
                response = await self.cache.fetch(
                    prepared,
                    lambda req: self._retrying(req, ctx, self._send_once),
                    mode=cache_mode,
                    context=ctx,
                )
            except OroClientError as exc:
                await self._fail(prepared, exc, ctx, timer)
                raise

            latency_ms = timer.stop()
            if self.log_responses:
                self.logger.log_response(
                    ResponseLog(
                        request_id=ctx.request_id,
                        method=prepared.method,
                        url=url,
                        success=response.ok or response.status == 304,
                        status_code=response.status,
                        duration_ms=latency_ms,
                        content_length=len(response.body),
                        cache_hit=response.from_cache,
                        revalidated=response.revalidated,
                    )
                )
            await self.hooks.emit(
                "request.end",
                {"status": response.status, "latency_ms": int(latency_ms), "from_cache": response.from_cache},
                ctx,
            )
        return response

    @asynccontextmanager
    async def stream(
        self,
        request: RegistryRequest,
        *,
        context: RequestContext | None = None,
    ) -> AsyncIterator[aiohttp.ClientResponse]:
        """
        Open a streaming response. The cache is bypassed.

        Retries happen only before the body is handed out. A non-2xx status
        raises the mapped RegistryError.
        """
        ctx = RequestContext.ensure(context)
        prepared = self._prepare(request)
        url = str(prepared.url)
        timer = Timer()

        await self.hooks.emit(
            "request.start",
            {"method": prepared.method, "url": url, "host": prepared.url.host},
            ctx,
        )
        async with self._semaphore:
            # The log context must not span the yield: the consumer may close
            # the stream from another task.
            with self.logger.request_context(prepared.method, url, str(self.registry), ctx.request_id):
                try:
                    response = await self._retrying(prepared, ctx, self._open, discard=lambda r: r.release())
                    if not 200 <= response.status < 300:
                        body = await response.text(errors="replace")
                        response.release()
                        raise error_from_status(
                            response.status,
                            url,
                            body=truncate_for_log(body, 500),
                            retry_after=parse_retry_after(response.headers.get("Retry-After")),
                        )
                except OroClientError as exc:
                    await self._fail(prepared, exc, ctx, timer)
                    raise

            failed = False
            try:
                yield response
            except OroClientError as exc:
                failed = True
                await self._fail(prepared, exc, ctx, timer)
                raise
            finally:
                response.release()
                if not failed:
                    await self.hooks.emit(
                        "request.end",
                        {"status": response.status, "latency_ms": int(timer.elapsed_ms)},
                        ctx,
                    )

    async def _retrying(
        self,
        request: RegistryRequest,
        ctx: RequestContext,
        call: Callable[[RegistryRequest], Awaitable[R]],
        *,
        discard: Callable[[R], Any] | None = None,
    ) -> R:
        """Run ``call`` with the retry policy. The final response is returned whatever its status."""
        attempt = 0
        while True:
            attempt += 1
            await self.hooks.emit("request.attempt", {"attempt": attempt, "url": str(request.url)}, ctx)
            if self.log_requests:
                self.logger.log_request(
                    RequestLog(
                        request_id=ctx.request_id,
                        method=request.method,
                        url=str(request.url),
                        attempt=attempt,
                        authorization=request.headers.get("Authorization"),
                        cache_enabled=self.cache.enabled and request.cacheable,
                    )
                )

            try:
                result = await call(request)
            except OroClientError as exc:
                if not exc.retryable or attempt > self.retry.retries:
                    exc.context.attempt = attempt
                    raise
                retry_after = getattr(exc, "retry_after", None)
                reason = str(exc)
            else:
                status: int = result.status  # type: ignore[attr-defined]
                if not self.retry.should_retry_status(status) or attempt > self.retry.retries:
                    return result
                headers = result.headers  # type: ignore[attr-defined]
                retry_after = parse_retry_after(headers.get("Retry-After"))
                reason = f"HTTP {status}"
                if discard is not None:
                    discard(result)

            delay = self.retry.delay(attempt, retry_after)
            await self.hooks.emit(
                "retry.scheduled",
                {"attempt": attempt, "delay": delay, "reason": reason},
                ctx,
            )
            self.logger.log_retry(attempt + 1, delay, reason)
            await asyncio.sleep(delay)

    async def _open(self, request: RegistryRequest) -> aiohttp.ClientResponse:
        """Start a request and return the unread aiohttp response."""
        session = await self._get_session()
        try:
            return await session.request(
                request.method,
                request.url,
                headers=request.headers,
                data=request.body_bytes(),
                proxy=self._proxy_for(request.url),
            )
        except asyncio.TimeoutError as exc:
            raise RegistryTimeoutError(
                f"Request to {request.url} timed out",
                timeout=self.timeout.total,
                url=str(request.url),
                cause=exc,
            ) from exc
        except aiohttp.InvalidURL as exc:
            raise InvalidUrlError(url=str(request.url), cause=exc) from exc
        except aiohttp.ClientError as exc:
            raise RequestError(
                f"Request to {request.url} failed: {exc}",
                context=ErrorContext(method=request.method, url=str(request.url)),
                cause=exc,
            ) from exc

    async def _send_once(self, request: RegistryRequest) -> RegistryResponse:
        async with self._semaphore:
            response = await self._open(request)
            try:
                body = await response.read()
            except asyncio.TimeoutError as exc:
                raise RegistryTimeoutError(
                    f"Reading response from {request.url} timed out",
                    timeout=self.timeout.total,
                    url=str(request.url),
                    cause=exc,
                ) from exc
            except aiohttp.ClientError as exc:
                raise RequestError(
                    f"Reading response from {request.url} failed: {exc}",
                    context=ErrorContext(method=request.method, url=str(request.url)),
                    cause=exc,
                ) from exc
            finally:
                response.release()

        headers = CIMultiDict(response.headers)
        if "Content-Encoding" in headers:
            for name in _DECODED_BODY_HEADERS:
                headers.popall(name, None)
        return RegistryResponse(url=response.url, status=response.status, headers=headers, body=body)

    async def _fail(
        self,
        request: RegistryRequest,
        exc: OroClientError,
        ctx: RequestContext,
        timer: Timer,
    ) -> None:
        exc.context.request_id = exc.context.request_id or ctx.request_id
        exc.context.trace_id = exc.context.trace_id or ctx.trace_id
        exc.context.method = exc.context.method or request.method
        exc.context.url = exc.context.url or str(request.url)
        exc.context.registry = exc.context.registry or str(self.registry)

        self.logger.log_error(exc)
        await self.hooks.emit(
            "request.error",
            {"error": str(exc), "error_type": type(exc).__name__, "code": exc.code.value},
            ctx,
        )
        await self.hooks.emit(
            "request.end",
            {
                "status": getattr(exc, "http_status", None),
                "latency_ms": int(timer.elapsed_ms),
                "error": True,
            },
            ctx,
        )


class OroClientBuilder:
    """
    Fluent builder for OroClient.

    Example:
        ```python
        client = (
            OroClientBuilder()
            .registry("https://registry.example.com/")
            .fetch_retries(4)
            .cache("~/.cache/oro")
            .build()
        )
        ```
    """

    def __init__(self) -> None:
        self._registry: str | URL = DEFAULT_REGISTRY
        self._fetch_retries = 2
        self._retry_backoff = (0.5, 30.0)
        self._timeout = 60.0
        self._connect_timeout: float | None = 10.0
        self._max_concurrency = 50
        self._cache_core: CacheCore | None = None
        self._cache_mode: CacheMode = CacheMode.DEFAULT
        self._proxy = False
        self._proxy_url: str | URL | None = None
        self._no_proxy: list[str] = []
        self._credentials: list[tuple[str | URL, Credentials]] = []
        self._user_agent: str | None = None
        self._hooks: HookManager | None = None
        self._logger: StructuredLogger | None = None
        self._log_requests = True
        self._log_responses = True
        self._log_cache = False

    def registry(self, url: str | URL) -> OroClientBuilder:
        self._registry = url
        return self

    def fetch_retries(self, retries: int) -> OroClientBuilder:
        self._fetch_retries = retries
        return self

    def retry_backoff(self, min_backoff: float, max_backoff: float) -> OroClientBuilder:
        self._retry_backoff = (min_backoff, max_backoff)
        return self

    def timeout(self, seconds: float, *, connect: float | None = 10.0) -> OroClientBuilder:
        self._timeout = seconds
        self._connect_timeout = connect
        return self

    def max_concurrency(self, limit: int) -> OroClientBuilder:
        self._max_concurrency = limit
        return self

    def cache(self, path: str | Path) -> OroClientBuilder:
        """Enable the filesystem HTTP cache under ``path``."""
        return self.cache_settings(CacheSettings(backend="fs", cache_dir=Path(path).expanduser()))

    def cache_backend(self, backend: CacheBackend | None) -> OroClientBuilder:
        self._cache_core = CacheCore(backend) if backend is not None else None
        return self

    def cache_settings(self, settings: CacheSettings) -> OroClientBuilder:
        self._cache_core = build_cache_core(settings)
        return self

    def cache_mode(self, mode: CacheMode | str) -> OroClientBuilder:
        self._cache_mode = CacheMode.parse(mode)
        return self

    def proxy(self, enabled: bool) -> OroClientBuilder:
        """Honour HTTP(S)_PROXY / NO_PROXY from the environment."""
        self._proxy = enabled
        return self

    def proxy_url(self, url: str | URL) -> OroClientBuilder:
        self._proxy_url = url
        return self

    def no_proxy_domain(self, domains: str | list[str]) -> OroClientBuilder:
        self._no_proxy.extend(split_domains(domains))
        return self

    def credentials(self, registry: str | URL, credentials: Credentials) -> OroClientBuilder:
        self._credentials.append((registry, credentials))
        return self

    def user_agent(self, user_agent: str) -> OroClientBuilder:
        self._user_agent = user_agent
        return self

    def hooks(self, hooks: HookManager) -> OroClientBuilder:
        self._hooks = hooks
        return self

    def logger(
        self,
        logger: StructuredLogger,
        *,
        log_requests: bool = True,
        log_responses: bool = True,
        log_cache: bool = False,
    ) -> OroClientBuilder:
        self._logger = logger
        self._log_requests = log_requests
        self._log_responses = log_responses
        self._log_cache = log_cache
        return self

    def build(self) -> OroClient:
        """
        Validate the options and create the client.

        Raises:
            InvalidUrlError: If the registry or proxy URL is not an absolute http(s) URL.
            ValueError: If a numeric option is out of range.
        """
        if self._timeout <= 0:
            raise ValueError("timeout must be positive")
        min_backoff, max_backoff = self._retry_backoff
        retry = RetryConfig(retries=self._fetch_retries, backoff=min_backoff, max_backoff=max_backoff)

        store = CredentialStore()
        for registry, creds in self._credentials:
            store.add(registry, creds)

        hooks = self._hooks or HookManager()
        logger = self._logger or get_logger()
        cache = HttpCache(
            self._cache_core or CacheCore(None),
            mode=self._cache_mode,
            hooks=hooks,
            logger=logger if self._log_cache else None,
        )
        return OroClient(
            registry=self._registry,
            retry=retry,
            timeout=self._timeout,
            connect_timeout=self._connect_timeout,
            cache=cache,
            credentials=store,
            user_agent=self._user_agent,
            proxy=self._proxy,
            proxy_url=self._proxy_url,
            no_proxy_domains=self._no_proxy,
            max_concurrency=self._max_concurrency,
            hooks=hooks,
            logger=logger,
            log_requests=self._log_requests,
            log_responses=self._log_responses,
        )


__all__ = ["OroClient", "OroClientBuilder", "DEFAULT_USER_AGENT"]
