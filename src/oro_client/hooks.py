"""
Observability hooks.

The client reports what it does as named events with a payload dict and the
``RequestContext`` of the request:

- request.start / request.attempt / request.end / request.error
- cache.hit / cache.miss / cache.revalidated / cache.invalidate
- retry.scheduled

Hooks may be sync or async; exceptions raised by a hook propagate to the caller.
"""

from __future__ import annotations

import inspect
from collections import Counter
from collections.abc import Iterable
from typing import Any, Protocol


class Hook(Protocol):
    """Receives every event the client emits."""

    async def emit(self, event: str, payload: dict, context: Any) -> None: ...


class HookManager:
    """Fans each event out to the registered hooks, in registration order."""

    def __init__(self, hooks: Iterable[Hook] | None = None) -> None:
        self._hooks = list(hooks or [])

    def add(self, hook: Hook) -> None:
        self._hooks.append(hook)

    def __len__(self) -> int:
        return len(self._hooks)

    async def emit(self, event: str, payload: dict, context: Any) -> None:
        for hook in self._hooks:
            result = hook.emit(event, payload, context)
            if inspect.isawaitable(result):
                await result


class InMemoryMetricsHook:
    """
    Accumulates counts and latencies in memory.

    Meant for tests and ad-hoc inspection; ``snapshot()`` returns a copy.
    """

    def __init__(self) -> None:
        self.counters: Counter[str] = Counter()
        self.statuses: Counter[int] = Counter()
        self.latencies_ms: list[float] = []
        self.errors: list[dict[str, Any]] = []

    @property
    def cache_hits(self) -> int:
        return self.counters["cache.hit"]

    @property
    def cache_misses(self) -> int:
        return self.counters["cache.miss"]

    @property
    def retries(self) -> int:
        return self.counters["retry.scheduled"]

    async def emit(self, event: str, payload: dict, context: Any) -> None:
        self.counters[event] += 1
        if event == "request.end":
            if "latency_ms" in payload:
                self.latencies_ms.append(float(payload["latency_ms"]))
            if isinstance(payload.get("status"), int):
                self.statuses[payload["status"]] += 1
        elif event.endswith(".error"):
            self.errors.append({"event": event, "payload": payload})

    def snapshot(self) -> dict[str, Any]:
        lookups = self.cache_hits + self.cache_misses
        return {
            "counters": dict(self.counters),
            "latencies_ms": list(self.latencies_ms),
            "statuses": dict(self.statuses),
            "cache_hits": self.cache_hits,
            "cache_misses": self.cache_misses,
            "cache_hit_rate": self.cache_hits / lookups if lookups else 0.0,
            "retries": self.retries,
            "errors": list(self.errors),
        }

    def reset(self) -> dict[str, Any]:
        """Clear everything and return the snapshot taken just before."""
        snapshot = self.snapshot()
        self.counters.clear()
        self.statuses.clear()
        self.latencies_ms.clear()
        self.errors.clear()
        return snapshot


class OpenTelemetryHook:
    """
    One CLIENT span per logical request, covering its retries and cache lookups.

    Attributes follow the HTTP client semantic conventions:
    https://opentelemetry.io/docs/specs/semconv/http/http-spans/

    Requires the ``otel`` extra (``opentelemetry-api``).
    """

    def __init__(self, tracer_name: str = "oro_client") -> None:
        try:
            from opentelemetry import trace
            from opentelemetry.trace import SpanKind, Status, StatusCode
        except ImportError as exc:  # pragma: no cover - optional dependency
            raise ImportError(
                "opentelemetry-api is required for OpenTelemetryHook: pip install 'oro-client[otel]'"
            ) from exc

        self._Status = Status
        self._StatusCode = StatusCode
        self._SpanKind = SpanKind
        self._tracer = trace.get_tracer(tracer_name)
        self._spans: dict[str, Any] = {}

    async def emit(self, event: str, payload: dict, context: Any) -> None:
        request_id = getattr(context, "request_id", None)
        if not request_id:
            return
        if event == "request.start":
            self._start(request_id, payload, context)
            return

        span = self._spans.get(request_id)
        if span is None:
            return
        if event == "request.attempt":
            span.set_attribute("http.request.resend_count", max(0, payload.get("attempt", 1) - 1))
        elif event.startswith("cache."):
            span.add_event(event, {"oro.cache.key": payload.get("key", "")})
            if event in ("cache.hit", "cache.revalidated"):
                span.set_attribute("oro.cache.hit", True)
        elif event == "request.error":
            error_type = payload.get("error_type", "")
            span.add_event(event, {"error.type": error_type, "error.message": payload.get("error", "")})
            span.set_attribute("error.type", error_type)
        elif event == "request.end":
            self._end(self._spans.pop(request_id), payload)

    def _start(self, request_id: str, payload: dict, context: Any) -> None:
        method = payload.get("method", "GET")
        self._spans[request_id] = self._tracer.start_span(
            method,
            kind=self._SpanKind.CLIENT,
            attributes={
                "http.request.method": method,
                "url.full": payload.get("url", ""),
                "server.address": payload.get("host") or "",
                "oro.request.id": request_id,
                "oro.trace.id": getattr(context, "trace_id", None) or "",
            },
        )

    def _end(self, span: Any, payload: dict) -> None:
        status = payload.get("status") or 0
        span.set_attribute("http.response.status_code", status)
        if "latency_ms" in payload:
            span.set_attribute("oro.latency_ms", payload["latency_ms"])
        failed = status >= 400 or bool(payload.get("error"))
        span.set_status(self._Status(self._StatusCode.ERROR if failed else self._StatusCode.OK))
        span.end()


__all__ = [
    "Hook",
    "HookManager",
    "InMemoryMetricsHook",
    "OpenTelemetryHook",
]
