"""
Request context for correlation and tracing.
"""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field


@dataclass(frozen=True)
class RequestContext:
    """Context for request correlation and tracing.

    Frozen so that hooks can key spans and metrics on it safely.
    """

    request_id: str = field(default_factory=lambda: f"req_{uuid.uuid4().hex[:12]}")
    trace_id: str | None = None
    span_id: str | None = None
    tags: dict[str, str] = field(default_factory=dict)
    created_at: float = field(default_factory=time.time)

    @classmethod
    def ensure(cls, ctx: RequestContext | None) -> RequestContext:
        """Ensure a context exists - create default if None."""
        return ctx if ctx is not None else cls()

    def child(self, *, new_span: bool = True) -> RequestContext:
        """Create a child context for a nested request (e.g. a retry or a redirect).

        Keeps the trace id and tags; gets a fresh request id.
        """
        return RequestContext(
            trace_id=self.trace_id,
            span_id=uuid.uuid4().hex[:16] if new_span else self.span_id,
            tags=dict(self.tags),
        )


__all__ = ["RequestContext"]
