"""ASGI middleware for trace correlation and request logging.

Cloud Run forwards the caller's trace in the W3C ``traceparent`` header
and in the legacy ``X-Cloud-Trace-Context`` header.  ``CloudTraceMiddleware``
makes that remote span current for the duration of the request so every
log line written while handling it carries the trace and span ids.

Middleware is applied in reverse order of addition, so add
``CloudTraceMiddleware`` last to have the request log line correlated too:

    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(CloudTraceMiddleware)
"""

from __future__ import annotations

import logging
import re
import time
from collections.abc import Mapping

from opentelemetry import context as otel_context
from opentelemetry import trace
from opentelemetry.trace import NonRecordingSpan, SpanContext, TraceFlags
from opentelemetry.trace.propagation.tracecontext import TraceContextTextMapPropagator
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger(__name__)

CLOUD_TRACE_HEADER = "x-cloud-trace-context"

# TRACE_ID/SPAN_ID;o=OPTIONS with a hex trace id and a decimal span id.
_CLOUD_TRACE_RE = re.compile(r"^([0-9a-fA-F]{32})/(\d{1,20})(?:;o=([01]))?$")

_propagator = TraceContextTextMapPropagator()


def parse_cloud_trace_context(header: str) -> SpanContext | None:
    """Parse an ``X-Cloud-Trace-Context`` value into a remote span context."""
    match = _CLOUD_TRACE_RE.match(header.strip())
    if not match:
        return None
    span_id = int(match.group(2))
    if span_id >= 1 << 64:
        return None
    flags = TraceFlags.SAMPLED if match.group(3) == "1" else TraceFlags.DEFAULT
    span_context = SpanContext(
        trace_id=int(match.group(1), 16),
        span_id=span_id,
        is_remote=True,
        trace_flags=TraceFlags(flags),
    )
    return span_context if span_context.is_valid else None


def extract_span_context(headers: Mapping[str, str]) -> SpanContext | None:
    """Return the remote span context carried by *headers*, preferring ``traceparent``."""
    span_context = trace.get_current_span(_propagator.extract(headers)).get_span_context()
    if span_context.is_valid:
        return span_context
    cloud_header = headers.get(CLOUD_TRACE_HEADER)
    if cloud_header:
        return parse_cloud_trace_context(cloud_header)
    return None


class CloudTraceMiddleware(BaseHTTPMiddleware):
    """Makes the caller's trace current while the request is handled."""

    async def dispatch(self, request: Request, call_next) -> Response:
        if trace.get_current_span().get_span_context().is_valid:
            return await call_next(request)

        span_context = extract_span_context(request.headers)
        if span_context is None:
            return await call_next(request)

        token = otel_context.attach(trace.set_span_in_context(NonRecordingSpan(span_context)))
        try:
            return await call_next(request)
        finally:
            otel_context.detach(token)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Logs request method, path, status, and latency for observability."""

    async def dispatch(self, request: Request, call_next) -> Response:
        start = time.monotonic()
        response = await call_next(request)
        duration_ms = round((time.monotonic() - start) * 1000, 1)

        logger.info(
            "%s %s -> %d (%.1fms)",
            request.method,
            request.url.path,
            response.status_code,
            duration_ms,
            extra={
                "http_method": request.method,
                "path": request.url.path,
                "status": response.status_code,
                "latency_ms": duration_ms,
            },
        )
        return response
