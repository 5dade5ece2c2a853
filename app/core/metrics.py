from __future__ import annotations

import time
from typing import cast

from fastapi import APIRouter, Request
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

metrics_router = APIRouter(tags=["monitoring"])

# Labels are fixed values or route templates only; never prompt or model output.

http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests",
    labelnames=("method", "route", "status_code"),
)

http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds (time to response headers for streams)",
    labelnames=("method", "route", "status_code"),
    # Upstream LLM calls dominate; keep a long tail.
    buckets=(0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0),
)

chat_completions_total = Counter(
    "chat_completions_total",
    "Chat requests relayed upstream, by mode and outcome",
    labelnames=("mode", "outcome"),
)

chat_stream_chunks_total = Counter(
    "chat_stream_chunks_total",
    "Content chunks forwarded to streaming clients",
)


def _safe_route_label(request: Request) -> str:
    """
    Return a safe route label.

    Prefer the Starlette/FastAPI route template. If routing didn't match (404),
    return "unmatched" to keep label cardinality bounded.
    """

    route = request.scope.get("route")
    path = getattr(route, "path", None)
    if isinstance(path, str) and path:
        return path
    return "unmatched"


class PrometheusMetricsMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        started = time.perf_counter()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            route_label = _safe_route_label(request)
            method = request.method
            code = str(int(status_code))
            duration = time.perf_counter() - started
            http_requests_total.labels(method=method, route=route_label, status_code=code).inc()
            http_request_duration_seconds.labels(
                method=method, route=route_label, status_code=code
            ).observe(duration)


@metrics_router.get("/metrics", include_in_schema=False)
def metrics() -> Response:
    # Default registry; sufficient for a single worker process.
    payload = generate_latest()
    return Response(content=cast(bytes, payload), media_type=CONTENT_TYPE_LATEST)
