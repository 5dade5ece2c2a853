"""HTTP logging middleware.

Design goals:
- Log *metadata only* (no prompts, no completions, no query strings, no headers).
- Generate or propagate X-Request-ID for correlation.
- Structured logging using the standard library logger `extra` fields.
"""

from __future__ import annotations

import logging
import re
import time
import uuid
from collections.abc import AsyncIterator
from typing import Any

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

logger = logging.getLogger("app.http")

_REQUEST_ID_HEADER = "X-Request-ID"
_SAFE_REQUEST_ID_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]{0,127}$")
_EVENT_STREAM_MEDIA_TYPE = "text/event-stream"


def _get_or_create_request_id(*, request: Request) -> str:
    """Return a safe request id, either propagated or newly generated.

    We only accept a narrow character set and length to avoid log injection and
    other unexpected values. If invalid, we generate a new UUID4.
    """

    candidate = request.headers.get(_REQUEST_ID_HEADER)
    if candidate and _SAFE_REQUEST_ID_PATTERN.fullmatch(candidate):
        return candidate
    return uuid.uuid4().hex


def _safe_route_label(*, request: Request) -> str:
    """
    Return a safe path label for logs.

    Prefer the framework's route template to keep unmatched raw paths out of logs.
    """

    route = request.scope.get("route")
    path = getattr(route, "path", None)
    if isinstance(path, str) and path:
        return path
    return "unmatched"


def _is_event_stream(response: Response) -> bool:
    return response.headers.get("content-type", "").startswith(_EVENT_STREAM_MEDIA_TYPE)


def _log_request_completed(*, started: float, fields: dict[str, Any]) -> None:
    duration_ms = (time.perf_counter() - started) * 1000.0
    logger.info("Request completed", extra={**fields, "duration_ms": round(duration_ms, 2)})


async def _log_when_stream_ends(
    body: AsyncIterator[bytes], *, started: float, fields: dict[str, Any]
) -> AsyncIterator[bytes]:
    """Pass the event stream through and log once it finishes or the caller goes away."""

    outcome = "disconnected"
    try:
        async for chunk in body:
            yield chunk
        outcome = "completed"
    finally:
        _log_request_completed(
            started=started, fields={**fields, "mode": "stream", "outcome": outcome}
        )


class HttpLoggingMiddleware(BaseHTTPMiddleware):
    """Log request/response metadata and propagate a correlation id.

    IMPORTANT: This middleware intentionally does NOT log:
    - request body / response body (prompts and completions are user data)
    - query string values
    - headers (may contain auth tokens)

    `text/event-stream` responses are logged when the body ends, so the duration
    covers the whole relayed stream and `outcome` tells a finished stream from a
    caller that disconnected.
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = _get_or_create_request_id(request=request)
        started = time.perf_counter()
        # Downstream handlers read this for correlation instead of parsing headers again.
        request.state.request_id = request_id

        try:
            response = await call_next(request)
        except Exception:  # noqa: BLE001 - we must log unexpected exceptions with stack trace
            duration_ms = (time.perf_counter() - started) * 1000.0
            logger.exception(
                "Unhandled exception while processing request",
                extra={
                    "request_id": request_id,
                    "http_method": request.method,
                    "request_path": _safe_route_label(request=request),
                    "status_code": 500,
                    "duration_ms": round(duration_ms, 2),
                },
            )
            raise

        # Ensure correlation id is present on all responses, streams included.
        response.headers[_REQUEST_ID_HEADER] = request_id

        fields: dict[str, Any] = {
            "request_id": request_id,
            "http_method": request.method,
            "request_path": _safe_route_label(request=request),
            "status_code": response.status_code,
        }

        body = getattr(response, "body_iterator", None)
        if body is not None and _is_event_stream(response):
            response.body_iterator = _log_when_stream_ends(  # type: ignore[attr-defined]
                body, started=started, fields=fields
            )
            return response

        _log_request_completed(started=started, fields=fields)
        return response
