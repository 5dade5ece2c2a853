"""Unit tests for the HTTP logging middleware.

We assert structured log fields via `caplog` (not message strings) and verify:
- X-Request-ID is generated or propagated
- Successful requests emit exactly one INFO log entry with metadata only
- Streaming responses carry the correlation id as well
- Unhandled exceptions emit an ERROR log entry with a stack trace and return 500
"""

from __future__ import annotations

import asyncio
import logging

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from starlette.responses import StreamingResponse

from app.core.middleware.http_logging import HttpLoggingMiddleware


def _make_app() -> FastAPI:
    """Create a minimal app for middleware unit tests."""
    app = FastAPI()
    app.add_middleware(HttpLoggingMiddleware)

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.get("/events")
    async def events() -> StreamingResponse:
        async def gen():
            yield "data: {}\n\n"

        return StreamingResponse(gen(), media_type="text/event-stream")

    @app.get("/slow-events")
    async def slow_events() -> StreamingResponse:
        async def gen():
            yield "data: {\"content\":\"a\",\"done\":false}\n\n"
            await asyncio.sleep(0.05)
            yield "data: {\"content\":\"\",\"done\":true}\n\n"

        return StreamingResponse(gen(), media_type="text/event-stream")

    @app.get("/boom")
    async def boom() -> None:
        raise RuntimeError("boom")

    return app


def _get_http_log_records(caplog: pytest.LogCaptureFixture) -> list[logging.LogRecord]:
    return [r for r in caplog.records if r.name == "app.http"]


def test_successful_request_sets_request_id_and_logs_one_info(
    caplog: pytest.LogCaptureFixture,
) -> None:
    """A successful request emits one INFO log with metadata only and sets X-Request-ID."""
    caplog.set_level(logging.INFO, logger="app.http")
    app = _make_app()

    with TestClient(app) as client:
        res = client.get("/health?prompt=my+private+question")

    assert res.status_code == 200
    assert res.headers["x-request-id"]

    records = _get_http_log_records(caplog)
    info_records = [r for r in records if r.levelno == logging.INFO]
    assert len(info_records) == 1

    record = info_records[0]
    assert record.__dict__["request_id"] == res.headers["x-request-id"]
    assert record.__dict__["http_method"] == "GET"
    # Query strings are never logged.
    assert record.__dict__["request_path"] == "/health"
    assert record.__dict__["status_code"] == 200
    assert all("private" not in r.getMessage() for r in records)

    duration_ms = record.__dict__["duration_ms"]
    assert isinstance(duration_ms, (int, float))
    assert duration_ms >= 0


def test_propagates_valid_request_id(caplog: pytest.LogCaptureFixture) -> None:
    """If a valid X-Request-ID is provided, the middleware should propagate it."""
    caplog.set_level(logging.INFO, logger="app.http")
    app = _make_app()

    with TestClient(app) as client:
        res = client.get("/health", headers={"X-Request-ID": "req_abc-123"})

    assert res.status_code == 200
    assert res.headers["x-request-id"] == "req_abc-123"

    info_records = [r for r in _get_http_log_records(caplog) if r.levelno == logging.INFO]
    assert len(info_records) == 1
    assert info_records[0].__dict__["request_id"] == "req_abc-123"


def test_replaces_unsafe_request_id() -> None:
    app = _make_app()

    with TestClient(app) as client:
        res = client.get("/health", headers={"X-Request-ID": "bad id with spaces"})

    assert res.headers["x-request-id"] != "bad id with spaces"
    assert len(res.headers["x-request-id"]) == 32


def test_streaming_response_carries_request_id() -> None:
    app = _make_app()

    with TestClient(app) as client:
        res = client.get("/events", headers={"X-Request-ID": "req_stream_1"})

    assert res.status_code == 200
    assert res.headers["x-request-id"] == "req_stream_1"
    assert res.text == "data: {}\n\n"


def test_event_stream_is_logged_once_after_body_ends(caplog: pytest.LogCaptureFixture) -> None:
    """SSE responses are logged when the stream finishes, with the full duration."""
    caplog.set_level(logging.INFO, logger="app.http")
    app = _make_app()

    with TestClient(app) as client:
        res = client.get("/slow-events", headers={"X-Request-ID": "req_stream_2"})

    assert res.status_code == 200
    assert res.text.endswith("\"done\":true}\n\n")

    info_records = [r for r in _get_http_log_records(caplog) if r.levelno == logging.INFO]
    assert len(info_records) == 1

    record = info_records[0]
    assert record.__dict__["request_id"] == "req_stream_2"
    assert record.__dict__["request_path"] == "/slow-events"
    assert record.__dict__["mode"] == "stream"
    assert record.__dict__["outcome"] == "completed"
    # Covers the pause inside the body, not just time to first byte.
    assert record.__dict__["duration_ms"] >= 50


def test_plain_responses_are_not_tagged_as_streams(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.INFO, logger="app.http")

    with TestClient(_make_app()) as client:
        client.get("/health")

    (record,) = [r for r in _get_http_log_records(caplog) if r.levelno == logging.INFO]
    assert "outcome" not in record.__dict__


def test_unhandled_exception_returns_500_and_logs_error_with_request_id(
    caplog: pytest.LogCaptureFixture,
) -> None:
    """Unhandled exceptions should return 500 and emit one ERROR log record with exc_info."""
    caplog.set_level(logging.INFO, logger="app.http")
    app = _make_app()

    with TestClient(app, raise_server_exceptions=False) as client:
        res = client.get("/boom", headers={"X-Request-ID": "req_err_001"})

    assert res.status_code == 500

    error_records = [r for r in _get_http_log_records(caplog) if r.levelno == logging.ERROR]
    assert len(error_records) == 1

    record = error_records[0]
    assert record.__dict__["request_id"] == "req_err_001"
    assert record.__dict__["http_method"] == "GET"
    assert record.__dict__["request_path"] == "/boom"
    assert record.__dict__["status_code"] == 500
    assert record.exc_info
