from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI

from app.api.exception_handlers import register_exception_handlers
from app.api.schemas import HealthOut
from app.chat.router import router as chat_router
from app.core.logging import setup_logging
from app.core.metrics import PrometheusMetricsMiddleware, metrics_router
from app.core.middleware.http_logging import HttpLoggingMiddleware
from app.core.settings import get_settings

setup_logging()


def create_app() -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Load (and validate) settings once at startup, not at import time.
        get_settings()
        yield

    app = FastAPI(
        title="Chat Relay API",
        description=(
            "Thin relay between clients and an OpenAI-compatible chat-completions API.\n\n"
            "Design principles:\n"
            "- Callers send a prompt only; the system prompt is a server-selected preset.\n"
            "- Streaming responses always end with a terminal event (`done: true`), "
            "including when the upstream fails mid-stream.\n"
            "- Internal error detail is returned only in debug mode.\n"
            "- Logs and metrics never include prompts or completions."
        ),
        lifespan=lifespan,
        openapi_tags=[
            {
                "name": "health",
                "description": "Basic uptime check for load balancers and monitoring.",
            },
            {
                "name": "chat",
                "description": "Relay prompts upstream as a full response or an SSE stream.",
            },
            {
                "name": "monitoring",
                "description": "Prometheus-compatible metrics endpoint.",
            },
        ],
    )

    app.add_middleware(PrometheusMetricsMiddleware)
    app.add_middleware(HttpLoggingMiddleware)

    register_exception_handlers(app)

    @app.get(
        "/health",
        response_model=HealthOut,
        tags=["health"],
        summary="Health check",
        description=(
            "Lightweight endpoint to verify the relay process is running.\n\n"
            "This endpoint intentionally does not call the upstream LLM API."
        ),
    )
    async def health() -> HealthOut:
        return HealthOut(status="ok")

    app.include_router(metrics_router)
    app.include_router(chat_router)
    return app


app = create_app()
