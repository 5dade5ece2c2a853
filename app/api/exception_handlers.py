from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from app.chat.schemas import ErrorOut
from app.core.llm.openai_client import OpenAIError
from app.core.settings import get_settings
from app.domain.exceptions import (
    BusinessValidationError,
    InvalidPromptError,
    UnknownPresetError,
)

logger = logging.getLogger("app.errors")

_VALIDATION_ERRORS: dict[type[BusinessValidationError], tuple[int, str]] = {
    InvalidPromptError: (422, "Invalid prompt"),
    UnknownPresetError: (400, "Unknown system prompt"),
}


def _request_id(request: Request) -> str | None:
    return getattr(request.state, "request_id", None) or request.headers.get("X-Request-ID")


def _describe_validation_errors(exc: RequestValidationError) -> str:
    """Render pydantic errors as `field: message` pairs without echoing input values."""

    parts = []
    for error in exc.errors():
        loc = [str(p) for p in error.get("loc", ()) if p != "body"]
        field = ".".join(loc) or "body"
        parts.append(f"{field}: {error.get('msg', 'invalid value')}")
    return "; ".join(parts)


def register_exception_handlers(app: FastAPI) -> None:
    """Register application exception handlers."""

    @app.exception_handler(BusinessValidationError)
    async def handle_business_validation_error(
        request: Request,
        exc: BusinessValidationError,
    ) -> JSONResponse:
        # IMPORTANT: do not log request bodies; prompts are user data.
        status_code, error = _VALIDATION_ERRORS.get(type(exc), (400, "Invalid request"))
        logger.info(
            "Business validation failed",
            extra={
                "request_id": _request_id(request),
                "http_method": request.method,
                "request_path": request.url.path,  # no query string
                "status_code": status_code,
                "error": "business_validation",
            },
        )
        content = ErrorOut(error=error, message=exc.message)
        return JSONResponse(status_code=status_code, content=content.model_dump())

    @app.exception_handler(OpenAIError)
    async def handle_upstream_error(request: Request, exc: OpenAIError) -> JSONResponse:
        # Full detail goes to the error log only; callers get it in debug mode.
        logger.error(
            "Chat request failed",
            exc_info=exc,
            extra={
                "request_id": _request_id(request),
                "http_method": request.method,
                "request_path": request.url.path,
                "status_code": 500,
                "error": type(exc).__name__,
            },
        )
        settings = get_settings()
        content = ErrorOut(
            error="Failed to process chat request",
            message=str(exc) if settings.expose_error_detail else None,
        )
        return JSONResponse(status_code=500, content=content.model_dump())

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation_error(
        request: Request,
        exc: RequestValidationError,
    ) -> JSONResponse:
        # Same `{error, message}` shape as prompt validation, whatever layer rejected the body.
        logger.info(
            "Request body validation failed",
            extra={
                "request_id": _request_id(request),
                "http_method": request.method,
                "request_path": request.url.path,
                "status_code": 422,
                "error": "request_validation",
            },
        )
        content = ErrorOut(error="Invalid prompt", message=_describe_validation_errors(exc))
        return JSONResponse(status_code=422, content=content.model_dump())
