from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request
from starlette.responses import StreamingResponse

from app.chat.deps import get_prompt_handler
from app.chat.presets import get_available_system_prompts
from app.chat.schemas import ChatRequest, ChatResult, ErrorOut, SystemPromptsOut
from app.chat.service import PromptRequestHandler
from app.chat.sse import SSE_HEADERS, relay_chunks
from app.core.llm.openai_client import OpenAIError
from app.core.metrics import chat_completions_total
from app.core.settings import get_settings

router = APIRouter(tags=["chat"])
logger = logging.getLogger("app.chat")

_ERROR_RESPONSES: dict[int | str, dict] = {
    400: {"model": ErrorOut, "description": "Unknown system prompt preset."},
    422: {"model": ErrorOut, "description": "Prompt is empty or too long."},
    500: {"model": ErrorOut, "description": "Upstream LLM failure or missing configuration."},
}


def _request_id(request: Request) -> str | None:
    return getattr(request.state, "request_id", None) or request.headers.get("X-Request-ID")


@router.post(
    "/chat",
    response_model=ChatResult,
    summary="Chat (complete response)",
    responses=_ERROR_RESPONSES,
)
async def chat(
    body: ChatRequest,
    request: Request,
    handler: PromptRequestHandler = Depends(get_prompt_handler),
) -> ChatResult:
    """
    Relay a prompt upstream and return the full completion.

    The system prompt is a server-selected preset; callers cannot provide one.
    """

    settings = get_settings()
    try:
        result = await handler.handle_chat(body.prompt, settings.chat_system_prompt)
    except OpenAIError:
        chat_completions_total.labels(mode="complete", outcome="errored").inc()
        raise

    chat_completions_total.labels(mode="complete", outcome="done").inc()
    logger.info(
        "Chat completed",
        extra={
            "request_id": _request_id(request),
            "mode": "complete",
            "model": result.model,
            "outcome": "done",
        },
    )
    return result


@router.post(
    "/stream-chat",
    response_class=StreamingResponse,
    summary="Chat (server-sent events)",
    responses={
        200: {
            "content": {"text/event-stream": {}},
            "description": (
                "Stream of `data: <json>` events. Content events are `{content, done:false}`; "
                "the stream ends with `{content:\"\", done:true}` or "
                "`{error, message, done:true}` if it was interrupted."
            ),
        },
        **_ERROR_RESPONSES,
    },
)
async def stream_chat(
    body: ChatRequest,
    request: Request,
    handler: PromptRequestHandler = Depends(get_prompt_handler),
) -> StreamingResponse:
    settings = get_settings()
    # Validation happens here, before any bytes of the event stream are sent.
    chunks = handler.handle_stream_chat(body.prompt, settings.chat_system_prompt)
    events = relay_chunks(
        chunks,
        expose_error_detail=settings.expose_error_detail,
        request_id=_request_id(request),
    )
    return StreamingResponse(events, media_type="text/event-stream", headers=SSE_HEADERS)


@router.get(
    "/system-prompts",
    response_model=SystemPromptsOut,
    summary="List system prompt presets",
)
async def list_system_prompts() -> SystemPromptsOut:
    """Read-only view of the preset table and the preset this server applies."""

    settings = get_settings()
    return SystemPromptsOut(
        active=settings.chat_system_prompt,
        enabled=bool(settings.chat_system_prompts_enabled),
        presets=get_available_system_prompts(),
    )
