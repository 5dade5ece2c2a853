"""Server-sent event encoding for relayed chat streams.

Every stream written to a caller ends with exactly one terminal event: either
the `done` chunk or an error event with `done: true`, so callers can tell a
completed stream from an interrupted one.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator, AsyncIterator
from contextlib import aclosing
from enum import Enum

from pydantic import BaseModel

from app.chat.schemas import ChatChunk, ChatStreamError
from app.core.metrics import chat_completions_total, chat_stream_chunks_total

logger = logging.getLogger("app.chat")

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}

GENERIC_STREAM_ERROR_MESSAGE = "An error occurred"


class StreamState(str, Enum):
    INIT = "init"
    STREAMING = "streaming"
    DONE = "done"
    ERRORED = "errored"


def format_sse_event(payload: BaseModel) -> str:
    return f"data: {payload.model_dump_json()}\n\n"


async def relay_chunks(
    chunks: AsyncIterator[ChatChunk],
    *,
    expose_error_detail: bool = False,
    request_id: str | None = None,
) -> AsyncGenerator[str, None]:
    """
    Encode chunks as SSE events, converting failures into a terminal error event.

    The chunk source is always closed on exit, including when the caller
    disconnects and the response body stops being iterated.
    """

    state = StreamState.INIT
    forwarded = 0

    try:
        async with aclosing(chunks) as source:  # type: ignore[type-var]
            async for chunk in source:
                if chunk.done:
                    state = StreamState.DONE
                    yield format_sse_event(ChatChunk(content="", done=True))
                    break
                state = StreamState.STREAMING
                forwarded += 1
                yield format_sse_event(chunk)

        if state is not StreamState.DONE:
            # Source ended without a terminator; close the stream cleanly.
            state = StreamState.DONE
            yield format_sse_event(ChatChunk(content="", done=True))
    except Exception as exc:  # noqa: BLE001 - any failure must end the stream with an event
        state = StreamState.ERRORED
        logger.error(
            "Chat stream interrupted",
            exc_info=exc,
            extra={
                "request_id": request_id,
                "mode": "stream",
                "outcome": state.value,
                "chunk_count": forwarded,
            },
        )
        message = str(exc) if expose_error_detail else GENERIC_STREAM_ERROR_MESSAGE
        yield format_sse_event(ChatStreamError(message=message or GENERIC_STREAM_ERROR_MESSAGE))
    finally:
        terminal = state in (StreamState.DONE, StreamState.ERRORED)
        outcome = state.value if terminal else "disconnected"
        chat_completions_total.labels(mode="stream", outcome=outcome).inc()
        chat_stream_chunks_total.inc(forwarded)
        if state is not StreamState.ERRORED:
            logger.info(
                "Chat stream finished",
                extra={
                    "request_id": request_id,
                    "mode": "stream",
                    "outcome": outcome,
                    "chunk_count": forwarded,
                },
            )
