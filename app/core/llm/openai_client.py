from __future__ import annotations

import json
from collections.abc import AsyncIterator, Sequence
from dataclasses import dataclass
from typing import Any, TypedDict

import httpx
from pydantic import ValidationError

from app.chat.schemas import ChatChunk, ChatResult, Usage

_STREAM_DONE_SENTINEL = "[DONE]"
_MAX_ERROR_BODY_CHARS = 500


class OpenAIError(Exception):
    """Base error for upstream client failures."""


class CompletionUnavailableError(OpenAIError):
    """Raised when the upstream API is not configured (e.g., missing API key)."""


class UpstreamCompletionError(OpenAIError):
    """Raised when the upstream API fails (timeout, transport error, non-2xx, error payload)."""


class SerializationError(UpstreamCompletionError):
    """Raised when the upstream payload cannot be decoded into the expected shape."""


class ChatMessage(TypedDict):
    role: str
    content: str


@dataclass(frozen=True)
class OpenAIConfig:
    api_key: str
    base_url: str
    model: str
    timeout_seconds: float


def _error_detail(resp: httpx.Response) -> str:
    body = resp.text[:_MAX_ERROR_BODY_CHARS]
    return f"upstream returned HTTP {resp.status_code}: {body}"


def _as_count(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        return 0
    return value


def _parse_usage(raw: Any) -> Usage:
    if not isinstance(raw, dict):
        return Usage()
    return Usage(
        prompt_tokens=_as_count(raw.get("prompt_tokens")),
        completion_tokens=_as_count(raw.get("completion_tokens")),
        total_tokens=_as_count(raw.get("total_tokens")),
    )


def _extract_delta_text(event: dict[str, Any]) -> str:
    """Return `choices[0].delta.content`, treating any missing level as empty."""

    choices = event.get("choices")
    if not isinstance(choices, list) or not choices:
        return ""
    first = choices[0]
    delta = first.get("delta") if isinstance(first, dict) else None
    if not isinstance(delta, dict):
        return ""
    content = delta.get("content")
    return content if isinstance(content, str) else ""


class OpenAIClient:
    """
    Client for OpenAI-compatible chat-completions APIs (OpenAI, OpenRouter, ...).

    Design notes:
    - No logging in this module (prompts/outputs are user data).
    - Stateless: one HTTP client per call, released on every exit path.
    - Upstream shapes are normalized into `ChatResult` / `ChatChunk`.
    """

    def __init__(
        self,
        *,
        config: OpenAIConfig,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._config = config
        self._transport = transport

    @property
    def model(self) -> str:
        return self._config.model

    def _url(self) -> str:
        return f"{self._config.base_url.rstrip('/')}/chat/completions"

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._config.api_key}",
            "Content-Type": "application/json",
        }

    def _http_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self._config.timeout_seconds, transport=self._transport
        )

    async def complete(self, messages: Sequence[ChatMessage]) -> ChatResult:
        payload: dict[str, Any] = {
            "model": self._config.model,
            "messages": list(messages),
        }

        try:
            async with self._http_client() as client:
                resp = await client.post(self._url(), headers=self._headers(), json=payload)
        except httpx.TimeoutException as exc:
            raise UpstreamCompletionError("upstream request timed out") from exc
        except httpx.HTTPError as exc:
            raise UpstreamCompletionError(f"upstream request failed: {exc}") from exc

        if not resp.is_success:
            raise UpstreamCompletionError(_error_detail(resp))

        try:
            data = resp.json()
            content = data["choices"][0]["message"]["content"]
            model = data.get("model")
            return ChatResult(
                response=content if isinstance(content, str) else "",
                model=model if isinstance(model, str) and model else self._config.model,
                usage=_parse_usage(data.get("usage")),
            )
        except (ValueError, KeyError, IndexError, TypeError, ValidationError) as exc:
            raise SerializationError("upstream response had an unexpected shape") from exc

    async def stream(self, messages: Sequence[ChatMessage]) -> AsyncIterator[ChatChunk]:
        """
        Yield non-empty content chunks as they arrive, then one terminal `done` chunk.

        Raises `UpstreamCompletionError` if the upstream fails before or during the
        stream. Closing the generator early closes the upstream connection.
        """

        payload: dict[str, Any] = {
            "model": self._config.model,
            "messages": list(messages),
            "stream": True,
        }

        try:
            async with self._http_client() as client:
                async with client.stream(
                    "POST", self._url(), headers=self._headers(), json=payload
                ) as resp:
                    if not resp.is_success:
                        await resp.aread()
                        raise UpstreamCompletionError(_error_detail(resp))

                    async for line in resp.aiter_lines():
                        # Blank separators and ":" keep-alive comments carry no data.
                        if not line.startswith("data:"):
                            continue
                        data = line[len("data:") :].strip()
                        if data == _STREAM_DONE_SENTINEL:
                            break

                        try:
                            event = json.loads(data)
                        except ValueError as exc:
                            raise SerializationError(
                                "upstream stream event was not valid JSON"
                            ) from exc
                        if not isinstance(event, dict):
                            raise SerializationError("upstream stream event must be an object")
                        if event.get("error"):
                            raise UpstreamCompletionError(
                                f"upstream stream error: {json.dumps(event['error'])}"
                            )

                        content = _extract_delta_text(event)
                        if content:
                            yield ChatChunk(content=content, done=False)
        except httpx.TimeoutException as exc:
            raise UpstreamCompletionError("upstream stream timed out") from exc
        except httpx.HTTPError as exc:
            raise UpstreamCompletionError(f"upstream stream failed: {exc}") from exc

        yield ChatChunk(content="", done=True)
