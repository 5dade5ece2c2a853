from __future__ import annotations

from collections.abc import AsyncIterator, Sequence
from typing import Protocol

from app.chat.presets import DEFAULT_SYSTEM_PROMPT, get_system_prompt
from app.chat.schemas import ChatChunk, ChatResult
from app.core.llm.openai_client import ChatMessage
from app.domain.exceptions import InvalidPromptError, UnknownPresetError


class CompletionClient(Protocol):
    async def complete(self, messages: Sequence[ChatMessage]) -> ChatResult: ...

    def stream(self, messages: Sequence[ChatMessage]) -> AsyncIterator[ChatChunk]: ...


class PromptRequestHandler:
    """
    Validate prompts, apply the system-prompt policy and dispatch upstream.

    Security: the system prompt is only ever a preset resolved by key. Raw
    instruction text from callers is never placed in a system message.
    """

    def __init__(
        self,
        *,
        client: CompletionClient,
        max_prompt_chars: int = 4000,
        system_prompts_enabled: bool = True,
        default_system_prompt: str = DEFAULT_SYSTEM_PROMPT,
    ):
        self._client = client
        self._max_prompt_chars = max_prompt_chars
        self._system_prompts_enabled = system_prompts_enabled
        self._default_system_prompt = default_system_prompt

    @property
    def default_system_prompt(self) -> str:
        return self._default_system_prompt

    def set_default_system_prompt(self, prompt: str) -> None:
        """Change the default for a long-lived handler (the HTTP layer builds one per request)."""
        self._default_system_prompt = prompt

    def _validate_prompt(self, prompt: str) -> str:
        cleaned = prompt.strip() if isinstance(prompt, str) else ""
        if not cleaned:
            raise InvalidPromptError("The prompt field is required.")
        if len(cleaned) > self._max_prompt_chars:
            raise InvalidPromptError(
                f"The prompt may not be greater than {self._max_prompt_chars} characters."
            )
        return cleaned

    def _resolve_system_prompt(self, key: str | None) -> str | None:
        if key is None:
            return None
        text = get_system_prompt(key)
        if text is None:
            raise UnknownPresetError(key)
        return text

    def build_messages(self, *, prompt: str, system_prompt: str | None) -> list[ChatMessage]:
        messages: list[ChatMessage] = []
        # Some models reject the system role, so the default prompt is never sent.
        if (
            self._system_prompts_enabled
            and system_prompt
            and system_prompt != self._default_system_prompt
        ):
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})
        return messages

    def _prepare(self, prompt: str, system_prompt_key: str | None) -> list[ChatMessage]:
        cleaned = self._validate_prompt(prompt)
        system_prompt = self._resolve_system_prompt(system_prompt_key)
        return self.build_messages(prompt=cleaned, system_prompt=system_prompt)

    async def handle_chat(self, prompt: str, system_prompt_key: str | None = None) -> ChatResult:
        messages = self._prepare(prompt, system_prompt_key)
        return await self._client.complete(messages)

    def handle_stream_chat(
        self, prompt: str, system_prompt_key: str | None = None
    ) -> AsyncIterator[ChatChunk]:
        """Validate eagerly, then return the upstream chunk stream untouched."""
        messages = self._prepare(prompt, system_prompt_key)
        return self._client.stream(messages)
