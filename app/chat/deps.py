from __future__ import annotations

from fastapi import Depends

from app.chat.presets import DEFAULT_SYSTEM_PROMPT, get_system_prompt
from app.chat.service import PromptRequestHandler
from app.core.llm.deps import get_completion_client
from app.core.llm.openai_client import CompletionUnavailableError, OpenAIClient
from app.core.settings import get_settings


def get_prompt_handler(
    client: OpenAIClient | None = Depends(get_completion_client),
) -> PromptRequestHandler:
    if client is None:
        raise CompletionUnavailableError("OPENAI_API_KEY is not configured")

    settings = get_settings()
    return PromptRequestHandler(
        client=client,
        max_prompt_chars=int(settings.chat_max_prompt_chars),
        system_prompts_enabled=bool(settings.chat_system_prompts_enabled),
        default_system_prompt=get_system_prompt(settings.chat_default_system_prompt)
        or DEFAULT_SYSTEM_PROMPT,
    )
