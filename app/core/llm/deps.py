from __future__ import annotations

from app.core.llm.openai_client import OpenAIClient, OpenAIConfig
from app.core.settings import get_settings


def get_completion_client() -> OpenAIClient | None:
    """
    Dependency provider for the upstream completion client.

    Returns None when not configured so the chat layer can fail with a safe 500
    instead of raising during dependency resolution.
    """

    settings = get_settings()
    if not settings.openai_api_key:
        return None

    config = OpenAIConfig(
        api_key=settings.openai_api_key,
        base_url=settings.openai_base_url,
        model=settings.openai_model,
        timeout_seconds=float(settings.openai_timeout_seconds),
    )
    return OpenAIClient(config=config)
