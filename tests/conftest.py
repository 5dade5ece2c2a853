from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import pytest

from app.core.settings import get_settings

_RELAY_ENV_VARS = (
    "APP_ENV",
    "APP_DEBUG",
    "OPENAI_API_KEY",
    "OPENAI_BASE_URL",
    "OPENAI_MODEL",
    "OPENAI_TIMEOUT_SECONDS",
    "CHAT_MAX_PROMPT_CHARS",
    "CHAT_SYSTEM_PROMPT",
    "CHAT_SYSTEM_PROMPTS_ENABLED",
    "CHAT_DEFAULT_SYSTEM_PROMPT",
)


@pytest.fixture(autouse=True)
def _isolate_settings(monkeypatch: pytest.MonkeyPatch, tmp_path: Path):
    # Settings read `.env` from the working directory; keep a developer's file out of tests.
    monkeypatch.chdir(tmp_path)
    for name in _RELAY_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
    # Settings are cached via @lru_cache; clear so each test sees its own environment.
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def set_env(monkeypatch: pytest.MonkeyPatch) -> Callable[..., None]:
    """Set environment variables and reload settings."""

    def _set(**values: str) -> None:
        for name, value in values.items():
            monkeypatch.setenv(name, value)
        get_settings.cache_clear()

    return _set


@pytest.fixture
def client():
    from fastapi.testclient import TestClient

    from app.main import create_app

    app = create_app()
    with TestClient(app) as c:
        yield c
