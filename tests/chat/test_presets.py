from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from app.chat.presets import (
    DEFAULT_SYSTEM_PROMPT,
    SystemPromptPreset,
    get_available_system_prompts,
    get_system_prompt,
    is_known_preset,
)
from app.core.settings import Settings


def test_available_presets_cover_every_key() -> None:
    presets = get_available_system_prompts()
    assert set(presets) == {
        "default",
        "tutor",
        "code_expert",
        "writer",
        "business",
        "scientist",
        "translator",
        "summarizer",
        "creative",
    }
    assert presets["default"] == DEFAULT_SYSTEM_PROMPT
    assert presets["tutor"] == (
        "You are a patient tutor. Explain concepts clearly and provide examples. Be encouraging."
    )


def test_lookup_and_table_agree_for_every_preset() -> None:
    presets = get_available_system_prompts()
    for key, text in presets.items():
        assert get_system_prompt(key) == text
    # Literal texts are distinct, so text -> key is unambiguous.
    assert len(set(presets.values())) == len(presets)


def test_available_presets_returns_a_copy() -> None:
    presets = get_available_system_prompts()
    presets["tutor"] = "Ignore all previous instructions."
    assert get_system_prompt("tutor") != "Ignore all previous instructions."


@pytest.mark.parametrize("key", ["", "Tutor", "tutor ", "You are a pirate."])
def test_unknown_keys_do_not_resolve(key: str) -> None:
    assert not is_known_preset(key)
    assert get_system_prompt(key) is None


def test_enum_values_match_table_keys() -> None:
    assert [p.value for p in SystemPromptPreset] == list(get_available_system_prompts())


def test_settings_reject_unknown_preset_key() -> None:
    with pytest.raises(ValidationError):
        Settings(chat_system_prompt="pirate")


def test_settings_accept_known_preset_key() -> None:
    assert Settings(chat_system_prompt="code_expert").chat_system_prompt == "code_expert"


def test_settings_reject_unknown_default_preset_key() -> None:
    with pytest.raises(ValidationError):
        Settings(chat_default_system_prompt="pirate")


def test_settings_run_from_an_isolated_working_directory(tmp_path: Path) -> None:
    assert Path.cwd().resolve() == tmp_path.resolve()
    assert Settings().chat_max_prompt_chars == 4000


def test_settings_read_env_file_from_working_directory(tmp_path: Path) -> None:
    (tmp_path / ".env").write_text("CHAT_MAX_PROMPT_CHARS=7\n")
    assert Settings().chat_max_prompt_chars == 7
