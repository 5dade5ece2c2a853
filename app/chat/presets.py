"""Fixed system-prompt presets.

Callers never provide system prompt text. The server picks one of these presets
by key; the mapping is immutable for the lifetime of the process.
"""

from __future__ import annotations

from enum import Enum
from types import MappingProxyType
from typing import Mapping


class SystemPromptPreset(str, Enum):
    DEFAULT = "default"
    TUTOR = "tutor"
    CODE_EXPERT = "code_expert"
    WRITER = "writer"
    BUSINESS = "business"
    SCIENTIST = "scientist"
    TRANSLATOR = "translator"
    SUMMARIZER = "summarizer"
    CREATIVE = "creative"


_PRESET_TEXT: Mapping[SystemPromptPreset, str] = MappingProxyType(
    {
        SystemPromptPreset.DEFAULT: (
            "You are a helpful AI assistant. Be friendly, concise, and accurate."
        ),
        SystemPromptPreset.TUTOR: (
            "You are a patient tutor. Explain concepts clearly and provide examples. "
            "Be encouraging."
        ),
        SystemPromptPreset.CODE_EXPERT: (
            "You are a programming expert. Provide clean, well-commented code examples. "
            "Explain technical concepts clearly."
        ),
        SystemPromptPreset.WRITER: (
            "You are a creative writing assistant. Help with brainstorming, editing, "
            "and improving written content."
        ),
        SystemPromptPreset.BUSINESS: (
            "You are a business consultant. Provide professional, strategic advice "
            "with practical recommendations."
        ),
        SystemPromptPreset.SCIENTIST: (
            "You are a scientist. Explain scientific concepts accurately with appropriate "
            "detail. Cite scientific principles."
        ),
        SystemPromptPreset.TRANSLATOR: (
            "You are a professional translator. Provide accurate translations while "
            "preserving meaning and tone."
        ),
        SystemPromptPreset.SUMMARIZER: (
            "You are a summarization expert. Create clear, concise summaries highlighting "
            "key points."
        ),
        SystemPromptPreset.CREATIVE: (
            "You are a creative assistant. Think outside the box and provide innovative "
            "ideas and solutions."
        ),
    }
)

DEFAULT_SYSTEM_PROMPT = _PRESET_TEXT[SystemPromptPreset.DEFAULT]


def get_available_system_prompts() -> dict[str, str]:
    """Return a copy of the preset table keyed by preset name."""
    return {preset.value: text for preset, text in _PRESET_TEXT.items()}


def is_known_preset(key: str) -> bool:
    return key in {preset.value for preset in SystemPromptPreset}


def get_system_prompt(key: str) -> str | None:
    """Look up preset text by key. Returns None for unknown keys."""
    if not is_known_preset(key):
        return None
    return _PRESET_TEXT[SystemPromptPreset(key)]
