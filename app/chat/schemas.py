from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class ChatRequest(BaseModel):
    """Inbound chat body. Only the prompt is accepted from callers."""

    # Unknown keys (e.g. a caller-supplied `systemPrompt`) are ignored, never forwarded.
    model_config = ConfigDict(extra="ignore")

    prompt: str = Field(
        description="User prompt. Must be non-empty; maximum length is server-configured.",
        examples=["Explain server-sent events in two sentences."],
    )


class Usage(BaseModel):
    prompt_tokens: int = Field(default=0, ge=0)
    completion_tokens: int = Field(default=0, ge=0)
    total_tokens: int = Field(default=0, ge=0)


class ChatResult(BaseModel):
    response: str
    model: str
    usage: Usage = Field(default_factory=Usage)


class ChatChunk(BaseModel):
    content: str = ""
    done: bool = False


class ChatStreamError(BaseModel):
    """Terminal SSE event emitted when a stream is interrupted."""

    error: str = "Stream interrupted"
    message: str
    done: bool = True


class ErrorOut(BaseModel):
    error: str = Field(description="Short, caller-safe description of the failure.")
    message: str | None = Field(
        default=None,
        description="Failure detail. Only populated for validation errors or in debug mode.",
    )


class SystemPromptsOut(BaseModel):
    active: str = Field(description="Preset key applied to every chat request.")
    enabled: bool = Field(description="Whether a system message is ever sent upstream.")
    presets: dict[str, str]
