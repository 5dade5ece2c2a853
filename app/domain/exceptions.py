from __future__ import annotations


class BusinessValidationError(Exception):
    """Raised when a domain/business rule is violated."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidPromptError(BusinessValidationError):
    """Raised when a prompt is empty or exceeds the configured length."""


class UnknownPresetError(BusinessValidationError):
    """Raised when a system prompt key does not match any preset."""

    def __init__(self, key: str):
        super().__init__(f"Unknown system prompt preset: {key!r}")
        self.key = key
