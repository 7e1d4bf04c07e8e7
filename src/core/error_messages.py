# src/core/error_messages.py — v1
"""Map jobpilot errors to user-facing messages with recovery suggestions."""

from __future__ import annotations

from dataclasses import dataclass, field

from jobpilot.core.errors import (
    AuthenticationError,
    ChunkPartialFailure,
    ConfigurationError,
    InvalidModelFilename,
    InvalidModelPath,
    InvalidUrl,
    ModelLoadError,
    NetworkError,
    RateLimitError,
    ResponseFormatError,
    TotalFailure,
    ValidationError,
)


@dataclass(frozen=True)
class UserMessage:
    """Message shown to the user plus what they can do about it."""

    message: str
    suggestions: list[str] = field(default_factory=list)
    recoverable: bool = True
    requires_action: bool = False


def to_user_message(error: BaseException) -> UserMessage:
    """Translate an error into a UserMessage."""
    if isinstance(error, TotalFailure) and error.root_cause is not None:
        inner = to_user_message(error.root_cause)
        return UserMessage(
            message=f"Nothing could be extracted. {inner.message}",
            suggestions=inner.suggestions,
            recoverable=inner.recoverable,
            requires_action=inner.requires_action,
        )

    if isinstance(error, AuthenticationError):
        return UserMessage(
            "Your API key is invalid or has expired",
            [
                "Check your API key in Settings",
                "Verify the key is correct and hasn't been revoked",
                "Generate a new API key if needed",
            ],
            recoverable=False,
            requires_action=True,
        )

    if isinstance(error, RateLimitError):
        return UserMessage(
            "Rate limit exceeded. Too many requests in a short time",
            [
                "Wait a few moments and try again",
                "Consider upgrading your API plan for higher limits",
            ],
        )

    if isinstance(error, NetworkError):
        return UserMessage(
            "Cannot reach the AI service. The request timed out or the connection failed",
            [
                "Check your internet connection",
                "Wait a moment and try again",
                "Switch to Hybrid mode to fall back to the local model",
            ],
        )

    if isinstance(error, ResponseFormatError):
        return UserMessage(
            "The AI model returned an unexpected response",
            ["Try again, this is usually a temporary issue"],
        )

    if isinstance(error, InvalidModelFilename):
        return UserMessage(
            "The local model file was saved with an invalid name",
            [
                "The invalid file and path have been removed automatically",
                "Download the model again from Settings",
            ],
            recoverable=False,
            requires_action=True,
        )

    if isinstance(error, (InvalidModelPath, ModelLoadError)):
        return UserMessage(
            "The local model could not be loaded",
            [
                "Check the model path in Settings",
                "Download a GGUF model from Settings",
            ],
            recoverable=False,
            requires_action=True,
        )

    if isinstance(error, ConfigurationError):
        missing = ", ".join(error.missing) if error.missing else "a provider"
        return UserMessage(
            f"AI is not set up yet (missing: {missing})",
            [
                "Add an API key in Settings to use Cloud mode",
                "Or download a local model in Settings to use Local mode",
            ],
            recoverable=False,
            requires_action=True,
        )

    if isinstance(error, InvalidUrl):
        return UserMessage(
            "That link does not point directly to a model file",
            ["Use the direct download link ending in .gguf, without '?' parameters"],
            recoverable=False,
            requires_action=True,
        )

    if isinstance(error, ValidationError):
        return UserMessage(str(error), recoverable=False, requires_action=True)

    if isinstance(error, ChunkPartialFailure):
        return UserMessage(
            "Some parts of the document could not be processed",
            ["Review the extracted data, then retry to fill the gaps"],
        )

    return UserMessage(f"Unexpected error: {error}", ["Try again"])
