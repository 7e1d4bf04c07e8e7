# src/core/errors.py — v1
"""Error taxonomy for provider orchestration, model files and the response cache.

Every error carries a machine-readable ``kind`` so callers branch on type or
kind, never on message text.
"""

from __future__ import annotations

from typing import Any


class JobPilotError(Exception):
    """Base class for all jobpilot errors."""

    kind: str = "unknown"


# === CONFIGURATION ===


class ConfigurationError(JobPilotError):
    """No usable provider, or settings are internally inconsistent.

    ``missing`` names the settings fields the user has to fill in.
    """

    kind = "configuration"

    def __init__(self, message: str, missing: list[str] | None = None) -> None:
        self.missing = list(missing or [])
        super().__init__(message)


class ValidationError(JobPilotError):
    """A settings record was rejected on save."""

    kind = "validation"

    def __init__(self, message: str, field: str | None = None) -> None:
        self.field = field
        super().__init__(message)


# === MODEL FILES ===


class InvalidModelFile(JobPilotError):
    """The configured or discovered model file cannot be used."""

    kind = "invalid_model_file"

    def __init__(self, message: str, path: str | None = None) -> None:
        self.path = path
        super().__init__(message)


class InvalidModelPath(InvalidModelFile):
    """The model path does not point to an existing file."""

    kind = "invalid_model_path"


class InvalidModelFilename(InvalidModelFile):
    """The model filename carries URL query-string artifacts."""

    kind = "invalid_model_filename"


class InvalidUrl(JobPilotError):
    """A download URL does not resolve to a direct model file."""

    kind = "invalid_url"

    def __init__(self, message: str, url: str) -> None:
        self.url = url
        super().__init__(message)


# === PROVIDERS ===


class ProviderError(JobPilotError):
    """Inference failure raised by an adapter.

    ``transient`` errors may be retried or trigger the hybrid fallback;
    permanent ones surface immediately.
    """

    kind = "provider"
    transient: bool = False

    def __init__(
        self,
        message: str,
        provider: str | None = None,
        transient: bool | None = None,
    ) -> None:
        self.provider = provider
        if transient is not None:
            self.transient = transient
        super().__init__(message)


class NetworkError(ProviderError):
    """Timeout, connection failure or 5xx from a remote API."""

    kind = "network"
    transient = True


class RateLimitError(ProviderError):
    """The remote API rejected the call with a rate limit."""

    kind = "rate_limit"
    transient = True


class AuthenticationError(ProviderError):
    """The remote API rejected the credentials (401/403)."""

    kind = "authentication"
    transient = False


class ModelLoadError(ProviderError):
    """The on-device model could not be loaded."""

    kind = "model_load"
    transient = False


class ResponseFormatError(ProviderError):
    """The model answered, but not in the expected structured shape."""

    kind = "response_format"
    transient = True


# === CHUNKED TASKS ===


class ChunkPartialFailure(JobPilotError):
    """Some chunks failed; ``payload`` holds the merge of the successful ones."""

    kind = "chunk_partial_failure"

    def __init__(self, payload: dict[str, Any], failed_chunks: list[int]) -> None:
        self.payload = payload
        self.failed_chunks = list(failed_chunks)
        super().__init__(
            f"{len(self.failed_chunks)} chunk(s) failed: {self.failed_chunks}"
        )


class TotalFailure(JobPilotError):
    """Every attempt or every chunk failed."""

    kind = "total_failure"

    def __init__(
        self,
        message: str,
        first_failed_chunk: int | None = None,
        errors: list[Exception] | None = None,
    ) -> None:
        self.first_failed_chunk = first_failed_chunk
        self.errors = list(errors or [])
        super().__init__(message)

    @property
    def root_cause(self) -> Exception | None:
        """First underlying error, if any."""
        return self.errors[0] if self.errors else None


def is_invalid_model_error(error: BaseException) -> bool:
    """True if ``error`` (or the first cause of a TotalFailure) is a model-file error."""
    if isinstance(error, InvalidModelFile):
        return True
    if isinstance(error, TotalFailure):
        return isinstance(error.root_cause, InvalidModelFile)
    return False
