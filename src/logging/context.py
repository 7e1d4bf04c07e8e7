# src/logging/context.py — v2
"""Contextual logging support — attach run_id, purpose, fingerprint, provider
and orchestrator state to log records emitted during one AI call.
"""

from __future__ import annotations

import contextvars
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Iterator

# Context variables for structured logging, set per orchestration run.
_run_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "run_id", default=None
)
_purpose: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "purpose", default=None
)
_fingerprint: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "fingerprint", default=None
)
_provider: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "provider", default=None
)
_state: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "state", default=None
)

FINGERPRINT_PREFIX = 12


@dataclass
class LogContext:
    """Immutable snapshot of current logging context."""

    run_id: str | None = None
    purpose: str | None = None
    fingerprint: str | None = None
    provider: str | None = None
    state: str | None = None

    def as_dict(self) -> dict[str, Any]:
        """Return non-None fields as dict for JSON log injection."""
        return {k: v for k, v in self.__dict__.items() if v is not None}


def get_context() -> LogContext:
    """Snapshot current context variables."""
    return LogContext(
        run_id=_run_id.get(),
        purpose=_purpose.get(),
        fingerprint=_fingerprint.get(),
        provider=_provider.get(),
        state=_state.get(),
    )


def set_run_context(run_id: str, purpose: str, fingerprint: str) -> None:
    """Set run-level context (called once per orchestration call)."""
    _run_id.set(run_id)
    _purpose.set(purpose)
    _fingerprint.set(fingerprint[:FINGERPRINT_PREFIX])
    _provider.set(None)
    _state.set(None)


def set_provider(provider: str | None) -> None:
    _provider.set(provider)


def set_state(state: str | None) -> None:
    _state.set(state)


def clear_context() -> None:
    """Reset all context variables."""
    _run_id.set(None)
    _purpose.set(None)
    _fingerprint.set(None)
    _provider.set(None)
    _state.set(None)


@contextmanager
def run_context(run_id: str, purpose: str, fingerprint: str) -> Iterator[None]:
    """Scope the run context to a block, restoring the previous values after."""
    tokens = [
        _run_id.set(run_id),
        _purpose.set(purpose),
        _fingerprint.set(fingerprint[:FINGERPRINT_PREFIX]),
        _provider.set(None),
        _state.set(None),
    ]
    try:
        yield
    finally:
        for var, token in zip(
            (_run_id, _purpose, _fingerprint, _provider, _state), tokens,
        ):
            var.reset(token)
