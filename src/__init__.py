# src/__init__.py — v1
"""jobpilot — AI provider orchestration and response cache."""

from jobpilot.version import __version__

__all__ = ["__version__"]
