# src/modelstore/models.py — v1
"""Model file and download progress models."""

from __future__ import annotations

import asyncio
from enum import Enum
from pathlib import Path

from pydantic import BaseModel


class ModelFile(BaseModel):
    """A model file found in the model directory."""

    path: Path
    size_bytes: int
    valid: bool

    @property
    def name(self) -> str:
        return self.path.name


class DownloadState(str, Enum):
    PENDING = "pending"
    STARTED = "started"
    COMPLETE = "complete"
    FAILED = "failed"


class DownloadProgress(BaseModel):
    """Coarse download progress snapshot."""

    url: str
    state: DownloadState = DownloadState.PENDING
    bytes_downloaded: int = 0
    total_bytes: int | None = None
    path: Path | None = None
    error: str | None = None

    @property
    def fraction(self) -> float | None:
        if not self.total_bytes:
            return None
        return min(1.0, self.bytes_downloaded / self.total_bytes)


class DownloadHandle:
    """Observable handle on a background download.

    ``state`` and ``progress`` can be polled at any time; ``wait()``
    returns the final path or re-raises the download error.
    """

    def __init__(self, progress: DownloadProgress, task: asyncio.Task[Path]) -> None:
        self.progress = progress
        self._task = task

    @property
    def state(self) -> DownloadState:
        return self.progress.state

    @property
    def done(self) -> bool:
        return self._task.done()

    async def wait(self) -> Path:
        return await self._task
