# src/modelstore/store.py — v1
"""On-device model file lifecycle: discovery, download, validation, cleanup.

Downloads stream through httpx into ``<name>.part`` and are renamed into
place only once complete, so a half-written file is never picked up as a
model.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

import httpx

from jobpilot.config.ai_settings import SettingsProvider
from jobpilot.config.settings import Settings
from jobpilot.core.errors import (
    InvalidModelFilename,
    InvalidModelPath,
    InvalidUrl,
    NetworkError,
)
from jobpilot.modelstore.models import (
    DownloadHandle,
    DownloadProgress,
    DownloadState,
    ModelFile,
)
from jobpilot.modelstore.url_policy import (
    has_query_artifacts,
    is_valid_model_filename,
    validate_download_url,
)

logger = logging.getLogger(__name__)

PART_SUFFIX = ".part"


class ModelStore:
    """Manages model files in one directory."""

    def __init__(
        self,
        model_dir: Path | str,
        extension: str = ".gguf",
        http_client: httpx.AsyncClient | None = None,
        timeout_s: float = 60.0,
        chunk_bytes: int = 1024 * 1024,
    ) -> None:
        self._dir = Path(model_dir).expanduser()
        self._extension = extension
        self._http_client = http_client
        self._timeout_s = timeout_s
        self._chunk_bytes = chunk_bytes
        self._active_parts: set[Path] = set()
        self._tasks: set[asyncio.Task[Path]] = set()

    @classmethod
    def from_settings(
        cls, settings: Settings, http_client: httpx.AsyncClient | None = None,
    ) -> ModelStore:
        return cls(
            model_dir=settings.resolved_model_dir,
            extension=settings.model_extension,
            http_client=http_client,
            timeout_s=settings.download_timeout_s,
            chunk_bytes=settings.download_chunk_bytes,
        )

    @property
    def model_dir(self) -> Path:
        return self._dir

    # --- Discovery ---

    def find_model_files(self) -> list[ModelFile]:
        """List ``*.gguf`` files in the model directory, sorted by name."""
        if not self._dir.is_dir():
            return []
        found: list[ModelFile] = []
        for path in sorted(self._dir.iterdir(), key=lambda p: p.name):
            if not path.is_file() or not path.name.lower().endswith(self._extension):
                continue
            found.append(ModelFile(
                path=path,
                size_bytes=path.stat().st_size,
                valid=is_valid_model_filename(path.name, self._extension),
            ))
        return found

    # --- Validation ---

    def validate_model_path(self, path: Path | str) -> Path:
        """Check that ``path`` names an existing, well-formed model file.

        Raises:
            InvalidModelPath: The file does not exist.
            InvalidModelFilename: The filename carries URL query artifacts.
        """
        return validate_model_path(path)

    # --- Cleanup ---

    def cleanup_invalid_model_files(self) -> list[Path]:
        """Delete model files left behind by broken downloads.

        That is any file whose name carries URL query artifacts, plus stale
        ``*.gguf.part`` files. Unrelated files (READMEs, tokenizers, other
        weight formats) are never touched, and partial files of downloads
        still running in this process are kept.
        """
        if not self._dir.is_dir():
            return []
        removed: list[Path] = []
        for path in sorted(self._dir.iterdir()):
            if not path.is_file() or path in self._active_parts:
                continue
            if not self._is_download_debris(path.name):
                continue
            path.unlink()
            removed.append(path)
            logger.info("Removed invalid model file %s", path.name)
        return removed

    def _is_download_debris(self, name: str) -> bool:
        if has_query_artifacts(name):
            return True
        return name.lower().endswith(self._extension + PART_SUFFIX)

    def clear_invalid_model_path(self, settings_provider: SettingsProvider) -> bool:
        """Clear the persisted model path if it no longer validates.

        Returns:
            True if the path was cleared and the settings saved.
        """
        settings = settings_provider.load()
        if settings.local_model_path is None:
            return False
        try:
            self.validate_model_path(settings.local_model_path)
        except (InvalidModelPath, InvalidModelFilename) as e:
            logger.warning("Clearing invalid local model path: %s", e)
            settings_provider.save(settings.model_copy(update={"local_model_path": None}))
            return True
        return False

    # --- Download ---

    async def download_model(
        self, url: str, progress: DownloadProgress | None = None,
    ) -> Path:
        """Download a model file into the model directory.

        Raises:
            InvalidUrl: If the URL is not a direct model-file link, or the
                server does not return the file.
        """
        filename = validate_download_url(url, self._extension)
        progress = progress or DownloadProgress(url=url)
        target = self._dir / filename
        part = target.with_name(target.name + PART_SUFFIX)
        self._dir.mkdir(parents=True, exist_ok=True)

        self._active_parts.add(part)
        progress.state = DownloadState.STARTED
        logger.info("Downloading model %s", filename)
        try:
            await self._stream_to(url, part, progress)
            part.replace(target)
        except BaseException as e:
            progress.state = DownloadState.FAILED
            progress.error = str(e)
            part.unlink(missing_ok=True)
            logger.error("Model download failed for %s: %s", filename, e)
            raise
        finally:
            self._active_parts.discard(part)

        progress.path = target
        progress.state = DownloadState.COMPLETE
        logger.info(
            "Model downloaded to %s (%d bytes)", target, progress.bytes_downloaded,
        )
        return target

    def start_download(self, url: str) -> DownloadHandle:
        """Run download_model() as a background task.

        URL validation happens immediately, so a bad URL raises InvalidUrl
        here rather than inside the task.
        """
        validate_download_url(url, self._extension)
        progress = DownloadProgress(url=url)
        task = asyncio.create_task(self.download_model(url, progress))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return DownloadHandle(progress, task)

    async def _stream_to(self, url: str, part: Path, progress: DownloadProgress) -> None:
        client = self._http_client or httpx.AsyncClient(
            timeout=self._timeout_s, follow_redirects=True,
        )
        try:
            async with client.stream("GET", url) as response:
                if 400 <= response.status_code < 500:
                    raise InvalidUrl(
                        f"Download failed with HTTP {response.status_code}", url=url,
                    )
                if response.status_code != 200:
                    raise NetworkError(
                        f"Download failed with HTTP {response.status_code}",
                        provider="download",
                    )
                length = response.headers.get("content-length")
                progress.total_bytes = int(length) if length and length.isdigit() else None
                with part.open("wb") as fh:
                    async for chunk in response.aiter_bytes(self._chunk_bytes):
                        fh.write(chunk)
                        progress.bytes_downloaded += len(chunk)
        except httpx.HTTPError as e:
            raise NetworkError(f"Download failed: {e}", provider="download") from e
        finally:
            if self._http_client is None:
                await client.aclose()


def validate_model_path(path: Path | str) -> Path:
    """Check that ``path`` names an existing, well-formed model file.

    Raises:
        InvalidModelPath: The file does not exist.
        InvalidModelFilename: The filename carries URL query artifacts.
    """
    path = Path(path).expanduser()
    if not path.is_file():
        raise InvalidModelPath(f"Model file not found: {path}", path=str(path))
    if has_query_artifacts(path.name):
        raise InvalidModelFilename(
            f"Invalid model filename: {path.name!r}. It contains query "
            "parameters, so it was probably downloaded incorrectly.",
            path=str(path),
        )
    return path
