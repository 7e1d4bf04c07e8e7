# src/llm/adapters/local_adapter.py — v1
"""On-device inference through llama-cpp-python.

One LocalModelHandle exists per model path. It loads the GGUF file lazily
on first use, keeps it resident, and feeds requests to the model one at a
time through a FIFO queue drained by a single worker task. Blocking
llama.cpp calls run in a worker thread.
"""

from __future__ import annotations

import asyncio
import logging
import threading
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable

from pydantic import BaseModel

from jobpilot.config.settings import Settings
from jobpilot.core.errors import InvalidModelFile, ModelLoadError, ResponseFormatError
from jobpilot.llm.base_client import BaseInferenceAdapter
from jobpilot.llm.json_output import parse_structured
from jobpilot.llm.models import InferenceResult, Prompt
from jobpilot.modelstore.store import validate_model_path
from jobpilot.tasks.prompts import STRICT_JSON_REMINDER

logger = logging.getLogger(__name__)

ModelLoader = Callable[..., Any]


def load_llama(path: Path, context_size: int = 4096, threads: int | None = None) -> Any:
    """Load a GGUF model with llama-cpp-python."""
    from llama_cpp import Llama

    return Llama(
        model_path=str(path),
        n_ctx=context_size,
        n_threads=threads,
        verbose=False,
    )


@dataclass
class _Request:
    messages: list[dict[str, str]]
    max_tokens: int
    temperature: float
    future: asyncio.Future[str]
    enqueued_at: float = field(default_factory=time.monotonic)


class LocalModelHandle:
    """Shared, lazily loaded model plus its FIFO request queue."""

    def __init__(
        self,
        path: Path,
        loader: ModelLoader = load_llama,
        context_size: int = 4096,
        threads: int | None = None,
    ) -> None:
        self.path = path
        self._loader = loader
        self._context_size = context_size
        self._threads = threads
        self._model: Any = None
        self._load_lock = threading.Lock()
        self._queue: asyncio.Queue[_Request] | None = None
        self._worker: asyncio.Task[None] | None = None
        self._loop: asyncio.AbstractEventLoop | None = None

    @property
    def loaded(self) -> bool:
        return self._model is not None

    @property
    def pending(self) -> int:
        return self._queue.qsize() if self._queue is not None else 0

    async def ensure_loaded(self) -> None:
        """Load the model if needed.

        Raises:
            ModelLoadError: The loader failed.
        """
        if self._model is None:
            await asyncio.to_thread(self._load_blocking)

    async def complete(
        self, messages: list[dict[str, str]], max_tokens: int, temperature: float,
    ) -> str:
        """Queue one chat completion and wait for its text."""
        queue = self._ensure_worker()
        future: asyncio.Future[str] = asyncio.get_running_loop().create_future()
        if self.pending:
            logger.debug("Local model busy; %d request(s) ahead in queue", self.pending)
        await queue.put(_Request(messages, max_tokens, temperature, future))
        return await future

    def _ensure_worker(self) -> asyncio.Queue[_Request]:
        loop = asyncio.get_running_loop()
        if self._queue is None or self._loop is not loop or self._worker is None or self._worker.done():
            self._loop = loop
            self._queue = asyncio.Queue()
            self._worker = loop.create_task(self._drain(self._queue))
        return self._queue

    async def _drain(self, queue: asyncio.Queue[_Request]) -> None:
        while True:
            request = await queue.get()
            try:
                if request.future.cancelled():
                    continue
                logger.debug(
                    "Local request waited %.3fs in queue", time.monotonic() - request.enqueued_at,
                )
                try:
                    await self.ensure_loaded()
                    text = await asyncio.to_thread(self._infer_blocking, request)
                except Exception as e:  # noqa: BLE001
                    if not request.future.cancelled():
                        request.future.set_exception(e)
                else:
                    if not request.future.cancelled():
                        request.future.set_result(text)
            finally:
                queue.task_done()

    def _load_blocking(self) -> None:
        with self._load_lock:
            if self._model is not None:
                return
            start = time.monotonic()
            logger.info("Loading local model %s", self.path.name)
            try:
                self._model = self._loader(
                    self.path, context_size=self._context_size, threads=self._threads,
                )
            except Exception as e:
                raise ModelLoadError(
                    f"Failed to load local model {self.path.name}: {e}", provider="local",
                ) from e
            logger.info(
                "Local model %s loaded in %.1fs", self.path.name, time.monotonic() - start,
            )

    def _infer_blocking(self, request: _Request) -> str:
        response = self._model.create_chat_completion(
            messages=request.messages,
            max_tokens=request.max_tokens,
            temperature=request.temperature,
            response_format={"type": "json_object"},
        )
        return response["choices"][0]["message"]["content"] or ""


_HANDLES: dict[Path, LocalModelHandle] = {}
_HANDLES_LOCK = threading.Lock()


def get_model_handle(
    path: Path,
    loader: ModelLoader = load_llama,
    context_size: int = 4096,
    threads: int | None = None,
) -> LocalModelHandle:
    """Return the process-wide handle for ``path``, creating it on first use."""
    key = Path(path).expanduser().resolve()
    with _HANDLES_LOCK:
        handle = _HANDLES.get(key)
        if handle is None:
            handle = LocalModelHandle(key, loader, context_size, threads)
            _HANDLES[key] = handle
        return handle


def release_model_handles() -> None:
    """Drop every cached handle (models are freed once unreferenced)."""
    with _HANDLES_LOCK:
        _HANDLES.clear()


class LocalInferenceAdapter(BaseInferenceAdapter):
    """Runs prompts on the bundled GGUF model."""

    def __init__(
        self,
        model_path: Path | str,
        loader: ModelLoader = load_llama,
        context_size: int = 4096,
        max_tokens: int = 1000,
        temperature: float = 0.2,
        threads: int | None = None,
        max_reprompts: int = 2,
    ) -> None:
        self._path = Path(model_path).expanduser()
        self._loader = loader
        self._context_size = context_size
        self._max_tokens = max_tokens
        self._temperature = temperature
        self._threads = threads
        self._max_reprompts = max_reprompts

    @classmethod
    def from_settings(
        cls, model_path: Path | str, settings: Settings, loader: ModelLoader = load_llama,
    ) -> LocalInferenceAdapter:
        return cls(
            model_path,
            loader=loader,
            context_size=settings.local_context_size,
            max_tokens=settings.local_max_tokens,
            temperature=settings.local_temperature,
            threads=settings.local_threads,
            max_reprompts=settings.local_max_reprompts,
        )

    @property
    def provider_name(self) -> str:
        return "local"

    @property
    def model_path(self) -> Path:
        return self._path

    def _handle(self) -> LocalModelHandle:
        validate_model_path(self._path)
        return get_model_handle(self._path, self._loader, self._context_size, self._threads)

    async def ping(self) -> str:
        """Load the model (if needed) without running inference."""
        handle = self._handle()
        await handle.ensure_loaded()
        return f"Local model ready ({self._path.name})"

    async def invoke(self, prompt: Prompt, output_shape: type[BaseModel]) -> InferenceResult:
        """Run ``prompt`` locally, re-prompting on malformed output.

        Raises:
            InvalidModelFile: The configured model file is missing or misnamed.
            ModelLoadError: The model could not be loaded.
            ResponseFormatError: Output stayed malformed after every re-prompt.
        """
        handle = self._handle()
        start = time.monotonic()
        current = prompt
        last_error: ResponseFormatError | None = None

        for attempt in range(1, self._max_reprompts + 2):
            text = await handle.complete(
                _to_messages(current),
                max_tokens=current.max_tokens or self._max_tokens,
                temperature=(
                    current.temperature if current.temperature is not None else self._temperature
                ),
            )
            try:
                payload = parse_structured(text, output_shape, self.provider_name)
            except ResponseFormatError as e:
                last_error = e
                logger.warning(
                    "Local output rejected (attempt %d/%d): %s",
                    attempt, self._max_reprompts + 1, e,
                )
                current = prompt.with_reminder(STRICT_JSON_REMINDER)
                continue
            return InferenceResult(
                payload=payload,
                raw_text=text,
                provider=self.provider_name,
                model=self._path.name,
                latency_ms=int((time.monotonic() - start) * 1000),
                attempts=attempt,
            )

        assert last_error is not None
        raise last_error


def _to_messages(prompt: Prompt) -> list[dict[str, str]]:
    return [
        {"role": "system", "content": prompt.system},
        {"role": "user", "content": prompt.user},
    ]


class LocalModelProbe:
    """Availability probe that loads the model through its shared handle."""

    def __init__(self, settings: Settings | None = None, loader: ModelLoader = load_llama) -> None:
        self._settings = settings or Settings()
        self._loader = loader

    async def local_available(self, model_path: Path) -> bool:
        adapter = LocalInferenceAdapter.from_settings(model_path, self._settings, loader=self._loader)
        try:
            await adapter.ping()
        except (InvalidModelFile, ModelLoadError) as e:
            logger.info("Local model unavailable: %s", e)
            return False
        return True
