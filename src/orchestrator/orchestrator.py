# src/orchestrator/orchestrator.py — v1
"""AI orchestrator: fingerprint → cache → route → invoke → cache.

Each run walks an explicit state sequence and returns it in the result:

    idle → cache_lookup → hit → done
                        → miss → provider_select → direct_invoke | chunked_invoke
                                                  → cache_put → done
    any → failed

In hybrid mode a transient cloud failure switches to the local model once
per call. There is no retry loop between providers.
"""

from __future__ import annotations

import json
import logging
import time
import uuid
from enum import Enum
from typing import Any, Protocol

from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from jobpilot.cache.fingerprint import compute_fingerprint
from jobpilot.cache.response_cache import ResponseCache
from jobpilot.chunking.invoker import ChunkedInvoker
from jobpilot.chunking.paragraph_chunker import ParagraphChunker
from jobpilot.config.ai_settings import AiSettings, SettingsProvider
from jobpilot.config.purposes import PurposeSpec, get_purpose
from jobpilot.config.settings import Settings
from jobpilot.core.errors import (
    ChunkPartialFailure,
    JobPilotError,
    ProviderError,
    ResponseFormatError,
    TotalFailure,
)
from jobpilot.llm.adapters.local_adapter import ModelLoader, load_llama
from jobpilot.llm.base_client import BaseInferenceAdapter
from jobpilot.llm.client_factory import create_cloud_adapter, create_local_adapter
from jobpilot.llm.models import Prompt
from jobpilot.logging.context import run_context, set_provider, set_state
from jobpilot.routing.router import ProviderKind, ProviderRouter
from jobpilot.tasks.prompts import build_user_prompt

logger = logging.getLogger(__name__)


class RunState(str, Enum):
    IDLE = "idle"
    CACHE_LOOKUP = "cache_lookup"
    HIT = "hit"
    MISS = "miss"
    PROVIDER_SELECT = "provider_select"
    DIRECT_INVOKE = "direct_invoke"
    CHUNKED_INVOKE = "chunked_invoke"
    CACHE_PUT = "cache_put"
    DONE = "done"
    FAILED = "failed"


class TaskResult(BaseModel):
    """Outcome of one orchestration call."""

    purpose: str
    fingerprint: str
    payload: dict[str, Any]
    provider: str | None = None
    cache_hit: bool = False
    cached: bool = False
    failed_chunks: list[int] = Field(default_factory=list)
    chunk_count: int = 0
    fallback: bool = False
    states: list[RunState] = Field(default_factory=list)
    latency_ms: int = 0

    @property
    def partial(self) -> bool:
        return bool(self.failed_chunks)


class AdapterSource(Protocol):
    """Builds adapters for a routing decision."""

    def local(self, ai_settings: AiSettings) -> BaseInferenceAdapter: ...

    def cloud(self, ai_settings: AiSettings) -> BaseInferenceAdapter: ...


class DefaultAdapterSource:
    """Adapters built from Settings through the client factory."""

    def __init__(
        self,
        settings: Settings,
        loader: ModelLoader = load_llama,
        cloud_client: Any = None,
    ) -> None:
        self._settings = settings
        self._loader = loader
        self._cloud_client = cloud_client

    def local(self, ai_settings: AiSettings) -> BaseInferenceAdapter:
        return create_local_adapter(self._settings, ai_settings, loader=self._loader)

    def cloud(self, ai_settings: AiSettings) -> BaseInferenceAdapter:
        return create_cloud_adapter(self._settings, ai_settings, client=self._cloud_client)


class _Trace:
    """Visited states, mirrored into the log context."""

    def __init__(self) -> None:
        self.states: list[RunState] = []
        self.enter(RunState.IDLE)

    def enter(self, state: RunState) -> None:
        self.states.append(state)
        set_state(state.value)


class AIOrchestrator:
    """Runs AI tasks with caching, routing and chunking.

    Args:
        settings: Application settings.
        settings_provider: Source of the current AiSettings, read per call.
        cache: Response cache; None disables caching.
        router: Provider router.
        adapters: Adapter source for local and cloud providers.
        invoker: Chunked invoker; defaults to one sized from settings.
    """

    def __init__(
        self,
        settings: Settings,
        settings_provider: SettingsProvider,
        cache: ResponseCache | None,
        router: ProviderRouter,
        adapters: AdapterSource | None = None,
        invoker: ChunkedInvoker | None = None,
    ) -> None:
        self._settings = settings
        self._settings_provider = settings_provider
        self._cache = cache if settings.cache_enabled else None
        self._router = router
        self._adapters = adapters or DefaultAdapterSource(settings)
        self._invoker = invoker or ChunkedInvoker(ParagraphChunker.from_settings(settings))

    @property
    def cache(self) -> ResponseCache | None:
        return self._cache

    async def run(
        self,
        purpose: str,
        text: str,
        options: dict[str, Any] | None = None,
        allow_partial: bool = True,
    ) -> TaskResult:
        """Execute one AI task.

        Raises:
            UnknownPurposeError: ``purpose`` is not registered.
            ConfigurationError: No viable provider.
            InvalidModelFile: The configured local model file is unusable.
            ProviderError: The provider call failed.
            ChunkPartialFailure: Some chunks failed and ``allow_partial`` is False.
            TotalFailure: Every chunk failed.
        """
        spec = get_purpose(purpose)
        fingerprint = compute_fingerprint(purpose, text, options, spec.option_keys)
        run_id = uuid.uuid4().hex[:8]
        start = time.monotonic()

        with run_context(run_id, purpose, fingerprint):
            trace = _Trace()
            try:
                result = await self._run(spec, fingerprint, text, options or {}, allow_partial, trace)
            except Exception as e:
                trace.enter(RunState.FAILED)
                logger.error("Task failed: %s [%s]", e, getattr(e, "kind", type(e).__name__))
                raise
            result.latency_ms = int((time.monotonic() - start) * 1000)
            logger.info(
                "Task done via %s (cache_hit=%s, fallback=%s, failed_chunks=%s) in %dms",
                result.provider or "cache", result.cache_hit, result.fallback,
                result.failed_chunks, result.latency_ms,
            )
            return result

    async def _run(
        self,
        spec: PurposeSpec,
        fingerprint: str,
        text: str,
        options: dict[str, Any],
        allow_partial: bool,
        trace: _Trace,
    ) -> TaskResult:
        trace.enter(RunState.CACHE_LOOKUP)
        cached = await self._lookup(spec, fingerprint)
        if cached is not None:
            trace.enter(RunState.HIT)
            trace.enter(RunState.DONE)
            return TaskResult(
                purpose=spec.name,
                fingerprint=fingerprint,
                payload=cached,
                cache_hit=True,
                states=trace.states,
            )
        trace.enter(RunState.MISS)

        trace.enter(RunState.PROVIDER_SELECT)
        ai_settings = self._settings_provider.load()
        decision = await self._router.select(ai_settings)

        chunked = spec.chunked and self._invoker.needs_chunking(text)
        trace.enter(RunState.CHUNKED_INVOKE if chunked else RunState.DIRECT_INVOKE)

        fallback_used = False
        adapter = self._adapter_for(decision.primary, ai_settings)
        try:
            payload, failed_chunks, chunk_count = await self._invoke(
                spec, adapter, text, options, chunked,
            )
        except (ProviderError, TotalFailure) as e:
            if decision.fallback is None or not _is_transient(e):
                raise
            logger.warning(
                "%s failed transiently (%s); falling back to %s",
                adapter.provider_name, e, decision.fallback.value,
            )
            fallback_used = True
            adapter = self._adapter_for(decision.fallback, ai_settings)
            payload, failed_chunks, chunk_count = await self._invoke(
                spec, adapter, text, options, chunked,
            )

        partial = bool(failed_chunks)
        stored = False
        if not partial or self._settings.cache_partial_results:
            trace.enter(RunState.CACHE_PUT)
            stored = await self._store(spec, fingerprint, payload)

        if partial and not allow_partial:
            raise ChunkPartialFailure(payload, failed_chunks)

        trace.enter(RunState.DONE)
        return TaskResult(
            purpose=spec.name,
            fingerprint=fingerprint,
            payload=payload,
            provider=adapter.provider_name,
            cached=stored,
            failed_chunks=failed_chunks,
            chunk_count=chunk_count,
            fallback=fallback_used,
            states=trace.states,
        )

    def _adapter_for(self, kind: ProviderKind, ai_settings: AiSettings) -> BaseInferenceAdapter:
        adapter = (
            self._adapters.local(ai_settings)
            if kind == ProviderKind.LOCAL
            else self._adapters.cloud(ai_settings)
        )
        set_provider(adapter.provider_name)
        return adapter

    async def _invoke(
        self,
        spec: PurposeSpec,
        adapter: BaseInferenceAdapter,
        text: str,
        options: dict[str, Any],
        chunked: bool,
    ) -> tuple[dict[str, Any], list[int], int]:
        """Returns (payload, failed_chunks, chunk_count)."""
        if not chunked:
            prompt = Prompt(
                system=spec.system_prompt,
                user=build_user_prompt(spec.name, text, options),
            )
            inference = await adapter.invoke(prompt, spec.output_model)
            return inference.payload, [], 1

        def prompt_for(chunk: Any) -> Prompt:
            return Prompt(
                system=spec.system_prompt,
                user=build_user_prompt(spec.name, chunk.content, options),
            )

        merged = await self._invoker.run(
            text, adapter, prompt_for, spec.output_model, spec.merge_strategy or "extraction",
        )
        payload = _validated(spec, merged.payload, adapter.provider_name)
        return payload, merged.failed_chunks, merged.chunk_count

    async def _lookup(self, spec: PurposeSpec, fingerprint: str) -> dict[str, Any] | None:
        if self._cache is None:
            return None
        entry = await self._cache.get(spec.name, fingerprint)
        if entry is None:
            return None
        if entry.schema_tag and entry.schema_tag != spec.schema_name:
            logger.info("Ignoring cached entry with schema %s", entry.schema_tag)
            return None
        try:
            payload = json.loads(entry.payload.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            logger.warning("Unreadable cached payload, treating as miss: %s", e)
            return None
        if not isinstance(payload, dict):
            return None
        return payload

    async def _store(self, spec: PurposeSpec, fingerprint: str, payload: dict[str, Any]) -> bool:
        if self._cache is None:
            return False
        data = json.dumps(payload, sort_keys=True, ensure_ascii=False).encode("utf-8")
        await self._cache.put(spec.name, fingerprint, data, spec.ttl, spec.schema_name)
        await self._apply_bounds()
        return True

    async def _apply_bounds(self) -> None:
        assert self._cache is not None
        if self._settings.cache_max_size_mb is not None:
            await self._cache.evict_by_size(int(self._settings.cache_max_size_mb * 1024 * 1024))
        if self._settings.cache_max_entries is not None:
            await self._cache.evict_by_count(self._settings.cache_max_entries)


def _is_transient(error: JobPilotError) -> bool:
    if isinstance(error, TotalFailure):
        cause = error.root_cause
        return isinstance(cause, ProviderError) and cause.transient
    return isinstance(error, ProviderError) and error.transient


def _validated(spec: PurposeSpec, payload: dict[str, Any], provider: str) -> dict[str, Any]:
    """Re-validate a merged payload against the purpose's output model."""
    try:
        return spec.output_model.model_validate(payload).model_dump(mode="json")
    except PydanticValidationError as e:
        raise ResponseFormatError(
            f"Merged output does not match {spec.output_model.__name__}: "
            f"{e.error_count()} validation error(s)",
            provider=provider,
        ) from e
