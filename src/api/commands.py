# src/api/commands.py — v1
"""Command surface — the operations the desktop UI calls.

Usage:
    from jobpilot.api.commands import CommandSurface
    commands = CommandSurface.from_settings(load_settings())
    result = await commands.parse_job(job_id, description)
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from pydantic import BaseModel

from jobpilot.cache.cache_factory import create_cache_store
from jobpilot.cache.models import CacheStats
from jobpilot.cache.response_cache import ResponseCache
from jobpilot.config.ai_settings import AiSettings, SettingsProvider, SqliteSettingsStore
from jobpilot.config.purposes import (
    EXTRACT_PROFILE_FROM_RESUME,
    EXTRACT_SKILLS_FROM_EXPERIENCE,
    GENERATE_COVER_LETTER,
    GENERATE_RESUME,
    GENERATE_SUMMARY,
    PARSE_JOB,
    REWRITE_TEXT,
)
from jobpilot.config.settings import Settings
from jobpilot.core.errors import JobPilotError, is_invalid_model_error
from jobpilot.llm.adapters.local_adapter import LocalModelProbe, ModelLoader, load_llama
from jobpilot.modelstore.store import ModelStore
from jobpilot.orchestrator.orchestrator import (
    AdapterSource,
    AIOrchestrator,
    DefaultAdapterSource,
    TaskResult,
)
from jobpilot.routing.router import ProviderKind, ProviderRouter

logger = logging.getLogger(__name__)

_MB = 1024 * 1024


class CommandSurface:
    """Settings, model, cache and task commands over one set of components."""

    def __init__(
        self,
        settings: Settings,
        settings_provider: SettingsProvider,
        cache: ResponseCache,
        model_store: ModelStore,
        router: ProviderRouter,
        adapters: AdapterSource | None = None,
        orchestrator: AIOrchestrator | None = None,
    ) -> None:
        self._settings = settings
        self._settings_provider = settings_provider
        self._cache = cache
        self._model_store = model_store
        self._router = router
        self._adapters = adapters or DefaultAdapterSource(settings)
        self._orchestrator = orchestrator or AIOrchestrator(
            settings=settings,
            settings_provider=settings_provider,
            cache=cache,
            router=router,
            adapters=self._adapters,
        )

    @classmethod
    def from_settings(
        cls, settings: Settings, loader: ModelLoader = load_llama,
    ) -> CommandSurface:
        """Wire the default SQLite-backed components under ``settings.data_dir``."""
        return cls(
            settings=settings,
            settings_provider=SqliteSettingsStore(settings.resolved_db_path),
            cache=ResponseCache(create_cache_store(settings)),
            model_store=ModelStore.from_settings(settings),
            router=ProviderRouter(LocalModelProbe(settings, loader=loader)),
            adapters=DefaultAdapterSource(settings, loader=loader),
        )

    @property
    def orchestrator(self) -> AIOrchestrator:
        return self._orchestrator

    @property
    def model_store(self) -> ModelStore:
        return self._model_store

    def close(self) -> None:
        """Close database connections held by the components."""
        for component in (self._settings_provider, self._cache.store):
            close = getattr(component, "close", None)
            if close is not None:
                close()

    # --- Settings ---

    async def get_ai_settings(self) -> AiSettings:
        return self._settings_provider.load()

    async def save_ai_settings(self, settings: AiSettings) -> None:
        """Persist settings.

        Raises:
            ValidationError: Cloud mode without an API key.
        """
        self._settings_provider.save(settings)

    async def test_ai_connection(self) -> str:
        """Ping the provider the current settings route to.

        Raises:
            ConfigurationError: Nothing is configured.
            ProviderError: Authentication or network failure.
        """
        ai_settings = self._settings_provider.load()
        decision = await self._router.select(ai_settings)
        adapter = (
            self._adapters.local(ai_settings)
            if decision.primary == ProviderKind.LOCAL
            else self._adapters.cloud(ai_settings)
        )
        message = await adapter.ping()
        logger.info("Connection test ok: %s", message)
        return message

    async def check_local_provider_availability(self) -> bool:
        ai_settings = self._settings_provider.load()
        if ai_settings.local_model_path is None:
            return False
        return await self._router.probe.local_available(Path(ai_settings.local_model_path))

    # --- Model files ---

    async def find_model_files(self) -> list[Path]:
        return [model.path for model in self._model_store.find_model_files()]

    async def download_model(self, model_url: str) -> Path:
        """Download a model file.

        Raises:
            InvalidUrl: The URL is not a direct link to a model file.
        """
        return await self._model_store.download_model(model_url)

    async def cleanup_invalid_model_files(self) -> list[Path]:
        return self._model_store.cleanup_invalid_model_files()

    async def clear_invalid_model_path(self) -> bool:
        return self._model_store.clear_invalid_model_path(self._settings_provider)

    # --- Cache ---

    async def get_cache_stats(self) -> CacheStats:
        return await self._cache.stats()

    async def clear_cache_by_purpose(self, purpose: str) -> int:
        return await self._cache.clear_by_purpose(purpose)

    async def clear_all_cache(self) -> int:
        return await self._cache.clear_all()

    async def cleanup_expired_cache(self) -> int:
        return await self._cache.cleanup_expired()

    async def evict_cache_by_size(self, max_size_mb: float) -> int:
        if max_size_mb < 0:
            raise ValueError("max_size_mb must be >= 0")
        return await self._cache.evict_by_size(int(max_size_mb * _MB))

    async def evict_cache_by_count(self, max_entries: int) -> int:
        return await self._cache.evict_by_count(max_entries)

    # --- Tasks ---

    async def parse_job(self, job_id: str | int, description: str) -> TaskResult:
        logger.debug("Parsing job %s", job_id)
        return await self._run_task(PARSE_JOB, description)

    async def extract_profile_from_resume(self, resume_text: str) -> TaskResult:
        return await self._run_task(EXTRACT_PROFILE_FROM_RESUME, resume_text)

    async def extract_skills_from_experience(self, experience_text: str) -> TaskResult:
        return await self._run_task(EXTRACT_SKILLS_FROM_EXPERIENCE, experience_text)

    async def generate_resume(
        self,
        profile: dict[str, Any] | BaseModel,
        job_description: str,
        options: dict[str, Any] | None = None,
    ) -> TaskResult:
        return await self._run_task(
            GENERATE_RESUME, job_description, {**(options or {}), "profile": profile},
        )

    async def generate_cover_letter(
        self,
        profile: dict[str, Any] | BaseModel,
        job_description: str,
        company_name: str | None = None,
        options: dict[str, Any] | None = None,
    ) -> TaskResult:
        return await self._run_task(
            GENERATE_COVER_LETTER,
            job_description,
            {**(options or {}), "profile": profile, "company_name": company_name},
        )

    async def rewrite_text(self, text: str, tone: str | None = None) -> TaskResult:
        return await self._run_task(REWRITE_TEXT, text, {"tone": tone})

    async def generate_summary(self, text: str) -> TaskResult:
        return await self._run_task(GENERATE_SUMMARY, text)

    async def _run_task(
        self, purpose: str, text: str, options: dict[str, Any] | None = None,
    ) -> TaskResult:
        """Run a task; on a model-file error repair once and retry once."""
        try:
            return await self._orchestrator.run(purpose, text, options)
        except JobPilotError as e:
            if not is_invalid_model_error(e):
                raise
            logger.warning("Invalid model file (%s); cleaning up and retrying once", e)
            removed = self._model_store.cleanup_invalid_model_files()
            cleared = self._model_store.clear_invalid_model_path(self._settings_provider)
            logger.info(
                "Model repair: removed %d file(s), path cleared=%s", len(removed), cleared,
            )
        return await self._orchestrator.run(purpose, text, options)
