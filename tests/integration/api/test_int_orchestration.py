# tests/integration/api/test_int_orchestration.py — v1
"""End-to-end task runs over real SQLite stores with fake model backends.

Wires CommandSurface the way the desktop app does (settings database,
cache store, model store, router) and swaps only the inference layer:
a fake llama.cpp model for local mode and a mocked OpenAI client for cloud.
"""

from __future__ import annotations

import json
from types import SimpleNamespace
from unittest.mock import AsyncMock

import httpx
import openai
import pytest

from jobpilot.api.commands import CommandSurface
from jobpilot.cache.response_cache import ResponseCache
from jobpilot.cache.sqlite_store import SqliteCacheStore
from jobpilot.config.ai_settings import AiMode, AiSettings, CloudProvider, SqliteSettingsStore
from jobpilot.config.settings import Settings
from jobpilot.core.errors import ConfigurationError
from jobpilot.llm.adapters.local_adapter import LocalModelProbe
from jobpilot.modelstore.store import ModelStore
from jobpilot.orchestrator.orchestrator import DefaultAdapterSource
from jobpilot.routing.router import ProviderRouter
from tests.fakes import FakeLlama, FakeLoader

JOB = "Senior Python engineer.\n\nBuild data pipelines on AWS."
PARSED = {"required_skills": ["python", "aws"], "seniority": "senior"}


@pytest.fixture
def int_settings(tmp_path):
    return Settings(
        _env_file=None,
        data_dir=tmp_path / "data",
        cloud_max_retries=1,
        retry_base_delay_s=0.0,
    )


@pytest.fixture
def local_model(int_settings):
    path = int_settings.resolved_model_dir / "phi-3-mini-q4.gguf"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(b"GGUF" + b"\x00" * 16)
    return path


def openai_client(side_effect=None, content=None):
    reply = SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content=content))],
        usage=SimpleNamespace(prompt_tokens=10, completion_tokens=5),
        model="gpt-4o-mini",
    )
    create = AsyncMock(side_effect=side_effect, return_value=reply)
    return SimpleNamespace(chat=SimpleNamespace(completions=SimpleNamespace(create=create)))


def connection_error():
    request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
    return openai.APIConnectionError(request=request)


def build_surface(settings, loader, cloud_client=None):
    return CommandSurface(
        settings=settings,
        settings_provider=SqliteSettingsStore(settings.resolved_db_path),
        cache=ResponseCache(SqliteCacheStore(settings.resolved_db_path)),
        model_store=ModelStore.from_settings(settings),
        router=ProviderRouter(LocalModelProbe(settings, loader=loader)),
        adapters=DefaultAdapterSource(settings, loader=loader, cloud_client=cloud_client),
    )


class TestLocalPipeline:
    @pytest.mark.asyncio
    async def test_parse_job_then_cache_hit(self, int_settings, local_model):
        model = FakeLlama([json.dumps(PARSED)])
        loader = FakeLoader(model)
        surface = CommandSurface.from_settings(int_settings, loader=loader)
        try:
            await surface.save_ai_settings(
                AiSettings(mode=AiMode.LOCAL, local_model_path=local_model),
            )
            first = await surface.parse_job(1, JOB)
            second = await surface.parse_job(1, JOB)
            stats = await surface.get_cache_stats()
        finally:
            surface.close()

        assert first.provider == "local"
        assert first.cache_hit is False
        assert first.payload["required_skills"] == ["python", "aws"]
        assert second.cache_hit is True
        assert second.payload == first.payload
        assert len(model.prompts) == 1
        assert len(loader.loads) == 1
        assert stats.total_entries == 1
        assert stats.entries_by_purpose == {"parse_job": 1}

    @pytest.mark.asyncio
    async def test_cache_survives_restart(self, int_settings, local_model):
        model = FakeLlama([json.dumps(PARSED)])
        surface = CommandSurface.from_settings(int_settings, loader=FakeLoader(model))
        try:
            await surface.save_ai_settings(
                AiSettings(mode=AiMode.LOCAL, local_model_path=local_model),
            )
            await surface.parse_job(1, JOB)
        finally:
            surface.close()

        reopened = CommandSurface.from_settings(int_settings, loader=FakeLoader(model))
        try:
            ai_settings = await reopened.get_ai_settings()
            result = await reopened.parse_job(2, JOB)
        finally:
            reopened.close()

        assert ai_settings.mode == AiMode.LOCAL
        assert result.cache_hit is True
        assert len(model.prompts) == 1

    @pytest.mark.asyncio
    async def test_clear_then_miss(self, int_settings, local_model):
        model = FakeLlama([json.dumps(PARSED)])
        surface = CommandSurface.from_settings(int_settings, loader=FakeLoader(model))
        try:
            await surface.save_ai_settings(
                AiSettings(mode=AiMode.LOCAL, local_model_path=local_model),
            )
            await surface.parse_job(1, JOB)
            removed = await surface.clear_cache_by_purpose("parse_job")
            again = await surface.parse_job(1, JOB)
        finally:
            surface.close()

        assert removed == 1
        assert again.cache_hit is False
        assert len(model.prompts) == 2

    @pytest.mark.asyncio
    async def test_misnamed_model_repaired(self, int_settings):
        model_dir = int_settings.resolved_model_dir
        model_dir.mkdir(parents=True, exist_ok=True)
        bad = model_dir / "phi-3-mini-q4.gguf?download=true"
        bad.write_bytes(b"GGUF")
        surface = CommandSurface.from_settings(
            int_settings, loader=FakeLoader(FakeLlama([json.dumps(PARSED)])),
        )
        try:
            await surface.save_ai_settings(
                AiSettings(mode=AiMode.LOCAL, local_model_path=bad),
            )
            with pytest.raises(ConfigurationError):
                await surface.parse_job(1, JOB)
            ai_settings = await surface.get_ai_settings()
        finally:
            surface.close()

        assert not bad.exists()
        assert ai_settings.local_model_path is None


class TestHybridPipeline:
    @pytest.mark.asyncio
    async def test_cloud_used_when_reachable(self, int_settings, local_model):
        client = openai_client(content=json.dumps(PARSED))
        model = FakeLlama([json.dumps(PARSED)])
        surface = build_surface(int_settings, FakeLoader(model), cloud_client=client)
        try:
            await surface.save_ai_settings(AiSettings(
                mode=AiMode.HYBRID,
                cloud_provider=CloudProvider.OPENAI,
                api_key="sk-test",
                local_model_path=local_model,
            ))
            result = await surface.parse_job(1, JOB)
        finally:
            surface.close()

        assert result.provider == "openai"
        assert result.fallback is False
        assert model.prompts == []
        assert client.chat.completions.create.await_count == 1

    @pytest.mark.asyncio
    async def test_falls_back_to_local_on_network_error(self, int_settings, local_model):
        client = openai_client(side_effect=connection_error())
        model = FakeLlama([json.dumps(PARSED)])
        surface = build_surface(int_settings, FakeLoader(model), cloud_client=client)
        try:
            await surface.save_ai_settings(AiSettings(
                mode=AiMode.HYBRID,
                cloud_provider=CloudProvider.OPENAI,
                api_key="sk-test",
                local_model_path=local_model,
            ))
            result = await surface.parse_job(1, JOB)
            stats = await surface.get_cache_stats()
        finally:
            surface.close()

        assert result.provider == "local"
        assert result.fallback is True
        assert result.payload["seniority"] == "senior"
        # one attempt plus one retry before falling back
        assert client.chat.completions.create.await_count == 2
        assert stats.total_entries == 1

    @pytest.mark.asyncio
    async def test_cloud_only_without_model(self, int_settings):
        client = openai_client(content=json.dumps({"summary": "Backend veteran."}))
        surface = build_surface(int_settings, FakeLoader(error=AssertionError("unused")), client)
        try:
            await surface.save_ai_settings(AiSettings(
                mode=AiMode.HYBRID,
                cloud_provider=CloudProvider.OPENAI,
                api_key="sk-test",
            ))
            message = await surface.test_ai_connection()
            result = await surface.generate_summary("Ten years of backend work.")
        finally:
            surface.close()

        assert message.startswith("Successfully connected")
        assert result.provider == "openai"
        assert result.payload["summary"] == "Backend veteran."
        assert client.chat.completions.create.await_count == 2
