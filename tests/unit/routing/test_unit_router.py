# tests/unit/routing/test_unit_router.py — v1
"""Tests for routing/router.py — provider selection per AI mode."""

from __future__ import annotations

import pytest

from jobpilot.config.ai_settings import AiMode, AiSettings, CloudProvider
from jobpilot.core.errors import ConfigurationError, InvalidModelFilename, ModelLoadError
from jobpilot.llm.adapters.local_adapter import LocalModelProbe
from jobpilot.routing.router import (
    FileExistsProbe,
    ProviderKind,
    ProviderRouter,
    select_provider,
)
from tests.fakes import FakeLlama, FakeLoader, StaticProbe


def ai(mode, model_path=None, key="sk-test", provider=CloudProvider.OPENAI):
    return AiSettings(
        mode=mode, local_model_path=model_path, api_key=key, cloud_provider=provider,
    )


class RaisingProbe:
    async def local_available(self, model_path):
        raise ModelLoadError("cannot load", provider="local")


class TestLocalMode:
    @pytest.mark.asyncio
    async def test_routes_local(self, model_file):
        decision = await select_provider(ai(AiMode.LOCAL, model_file), StaticProbe())
        assert decision.primary == ProviderKind.LOCAL
        assert decision.fallback is None

    @pytest.mark.asyncio
    async def test_no_path(self):
        with pytest.raises(ConfigurationError) as exc_info:
            await select_provider(ai(AiMode.LOCAL), StaticProbe())
        assert exc_info.value.missing == ["local_model_path"]

    @pytest.mark.asyncio
    async def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError):
            await select_provider(ai(AiMode.LOCAL, tmp_path / "gone.gguf"), StaticProbe())

    @pytest.mark.asyncio
    async def test_never_falls_back_to_cloud(self, model_file):
        with pytest.raises(ConfigurationError):
            await select_provider(ai(AiMode.LOCAL, model_file), StaticProbe(available=False))

    @pytest.mark.asyncio
    async def test_misnamed_file(self, tmp_path):
        bad = tmp_path / "model.gguf?download=true"
        bad.write_bytes(b"x")
        probe = StaticProbe()
        with pytest.raises(InvalidModelFilename):
            await select_provider(ai(AiMode.LOCAL, bad), probe)
        assert probe.calls == []


class TestCloudMode:
    @pytest.mark.asyncio
    async def test_routes_cloud(self):
        decision = await select_provider(ai(AiMode.CLOUD), StaticProbe())
        assert decision.primary == ProviderKind.CLOUD
        assert decision.fallback is None

    @pytest.mark.asyncio
    async def test_missing_key(self):
        with pytest.raises(ConfigurationError) as exc_info:
            await select_provider(ai(AiMode.CLOUD, key=None), StaticProbe())
        assert exc_info.value.missing == ["api_key"]

    @pytest.mark.asyncio
    async def test_missing_key_and_provider(self):
        with pytest.raises(ConfigurationError) as exc_info:
            await select_provider(ai(AiMode.CLOUD, key="", provider=None), StaticProbe())
        assert exc_info.value.missing == ["api_key", "cloud_provider"]

    @pytest.mark.asyncio
    async def test_ignores_local_model(self, model_file):
        probe = StaticProbe()
        decision = await select_provider(ai(AiMode.CLOUD, model_file), probe)
        assert decision.primary == ProviderKind.CLOUD
        assert probe.calls == []


class TestHybridMode:
    @pytest.mark.asyncio
    async def test_cloud_with_local_fallback(self, model_file):
        decision = await select_provider(ai(AiMode.HYBRID, model_file), StaticProbe())
        assert decision.primary == ProviderKind.CLOUD
        assert decision.fallback == ProviderKind.LOCAL

    @pytest.mark.asyncio
    async def test_cloud_only(self):
        decision = await select_provider(ai(AiMode.HYBRID), StaticProbe())
        assert decision.primary == ProviderKind.CLOUD
        assert decision.fallback is None
        assert decision.missing == ["local_model_path"]

    @pytest.mark.asyncio
    async def test_local_only(self, model_file):
        decision = await select_provider(ai(AiMode.HYBRID, model_file, key=None), StaticProbe())
        assert decision.primary == ProviderKind.LOCAL
        assert decision.fallback is None
        assert decision.missing == ["api_key"]

    @pytest.mark.asyncio
    async def test_neither(self):
        with pytest.raises(ConfigurationError) as exc_info:
            await select_provider(ai(AiMode.HYBRID, key=None, provider=None), StaticProbe())
        assert exc_info.value.missing == ["api_key", "cloud_provider", "local_model_path"]

    @pytest.mark.asyncio
    async def test_misnamed_local_is_unavailable(self, tmp_path):
        bad = tmp_path / "model.gguf?download=true"
        bad.write_bytes(b"x")
        decision = await select_provider(ai(AiMode.HYBRID, bad), StaticProbe())
        assert decision.primary == ProviderKind.CLOUD
        assert decision.fallback is None

    @pytest.mark.asyncio
    async def test_probe_error_means_unavailable(self, model_file):
        with pytest.raises(ConfigurationError) as exc_info:
            await select_provider(ai(AiMode.HYBRID, model_file, key=None), RaisingProbe())
        assert "local_model_path" in exc_info.value.missing

    @pytest.mark.asyncio
    async def test_fallback_not_probed_when_cloud_viable(self, model_file):
        probe = StaticProbe(available=False)
        decision = await select_provider(ai(AiMode.HYBRID, model_file), probe)
        assert decision.primary == ProviderKind.CLOUD
        assert decision.fallback == ProviderKind.LOCAL
        assert probe.calls == []

    @pytest.mark.asyncio
    async def test_cloud_route_does_not_load_model(self, settings, model_file):
        loader = FakeLoader(FakeLlama(["{}"]))
        router = ProviderRouter(LocalModelProbe(settings, loader=loader))
        decision = await router.select(ai(AiMode.HYBRID, model_file))
        assert decision.primary == ProviderKind.CLOUD
        assert loader.loads == []

    @pytest.mark.asyncio
    async def test_local_route_loads_model(self, settings, model_file):
        loader = FakeLoader(FakeLlama(["{}"]))
        router = ProviderRouter(LocalModelProbe(settings, loader=loader))
        decision = await router.select(ai(AiMode.HYBRID, model_file, key=None))
        assert decision.primary == ProviderKind.LOCAL
        assert len(loader.loads) == 1


class TestProviderRouter:
    @pytest.mark.asyncio
    async def test_default_probe(self, model_file):
        router = ProviderRouter()
        assert isinstance(router.probe, FileExistsProbe)
        decision = await router.select(ai(AiMode.LOCAL, model_file))
        assert decision.primary == ProviderKind.LOCAL

    @pytest.mark.asyncio
    async def test_does_not_mutate_settings(self, model_file):
        settings = ai(AiMode.HYBRID, model_file)
        before = settings.model_dump()
        await ProviderRouter(StaticProbe()).select(settings)
        assert settings.model_dump() == before
