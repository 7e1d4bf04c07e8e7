# tests/unit/llm/test_unit_client_factory.py — v2
"""Tests for llm/client_factory.py."""

from __future__ import annotations

from pathlib import Path

import pytest

from jobpilot.config.ai_settings import AiMode, AiSettings, CloudProvider
from jobpilot.core.errors import ConfigurationError
from jobpilot.llm.adapters.anthropic_adapter import AnthropicAdapter
from jobpilot.llm.adapters.local_adapter import LocalInferenceAdapter
from jobpilot.llm.adapters.openai_adapter import OpenAIAdapter
from jobpilot.llm.client_factory import (
    create_cloud_adapter,
    create_local_adapter,
    default_model_for,
)


class TestCreateCloudAdapter:
    def test_openai_default_model(self, settings):
        ai = AiSettings(cloud_provider=CloudProvider.OPENAI, api_key="sk")
        adapter = create_cloud_adapter(settings, ai)
        assert isinstance(adapter, OpenAIAdapter)
        assert adapter.model == settings.default_openai_model

    def test_anthropic_model_override(self, settings):
        ai = AiSettings(
            cloud_provider=CloudProvider.ANTHROPIC, api_key="sk", model_name="claude-x",
        )
        adapter = create_cloud_adapter(settings, ai)
        assert isinstance(adapter, AnthropicAdapter)
        assert adapter.model == "claude-x"

    def test_missing_everything(self, settings):
        with pytest.raises(ConfigurationError) as exc_info:
            create_cloud_adapter(settings, AiSettings())
        assert exc_info.value.missing == ["cloud_provider", "api_key"]

    def test_blank_key_is_missing(self, settings):
        ai = AiSettings(cloud_provider=CloudProvider.OPENAI, api_key="")
        with pytest.raises(ConfigurationError) as exc_info:
            create_cloud_adapter(settings, ai)
        assert exc_info.value.missing == ["api_key"]

    def test_default_model_for(self, settings):
        assert default_model_for(CloudProvider.ANTHROPIC, settings) == settings.default_anthropic_model
        assert default_model_for(CloudProvider.OPENAI, settings) == settings.default_openai_model


class TestCreateLocalAdapter:
    def test_ok(self, settings):
        ai = AiSettings(mode=AiMode.LOCAL, local_model_path=Path("/models/m.gguf"))
        adapter = create_local_adapter(settings, ai)
        assert isinstance(adapter, LocalInferenceAdapter)
        assert adapter.model_path == Path("/models/m.gguf")

    def test_missing_path(self, settings):
        with pytest.raises(ConfigurationError) as exc_info:
            create_local_adapter(settings, AiSettings(mode=AiMode.LOCAL))
        assert exc_info.value.missing == ["local_model_path"]
