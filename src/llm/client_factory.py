# src/llm/client_factory.py — v3
"""Factory: instantiate inference adapters from the current AI settings."""

from __future__ import annotations

import importlib
import logging
from typing import Any

from jobpilot.config.ai_settings import AiSettings, CloudProvider
from jobpilot.config.settings import Settings
from jobpilot.core.errors import ConfigurationError
from jobpilot.llm.adapters.cloud_adapter import CloudInferenceAdapter
from jobpilot.llm.adapters.local_adapter import LocalInferenceAdapter, ModelLoader, load_llama
from jobpilot.llm.rate_limiter import RateLimiter
from jobpilot.llm.retry import RetryConfig

logger = logging.getLogger(__name__)

# Registry of provider name → adapter class path (lazy import).
_PROVIDER_REGISTRY: dict[str, str] = {
    CloudProvider.OPENAI.value: "jobpilot.llm.adapters.openai_adapter.OpenAIAdapter",
    CloudProvider.ANTHROPIC.value: "jobpilot.llm.adapters.anthropic_adapter.AnthropicAdapter",
}

# One limiter per provider, shared by every adapter built in this process.
_LIMITERS: dict[str, RateLimiter] = {}


def default_model_for(provider: CloudProvider, settings: Settings) -> str:
    if provider == CloudProvider.ANTHROPIC:
        return settings.default_anthropic_model
    return settings.default_openai_model


def create_cloud_adapter(
    settings: Settings,
    ai_settings: AiSettings,
    client: Any = None,
) -> CloudInferenceAdapter:
    """Build the adapter for the configured cloud provider.

    Args:
        settings: Application settings (timeouts, retry, rate limit).
        ai_settings: User AI settings (provider, key, model name).
        client: Pre-built SDK client, mainly for tests.

    Raises:
        ConfigurationError: Provider or API key missing.
    """
    missing = []
    if ai_settings.cloud_provider is None:
        missing.append("cloud_provider")
    if not ai_settings.has_api_key:
        missing.append("api_key")
    if missing:
        raise ConfigurationError(
            f"Cloud provider is not configured (missing: {', '.join(missing)})",
            missing=missing,
        )

    provider = ai_settings.cloud_provider
    assert provider is not None
    adapter_cls = _import_class(_PROVIDER_REGISTRY[provider.value])
    model = ai_settings.model_name or default_model_for(provider, settings)

    limiter = _LIMITERS.setdefault(
        provider.value,
        RateLimiter(settings.rate_limit_requests, settings.rate_limit_window_s),
    )
    logger.debug("Creating cloud adapter: provider=%s, model=%s", provider.value, model)
    return adapter_cls(
        model=model,
        api_key=ai_settings.api_key_value() or "",
        client=client,
        timeout_s=settings.cloud_timeout_s,
        max_tokens=settings.cloud_max_tokens,
        temperature=settings.cloud_temperature,
        retry_config=RetryConfig.from_settings(settings),
        rate_limiter=limiter,
    )


def create_local_adapter(
    settings: Settings,
    ai_settings: AiSettings,
    loader: ModelLoader = load_llama,
) -> LocalInferenceAdapter:
    """Build the local adapter for the configured model path.

    Raises:
        ConfigurationError: No local model path is set.
    """
    if ai_settings.local_model_path is None:
        raise ConfigurationError(
            "Local model path is not configured", missing=["local_model_path"],
        )
    return LocalInferenceAdapter.from_settings(
        ai_settings.local_model_path, settings, loader=loader,
    )


def _import_class(class_path: str) -> type:
    """Dynamically import a class from its fully qualified path."""
    module_path, class_name = class_path.rsplit(".", 1)
    module = importlib.import_module(module_path)
    return getattr(module, class_name)
