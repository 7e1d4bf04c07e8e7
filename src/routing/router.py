# src/routing/router.py — v1
"""Choose the inference provider for one call from the current AI settings.

Routing is pure apart from the availability probe, which checks that a
local model can actually be loaded. The probe runs only when Local would be
the primary provider; a Hybrid Local fallback behind Cloud is judged from
the file alone. Settings are never mutated here.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Protocol

from jobpilot.config.ai_settings import AiMode, AiSettings
from jobpilot.core.errors import ConfigurationError, InvalidModelFilename, JobPilotError
from jobpilot.modelstore.url_policy import has_query_artifacts

logger = logging.getLogger(__name__)


class ProviderKind(str, Enum):
    LOCAL = "local"
    CLOUD = "cloud"


class AvailabilityProbe(Protocol):
    """Checks whether a local model can be loaded."""

    async def local_available(self, model_path: Path) -> bool: ...


class FileExistsProbe:
    """Probe that only checks the file is present; used when no loader is wired."""

    async def local_available(self, model_path: Path) -> bool:
        return model_path.is_file()


@dataclass(frozen=True)
class RouteDecision:
    """Primary provider plus an optional single fallback."""

    primary: ProviderKind
    fallback: ProviderKind | None = None
    missing: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class _Viability:
    ok: bool
    missing: list[str]


async def select_provider(settings: AiSettings, probe: AvailabilityProbe) -> RouteDecision:
    """Pick a provider for ``settings``.

    Raises:
        ConfigurationError: No viable provider for the mode.
        InvalidModelFilename: Local mode and the configured model file name
            carries query-string artifacts.
    """
    mode = settings.mode

    if mode == AiMode.LOCAL:
        local = await _local_viability(settings, probe, strict=True)
        if not local.ok:
            raise ConfigurationError(
                "Local AI mode requires a usable model file. Configure a local "
                "model path in Settings, or switch to Cloud mode.",
                missing=local.missing,
            )
        return RouteDecision(primary=ProviderKind.LOCAL)

    cloud = _cloud_viability(settings)

    if mode == AiMode.CLOUD:
        if not cloud.ok:
            raise ConfigurationError(
                f"Cloud AI mode requires {' and '.join(cloud.missing)}. "
                "Add them in Settings, or switch to Local mode.",
                missing=cloud.missing,
            )
        return RouteDecision(primary=ProviderKind.CLOUD)

    if cloud.ok:
        # The fallback model loads only if the fallback actually runs.
        local = await _local_viability(settings, None, strict=False)
        return RouteDecision(
            primary=ProviderKind.CLOUD,
            fallback=ProviderKind.LOCAL if local.ok else None,
            missing=local.missing,
        )
    local = await _local_viability(settings, probe, strict=False)
    if local.ok:
        logger.info("Hybrid routing to local; cloud missing %s", cloud.missing)
        return RouteDecision(primary=ProviderKind.LOCAL, missing=cloud.missing)
    raise ConfigurationError(
        "Hybrid AI mode needs either a local model or a cloud API key. "
        "Configure at least one in Settings.",
        missing=cloud.missing + local.missing,
    )


def _cloud_viability(settings: AiSettings) -> _Viability:
    missing: list[str] = []
    if not settings.has_api_key:
        missing.append("api_key")
    if settings.cloud_provider is None:
        missing.append("cloud_provider")
    return _Viability(ok=not missing, missing=missing)


async def _local_viability(
    settings: AiSettings, probe: AvailabilityProbe | None, strict: bool,
) -> _Viability:
    """Path set, file present, clean name; then the probe, unless ``probe`` is None."""
    path = settings.local_model_path
    if path is None:
        return _Viability(ok=False, missing=["local_model_path"])
    path = Path(path).expanduser()
    if not path.is_file():
        return _Viability(ok=False, missing=["local_model_path"])
    if has_query_artifacts(path.name):
        if strict:
            raise InvalidModelFilename(
                f"Invalid model filename: {path.name!r}", path=str(path),
            )
        return _Viability(ok=False, missing=["local_model_path"])
    if probe is None:
        return _Viability(ok=True, missing=[])
    try:
        available = await probe.local_available(path)
    except JobPilotError as e:
        logger.warning("Local model probe failed for %s: %s", path.name, e)
        available = False
    if not available:
        return _Viability(ok=False, missing=["local_model_path"])
    return _Viability(ok=True, missing=[])


class ProviderRouter:
    """Object wrapper around select_provider() bound to one probe."""

    def __init__(self, probe: AvailabilityProbe | None = None) -> None:
        self._probe = probe or FileExistsProbe()

    @property
    def probe(self) -> AvailabilityProbe:
        return self._probe

    async def select(self, settings: AiSettings) -> RouteDecision:
        decision = await select_provider(settings, self._probe)
        logger.debug(
            "Route mode=%s primary=%s fallback=%s",
            settings.mode.value, decision.primary.value,
            decision.fallback.value if decision.fallback else None,
        )
        return decision
