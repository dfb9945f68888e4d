"""Per-call search configuration: provider toggles, priorities and timeouts."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Any, Mapping

from config import settings


@dataclass(frozen=True)
class ProviderSettings:
    enabled: bool = True
    priority: int = 1
    timeout_ms: int = 10000

    @property
    def timeout_sec(self) -> float:
        return self.timeout_ms / 1000.0


def _default_providers() -> Mapping[str, ProviderSettings]:
    return MappingProxyType(
        {name: ProviderSettings(**values) for name, values in settings.DEFAULT_PROVIDER_SETTINGS.items()}
    )


@dataclass(frozen=True)
class SearchConfig:
    providers: Mapping[str, ProviderSettings] = field(default_factory=_default_providers)
    max_results: int = settings.DEFAULT_MAX_RESULTS
    fallback_enabled: bool = settings.DEFAULT_FALLBACK_ENABLED

    def enabled_providers(self) -> list[str]:
        # sorted() is stable, so equal priorities keep declaration order.
        enabled = [name for name, provider in self.providers.items() if provider.enabled]
        return sorted(enabled, key=lambda name: self.providers[name].priority)


def default_search_config() -> SearchConfig:
    return SearchConfig()


_TOP_LEVEL_ALIASES = {"maxResults": "max_results", "fallbackEnabled": "fallback_enabled"}


def _require_bool(name: str, value: Any) -> bool:
    if not isinstance(value, bool):
        raise ValueError(f"{name} must be a bool, got {type(value).__name__}")
    return value


def _merge_provider(base: ProviderSettings, override: Any) -> ProviderSettings:
    if isinstance(override, ProviderSettings):
        return override
    if not isinstance(override, Mapping):
        raise ValueError(f"provider override must be a mapping, got {type(override).__name__}")
    updates = dict(override)
    # Millisecond timeouts are also accepted under the short key.
    if "timeout" in updates:
        updates.setdefault("timeout_ms", updates.pop("timeout"))
    unknown = set(updates) - {"enabled", "priority", "timeout_ms"}
    if unknown:
        raise ValueError(f"unknown provider setting(s): {', '.join(sorted(unknown))}")
    if "enabled" in updates:
        updates["enabled"] = _require_bool("enabled", updates["enabled"])
    if "priority" in updates:
        updates["priority"] = int(updates["priority"])
    if "timeout_ms" in updates:
        updates["timeout_ms"] = int(updates["timeout_ms"])
        if updates["timeout_ms"] <= 0:
            raise ValueError("timeout_ms must be positive")
    return replace(base, **updates)


def resolve_search_config(overrides=None, *, base: SearchConfig | None = None) -> SearchConfig:
    """Merge caller overrides onto ``base`` (defaults when omitted) into a fresh config.

    ``overrides`` is either a complete :class:`SearchConfig` or a mapping with any of
    ``providers`` (name -> partial provider settings), ``max_results`` and
    ``fallback_enabled`` (``maxResults`` / ``fallbackEnabled`` also accepted).
    Provider settings merge field by field; unknown keys raise ``ValueError``.
    """
    base = base or default_search_config()
    if overrides is None:
        return base
    if isinstance(overrides, SearchConfig):
        return overrides
    if not isinstance(overrides, Mapping):
        raise ValueError(f"search config overrides must be a mapping, got {type(overrides).__name__}")

    overrides = dict(overrides)
    for alias, key in _TOP_LEVEL_ALIASES.items():
        if alias in overrides:
            if key in overrides:
                raise ValueError(f"both {alias!r} and {key!r} given")
            overrides[key] = overrides.pop(alias)
    unknown = set(overrides) - {"providers", "max_results", "fallback_enabled"}
    if unknown:
        raise ValueError(f"unknown search setting(s): {', '.join(sorted(unknown))}")

    providers = dict(base.providers)
    for name, provider_override in (overrides.get("providers") or {}).items():
        if name not in providers:
            raise ValueError(f"unknown provider: {name!r}")
        providers[name] = _merge_provider(providers[name], provider_override)

    max_results = int(overrides.get("max_results", base.max_results))
    if max_results <= 0:
        raise ValueError("max_results must be positive")
    fallback_enabled = _require_bool("fallback_enabled", overrides.get("fallback_enabled", base.fallback_enabled))

    return SearchConfig(
        providers=MappingProxyType(providers),
        max_results=max_results,
        fallback_enabled=fallback_enabled,
    )
