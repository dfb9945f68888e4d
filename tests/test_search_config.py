from __future__ import annotations

import pytest

from engine.search_config import ProviderSettings, SearchConfig, default_search_config, resolve_search_config


def test_default_config_enables_spotify_then_youtube() -> None:
    config = default_search_config()

    assert config.enabled_providers() == ["spotify", "youtube"]
    assert config.providers["soundcloud"].enabled is False
    assert config.providers["youtube"].timeout_sec == 15.0


def test_provider_override_merges_field_by_field() -> None:
    config = resolve_search_config({"providers": {"soundcloud": {"enabled": True, "priority": 0}}})

    assert config.enabled_providers() == ["soundcloud", "spotify", "youtube"]
    assert config.providers["soundcloud"].timeout_ms == 10000
    assert config.providers["spotify"] == ProviderSettings(enabled=True, priority=1, timeout_ms=8000)


def test_equal_priorities_keep_declaration_order() -> None:
    config = resolve_search_config({"providers": {"youtube": {"priority": 1}}})

    assert config.enabled_providers() == ["spotify", "youtube"]


def test_timeout_alias_is_accepted() -> None:
    config = resolve_search_config({"providers": {"spotify": {"timeout": 250}}})

    assert config.providers["spotify"].timeout_ms == 250


def test_resolve_does_not_mutate_base() -> None:
    base = default_search_config()

    resolve_search_config({"max_results": 3, "providers": {"spotify": {"enabled": False}}}, base=base)

    assert base.providers["spotify"].enabled is True
    assert base.max_results == default_search_config().max_results


def test_complete_config_is_used_as_is() -> None:
    config = SearchConfig(max_results=4, fallback_enabled=False)

    assert resolve_search_config(config) is config


@pytest.mark.parametrize(
    "overrides",
    [
        {"providers": {"napster": {"enabled": True}}},
        {"providers": {"spotify": {"colour": "green"}}},
        {"providers": {"spotify": {"timeout_ms": 0}}},
        {"max_results": 0},
        {"maxResult": 3},
        {"max_results": 3, "maxResults": 4},
        {"providers": {"youtube": {"enabled": "false"}}},
        {"fallback_enabled": "no"},
        {"fallbackEnabled": 0},
        ["not", "a", "mapping"],
    ],
)
def test_invalid_overrides_raise_value_error(overrides) -> None:
    with pytest.raises(ValueError):
        resolve_search_config(overrides)


def test_camel_case_top_level_keys_are_accepted() -> None:
    config = resolve_search_config({"maxResults": 3, "fallbackEnabled": False})

    assert config.max_results == 3
    assert config.fallback_enabled is False
