from __future__ import annotations

import pytest

from engine.models import Track
from providers.base import QueryPlan, SearchAdapter
from providers.errors import ErrorKind, ProviderError


class ScriptedAdapter(SearchAdapter):
    """Adapter whose catalog answers are scripted per query string."""

    source = "soundcloud"

    def __init__(self, answers: dict[str, list[dict]], *, configured: bool = True) -> None:
        self.answers = answers
        self.configured = configured
        self.queries: list[str] = []

    def is_configured(self) -> bool:
        return self.configured

    def build_queries(self, raw_input, intent, *, now):
        return QueryPlan(primary="primary", broad="broad", variant="variant")

    def fetch_candidates(self, query):
        self.queries.append(query)
        return list(self.answers.get(query, []))

    def to_track(self, item):
        return Track(
            id=item["id"],
            title=item["id"],
            artist="Artist",
            duration=item.get("duration", 200),
            thumbnail="",
            published_at="",
            popularity=item.get("plays", 0),
            provider=self.source,
        )

    def is_valid(self, item, track):
        return track.duration >= 60

    def score(self, item, track, context):
        return float(track.popularity)


def _items(prefix: str, count: int, **extra) -> list[dict]:
    return [{"id": f"{prefix}{index}", **extra} for index in range(count)]


def test_enough_primary_results_skip_broader_queries() -> None:
    adapter = ScriptedAdapter({"primary": _items("p", 6)})

    result = adapter.search("anything")

    assert adapter.queries == ["primary"]
    assert result.total_results == 6


def test_low_primary_results_trigger_broad_query() -> None:
    adapter = ScriptedAdapter({"primary": _items("p", 2), "broad": _items("b", 5)})

    result = adapter.search("anything")

    assert adapter.queries == ["primary", "broad"]
    assert [track.id for track in result.tracks] == [f"b{index}" for index in range(5)]


def test_invalid_candidates_do_not_count_towards_minimum() -> None:
    answers = {"primary": _items("short", 8, duration=45) + _items("p", 2), "broad": _items("b", 5)}
    adapter = ScriptedAdapter(answers)

    result = adapter.search("anything")

    assert adapter.queries == ["primary", "broad"]
    assert all(not track.id.startswith("short") for track in result.tracks)


def test_variant_results_are_unioned_with_broad_and_deduplicated() -> None:
    answers = {
        "primary": _items("p", 1),
        "broad": _items("x", 3),
        "variant": _items("x", 2) + _items("v", 12),
    }
    adapter = ScriptedAdapter(answers)

    result = adapter.search("anything")

    ids = [track.id for track in result.tracks]
    assert adapter.queries == ["primary", "broad", "variant"]
    assert ids[:3] == ["x0", "x1", "x2"]
    assert len(ids) == len(set(ids)) == 10
    assert result.total_results == len(result.tracks) == 10


def test_output_is_sorted_by_score_without_leaking_it() -> None:
    items = [{"id": "low", "plays": 1}, {"id": "high", "plays": 50}] + _items("z", 4)
    adapter = ScriptedAdapter({"primary": items})

    result = adapter.search("anything")

    assert result.tracks[0].id == "high"
    assert all(not hasattr(track, "score") for track in result.tracks)


def test_unconfigured_adapter_raises_not_configured() -> None:
    adapter = ScriptedAdapter({}, configured=False)

    with pytest.raises(ProviderError) as excinfo:
        adapter.search("anything")

    assert excinfo.value.kind is ErrorKind.NOT_CONFIGURED
    assert adapter.queries == []
