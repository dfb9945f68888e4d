"""Shared search skeleton for provider adapters."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from config import settings
from engine.models import Track
from engine.search_scoring import top_tracks, unique_by_id
from engine.timestamps import utc_now
from input.intent_parser import Intent, IntentParser
from providers.errors import ErrorKind, ProviderError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class QueryPlan:
    """Query strings tried in order: ``primary``, then ``broad``, then ``variant``."""

    primary: str
    broad: str
    variant: str


@dataclass(frozen=True)
class ProviderSearchResult:
    tracks: tuple[Track, ...]
    total_results: int


@dataclass(frozen=True)
class SearchContext:
    raw_input: str
    intent: Intent
    now: datetime


class SearchAdapter:
    """Base adapter: query plan -> fetch -> enrich -> filter -> score -> top-K.

    Subclasses implement the provider-specific steps. ``search`` only raises
    :class:`ProviderError`; an empty catalog answer is an empty result.
    """

    source = ""
    intent_parser = IntentParser()
    max_tracks = settings.PROVIDER_MAX_TRACKS
    min_results = settings.PROVIDER_MIN_RESULTS

    def is_configured(self) -> bool:
        raise NotImplementedError

    def build_queries(self, raw_input: str, intent: Intent, *, now: datetime) -> QueryPlan:
        raise NotImplementedError

    def fetch_candidates(self, query: str) -> list[dict[str, Any]]:
        raise NotImplementedError

    def enrich_candidates(self, items: list[dict[str, Any]]) -> list[dict[str, Any]]:
        return items

    def to_track(self, item: dict[str, Any]) -> Track | None:
        raise NotImplementedError

    def is_valid(self, item: dict[str, Any], track: Track) -> bool:
        return True

    def score(self, item: dict[str, Any], track: Track, context: SearchContext) -> float:
        raise NotImplementedError

    def search(self, raw_input: str, *, now: datetime | None = None) -> ProviderSearchResult:
        if not self.is_configured():
            raise ProviderError(self.source, ErrorKind.NOT_CONFIGURED, f"{self.source} credentials are not configured")
        raw_input = str(raw_input or "")
        intent = self.intent_parser.parse(raw_input)
        context = SearchContext(raw_input=raw_input, intent=intent, now=now or utc_now())
        plan = self.build_queries(raw_input, intent, now=context.now)

        tracks = self.run_query(plan.primary, context)
        if len(tracks) >= self.min_results:
            return ProviderSearchResult(tracks=tuple(tracks), total_results=len(tracks))

        logger.info("%s: %d result(s) for primary query, retrying broader", self.source, len(tracks))
        tracks = self.run_query(plan.broad, context)
        if len(tracks) >= self.min_results:
            return ProviderSearchResult(tracks=tuple(tracks), total_results=len(tracks))

        logger.info("%s: %d result(s) for broad query, trying variant", self.source, len(tracks))
        combined = unique_by_id(tracks + self.run_query(plan.variant, context))[: self.max_tracks]
        return ProviderSearchResult(tracks=tuple(combined), total_results=len(combined))

    def run_query(self, query: str, context: SearchContext) -> list[Track]:
        items = self.enrich_candidates(self.fetch_candidates(query))
        scored = []
        for item in items:
            track = self.to_track(item)
            if track is None or not self.is_valid(item, track):
                continue
            scored.append((self.score(item, track, context), track))
        logger.debug("%s: query=%r candidates=%d valid=%d", self.source, query, len(items), len(scored))
        return top_tracks(scored, self.max_tracks)
