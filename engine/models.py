"""Normalized search records shared by adapters and the orchestrator."""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping

from providers.errors import ErrorKind

PROVIDER_NAMES = ("youtube", "soundcloud", "spotify")

# Popularity is stored per provider scale; these are the scales used when a
# 0-10 score has to be derived for persistence.
_RECORD_POPULARITY_DIVISORS = {
    "youtube": 1_000_000,
    "soundcloud": 100_000,
    "spotify": 10,
}


@dataclass(frozen=True)
class Track:
    id: str
    title: str
    artist: str
    duration: int
    thumbnail: str
    published_at: str
    popularity: float
    provider: str
    stream_url: str | None = None
    genre: str | None = None
    permalink: str | None = None
    waveform_url: str | None = None

    def __post_init__(self) -> None:
        if self.provider not in PROVIDER_NAMES:
            raise ValueError(f"unknown provider: {self.provider!r}")
        if self.popularity < 0 or math.isnan(self.popularity):
            raise ValueError("popularity must be non-negative")

    def as_dict(self) -> dict[str, Any]:
        data = asdict(self)
        for key in ("stream_url", "genre", "permalink", "waveform_url"):
            if not data.get(key):
                data.pop(key, None)
        return data

    def to_record(self) -> dict[str, Any]:
        """Row shape handed to the persistence collaborator (upsert on external_id + provider)."""
        divisor = _RECORD_POPULARITY_DIVISORS[self.provider]
        return {
            "external_id": self.id,
            "provider": self.provider,
            "title": self.title,
            "artist": self.artist,
            "duration_ms": self.duration * 1000,
            "thumbnail_url": self.thumbnail,
            "stream_url": self.stream_url,
            "permalink": self.permalink,
            "genre": self.genre,
            "waveform_url": self.waveform_url,
            "popularity_score": min(self.popularity / divisor, 10.0),
            "play_count": int(self.popularity),
        }


class SearchStatus(Enum):
    OK = "ok"
    NO_RESULTS = "no_results"
    NO_PROVIDERS_AVAILABLE = "no_providers_available"


@dataclass(frozen=True)
class UnifiedSearchResponse:
    tracks: tuple[Track, ...]
    total_results: int
    providers: tuple[str, ...]
    search_time: int
    status: SearchStatus = SearchStatus.OK
    errors: Mapping[str, ErrorKind] = field(default_factory=lambda: MappingProxyType({}))

    def as_dict(self) -> dict[str, Any]:
        return {
            "tracks": [track.as_dict() for track in self.tracks],
            "total_results": self.total_results,
            "providers": list(self.providers),
            "search_time": self.search_time,
            "status": self.status.value,
            "errors": {name: kind.value for name, kind in self.errors.items()},
        }
