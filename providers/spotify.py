"""Spotify catalog search adapter scored on audio-feature mood fit."""

from __future__ import annotations

import logging
import math
from typing import Any

from config import settings
from engine.models import Track
from engine.search_scoring import duration_band_points, normalize_text, recency_points, search_words
from engine.timestamps import to_iso8601
from input.intent_parser import Intent, IntentParser, KeywordTables
from providers.base import QueryPlan, SearchAdapter, SearchContext
from spotify.client import SpotifyCatalogClient
from spotify.search_queries import build_genre_query, build_search_query

logger = logging.getLogger(__name__)

MIN_DURATION_MS = 30_000
MAX_DURATION_MS = 1_200_000

SPOTIFY_TABLES = KeywordTables.build(
    environments={
        "gym": ["gym", "workout", "fitness", "training", "exercise", "running", "cardio"],
        "study": ["study", "focus", "concentration", "work", "office", "reading", "homework"],
        "party": ["party", "dance", "club", "celebration", "rave", "festival", "wedding"],
        "sleep": ["sleep", "bedtime", "night", "relax", "calm", "lullaby", "peaceful"],
        "drive": ["drive", "car", "road", "travel", "cruise", "highway", "journey"],
        "cafe": ["cafe", "coffee", "background", "ambient", "restaurant", "lounge"],
        "morning": ["morning", "sunrise", "breakfast", "fresh", "wake up"],
        "evening": ["evening", "sunset", "dinner", "wind down", "twilight"],
    },
    speeds={
        "slow": ["slow", "chill", "relaxed", "mellow", "downtempo", "peaceful"],
        "medium": ["medium", "moderate", "steady", "groove", "normal"],
        "fast": ["fast", "upbeat", "energetic", "high tempo", "uptempo", "intense"],
    },
    vibes={
        "sad": ["sad", "melancholy", "depressing", "emotional", "crying", "heartbreak", "breakup", "lonely"],
        "happy": ["happy", "joyful", "cheerful", "positive", "uplifting", "excited", "celebration", "party"],
        "chill": ["chill", "lofi", "calm", "peaceful", "zen", "ambient", "relaxing", "mellow"],
        "energetic": ["energetic", "hype", "pump", "motivational", "power", "intense", "workout", "gym"],
        "romantic": ["romantic", "love", "heart", "valentine", "couple", "intimate", "wedding", "date"],
        "dark": ["dark", "gothic", "moody", "atmospheric", "mysterious", "haunting", "eerie"],
        "nostalgic": ["nostalgic", "memories", "throwback", "vintage", "retro", "old school"],
        "spiritual": ["spiritual", "meditation", "devotional", "prayer", "sacred", "religious"],
    },
    genres={
        "bollywood": ["bollywood", "hindi", "indian", "desi", "filmi", "bhangra", "punjabi"],
        "electronic": ["electronic", "edm", "house", "techno", "dubstep", "dance"],
        "hip-hop": ["hip hop", "rap", "trap", "hip-hop", "gangsta", "freestyle"],
        "rock": ["rock", "metal", "punk", "alternative", "grunge", "hard rock"],
        "pop": ["pop", "mainstream", "chart", "top hits", "radio"],
        "jazz": ["jazz", "swing", "blues", "smooth jazz", "bebop"],
        "classical": ["classical", "orchestra", "symphony", "opera", "baroque"],
        "folk": ["folk", "country", "acoustic", "bluegrass", "americana"],
        "r&b": ["r&b", "soul", "funk", "motown", "neo soul"],
        "indie": ["indie", "independent", "underground", "alternative"],
        "latin": ["latin", "spanish", "reggaeton", "salsa", "bachata", "merengue"],
        "k-pop": ["k-pop", "korean", "kpop", "korean pop"],
        "reggae": ["reggae", "ska", "dancehall", "dub"],
        "world": ["world", "ethnic", "traditional", "cultural"],
        "ambient": ["ambient", "chillout", "lounge", "downtempo", "atmospheric"],
    },
)

_TARGET_ENERGY = {"high": 0.8, "low": 0.3, "medium": 0.6}
_TARGET_VALENCE = {"positive": 0.8, "negative": 0.2, "neutral": 0.5}
_TARGET_TEMPO = {"fast": 140.0, "slow": 80.0, "medium": 120.0}
_DANCE_ENVIRONMENTS = {"party", "gym"}
_DANCE_VIBES = {"energetic"}
_ACOUSTIC_ENVIRONMENTS = {"study", "sleep", "cafe"}
_ACOUSTIC_VIBES = {"chill"}

_DURATION_BANDS = (
    (180, 240, 3.0),
    (120, 360, 2.0),
)


def _feature(features: dict[str, Any], name: str) -> float | None:
    value = features.get(name)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value)


def mood_score(features: dict[str, Any] | None, intent: Intent) -> float:
    """Audio-feature fit against the parsed intent; 0 when features are unknown."""
    if not features:
        return 0.0
    score = 0.0
    energy = _feature(features, "energy")
    if energy is not None:
        score += max(0.0, 5 - abs(energy - _TARGET_ENERGY.get(intent.energy, 0.6)) * 10)
    valence = _feature(features, "valence")
    if valence is not None:
        score += max(0.0, 5 - abs(valence - _TARGET_VALENCE.get(intent.valence, 0.5)) * 10)
    danceability = _feature(features, "danceability")
    if danceability is not None and (intent.environment in _DANCE_ENVIRONMENTS or intent.vibe in _DANCE_VIBES):
        score += danceability * 3
    acousticness = _feature(features, "acousticness")
    if acousticness is not None and (intent.environment in _ACOUSTIC_ENVIRONMENTS or intent.vibe in _ACOUSTIC_VIBES):
        score += acousticness * 3
    tempo = _feature(features, "tempo")
    if tempo is not None:
        score += max(0.0, 2 - abs(tempo - _TARGET_TEMPO.get(intent.speed, 120.0)) / 50)
    return score


class SpotifyAdapter(SearchAdapter):
    source = "spotify"
    intent_parser = IntentParser(SPOTIFY_TABLES)

    def __init__(
        self,
        *,
        client: SpotifyCatalogClient | None = None,
        market: str = settings.SPOTIFY_MARKET,
        page_size: int = settings.PROVIDER_PAGE_SIZE,
    ) -> None:
        self.client = client or SpotifyCatalogClient()
        self.market = market
        self.page_size = page_size

    def is_configured(self) -> bool:
        return self.client.is_configured()

    def build_queries(self, raw_input, intent, *, now):
        return QueryPlan(
            primary=build_search_query(intent.vibe or raw_input.strip(), intent.genre, year=now.year),
            broad=raw_input.strip(),
            variant=build_genre_query(intent.genre),
        )

    def fetch_candidates(self, query):
        return self.client.search_tracks(query, limit=self.page_size, market=self.market)

    def enrich_candidates(self, items):
        features = self.client.get_audio_features([item.get("id") for item in items])
        return [{**item, "audio_features": features.get(item.get("id"))} for item in items]

    def to_track(self, item):
        if not item.get("id") or not item.get("name"):
            return None
        album = item.get("album") or {}
        artists = ", ".join(
            str(artist.get("name")).strip()
            for artist in item.get("artists") or []
            if isinstance(artist, dict) and artist.get("name")
        )
        images = album.get("images") or []
        thumbnail = images[0].get("url") if images and isinstance(images[0], dict) else ""
        genres = album.get("genres") or []
        try:
            duration_ms = int(item.get("duration_ms") or 0)
            popularity = max(0, int(item.get("popularity") or 0))
        except (TypeError, ValueError):
            return None
        return Track(
            id=str(item["id"]),
            title=item["name"],
            artist=artists or "Unknown Artist",
            duration=duration_ms // 1000,
            thumbnail=thumbnail or "",
            published_at=to_iso8601(album.get("release_date")),
            popularity=popularity,
            provider=self.source,
            stream_url=item.get("preview_url") or None,
            genre=genres[0] if genres else None,
            permalink=(item.get("external_urls") or {}).get("spotify") or None,
        )

    def is_valid(self, item, track):
        try:
            duration_ms = int(item.get("duration_ms") or 0)
        except (TypeError, ValueError):
            return False
        if duration_ms < MIN_DURATION_MS or duration_ms > MAX_DURATION_MS:
            return False
        return item.get("is_playable") is not False

    def score(self, item, track: Track, context: SearchContext):
        score = mood_score(item.get("audio_features"), context.intent)
        if (item.get("album") or {}).get("album_type") == "compilation":
            score -= 2.0

        title = normalize_text(track.title)
        title_hits = sum(2.0 for word in search_words(context.raw_input) if word in title)
        score += min(title_hits, 6.0)

        score += duration_band_points(track.duration, _DURATION_BANDS)
        score += recency_points(track.published_at, 2.0, now=context.now)
        score += min(math.log10(track.popularity + 1) * 2.5, 5.0)
        if item.get("preview_url"):
            score += 1.0
        return score

    def get_track_details(self, track_id: str) -> Track | None:
        """Single catalog track, or ``None`` when Spotify does not have it."""
        item = self.client.get_track(track_id)
        if not item:
            return None
        return self.to_track(item)
