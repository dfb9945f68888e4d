"""SoundCloud public API search adapter."""

from __future__ import annotations

import logging
import os
from typing import Any

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from config import settings
from engine.models import Track
from engine.search_scoring import contains_any, duration_band_points, log_popularity, normalize_text, recency_points, search_words
from engine.timestamps import to_iso8601
from input.intent_parser import DEFAULT_TABLES, IntentParser
from providers.base import QueryPlan, SearchAdapter, SearchContext
from providers.errors import ErrorKind, ProviderError

logger = logging.getLogger(__name__)

MIN_DURATION_MS = 30_000
MAX_DURATION_MS = 1_200_000

_BLOCKED_TERMS = (
    "podcast", "interview", "talk", "lecture", "speech",
    "news", "radio show", "advertisement", "commercial",
)
_UNTRUSTED_UPLOADER_TERMS = ("reaction", "react", "cover", "nightcore", "slowed", "sped up")

_DURATION_BANDS = (
    (180, 360, 2.0),
    (120, 480, 1.0),
)


class SoundCloudIntentParser(IntentParser):
    def detect_genre(self, text, *, vibe, environment):
        if "lofi" in text or (vibe == "chill" and environment == "study"):
            return "lofi"
        if "edm" in text or "electronic" in text:
            return "electronic"
        if "hip hop" in text or "rap" in text:
            return "hip-hop"
        if "jazz" in text:
            return "jazz"
        if "rock" in text:
            return "rock"
        return ""


def upgrade_artwork_url(url: str | None) -> str:
    if not url:
        return ""
    return url.replace("-large.", "-t500x500.")


class SoundCloudAdapter(SearchAdapter):
    source = "soundcloud"
    intent_parser = SoundCloudIntentParser(DEFAULT_TABLES)

    def __init__(
        self,
        *,
        client_id: str | None = None,
        api_url: str = settings.SOUNDCLOUD_API_URL,
        timeout_sec: float = settings.HTTP_TIMEOUT_SECONDS,
        page_size: int = settings.PROVIDER_PAGE_SIZE,
        session: requests.Session | None = None,
    ) -> None:
        self.client_id = client_id or os.environ.get("SOUNDCLOUD_CLIENT_ID")
        self.api_url = api_url.rstrip("/")
        self.timeout_sec = timeout_sec
        self.page_size = page_size
        self._session = session or self._build_session()

    @staticmethod
    def _build_session() -> requests.Session:
        session = requests.Session()
        retry = Retry(
            total=2,
            backoff_factor=0.3,
            status_forcelist=(500, 502, 503, 504),
            allowed_methods=frozenset({"GET"}),
        )
        adapter = HTTPAdapter(max_retries=retry)
        session.mount("https://", adapter)
        session.mount("http://", adapter)
        return session

    def is_configured(self) -> bool:
        return bool(self.client_id)

    def build_query(self, intent) -> str:
        if intent.genre:
            return f"{intent.vibe} {intent.genre}".strip()
        parts = (intent.vibe, "music", intent.environment, intent.speed)
        return " ".join(part for part in parts if part)

    def build_queries(self, raw_input, intent, *, now):
        raw = raw_input.strip()
        return QueryPlan(
            primary=self.build_query(intent),
            broad=raw,
            variant=f"{raw} playlist mix".strip(),
        )

    def fetch_candidates(self, query):
        try:
            response = self._session.get(
                f"{self.api_url}/tracks",
                params={"client_id": self.client_id, "q": query, "limit": self.page_size, "offset": 0},
                headers={"Accept": "application/json"},
                timeout=self.timeout_sec,
            )
        except requests.Timeout as exc:
            raise ProviderError(self.source, ErrorKind.TIMEOUT, "SoundCloud request timed out") from exc
        except requests.RequestException as exc:
            raise ProviderError(self.source, ErrorKind.UNKNOWN, f"SoundCloud request failed: {exc}") from exc

        if response.status_code in (401, 403):
            raise ProviderError(self.source, ErrorKind.AUTH_FAILED, f"SoundCloud rejected client id ({response.status_code})")
        if response.status_code == 429:
            raise ProviderError(self.source, ErrorKind.RATE_LIMITED, "SoundCloud rate limit reached")
        if response.status_code != 200:
            raise ProviderError(self.source, ErrorKind.UNKNOWN, f"SoundCloud API error ({response.status_code})")
        try:
            payload = response.json()
        except ValueError as exc:
            raise ProviderError(self.source, ErrorKind.UNKNOWN, "SoundCloud response is not JSON") from exc

        if isinstance(payload, dict):
            payload = payload.get("collection")
        if not isinstance(payload, list):
            logger.warning("SoundCloud returned an unexpected payload for %r", query)
            return []
        return [item for item in payload if isinstance(item, dict) and item.get("id") is not None]

    def to_track(self, item):
        user = item.get("user") or {}
        try:
            duration_ms = int(item.get("duration") or 0)
            plays = max(0, int(item.get("playback_count") or 0))
        except (TypeError, ValueError):
            return None
        return Track(
            id=str(item["id"]),
            title=item.get("title") or "Unknown Title",
            artist=user.get("username") or "Unknown Artist",
            duration=duration_ms // 1000,
            thumbnail=upgrade_artwork_url(item.get("artwork_url") or user.get("avatar_url")),
            published_at=to_iso8601(item.get("created_at")),
            popularity=plays,
            provider=self.source,
            stream_url=item.get("stream_url") or None,
            genre=item.get("genre") or None,
            permalink=item.get("permalink_url") or None,
            waveform_url=item.get("waveform_url") or None,
        )

    def is_valid(self, item, track):
        try:
            duration_ms = int(item.get("duration") or 0)
        except (TypeError, ValueError):
            return False
        if duration_ms < MIN_DURATION_MS or duration_ms > MAX_DURATION_MS:
            return False
        if not item.get("streamable"):
            return False
        text = f"{item.get('title') or ''} {item.get('description') or ''}"
        return not contains_any(text, _BLOCKED_TERMS)

    def score(self, item, track: Track, context: SearchContext):
        user = item.get("user") or {}
        score = 0.0
        if user.get("verified"):
            score += 2.0
        if contains_any(track.artist, _UNTRUSTED_UPLOADER_TERMS):
            score -= 10.0

        score += log_popularity(track.popularity, cap=5.0)

        raw = normalize_text(context.raw_input)
        genre = normalize_text(track.genre)
        if genre and genre in raw:
            score += 3.0

        title = normalize_text(track.title)
        title_hits = sum(2.0 for word in search_words(context.raw_input) if word in title)
        score += min(title_hits, 6.0)

        if item.get("artwork_url"):
            score += 1.0
        score += duration_band_points(track.duration, _DURATION_BANDS)
        score += recency_points(track.published_at, 1.0, now=context.now)
        return score
