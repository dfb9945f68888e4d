"""YouTube Data API v3 search adapter."""

from __future__ import annotations

import html
import json
import logging
import os
import re
from typing import Any, Callable

import httplib2
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from config import settings
from engine.models import Track
from engine.search_scoring import (
    clamp,
    contains_any,
    duration_band_points,
    keyword_points,
    log_popularity,
    normalize_text,
    recency_points,
)
from engine.timestamps import to_iso8601
from input.intent_parser import DEFAULT_TABLES, Intent, IntentParser
from providers.base import QueryPlan, SearchAdapter, SearchContext
from providers.errors import ErrorKind, ProviderError

logger = logging.getLogger(__name__)

_ISO_DURATION_RE = re.compile(r"^P(?:(\d+)D)?(?:T(?:(\d+)H)?(?:(\d+)M)?(?:(\d+)S)?)?$")

ANIME_KEYWORDS = (
    "anime", "naruto", "bleach", "one piece", "dragon ball", "attack on titan",
    "demon slayer", "my hero academia", "death note", "tokyo ghoul", "fullmetal",
    "cowboy bebop", "evangelion", "jojo", "hunter x hunter", "fairy tail",
    "sword art online", "japanese", "ost", "soundtrack", "opening", "ending",
    "theme song", "shippuden", "boruto", "chakra", "ninja",
    "sasuke", "sakura", "kakashi", "itachi", "madara", "hokage",
)
# Whole words only: "ost" would otherwise match "ghost" or "post".
_ANIME_RE = re.compile(r"\b(?:" + "|".join(re.escape(keyword) for keyword in ANIME_KEYWORDS) + r")\b")
_NIGHT_RAIN_RE = re.compile(r"\b(?:night|rain|rainy|midnight|evening|storm|thunderstorm)\b")

_STRICT_EXCLUSIONS = (
    "-tutorial", "-review", "-reaction", "-interview", "-vlog",
    "-news", "-documentary", "-podcast", "-talk", "-lecture",
)
_BROAD_EXCLUSIONS = ("-tutorial", "-review", "-reaction")

MIN_DURATION_SEC = 60
MAX_SINGLE_DURATION_SEC = 600
MAX_MIX_DURATION_SEC = 1800
MIN_VIEW_COUNT = 100

_PLAYLIST_TITLE_TERMS = ("playlist", "mix", "compilation")
_BLOCKED_TITLE_TERMS = (
    "tutorial", "lesson", "how to", "reaction", "review", "podcast",
    "interview", "live stream", "full album", "audiobook", "lecture",
)

_PRIORITY_ANIME_CHANNELS = ("animevibe", "lo-fi senpai", "lofi senpai")
_NIGHT_RAIN_CHANNELS = ("lo-fi senpai", "lofi senpai", "chilled cow", "lofigirl", "ambient", "rain sounds")
_LABEL_CHANNELS = ("universal", "sony", "warner", "columbia", "atlantic", "capitol", "rca", "interscope")
_ANIME_CHANNELS = (
    "animevibe", "crunchyroll", "funimation", "anime music", "ost",
    "lo-fi senpai", "lofi senpai", "anime songs", "naruto music", "bleach music",
)
_CURATED_CHANNELS = ("chillmusic", "lofigirl", "chilled cow", "ambient", "relaxing", "chill hop", "study music")
_WHITELISTED_CHANNELS = (
    "trap nation", "monstercat", "proximity", "mr suicidesheep", "cloudkid",
    "tribal trap", "chill nation", "wave music", "selected", "magic music",
    "animevibe", "lo-fi senpai", "lofi senpai", "anime vibe",
)
_STUDIO_KEYWORDS = ("marvel", "disney", "dc", "netflix", "hbo", "paramount", "20th century", "pixar")
_BLACKLISTED_CHANNELS = (
    "reaction", "react", "first time", "listening to", "tutorial", "lesson",
    "cover", "remix", "mashup", "nightcore", "slowed", "reverb",
)

_MUSIC_TITLE_WORDS = ("song", "track", "music", "audio", "hit", "single", "anthem")
_EXCLUDED_TITLE_WORDS = (
    "tutorial", "lesson", "review", "reaction", "interview", "vlog",
    "gameplay", "how to", "explained", "analysis", "breakdown",
)
_LIGHT_EXCLUDED_TITLE_WORDS = (
    "compilation", "best of", "collection", "mixtape", "greatest hits",
    "live performance", "concert", "acoustic version", "radio edit",
)
# (context triggers, title aesthetics, points per aesthetic found)
_AESTHETICS = (
    (("night",), ("night", "midnight", "3am", "late night", "nocturne", "moonlight",
                  "stars", "dark", "shadow", "twilight", "evening", "dusk"), 10.0),
    (("sad", "melancholy"), ("sad", "melancholy", "melancholic", "sorrow", "tears", "crying",
                             "heartbreak", "lonely", "solitude", "grief", "pain", "blues"), 8.0),
    (("lofi",), ("lofi", "lo-fi", "chill", "study", "relaxing", "ambient",
                 "downtempo", "mellow", "soft", "calm", "peaceful"), 8.0),
    (("jazz",), ("jazz", "smooth", "saxophone", "piano", "bebop", "swing",
                 "blues", "soul", "smooth jazz", "neo soul"), 8.0),
    (("movie", "film"), ("soundtrack", "ost", "theme", "score", "cinematic", "epic",
                         "orchestral", "film music", "movie music"), 8.0),
)

_DURATION_BANDS = (
    (180, 240, 5.0),
    (120, 360, 4.0),
    (600, 1200, 2.0),
    (1200, 1800, 1.0),
    (60, 120, 1.0),
)

_QUOTA_REASONS = {"quotaExceeded", "dailyLimitExceeded"}
_RATE_LIMIT_REASONS = {"rateLimitExceeded", "userRateLimitExceeded"}
_AUTH_REASONS = {"keyInvalid", "keyExpired", "forbidden", "accessNotConfigured", "ipRefererBlocked"}


def is_anime_request(text: str) -> bool:
    return bool(_ANIME_RE.search(str(text or "").lower()))


class YouTubeIntentParser(IntentParser):
    def detect_genre(self, text, *, vibe, environment):
        if "lofi" in text or (vibe == "chill" and environment == "study"):
            return "lofi"
        if "edm" in text or "electronic" in text:
            return "EDM"
        if is_anime_request(text):
            return "anime"
        return ""


def parse_iso8601_duration(value) -> int:
    match = _ISO_DURATION_RE.match(str(value or "").strip())
    if not match:
        return 0
    days, hours, minutes, seconds = (int(part or 0) for part in match.groups())
    return days * 86400 + hours * 3600 + minutes * 60 + seconds


def _http_error_reasons(exc: HttpError) -> set[str]:
    reasons = set()
    details = getattr(exc, "error_details", None)
    if isinstance(details, list):
        reasons.update(entry.get("reason") for entry in details if isinstance(entry, dict) and entry.get("reason"))
    content = getattr(exc, "content", b"") or b""
    try:
        payload = json.loads(content.decode("utf-8") if isinstance(content, bytes) else content)
    except (ValueError, UnicodeDecodeError):
        payload = None
    error = payload.get("error") if isinstance(payload, dict) else None
    if isinstance(error, dict):
        for entry in error.get("errors") or []:
            if isinstance(entry, dict) and entry.get("reason"):
                reasons.add(entry["reason"])
    return reasons


def classify_http_error(exc: HttpError) -> ErrorKind:
    try:
        status = int(getattr(exc.resp, "status", 0))
    except (TypeError, ValueError):
        status = 0
    reasons = _http_error_reasons(exc)
    if reasons & _QUOTA_REASONS:
        return ErrorKind.QUOTA_EXCEEDED
    if status == 429 or reasons & _RATE_LIMIT_REASONS:
        return ErrorKind.RATE_LIMITED
    if status in (401, 403) or reasons & _AUTH_REASONS:
        return ErrorKind.AUTH_FAILED
    return ErrorKind.UNKNOWN


def channel_score(channel_title: str, context: str) -> float:
    channel = normalize_text(channel_title)
    context = normalize_text(context)
    score = 0.0
    if contains_any(channel, _PRIORITY_ANIME_CHANNELS):
        score += 12
    if contains_any(context, ("night", "rain", "anime")) and contains_any(channel, _NIGHT_RAIN_CHANNELS):
        score += 10
    is_label = contains_any(channel, _LABEL_CHANNELS)
    if is_label:
        score += 10
    is_official = "official" in channel or "vevo" in channel
    if is_official:
        score += 8
    if contains_any(channel, _ANIME_CHANNELS):
        score += 9
    if contains_any(channel, _CURATED_CHANNELS):
        score += 6
    if "topic" in channel:
        score += 8
    if contains_any(channel, _WHITELISTED_CHANNELS):
        score += 7
    if contains_any(context, _STUDIO_KEYWORDS) and (is_official or is_label):
        score += 8
    if contains_any(channel, _BLACKLISTED_CHANNELS):
        score -= 15
    return clamp(score, -15.0, 15.0)


def title_score(title: str, context: str) -> float:
    context = normalize_text(context)
    score = keyword_points(title, _MUSIC_TITLE_WORDS, 5.0)
    score -= keyword_points(title, _EXCLUDED_TITLE_WORDS, 15.0)
    score -= keyword_points(title, _LIGHT_EXCLUDED_TITLE_WORDS, 8.0)
    for triggers, aesthetics, points in _AESTHETICS:
        if contains_any(context, triggers):
            score += keyword_points(title, aesthetics, points)
    return clamp(score, -20.0, 20.0)


class YouTubeAdapter(SearchAdapter):
    source = "youtube"
    intent_parser = YouTubeIntentParser(DEFAULT_TABLES)

    def __init__(
        self,
        *,
        api_key: str | None = None,
        service_factory: Callable[[], Any] | None = None,
        region_code: str = settings.YOUTUBE_REGION_CODE,
        relevance_language: str = settings.YOUTUBE_RELEVANCE_LANGUAGE,
        page_size: int = settings.PROVIDER_PAGE_SIZE,
    ) -> None:
        self.api_key = api_key or os.environ.get("YOUTUBE_API_KEY")
        self._service_factory = service_factory
        self.region_code = region_code
        self.relevance_language = relevance_language
        self.page_size = min(int(page_size), 50)

    def is_configured(self) -> bool:
        return bool(self.api_key) or self._service_factory is not None

    def _service(self):
        if self._service_factory is not None:
            return self._service_factory()
        # httplib2.Http is not thread-safe; build one per call.
        http = httplib2.Http(timeout=settings.HTTP_TIMEOUT_SECONDS)
        return build("youtube", "v3", developerKey=self.api_key, http=http, cache_discovery=False)

    def _execute(self, request) -> dict[str, Any]:
        try:
            response = request.execute()
        except HttpError as exc:
            kind = classify_http_error(exc)
            raise ProviderError(self.source, kind, f"YouTube API error ({kind.value}): {exc}") from exc
        except TimeoutError as exc:
            raise ProviderError(self.source, ErrorKind.TIMEOUT, "YouTube request timed out") from exc
        except OSError as exc:
            raise ProviderError(self.source, ErrorKind.UNKNOWN, f"YouTube transport error: {exc}") from exc
        if not isinstance(response, dict):
            raise ProviderError(self.source, ErrorKind.UNKNOWN, "YouTube returned a malformed response")
        return response

    def build_query(self, raw_input: str, intent: Intent, *, broad: bool = False, extra: str = "") -> str:
        text = raw_input.strip()
        lowered = text.lower()
        if is_anime_request(lowered):
            base = f"{text} OST soundtrack opening ending theme music"
        elif _NIGHT_RAIN_RE.search(lowered):
            base = f"{text} lofi chill ambient rain sounds"
        else:
            base = " ".join(part for part in (intent.vibe, "music", intent.environment, intent.speed) if part)
        if intent.genre:
            base = f"{base} {intent.genre}"
        if extra:
            base = f"{base} {extra}"
        exclusions = _BROAD_EXCLUSIONS if broad else _STRICT_EXCLUSIONS
        return f"{base} {' '.join(exclusions)}".strip()

    def build_queries(self, raw_input, intent, *, now):
        return QueryPlan(
            primary=self.build_query(raw_input, intent),
            broad=self.build_query(raw_input, intent, broad=True),
            variant=self.build_query(raw_input, intent, broad=True, extra="playlist mix"),
        )

    def fetch_candidates(self, query):
        response = self._execute(
            self._service().search().list(
                part="snippet",
                q=query,
                type="video",
                maxResults=self.page_size,
                order="relevance",
                videoDuration="any",
                regionCode=self.region_code,
                relevanceLanguage=self.relevance_language,
            )
        )
        candidates = []
        for item in response.get("items") or []:
            if not isinstance(item, dict):
                continue
            video_id = (item.get("id") or {}).get("videoId")
            if not video_id:
                continue
            snippet = item.get("snippet") or {}
            thumbnails = snippet.get("thumbnails") or {}
            thumbnail = ""
            for size in ("high", "medium", "default"):
                url = (thumbnails.get(size) or {}).get("url")
                if url:
                    thumbnail = url
                    break
            candidates.append(
                {
                    "video_id": video_id,
                    "title": html.unescape(snippet.get("title") or ""),
                    "channel_title": html.unescape(snippet.get("channelTitle") or ""),
                    "published_at": snippet.get("publishedAt"),
                    "thumbnail": thumbnail,
                }
            )
        return candidates

    def enrich_candidates(self, items):
        video_ids = [item["video_id"] for item in items]
        if not video_ids:
            return []
        response = self._execute(
            self._service().videos().list(
                part="contentDetails,statistics",
                id=",".join(video_ids),
                maxResults=len(video_ids),
            )
        )
        details = {
            entry.get("id"): entry
            for entry in response.get("items") or []
            if isinstance(entry, dict) and entry.get("id")
        }
        enriched = []
        for item in items:
            detail = details.get(item["video_id"])
            raw_duration = ((detail or {}).get("contentDetails") or {}).get("duration")
            if not raw_duration:
                continue
            statistics = detail.get("statistics") or {}
            try:
                view_count = int(statistics.get("viewCount") or 0)
            except (TypeError, ValueError):
                view_count = 0
            enriched.append({**item, "duration": parse_iso8601_duration(raw_duration), "view_count": view_count})
        return enriched

    def to_track(self, item):
        video_id = item["video_id"]
        return Track(
            id=video_id,
            title=item.get("title") or "Unknown Title",
            artist=item.get("channel_title") or "Unknown Channel",
            duration=int(item.get("duration") or 0),
            thumbnail=item.get("thumbnail") or "",
            published_at=to_iso8601(item.get("published_at")),
            popularity=max(0, int(item.get("view_count") or 0)),
            provider=self.source,
            permalink=f"https://www.youtube.com/watch?v={video_id}",
        )

    def is_valid(self, item, track):
        title = normalize_text(track.title)
        if track.duration < MIN_DURATION_SEC:
            return False
        if track.duration > MAX_SINGLE_DURATION_SEC and not contains_any(title, _PLAYLIST_TITLE_TERMS):
            return False
        if track.duration > MAX_MIX_DURATION_SEC:
            return False
        if track.popularity < MIN_VIEW_COUNT:
            return False
        return not contains_any(title, _BLOCKED_TITLE_TERMS)

    def score(self, item, track, context: SearchContext):
        return (
            channel_score(track.artist, context.raw_input)
            + title_score(track.title, context.raw_input)
            + duration_band_points(track.duration, _DURATION_BANDS)
            + recency_points(track.published_at, 2.0, now=context.now)
            + log_popularity(track.popularity, offset=3.0, cap=5.0)
        )
