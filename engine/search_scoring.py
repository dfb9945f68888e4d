import math
import re
import unicodedata
from datetime import timedelta

from engine.timestamps import parse_timestamp, utc_now

# Ceilings for the cross-provider popularity term, per provider-native scale.
_POPULARITY_CEILINGS = {
    "youtube": 10_000_000,
    "soundcloud": 1_000_000,
    "spotify": 100,
}

_PROVIDER_PREFERENCE = {
    "spotify": 8.0,
    "soundcloud": 5.0,
    "youtube": 3.0,
}

_CROSS_DURATION_BANDS = (
    (180, 360, 3.0),
    (120, 480, 2.0),
)
_CROSS_LONG_TRACK_SEC = 600
_CROSS_LONG_TRACK_PENALTY = 2.0

_WORD_SPLIT_RE = re.compile(r"\s+")


def normalize_text(value):
    if not value:
        return ""
    text = unicodedata.normalize("NFKC", str(value))
    text = re.sub(r"\s+", " ", text.lower()).strip()
    return text


def search_words(raw_input, *, min_length=3):
    """Meaningful words of the raw vibe text, in order, duplicates kept."""
    return [word for word in _WORD_SPLIT_RE.split(normalize_text(raw_input)) if len(word) >= min_length]


def clamp(value, low, high):
    return max(low, min(high, value))


def log_popularity(popularity, *, offset=0.0, scale=1.0, cap=5.0):
    """``log10(popularity + 1)`` shifted and scaled, clamped into ``[0, cap]``."""
    try:
        value = float(popularity or 0)
    except (TypeError, ValueError):
        value = 0.0
    if value <= 0:
        return 0.0
    return clamp((math.log10(value + 1) - offset) * scale, 0.0, cap)


def normalized_popularity(popularity, provider, *, max_points=10.0):
    ceiling = _POPULARITY_CEILINGS.get(provider, 1_000_000)
    try:
        value = max(0.0, float(popularity or 0))
    except (TypeError, ValueError):
        value = 0.0
    return min(math.log10(value + 1) / math.log10(ceiling), 1.0) * max_points


def duration_band_points(duration_sec, bands, *, default=0.0):
    """Points of the first ``(low, high, points)`` band containing the duration."""
    if duration_sec is None:
        return default
    for low, high, points in bands:
        if low <= duration_sec <= high:
            return points
    return default


def recency_points(published_at, points, *, now=None, days=365):
    published = parse_timestamp(published_at)
    if published is None:
        return 0.0
    now = now or utc_now()
    return points if published > now - timedelta(days=days) else 0.0


def keyword_points(text, keywords, points, *, cap=None):
    """``points`` for every keyword found in ``text``, optionally capped."""
    haystack = normalize_text(text)
    total = sum(points for keyword in keywords if keyword and keyword in haystack)
    if cap is not None:
        total = min(total, cap)
    return total


def contains_any(text, keywords):
    haystack = normalize_text(text)
    return any(keyword in haystack for keyword in keywords)


def top_tracks(scored, limit):
    """Stable descending sort of ``(score, track)`` pairs; scores are dropped."""
    ranked = sorted(scored, key=lambda pair: -pair[0])
    return [track for _score, track in ranked[:limit]]


def unique_by_id(tracks):
    seen = set()
    unique = []
    for track in tracks:
        if track.id in seen:
            continue
        seen.add(track.id)
        unique.append(track)
    return unique


def dedupe_key(track):
    return (normalize_text(track.title), normalize_text(track.artist))


def dedupe_tracks(tracks):
    """Drop cross-provider duplicates by case-insensitive (title, artist); first wins."""
    seen = set()
    unique = []
    for track in tracks:
        key = dedupe_key(track)
        if key in seen:
            continue
        seen.add(key)
        unique.append(track)
    return unique


def score_track(track, raw_input, *, now=None):
    """Cross-provider relevance/quality score, independent of adapter scores."""
    context = normalize_text(raw_input)
    title = normalize_text(track.title)

    score = normalized_popularity(track.popularity, track.provider)
    score += _PROVIDER_PREFERENCE.get(track.provider, 1.0)

    for word in search_words(raw_input):
        if word in title:
            score += 3.0

    score += duration_band_points(track.duration, _CROSS_DURATION_BANDS)
    if track.duration > _CROSS_LONG_TRACK_SEC:
        score -= _CROSS_LONG_TRACK_PENALTY

    genre = normalize_text(track.genre)
    if genre and genre in context:
        score += 4.0

    score += recency_points(track.published_at, 2.0, now=now)
    return score


def rank_tracks(tracks, raw_input, *, limit, now=None):
    now = now or utc_now()
    scored = [(score_track(track, raw_input, now=now), track) for track in tracks]
    return top_tracks(scored, limit)
