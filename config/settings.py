"""Application settings constants."""

from __future__ import annotations

import os

# Socket-level timeout for every outbound provider request.
HTTP_TIMEOUT_SECONDS = float(os.getenv("VIBESEARCH_HTTP_TIMEOUT_SECONDS", "10"))

# Page size for provider search endpoints. YouTube caps search.list at 50.
PROVIDER_PAGE_SIZE = 50

# Tracks each adapter returns after its own ranking.
PROVIDER_MAX_TRACKS = 10

# Below this many valid tracks an adapter retries with a broader query.
PROVIDER_MIN_RESULTS = 5

# Below this many merged tracks the orchestrator runs the parallel fallback.
FALLBACK_MIN_TRACKS = 3

DEFAULT_MAX_RESULTS = int(os.getenv("VIBESEARCH_MAX_RESULTS", "10"))
DEFAULT_FALLBACK_ENABLED = os.getenv("VIBESEARCH_FALLBACK_ENABLED", "1").strip().lower() not in {"0", "false", "no"}

# Declaration order doubles as the tie-break for equal priorities.
DEFAULT_PROVIDER_SETTINGS = {
    "spotify": {"enabled": True, "priority": 1, "timeout_ms": 8000},
    "youtube": {"enabled": True, "priority": 2, "timeout_ms": 15000},
    "soundcloud": {"enabled": False, "priority": 3, "timeout_ms": 10000},
}

YOUTUBE_REGION_CODE = os.getenv("YOUTUBE_REGION_CODE", "US")
YOUTUBE_RELEVANCE_LANGUAGE = os.getenv("YOUTUBE_RELEVANCE_LANGUAGE", "en")

SOUNDCLOUD_API_URL = os.getenv("SOUNDCLOUD_API_URL", "https://api.soundcloud.com")

SPOTIFY_MARKET = os.getenv("SPOTIFY_MARKET", "US")
# Seconds shaved off a client-credentials token lifetime before it is refreshed.
SPOTIFY_TOKEN_REFRESH_MARGIN_SECONDS = 60
# Width of the release-year window added to strict Spotify queries.
SPOTIFY_YEAR_WINDOW = 5
