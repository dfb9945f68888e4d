"""Deterministic search-query builders for Spotify catalog lookups."""

from __future__ import annotations

from config import settings

FALLBACK_GENRE = "pop"


def build_search_query(vibe: str, genre: str = "", *, year: int, year_window: int = settings.SPOTIFY_YEAR_WINDOW) -> str:
    """Build a Spotify search query in the form `vibe genre:{genre} year:{from}-{to}`.

    Behavior:
    - Starts with the vibe text.
    - Adds a `genre:` field filter only when a genre is known.
    - Always restricts to the last ``year_window`` years.

    Examples:
    - `build_search_query("chill", "jazz", year=2026)`
      -> `"chill genre:jazz year:2021-2026"`
    - `build_search_query("happy", year=2026)`
      -> `"happy year:2021-2026"`
    """
    parts = [str(vibe or "").strip()]
    if genre:
        parts.append(f"genre:{genre}")
    parts.append(f"year:{year - year_window}-{year}")
    return " ".join(part for part in parts if part)


def build_genre_query(genre: str = "") -> str:
    return str(genre or "").strip() or FALLBACK_GENRE
