"""Spotify integration modules."""

from spotify.client import SpotifyCatalogClient, clear_token_cache
from spotify.search_queries import build_genre_query, build_search_query

__all__ = ["SpotifyCatalogClient", "build_genre_query", "build_search_query", "clear_token_cache"]
