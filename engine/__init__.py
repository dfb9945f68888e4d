from .models import PROVIDER_NAMES, SearchStatus, Track, UnifiedSearchResponse
from .search_config import ProviderSettings, SearchConfig, default_search_config, resolve_search_config

__all__ = [
    "PROVIDER_NAMES",
    "ProviderSettings",
    "SearchConfig",
    "SearchStatus",
    "Track",
    "UnifiedSearchResponse",
    "default_search_config",
    "resolve_search_config",
]
