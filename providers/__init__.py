"""Search adapters for external music catalogs."""

from providers.errors import ErrorKind, ProviderError, SearchError

__all__ = ["ErrorKind", "ProviderError", "SearchError"]
