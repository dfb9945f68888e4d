"""Error taxonomy shared by provider adapters and the search orchestrator."""

from __future__ import annotations

from enum import Enum


class ErrorKind(Enum):
    QUOTA_EXCEEDED = "quota_exceeded"
    RATE_LIMITED = "rate_limited"
    AUTH_FAILED = "auth_failed"
    TIMEOUT = "timeout"
    NOT_CONFIGURED = "not_configured"
    NO_PROVIDERS_AVAILABLE = "no_providers_available"
    UNKNOWN = "unknown"


class ProviderError(RuntimeError):
    """Raised by an adapter when its provider could not answer a search.

    "Zero results" is never an error; this covers transport, auth, quota and
    malformed-response failures only.
    """

    def __init__(self, provider: str, kind: ErrorKind, message: str | None = None) -> None:
        self.provider = provider
        self.kind = kind
        super().__init__(message or f"{provider} search failed ({kind.value})")


class SearchError(RuntimeError):
    """Raised by the orchestrator when no search could be attempted at all."""

    def __init__(self, kind: ErrorKind, message: str) -> None:
        self.kind = kind
        super().__init__(message)
