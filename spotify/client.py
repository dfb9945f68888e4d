"""Spotify Web API client for catalog search, audio features and track lookup."""

from __future__ import annotations

import base64
import logging
import os
import time
import urllib.parse
from typing import Any

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from config import settings
from providers.errors import ErrorKind, ProviderError

logger = logging.getLogger(__name__)

# client_id -> (access_token, expires_at). Shared by every client in the
# process; concurrent refreshes may both hit the token endpoint and the last
# write wins.
_TOKEN_CACHE: dict[str, tuple[str, float]] = {}


def clear_token_cache() -> None:
    _TOKEN_CACHE.clear()


class SpotifyCatalogClient:
    """Client-credentials access to the Spotify catalog."""

    _TOKEN_URL = "https://accounts.spotify.com/api/token"
    _API_URL = "https://api.spotify.com/v1"
    _SOURCE = "spotify"

    def __init__(
        self,
        *,
        client_id: str | None = None,
        client_secret: str | None = None,
        timeout_sec: float = settings.HTTP_TIMEOUT_SECONDS,
        session: requests.Session | None = None,
    ) -> None:
        self.client_id = client_id or os.environ.get("SPOTIFY_CLIENT_ID")
        self.client_secret = client_secret or os.environ.get("SPOTIFY_CLIENT_SECRET")
        self.timeout_sec = timeout_sec
        self._session = session or _build_session()

    def is_configured(self) -> bool:
        return bool(self.client_id and self.client_secret)

    def _error(self, kind: ErrorKind, message: str) -> ProviderError:
        return ProviderError(self._SOURCE, kind, message)

    def _get_access_token(self) -> str:
        if not self.is_configured():
            raise self._error(ErrorKind.NOT_CONFIGURED, "Spotify credentials are required")

        now = time.time()
        cached = _TOKEN_CACHE.get(self.client_id)
        if cached and now < cached[1]:
            return cached[0]

        auth_payload = f"{self.client_id}:{self.client_secret}".encode("utf-8")
        auth_header = base64.b64encode(auth_payload).decode("ascii")
        try:
            response = self._session.post(
                self._TOKEN_URL,
                data={"grant_type": "client_credentials"},
                headers={"Authorization": f"Basic {auth_header}"},
                timeout=self.timeout_sec,
            )
        except requests.Timeout as exc:
            raise self._error(ErrorKind.TIMEOUT, "Spotify token request timed out") from exc
        except requests.RequestException as exc:
            raise self._error(ErrorKind.AUTH_FAILED, f"Spotify token request failed: {exc}") from exc
        if response.status_code == 429:
            raise self._error(ErrorKind.RATE_LIMITED, "Spotify token request rate limited")
        if response.status_code != 200:
            raise self._error(ErrorKind.AUTH_FAILED, f"Spotify token request failed ({response.status_code})")

        try:
            payload = response.json()
        except ValueError as exc:
            raise self._error(ErrorKind.AUTH_FAILED, "Spotify token response is not JSON") from exc
        token = payload.get("access_token") if isinstance(payload, dict) else None
        if not token:
            raise self._error(ErrorKind.AUTH_FAILED, "Spotify token response missing access_token")

        expires_in = int(payload.get("expires_in") or 0)
        _TOKEN_CACHE[self.client_id] = (token, now + max(0, expires_in - settings.SPOTIFY_TOKEN_REFRESH_MARGIN_SECONDS))
        logger.debug("Spotify access token refreshed (expires_in=%s)", expires_in)
        return token

    def _get(self, url: str, params: dict[str, Any] | None) -> requests.Response:
        token = self._get_access_token()
        try:
            return self._session.get(
                url,
                params=params,
                headers={"Authorization": f"Bearer {token}"},
                timeout=self.timeout_sec,
            )
        except requests.Timeout as exc:
            raise self._error(ErrorKind.TIMEOUT, "Spotify request timed out") from exc
        except requests.RequestException as exc:
            raise self._error(ErrorKind.UNKNOWN, f"Spotify request failed: {exc}") from exc

    def _request_json(self, url: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        response = self._get(url, params)
        if response.status_code == 401:
            _TOKEN_CACHE.pop(self.client_id, None)
            response = self._get(url, params)
        if response.status_code in (401, 403):
            raise self._error(ErrorKind.AUTH_FAILED, f"Spotify request rejected ({response.status_code})")
        if response.status_code == 429:
            raise self._error(ErrorKind.RATE_LIMITED, "Spotify request rate limited")
        if response.status_code != 200:
            raise self._error(ErrorKind.UNKNOWN, f"Spotify request failed ({response.status_code})")
        try:
            payload = response.json()
        except ValueError as exc:
            raise self._error(ErrorKind.UNKNOWN, "Spotify response is not JSON") from exc
        if not isinstance(payload, dict):
            raise self._error(ErrorKind.UNKNOWN, "Spotify returned a malformed response")
        return payload

    def search_tracks(self, query: str, *, limit: int = 50, market: str = settings.SPOTIFY_MARKET) -> list[dict[str, Any]]:
        payload = self._request_json(
            f"{self._API_URL}/search",
            params={"q": query, "type": "track", "limit": min(int(limit), 50), "market": market},
        )
        items = (payload.get("tracks") or {}).get("items") or []
        return [item for item in items if isinstance(item, dict)]

    def get_audio_features(self, track_ids: list[str]) -> dict[str, dict[str, Any]]:
        """Audio features keyed by track id.

        Failures are logged and yield an empty mapping; tracks are then
        scored without mood fit.
        """
        ids = [track_id for track_id in track_ids if track_id]
        if not ids:
            return {}
        try:
            payload = self._request_json(f"{self._API_URL}/audio-features", params={"ids": ",".join(ids[:100])})
        except ProviderError as exc:
            logger.warning("Spotify audio features unavailable: %s", exc)
            return {}
        features = {}
        for entry in payload.get("audio_features") or []:
            if isinstance(entry, dict) and entry.get("id"):
                features[entry["id"]] = entry
        return features

    def get_track(self, track_id: str) -> dict[str, Any] | None:
        track_id = (track_id or "").strip()
        if not track_id:
            raise ValueError("track_id is required")
        encoded_id = urllib.parse.quote(track_id, safe="")
        try:
            return self._request_json(f"{self._API_URL}/tracks/{encoded_id}")
        except ProviderError as exc:
            if exc.kind is ErrorKind.UNKNOWN:
                logger.info("Spotify track %s not available: %s", track_id, exc)
                return None
            raise


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
