from __future__ import annotations

from typing import Any

import pytest
import requests

from providers.errors import ErrorKind, ProviderError
from spotify.client import SpotifyCatalogClient, clear_token_cache


@pytest.fixture(autouse=True)
def _fresh_token_cache():
    clear_token_cache()
    yield
    clear_token_cache()


class FakeResponse:
    def __init__(self, status_code: int = 200, payload: Any = None) -> None:
        self.status_code = status_code
        self._payload = payload

    def json(self) -> Any:
        if self._payload is None:
            raise ValueError("no json")
        return self._payload


class FakeSession:
    def __init__(self, *, tokens: list[Any] | None = None, gets: list[Any] | None = None) -> None:
        self.tokens = list(tokens or [])
        self.gets = list(gets or [])
        self.post_calls: list[dict[str, Any]] = []
        self.get_calls: list[dict[str, Any]] = []

    def post(self, url, data=None, headers=None, timeout=None):
        self.post_calls.append({"url": url, "data": data, "headers": headers})
        response = self.tokens.pop(0) if self.tokens else _token("fallback-token")
        if isinstance(response, Exception):
            raise response
        return response

    def get(self, url, params=None, headers=None, timeout=None):
        self.get_calls.append({"url": url, "params": params, "headers": headers})
        response = self.gets.pop(0) if self.gets else FakeResponse(payload={})
        if isinstance(response, Exception):
            raise response
        return response


def _token(value: str, expires_in: int = 3600) -> FakeResponse:
    return FakeResponse(payload={"access_token": value, "token_type": "Bearer", "expires_in": expires_in})


def _search_payload(*ids: str) -> dict[str, Any]:
    return {"tracks": {"items": [{"id": track_id, "name": f"Song {track_id}"} for track_id in ids]}}


def _client(session: FakeSession, client_id: str = "client") -> SpotifyCatalogClient:
    return SpotifyCatalogClient(client_id=client_id, client_secret="secret", session=session)


def test_search_tracks_sends_bearer_token_and_params() -> None:
    session = FakeSession(tokens=[_token("tok-1")], gets=[FakeResponse(payload=_search_payload("a", "b"))])

    items = _client(session).search_tracks("chill year:2021-2026", limit=50, market="US")

    assert [item["id"] for item in items] == ["a", "b"]
    call = session.get_calls[0]
    assert call["url"] == "https://api.spotify.com/v1/search"
    assert call["params"] == {"q": "chill year:2021-2026", "type": "track", "limit": 50, "market": "US"}
    assert call["headers"] == {"Authorization": "Bearer tok-1"}
    assert session.post_calls[0]["data"] == {"grant_type": "client_credentials"}
    assert session.post_calls[0]["headers"]["Authorization"].startswith("Basic ")


def test_token_is_cached_across_clients_with_same_id() -> None:
    first_session = FakeSession(tokens=[_token("shared")], gets=[FakeResponse(payload=_search_payload("a"))])
    second_session = FakeSession(gets=[FakeResponse(payload=_search_payload("b"))])

    _client(first_session).search_tracks("one")
    _client(second_session).search_tracks("two")

    assert len(first_session.post_calls) == 1
    assert second_session.post_calls == []
    assert second_session.get_calls[0]["headers"] == {"Authorization": "Bearer shared"}


def test_token_cache_is_keyed_by_client_id() -> None:
    session = FakeSession(tokens=[_token("for-a"), _token("for-b")])

    _client(session, "client-a").search_tracks("x")
    _client(session, "client-b").search_tracks("x")

    assert len(session.post_calls) == 2
    assert [call["headers"]["Authorization"] for call in session.get_calls] == ["Bearer for-a", "Bearer for-b"]


def test_token_inside_refresh_margin_is_refreshed() -> None:
    session = FakeSession(tokens=[_token("short-lived", expires_in=30), _token("fresh")])
    client = _client(session)

    client.search_tracks("x")
    client.search_tracks("y")

    assert len(session.post_calls) == 2
    assert session.get_calls[1]["headers"] == {"Authorization": "Bearer fresh"}


def test_unauthorized_drops_token_and_retries_once() -> None:
    session = FakeSession(
        tokens=[_token("stale"), _token("renewed")],
        gets=[FakeResponse(401), FakeResponse(payload=_search_payload("a"))],
    )

    items = _client(session).search_tracks("x")

    assert [item["id"] for item in items] == ["a"]
    assert len(session.post_calls) == 2
    assert session.get_calls[1]["headers"] == {"Authorization": "Bearer renewed"}


def test_second_unauthorized_is_auth_failure() -> None:
    session = FakeSession(gets=[FakeResponse(401), FakeResponse(401)])

    with pytest.raises(ProviderError) as excinfo:
        _client(session).search_tracks("x")

    assert excinfo.value.kind is ErrorKind.AUTH_FAILED
    assert len(session.get_calls) == 2


@pytest.mark.parametrize(
    ("response", "kind"),
    [
        (FakeResponse(403), ErrorKind.AUTH_FAILED),
        (FakeResponse(429), ErrorKind.RATE_LIMITED),
        (FakeResponse(500), ErrorKind.UNKNOWN),
        (FakeResponse(200), ErrorKind.UNKNOWN),
        (requests.Timeout("slow"), ErrorKind.TIMEOUT),
        (requests.ConnectionError("down"), ErrorKind.UNKNOWN),
    ],
)
def test_api_failures_map_to_error_kinds(response, kind: ErrorKind) -> None:
    with pytest.raises(ProviderError) as excinfo:
        _client(FakeSession(gets=[response])).search_tracks("x")

    assert excinfo.value.kind is kind
    assert excinfo.value.provider == "spotify"


@pytest.mark.parametrize(
    ("response", "kind"),
    [
        (FakeResponse(400, payload={"error": "invalid_client"}), ErrorKind.AUTH_FAILED),
        (FakeResponse(200, payload={"token_type": "Bearer"}), ErrorKind.AUTH_FAILED),
        (FakeResponse(429), ErrorKind.RATE_LIMITED),
        (requests.Timeout("slow"), ErrorKind.TIMEOUT),
    ],
)
def test_token_failures_map_to_error_kinds(response, kind: ErrorKind) -> None:
    session = FakeSession(tokens=[response])

    with pytest.raises(ProviderError) as excinfo:
        _client(session).search_tracks("x")

    assert excinfo.value.kind is kind
    assert session.get_calls == []


def test_missing_credentials_are_not_configured(monkeypatch) -> None:
    monkeypatch.delenv("SPOTIFY_CLIENT_ID", raising=False)
    monkeypatch.delenv("SPOTIFY_CLIENT_SECRET", raising=False)
    client = SpotifyCatalogClient(session=FakeSession())

    assert client.is_configured() is False
    with pytest.raises(ProviderError) as excinfo:
        client.search_tracks("x")
    assert excinfo.value.kind is ErrorKind.NOT_CONFIGURED


def test_audio_features_are_keyed_by_track_id() -> None:
    payload = {"audio_features": [{"id": "a", "energy": 0.5}, None, {"id": "c", "energy": 0.9}]}
    session = FakeSession(gets=[FakeResponse(payload=payload)])

    features = _client(session).get_audio_features(["a", "b", "c", ""])

    assert set(features) == {"a", "c"}
    assert session.get_calls[0]["params"] == {"ids": "a,b,c"}


def test_audio_feature_failures_are_not_fatal() -> None:
    session = FakeSession(gets=[FakeResponse(403)])

    assert _client(session).get_audio_features(["a"]) == {}


def test_audio_features_skip_request_without_ids() -> None:
    session = FakeSession()

    assert _client(session).get_audio_features([]) == {}
    assert session.get_calls == []


def test_get_track_returns_none_when_missing() -> None:
    session = FakeSession(gets=[FakeResponse(404), FakeResponse(payload={"id": "abc", "name": "Song"})])
    client = _client(session)

    assert client.get_track("missing") is None
    assert client.get_track("abc") == {"id": "abc", "name": "Song"}
    assert session.get_calls[1]["url"] == "https://api.spotify.com/v1/tracks/abc"


def test_get_track_requires_id() -> None:
    with pytest.raises(ValueError):
        _client(FakeSession()).get_track("  ")
