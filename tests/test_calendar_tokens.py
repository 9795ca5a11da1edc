"""Tests for calendar token caching and the connect endpoints."""

from unittest.mock import MagicMock
from urllib.parse import parse_qs, urlparse

import pytest
from conftest import CLINICIAN_ID
from httpx import AsyncClient

from medilink.config import settings
from medilink.core.calendar_tokens import (
    InMemoryCalendarTokenProvider,
    RedisCalendarTokenProvider,
    build_authorization_url,
    parse_redirect_fragment,
)


class FakeClock:
    def __init__(self, now: float = 1_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


def test_build_authorization_url():
    """Test the consent URL requests an implicit-grant token."""
    url = build_authorization_url(
        client_id="client-123",
        redirect_uri="http://localhost:5173/calendar/callback",
        scope="https://www.googleapis.com/auth/calendar.events",
        state="doctor-uid-1",
    )

    parsed = urlparse(url)
    params = parse_qs(parsed.query)
    assert parsed.netloc == "accounts.google.com"
    assert params["response_type"] == ["token"]
    assert params["client_id"] == ["client-123"]
    assert params["redirect_uri"] == ["http://localhost:5173/calendar/callback"]
    assert params["state"] == ["doctor-uid-1"]
    assert params["prompt"] == ["consent"]


def test_parse_redirect_fragment():
    assert parse_redirect_fragment(
        "#access_token=ya29.abc&token_type=Bearer&expires_in=3599&scope=x"
    ) == ("ya29.abc", 3599)
    assert parse_redirect_fragment("access_token=ya29.abc") == ("ya29.abc", 3600)
    assert parse_redirect_fragment("#error=access_denied") is None


def test_in_memory_token_valid_until_expiry():
    """Test a token is returned before expiry and dropped after it."""
    clock = FakeClock()
    provider = InMemoryCalendarTokenProvider(clock=clock)
    provider.store_token("doc-1", "token-a", 60)

    assert provider.get_access_token("doc-1") == "token-a"
    assert provider.is_connected("doc-1")
    assert provider.expires_at("doc-1") == clock.now + 60

    clock.now += 60
    assert provider.get_access_token("doc-1") is None
    assert provider.expires_at("doc-1") is None
    assert not provider.is_connected("doc-1")


def test_tokens_are_per_clinician():
    provider = InMemoryCalendarTokenProvider()
    provider.store_token("doc-1", "token-a", 3600)

    assert provider.get_access_token("doc-2") is None

    provider.clear("doc-1")
    assert provider.get_access_token("doc-1") is None


def test_refresh_is_not_supported():
    assert InMemoryCalendarTokenProvider().refresh("doc-1") is None


def test_redis_provider_stores_hash_with_ttl():
    """Test RedisCalendarTokenProvider writes a hash that expires with the token."""
    mock_redis = MagicMock()
    pipe = mock_redis.pipeline.return_value
    provider = RedisCalendarTokenProvider(mock_redis, clock=FakeClock(100.0))

    provider.store_token("doc-1", "token-a", 3600)

    pipe.hset.assert_called_once_with(
        "calendar_token:doc-1",
        mapping={"access_token": "token-a", "expires_at": "3700.0"},
    )
    pipe.expire.assert_called_once_with("calendar_token:doc-1", 3600)
    pipe.execute.assert_called_once()


def test_redis_provider_reads_and_expires_token():
    mock_redis = MagicMock()
    clock = FakeClock(100.0)
    provider = RedisCalendarTokenProvider(mock_redis, clock=clock)

    mock_redis.hgetall.return_value = {}
    assert provider.get_access_token("doc-1") is None

    mock_redis.hgetall.return_value = {"access_token": "token-a", "expires_at": "200.0"}
    assert provider.get_access_token("doc-1") == "token-a"
    mock_redis.hgetall.assert_called_with("calendar_token:doc-1")

    clock.now = 250.0
    assert provider.get_access_token("doc-1") is None
    mock_redis.delete.assert_called_once_with("calendar_token:doc-1")


def test_redis_provider_decodes_bytes():
    mock_redis = MagicMock()
    mock_redis.hgetall.return_value = {"access_token": b"token-b", "expires_at": b"500"}
    provider = RedisCalendarTokenProvider(mock_redis, clock=FakeClock(100.0))

    assert provider.get_access_token("doc-1") == "token-b"


@pytest.mark.asyncio
async def test_connect_returns_consent_url(client: AsyncClient, monkeypatch) -> None:
    monkeypatch.setattr(settings, "google_client_id", "client-123")

    response = await client.get(
        "/api/v1/calendar/connect", params={"redirect_uri": "http://localhost:5173/cb"}
    )

    assert response.status_code == 200
    params = parse_qs(urlparse(response.json()["authorization_url"]).query)
    assert params["client_id"] == ["client-123"]
    assert params["state"] == [CLINICIAN_ID]


@pytest.mark.asyncio
async def test_connect_without_client_id(client: AsyncClient, monkeypatch) -> None:
    monkeypatch.setattr(settings, "google_client_id", "")

    response = await client.get(
        "/api/v1/calendar/connect", params={"redirect_uri": "http://localhost:5173/cb"}
    )

    assert response.status_code == 400
    assert response.json()["message"] == "Google Client ID not configured"


@pytest.mark.asyncio
async def test_store_token_from_fragment_then_disconnect(client: AsyncClient) -> None:
    """Test the connect, status and disconnect round trip."""
    response = await client.get("/api/v1/calendar/status")
    assert response.json() == {"connected": False, "expires_at": None}

    response = await client.post(
        "/api/v1/calendar/token",
        json={"fragment": "#access_token=ya29.abc&expires_in=3599&token_type=Bearer"},
    )
    assert response.status_code == 200
    data = response.json()
    assert data["connected"] is True
    assert data["expires_at"] is not None

    response = await client.delete("/api/v1/calendar/token")
    assert response.status_code == 204

    response = await client.get("/api/v1/calendar/status")
    assert response.json()["connected"] is False


@pytest.mark.asyncio
async def test_store_token_explicit_fields(client: AsyncClient, token_provider) -> None:
    response = await client.post(
        "/api/v1/calendar/token", json={"access_token": "ya29.direct", "expires_in": 120}
    )

    assert response.status_code == 200
    assert token_provider.get_access_token(CLINICIAN_ID) == "ya29.direct"


@pytest.mark.asyncio
async def test_store_token_fragment_without_token(client: AsyncClient) -> None:
    response = await client.post("/api/v1/calendar/token", json={"fragment": "#error=denied"})
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_store_token_requires_a_source(client: AsyncClient) -> None:
    response = await client.post("/api/v1/calendar/token", json={})
    assert response.status_code == 422
