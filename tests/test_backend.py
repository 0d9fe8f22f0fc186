"""
Tests for the backend client's request shaping and session notifications.

Run with: python -m pytest tests/test_backend.py
"""

from unittest.mock import AsyncMock, patch
from urllib.parse import parse_qs, urlparse

import pytest

from logic.config import Settings
from logic.session import Session
from server.backend import BackendClient, _error_message

TOKEN_RESPONSE = {
    "access_token": "jwt",
    "refresh_token": "r",
    "expires_at": 1_900_000_000,
    "user": {"id": "u1", "email": "ana@example.com"},
}


@pytest.fixture
def settings(monkeypatch):
    monkeypatch.setenv("BACKEND_URL", "http://backend.test/")
    monkeypatch.setenv("BACKEND_ANON_KEY", "anon")
    return Settings()


@pytest.mark.asyncio
async def test_sign_in_sets_session_and_notifies(settings):
    client = BackendClient(settings)
    events = []
    client.on_auth_state_change(lambda event, session: events.append((event, session)))

    with patch.object(BackendClient, "_request", new=AsyncMock(return_value=TOKEN_RESPONSE)) as request:
        session = await client.sign_in_with_password("ana@example.com", "pw")

    request.assert_awaited_once_with(
        "POST",
        "/auth/v1/token",
        params={"grant_type": "password"},
        json={"email": "ana@example.com", "password": "pw"},
    )
    assert session.user["id"] == "u1"
    assert events == [("SIGNED_IN", session)]
    assert await client.get_session() == session


@pytest.mark.asyncio
async def test_unsubscribe_stops_notifications(settings):
    client = BackendClient(settings)
    events = []
    subscription = client.on_auth_state_change(lambda event, session: events.append(event))
    subscription.unsubscribe()
    subscription.unsubscribe()

    await client.sign_out()

    assert events == []


@pytest.mark.asyncio
async def test_sign_out_clears_session(settings):
    client = BackendClient(settings)
    events = []
    client.on_auth_state_change(lambda event, session: events.append(event))

    with patch.object(BackendClient, "_request", new=AsyncMock(return_value=TOKEN_RESPONSE)):
        await client.sign_in_with_password("ana@example.com", "pw")
    with patch.object(BackendClient, "_request", new=AsyncMock(return_value="")) as request:
        await client.sign_out()

    request.assert_awaited_once_with("POST", "/auth/v1/logout")
    assert client.session is None
    assert events == ["SIGNED_IN", "SIGNED_OUT"]


@pytest.mark.asyncio
async def test_insert_asks_for_representation(settings):
    client = BackendClient(settings)
    rows = [{"content": "x", "image_url": None, "latitude": 0.0, "longitude": 0.0}]

    with patch.object(BackendClient, "_request", new=AsyncMock(return_value=rows)) as request:
        await client.insert("memories", rows)

    request.assert_awaited_once_with(
        "POST", "/rest/v1/memories", json=rows, headers={"Prefer": "return=representation"}
    )


def test_public_url_and_authorize_url(settings):
    client = BackendClient(settings)

    assert (
        client.get_public_url("memories", "1700.jpg")
        == "http://backend.test/storage/v1/object/public/memories/1700.jpg"
    )

    url = urlparse(client.authorize_url("google", "http://site/auth/callback", "challenge"))
    assert url.path == "/auth/v1/authorize"
    assert parse_qs(url.query) == {
        "provider": ["google"],
        "redirect_to": ["http://site/auth/callback"],
        "code_challenge": ["challenge"],
        "code_challenge_method": ["s256"],
    }


def test_headers_prefer_session_token(settings):
    client = BackendClient(settings)
    assert client._headers() == {"apikey": "anon", "Authorization": "Bearer anon"}
    assert client._headers("user-jwt")["Authorization"] == "Bearer user-jwt"


def test_error_message_extraction():
    assert _error_message({"msg": "User already registered"}, "x") == "User already registered"
    assert _error_message({"error_description": "Invalid login credentials"}, "x") == "Invalid login credentials"
    assert _error_message({"message": "permission denied"}, "x") == "permission denied"
    assert _error_message("<html>", "fallback") == "fallback"


@pytest.mark.asyncio
async def test_refresh_session_posts_refresh_grant(settings):
    client = BackendClient(settings)
    events = []
    client.on_auth_state_change(lambda event, session: events.append(event))

    with patch.object(BackendClient, "_request", new=AsyncMock(return_value=TOKEN_RESPONSE)) as request:
        session = await client.refresh_session("r-old")

    request.assert_awaited_once_with(
        "POST",
        "/auth/v1/token",
        params={"grant_type": "refresh_token"},
        json={"refresh_token": "r-old"},
    )
    assert session.access_token == "jwt"
    assert events == ["TOKEN_REFRESHED"]


def test_session_expiry():
    session = Session.from_token_response(TOKEN_RESPONSE)
    assert session.expired(now=1_899_999_999) is False
    assert session.expired(now=1_900_000_000) is True
    assert Session(access_token="t").expired() is False

    relative = Session.from_token_response({"access_token": "t", "expires_in": 3600})
    assert relative.expired() is False
    assert relative.expired(now=relative.expires_at) is True


def test_backend_error_comes_from_logic_layer():
    import logic.memories
    from logic.errors import BackendError
    from server import backend

    assert backend.BackendError is BackendError
    assert logic.memories.BackendError is BackendError
