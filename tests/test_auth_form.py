"""
Tests for the sign-in / registration form controller.

Run with: python -m pytest tests/test_auth_form.py
"""

import pytest

from logic.auth_form import (
    LOGIN_SUCCESS,
    PASSWORD_MISMATCH,
    REGISTER,
    REGISTER_SUCCESS,
    SIGN_IN,
    AuthFormController,
)


class FakeApi:
    def __init__(self, status=200, body=None, error=None):
        self.posts = []
        self.status = status
        self.body = body if body is not None else {"success": True}
        self.error = error

    async def post(self, path, payload):
        self.posts.append((path, payload))
        if self.error:
            raise self.error
        return self.status, self.body


def make_form(api, tick=0.001):
    navigated = []
    form = AuthFormController(api, navigate=navigated.append, tick_interval=tick)
    return form, navigated


@pytest.mark.asyncio
async def test_register_password_mismatch_makes_no_request():
    api = FakeApi()
    form, _ = make_form(api)
    form.toggle_mode()

    assert await form.submit("ana@example.com", "secret1", "secret2") is False

    assert api.posts == []
    assert form.error is True
    assert form.status == PASSWORD_MISMATCH
    assert form.loading is False
    assert form.cooldown == 0


@pytest.mark.asyncio
async def test_login_success_redirects_and_starts_cooldown():
    api = FakeApi()
    form, navigated = make_form(api, tick=10)

    assert await form.submit("ana@example.com", "secret") is True

    assert api.posts == [("/api/login", {"email": "ana@example.com", "password": "secret"})]
    assert navigated == ["/"]
    assert form.status == LOGIN_SUCCESS
    assert form.cooldown == 30
    assert form.can_submit is False
    assert form.button_label == "Please wait 30 seconds before logging in"
    form.close()


@pytest.mark.asyncio
async def test_register_success_shows_check_email_and_cooldown():
    api = FakeApi(body={"success": True, "message": "Check your email to confirm your account."})
    form, navigated = make_form(api, tick=10)
    form.toggle_mode()

    assert await form.submit("ana@example.com", "secret", "secret") is True

    assert api.posts[0][0] == "/api/register"
    assert navigated == []
    assert form.status == REGISTER_SUCCESS
    assert form.button_label == "Please wait 30 seconds before registering"
    form.close()


@pytest.mark.asyncio
async def test_submit_ignored_during_cooldown():
    api = FakeApi()
    form, _ = make_form(api, tick=10)
    await form.submit("ana@example.com", "secret")

    assert await form.submit("ana@example.com", "secret") is False
    assert len(api.posts) == 1
    form.close()


@pytest.mark.asyncio
async def test_cooldown_counts_down_to_zero():
    form, _ = make_form(FakeApi(), tick=0.001)
    await form.submit("ana@example.com", "secret")

    await form.countdown.wait()

    assert form.cooldown == 0
    assert form.can_submit is True
    assert form.button_label == "Sign In"


@pytest.mark.asyncio
async def test_route_error_is_shown():
    api = FakeApi(status=429, body={"error": "Please wait 30 seconds before login again"})
    form, navigated = make_form(api)

    assert await form.submit("ana@example.com", "secret") is False

    assert form.error is True
    assert form.status == "Your login is failed: Please wait 30 seconds before login again"
    assert navigated == []
    assert form.cooldown == 0


@pytest.mark.asyncio
async def test_register_route_error_is_shown():
    api = FakeApi(status=500, body={"error": "User already registered"})
    form, _ = make_form(api)
    form.toggle_mode()

    await form.submit("ana@example.com", "secret", "secret")

    assert form.status == "Your register is failed: User already registered"


@pytest.mark.asyncio
async def test_transport_error_is_shown():
    import aiohttp

    api = FakeApi(error=aiohttp.ClientConnectionError("connection refused"))
    form, _ = make_form(api)

    await form.submit("ana@example.com", "secret")

    assert form.error is True
    assert form.status == "Your authentication is failed: connection refused"
    assert form.loading is False


def test_toggle_mode_clears_status():
    form, _ = make_form(FakeApi())
    form.error = True
    form.status = "Your login is failed: nope"

    form.toggle_mode()
    assert form.mode == REGISTER
    assert form.error is False
    assert form.status is None
    assert form.button_label == "Sign Up"

    form.toggle_mode()
    assert form.mode == SIGN_IN


def test_oauth_handoff_url():
    form, _ = make_form(FakeApi())
    assert form.oauth_url("google") == "/auth/oauth/google"
