"""
Shared fixtures: an in-memory stand-in for the hosted backend and a
TestClient wired to it.
"""

import os

os.environ.setdefault("SESSION_SECRET_KEY", "test-secret")
os.environ.setdefault("BACKEND_ANON_KEY", "anon-key")
os.environ.setdefault("BACKEND_URL", "http://backend.test")

import pytest
from fastapi.testclient import TestClient

from logic.rate_limit import CooldownLimiter, InMemoryCooldownStore
from logic.session import Session
from server.backend import Subscription


def make_session(email="ana@example.com", user_id="user-1", expires_at=1_900_000_000, access_token=None):
    return Session(
        access_token=access_token or f"token-{user_id}",
        refresh_token="refresh",
        expires_at=expires_at,
        user={"id": user_id, "email": email},
    )


class FakeBackend:
    """Records every call; failures are configured per operation."""

    def __init__(self):
        self.calls = []
        self.rows = []
        self.session = None
        self.listeners = []
        self.fail = {}
        self._next_id = 1

    def _check(self, op):
        if op in self.fail:
            raise self.fail[op]

    async def get_session(self):
        return self.session

    def on_auth_state_change(self, callback):
        self.listeners.append(callback)
        return Subscription(self.listeners, callback)

    def emit(self, event, session):
        self.session = session
        for listener in list(self.listeners):
            listener(event, session)

    async def sign_in_with_password(self, email, password):
        self.calls.append(("sign_in", email))
        self._check("sign_in")
        session = make_session(email)
        self.emit("SIGNED_IN", session)
        return session

    async def sign_up(self, email, password, email_redirect_to=None):
        self.calls.append(("sign_up", email, email_redirect_to))
        self._check("sign_up")
        return {"id": "new-user", "email": email}

    async def resend_signup(self, email, email_redirect_to=None):
        self.calls.append(("resend", email))
        self._check("resend")
        return {}

    def authorize_url(self, provider, redirect_to, code_challenge):
        self.calls.append(("authorize", provider))
        return f"http://backend.test/auth/v1/authorize?provider={provider}&code_challenge={code_challenge}"

    async def exchange_code_for_session(self, code, code_verifier=None):
        self.calls.append(("exchange", code, code_verifier))
        self._check("exchange")
        session = make_session()
        self.emit("SIGNED_IN", session)
        return session

    async def refresh_session(self, refresh_token):
        self.calls.append(("refresh", refresh_token))
        self._check("refresh")
        session = make_session(access_token="token-refreshed")
        self.emit("TOKEN_REFRESHED", session)
        return session

    async def sign_out(self):
        self.calls.append(("sign_out",))
        self._check("sign_out")
        self.emit("SIGNED_OUT", None)

    async def select(self, table, columns="*"):
        self.calls.append(("select", table))
        self._check("select")
        return list(self.rows)

    async def insert(self, table, rows):
        self.calls.append(("insert", table, rows))
        self._check("insert")
        stored = []
        for row in rows:
            record = dict(row, id=f"mem-{self._next_id}", created_at="2025-03-05T10:00:00+00:00")
            self._next_id += 1
            self.rows.append(record)
            stored.append(record)
        return stored

    async def upload(self, bucket, name, data, content_type="application/octet-stream"):
        self.calls.append(("upload", bucket, name))
        self._check("upload")
        return {"Key": f"{bucket}/{name}"}

    def get_public_url(self, bucket, name):
        return f"http://backend.test/storage/v1/object/public/{bucket}/{name}"


def memory_row(memory_id="mem-1", lat=-6.2, lng=106.8, content="First date", image_url=None):
    return {
        "id": memory_id,
        "latitude": lat,
        "longitude": lng,
        "content": content,
        "image_url": image_url,
        "created_at": "2025-03-05T10:00:00+00:00",
    }


class ManualClock:
    def __init__(self, start=1_000_000):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, ms):
        self.now += ms


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def client(backend, clock):
    """TestClient with the backend and both cooldown limiters replaced."""
    from main import app
    from server.auth import get_login_limiter, get_register_limiter
    from server.backend import get_backend

    store = InMemoryCooldownStore()
    app.dependency_overrides[get_backend] = lambda: backend
    app.dependency_overrides[get_login_limiter] = lambda: CooldownLimiter(store, "login", clock=clock)
    app.dependency_overrides[get_register_limiter] = lambda: CooldownLimiter(store, "register", clock=clock)
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
