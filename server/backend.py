"""Backend-as-a-service client.

Async client for the hosted backend that owns authentication, the memories
table and the image bucket. Speaks the Supabase-compatible REST surface
(auth under /auth/v1, tables under /rest/v1, files under /storage/v1).
"""

import logging
from typing import Any, Callable, Dict, List, Optional
from urllib.parse import quote, urlencode

import aiohttp

from logic.config import Settings, get_settings
from logic.errors import BackendError
from logic.session import Session

logger = logging.getLogger(__name__)

ALREADY_REGISTERED = "User already registered"


class Subscription:
    """Handle returned by on_auth_state_change."""

    def __init__(self, listeners: List[Callable], callback: Callable):
        self._listeners = listeners
        self._callback = callback

    def unsubscribe(self):
        if self._callback in self._listeners:
            self._listeners.remove(self._callback)


def _error_message(payload: Any, fallback: str) -> str:
    if isinstance(payload, dict):
        for key in ("msg", "error_description", "message", "error"):
            if payload.get(key):
                return str(payload[key])
    return fallback


class BackendClient:
    """Client for auth, table and storage calls.

    Holds at most one current session and notifies subscribers whenever it
    changes (SIGNED_IN, SIGNED_OUT).
    """

    def __init__(self, settings: Optional[Settings] = None, session: Optional[Session] = None):
        self.settings = settings or get_settings()
        self.session = session
        self._listeners: List[Callable[[str, Optional[Session]], None]] = []

    # ============================================================
    # Transport
    # ============================================================

    def _headers(self, access_token: Optional[str] = None) -> Dict[str, str]:
        key = self.settings.backend_anon_key or ""
        token = access_token or (self.session.access_token if self.session else key)
        return {"apikey": key, "Authorization": f"Bearer {token}"}

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, str]] = None,
        json: Any = None,
        data: Optional[bytes] = None,
        headers: Optional[Dict[str, str]] = None,
        access_token: Optional[str] = None,
    ) -> Any:
        url = f"{self.settings.backend_url}{path}"
        request_headers = self._headers(access_token)
        if headers:
            request_headers.update(headers)

        async with aiohttp.ClientSession() as http:
            async with http.request(
                method, url, params=params, json=json, data=data, headers=request_headers
            ) as resp:
                if resp.content_type == "application/json":
                    payload = await resp.json()
                else:
                    payload = await resp.text()
                if resp.status >= 400:
                    message = _error_message(payload, f"Backend request failed ({resp.status})")
                    raise BackendError(message, resp.status)
                return payload

    # ============================================================
    # Session observation
    # ============================================================

    async def get_session(self) -> Optional[Session]:
        return self.session

    def on_auth_state_change(self, callback: Callable[[str, Optional[Session]], None]) -> Subscription:
        self._listeners.append(callback)
        return Subscription(self._listeners, callback)

    def _set_session(self, event: str, session: Optional[Session]):
        self.session = session
        for listener in list(self._listeners):
            listener(event, session)

    # ============================================================
    # Auth
    # ============================================================

    async def sign_in_with_password(self, email: str, password: str) -> Session:
        data = await self._request(
            "POST",
            "/auth/v1/token",
            params={"grant_type": "password"},
            json={"email": email, "password": password},
        )
        session = Session.from_token_response(data)
        self._set_session("SIGNED_IN", session)
        return session

    async def sign_up(self, email: str, password: str, email_redirect_to: Optional[str] = None) -> Dict[str, Any]:
        params = {"redirect_to": email_redirect_to} if email_redirect_to else None
        return await self._request(
            "POST",
            "/auth/v1/signup",
            params=params,
            json={"email": email, "password": password},
        )

    async def resend_signup(self, email: str, email_redirect_to: Optional[str] = None):
        params = {"redirect_to": email_redirect_to} if email_redirect_to else None
        return await self._request(
            "POST",
            "/auth/v1/resend",
            params=params,
            json={"type": "signup", "email": email},
        )

    def authorize_url(self, provider: str, redirect_to: str, code_challenge: str) -> str:
        """Build the provider sign-in URL for a PKCE flow."""
        query = urlencode(
            {
                "provider": provider,
                "redirect_to": redirect_to,
                "code_challenge": code_challenge,
                "code_challenge_method": "s256",
            }
        )
        return f"{self.settings.backend_url}/auth/v1/authorize?{query}"

    async def exchange_code_for_session(self, code: str, code_verifier: Optional[str] = None) -> Session:
        data = await self._request(
            "POST",
            "/auth/v1/token",
            params={"grant_type": "pkce"},
            json={"auth_code": code, "code_verifier": code_verifier},
        )
        session = Session.from_token_response(data)
        self._set_session("SIGNED_IN", session)
        return session

    async def refresh_session(self, refresh_token: str) -> Session:
        """Trade a refresh token for a new session."""
        data = await self._request(
            "POST",
            "/auth/v1/token",
            params={"grant_type": "refresh_token"},
            json={"refresh_token": refresh_token},
        )
        session = Session.from_token_response(data)
        self._set_session("TOKEN_REFRESHED", session)
        return session

    async def get_user(self, access_token: str) -> Dict[str, Any]:
        return await self._request("GET", "/auth/v1/user", access_token=access_token)

    async def sign_out(self):
        if self.session is not None:
            try:
                await self._request("POST", "/auth/v1/logout")
            finally:
                self._set_session("SIGNED_OUT", None)
        else:
            self._set_session("SIGNED_OUT", None)

    # ============================================================
    # Tables
    # ============================================================

    async def select(self, table: str, columns: str = "*") -> List[Dict[str, Any]]:
        return await self._request("GET", f"/rest/v1/{table}", params={"select": columns})

    async def insert(self, table: str, rows: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        return await self._request(
            "POST",
            f"/rest/v1/{table}",
            json=rows,
            headers={"Prefer": "return=representation"},
        )

    # ============================================================
    # Storage
    # ============================================================

    async def upload(self, bucket: str, name: str, data: bytes, content_type: str = "application/octet-stream"):
        return await self._request(
            "POST",
            f"/storage/v1/object/{bucket}/{quote(name)}",
            data=data,
            headers={"Content-Type": content_type},
        )

    def get_public_url(self, bucket: str, name: str) -> str:
        return f"{self.settings.backend_url}/storage/v1/object/public/{bucket}/{quote(name)}"


def get_backend() -> BackendClient:
    """Dependency returning a fresh backend client for the request."""
    return BackendClient(get_settings())
