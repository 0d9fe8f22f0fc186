"""
Session model and session tracking.

SessionTracker mirrors the backend's current session: it reads the session
once on start, then follows the backend's push notifications until stopped.
"""

import logging
import time
from typing import Any, Callable, Dict, List, Optional

from pydantic import BaseModel

logger = logging.getLogger(__name__)


class Session(BaseModel):
    """Backend-issued proof of a signed-in identity."""

    access_token: str
    refresh_token: Optional[str] = None
    expires_at: Optional[int] = None
    user: Dict[str, Any] = {}

    def expired(self, now: Optional[float] = None) -> bool:
        """True once the access token's expiry time has passed."""
        if self.expires_at is None:
            return False
        return self.expires_at <= (time.time() if now is None else now)

    @classmethod
    def from_token_response(cls, data: Dict[str, Any]) -> "Session":
        expires_at = data.get("expires_at")
        if expires_at is None and data.get("expires_in"):
            expires_at = int(time.time()) + int(data["expires_in"])
        return cls(
            access_token=data["access_token"],
            refresh_token=data.get("refresh_token"),
            expires_at=expires_at,
            user=data.get("user") or {},
        )


class SessionTracker:
    """Expose the signed-in user (or None) and keep it current.

    Args:
        auth: Auth collaborator offering `get_session()` and
            `on_auth_state_change(callback)` returning a subscription with
            `unsubscribe()`.
    """

    def __init__(self, auth):
        self.auth = auth
        self.session: Optional[Session] = None
        self._subscription = None
        self._listeners: List[Callable[[Optional[Dict[str, Any]]], None]] = []

    @property
    def user(self) -> Optional[Dict[str, Any]]:
        return self.session.user if self.session else None

    @property
    def signed_in(self) -> bool:
        return self.session is not None

    @property
    def active(self) -> bool:
        return self._subscription is not None

    def on_change(self, listener: Callable[[Optional[Dict[str, Any]]], None]):
        self._listeners.append(listener)

    async def start(self):
        """Read the current session and subscribe to session changes."""
        if self._subscription is not None:
            return
        self._subscription = self.auth.on_auth_state_change(self._handle_change)
        self._apply(await self.auth.get_session())

    def _handle_change(self, event: str, session: Optional[Session]):
        logger.debug("Auth state change: %s", event)
        self._apply(session)

    def _apply(self, session: Optional[Session]):
        self.session = session
        for listener in list(self._listeners):
            listener(self.user)

    def clear(self):
        self._apply(None)

    def stop(self):
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None

    async def __aenter__(self):
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        self.stop()
