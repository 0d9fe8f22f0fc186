"""Session cookie management.

The backend session tokens travel between requests in a cookie signed with
itsdangerous. This module signs, reads and clears that cookie and provides
the FastAPI dependencies that resolve the current session,
refreshing the backend tokens once they expire.
"""

import asyncio
import logging
from typing import Optional

import aiohttp
from fastapi import Cookie, Depends, HTTPException, Response
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

from logic.config import get_settings
from logic.errors import BackendError
from logic.session import Session
from server.backend import BackendClient, get_backend

logger = logging.getLogger(__name__)

COOKIE_NAME = "session"
SESSION_MAX_AGE = 60 * 60 * 24 * 7  # 7 days in seconds

VERIFIER_COOKIE_NAME = "pkce_verifier"
VERIFIER_MAX_AGE = 60 * 10


def get_serializer(salt: str = "session") -> URLSafeTimedSerializer:
    return URLSafeTimedSerializer(get_settings().session_secret_key, salt=salt)


def dump_session(session: Session) -> str:
    """Sign a session for storage in a cookie.

    Args:
        session: Backend session to store.

    Returns:
        Signed session token string.
    """
    return get_serializer().dumps(session.model_dump())


def load_session(session_cookie: Optional[str]) -> Optional[Session]:
    """Validate and retrieve a session from a signed cookie.

    Args:
        session_cookie: Signed session cookie value.

    Returns:
        Session if the cookie is valid, None otherwise.
    """
    if not session_cookie:
        return None

    try:
        data = get_serializer().loads(session_cookie, max_age=SESSION_MAX_AGE)
        return Session(**data)
    except (BadSignature, SignatureExpired, TypeError, ValueError):
        return None


def set_session_cookie(response, session: Session):
    response.set_cookie(
        key=COOKIE_NAME,
        value=dump_session(session),
        max_age=SESSION_MAX_AGE,
        httponly=True,
        secure=get_settings().site_url.startswith("https"),
        samesite="lax",
    )


def set_verifier_cookie(response, verifier: str):
    response.set_cookie(
        key=VERIFIER_COOKIE_NAME,
        value=get_serializer("pkce").dumps(verifier),
        max_age=VERIFIER_MAX_AGE,
        httponly=True,
        samesite="lax",
    )


def load_verifier(verifier_cookie: Optional[str]) -> Optional[str]:
    if not verifier_cookie:
        return None
    try:
        return get_serializer("pkce").loads(verifier_cookie, max_age=VERIFIER_MAX_AGE)
    except (BadSignature, SignatureExpired):
        return None


async def resolve_session(
    session_cookie: Optional[str],
    response: Response,
    backend: BackendClient,
) -> Optional[Session]:
    """Turn the session cookie into a live session.

    An expired access token is refreshed through the backend and the cookie
    is rewritten. If it cannot be refreshed the cookie is cleared and the
    request is treated as signed out.
    """
    current = load_session(session_cookie)
    if current is None or not current.expired():
        return current

    if current.refresh_token:
        try:
            refreshed = await backend.refresh_session(current.refresh_token)
        except (BackendError, aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.info("Session refresh failed: %s", e)
        else:
            set_session_cookie(response, refreshed)
            return refreshed

    response.delete_cookie(key=COOKIE_NAME)
    return None


async def get_current_session(
    response: Response,
    session: Optional[str] = Cookie(None, alias=COOKIE_NAME),
    backend: BackendClient = Depends(get_backend),
) -> Optional[Session]:
    """Get the session for the request, if any."""
    return await resolve_session(session, response, backend)


async def require_session(current: Optional[Session] = Depends(get_current_session)) -> Session:
    """Get the session for the request or reject it.

    Raises:
        HTTPException: 401 if the request carries no live session.
    """
    if current is None:
        raise HTTPException(status_code=401, detail="Sign in to leave a memory")
    return current
