"""Authentication routes.

Email/password login and registration are forwarded to the backend after a
per-account cooldown check. OAuth sign-in hands off to the backend's
provider flow (PKCE) and comes back through /auth/callback.
"""

import logging
from typing import Optional

import aiohttp
from authlib.common.security import generate_token
from authlib.oauth2.rfc7636 import create_s256_code_challenge
from fastapi import APIRouter, Cookie, Depends, HTTPException
from fastapi.responses import JSONResponse, RedirectResponse
from pydantic import BaseModel

from logic.config import get_settings
from logic.rate_limit import CooldownLimiter, build_store
from logic.session import Session
from logic.validation import safe_redirect_path
from server.backend import ALREADY_REGISTERED, BackendClient, BackendError, get_backend
from user_context import (
    COOKIE_NAME,
    VERIFIER_COOKIE_NAME,
    get_current_session,
    load_session,
    load_verifier,
    set_session_cookie,
    set_verifier_cookie,
)

logger = logging.getLogger(__name__)

router = APIRouter()

LOGIN_COOLDOWN_MESSAGE = "Please wait 30 seconds before login again"
REGISTER_COOLDOWN_MESSAGE = "Please wait 30 seconds before registering again"
REGISTER_SUCCESS_MESSAGE = "Check your email to confirm your account."
SERVICE_UNAVAILABLE_MESSAGE = "Authentication service unavailable"
CALLBACK_ERROR_PATH = "/auth?error=auth_code_error"

SUPPORTED_PROVIDERS = {"google", "github"}


class Credentials(BaseModel):
    """Request model for login and registration."""

    email: str
    password: str


# ============================================================
# Cooldown limiters
# ============================================================

_cooldown_store = None


def get_cooldown_store():
    global _cooldown_store
    if _cooldown_store is None:
        _cooldown_store = build_store(get_settings())
    return _cooldown_store


def get_login_limiter() -> CooldownLimiter:
    return CooldownLimiter(get_cooldown_store(), "login")


def get_register_limiter() -> CooldownLimiter:
    return CooldownLimiter(get_cooldown_store(), "register")


# ============================================================
# Email / password
# ============================================================


@router.post("/api/login")
async def login(
    credentials: Credentials,
    limiter: CooldownLimiter = Depends(get_login_limiter),
    backend: BackendClient = Depends(get_backend),
):
    """Sign in with email and password.

    Returns:
        200 with success and the session cookie set, 429 while the account is
        cooling down, 500 with the backend's message on failure.
    """
    if not limiter.hit(credentials.email):
        return JSONResponse({"error": LOGIN_COOLDOWN_MESSAGE}, status_code=429)

    try:
        session = await backend.sign_in_with_password(credentials.email, credentials.password)
    except BackendError as e:
        logger.info("Login failed for %s: %s", credentials.email, e.message)
        return JSONResponse({"error": e.message}, status_code=500)
    except aiohttp.ClientError as e:
        logger.error("Login request error: %s", e)
        return JSONResponse({"error": SERVICE_UNAVAILABLE_MESSAGE}, status_code=500)

    response = JSONResponse({"success": True})
    set_session_cookie(response, session)
    return response


@router.post("/api/register")
async def register(
    credentials: Credentials,
    limiter: CooldownLimiter = Depends(get_register_limiter),
    backend: BackendClient = Depends(get_backend),
):
    """Create an account and send the confirmation email.

    An already registered address gets the confirmation email again, but the
    request still reports the original error.
    """
    if not limiter.hit(credentials.email):
        return JSONResponse({"error": REGISTER_COOLDOWN_MESSAGE}, status_code=429)

    redirect_to = f"{get_settings().site_url}/auth/callback"
    try:
        await backend.sign_up(credentials.email, credentials.password, email_redirect_to=redirect_to)
    except BackendError as e:
        if ALREADY_REGISTERED in e.message:
            try:
                await backend.resend_signup(credentials.email, email_redirect_to=redirect_to)
            except (BackendError, aiohttp.ClientError) as resend_error:
                logger.error("Confirmation resend failed for %s: %s", credentials.email, resend_error)
        return JSONResponse({"error": e.message}, status_code=500)
    except aiohttp.ClientError as e:
        logger.error("Register request error: %s", e)
        return JSONResponse({"error": SERVICE_UNAVAILABLE_MESSAGE}, status_code=500)

    return {"success": True, "message": REGISTER_SUCCESS_MESSAGE}


# ============================================================
# OAuth
# ============================================================


@router.get("/auth/oauth/{provider}")
async def oauth_login(provider: str, backend: BackendClient = Depends(get_backend)):
    """Redirect to the backend's sign-in page for an OAuth provider.

    Raises:
        HTTPException: If the provider is not supported.
    """
    if provider not in SUPPORTED_PROVIDERS:
        raise HTTPException(status_code=404, detail=f"Unknown provider '{provider}'")

    verifier = generate_token(64)
    url = backend.authorize_url(
        provider,
        redirect_to=f"{get_settings().site_url}/auth/callback",
        code_challenge=create_s256_code_challenge(verifier),
    )
    response = RedirectResponse(url=url, status_code=303)
    set_verifier_cookie(response, verifier)
    return response


@router.get("/auth/callback")
async def auth_callback(
    code: Optional[str] = None,
    next: Optional[str] = "/",
    pkce_verifier: Optional[str] = Cookie(None, alias=VERIFIER_COOKIE_NAME),
    backend: BackendClient = Depends(get_backend),
):
    """Exchange an authorization code for a session.

    Returns:
        Redirect to `next` (a same-site path) with the session cookie set, or
        to the auth page with an error flag.
    """
    if code:
        try:
            session = await backend.exchange_code_for_session(code, load_verifier(pkce_verifier))
        except (BackendError, aiohttp.ClientError) as e:
            logger.error("Auth callback exchange error: %s", e)
        else:
            response = RedirectResponse(url=safe_redirect_path(next), status_code=303)
            set_session_cookie(response, session)
            response.delete_cookie(key=VERIFIER_COOKIE_NAME)
            return response

    return RedirectResponse(url=CALLBACK_ERROR_PATH, status_code=303)


# ============================================================
# Session
# ============================================================


@router.post("/auth/logout")
async def logout(
    session: Optional[str] = Cookie(None, alias=COOKIE_NAME),
    backend: BackendClient = Depends(get_backend),
):
    """Sign out at the backend and clear the session cookie."""
    backend.session = load_session(session)
    try:
        await backend.sign_out()
    except (BackendError, aiohttp.ClientError) as e:
        logger.error("Sign out error: %s", e)

    response = JSONResponse({"success": True, "message": "Logged out successfully"})
    response.delete_cookie(key=COOKIE_NAME)
    return response


@router.get("/auth/me")
async def get_current_user(session: Optional[Session] = Depends(get_current_session)):
    """Get current authenticated user information.

    Returns:
        JSON with user data if authenticated, or null user if not.
    """
    if session:
        return {"authenticated": True, "user": session.user}

    return {"authenticated": False, "user": None}
