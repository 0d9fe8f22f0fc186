"""
Sign-in / registration form state.

Credentials are checked by the /api/login and /api/register routes. After
a successful attempt the form enforces its own 30 second countdown.
"""

import logging
from typing import Any, Callable, Dict, Optional, Tuple

import aiohttp

from logic.config import AUTH_COOLDOWN_SECONDS
from logic.timers import Countdown

logger = logging.getLogger(__name__)

SIGN_IN = "sign_in"
REGISTER = "register"

PASSWORD_MISMATCH = "Your password is not match!"
LOGIN_SUCCESS = "Your login is success, redirecting to map!"
REGISTER_SUCCESS = "Your register is success, please check in your email and spam to confirm!"


class HttpAuthApi:
    """Posts credentials to the app's auth routes."""

    def __init__(self, base_url: str):
        self.base_url = base_url.rstrip("/")

    async def post(self, path: str, payload: Dict[str, Any]) -> Tuple[int, Dict[str, Any]]:
        async with aiohttp.ClientSession() as session:
            async with session.post(f"{self.base_url}{path}", json=payload) as resp:
                data = await resp.json(content_type=None)
                return resp.status, data or {}


class AuthFormController:
    """Login/registration form.

    Args:
        api: Object with async `post(path, payload)` returning (status, body).
        navigate: Called with "/" after a successful login.
        tick_interval: Seconds per countdown step.
    """

    def __init__(
        self,
        api,
        navigate: Callable[[str], None],
        cooldown_seconds: int = AUTH_COOLDOWN_SECONDS,
        tick_interval: float = 1.0,
    ):
        self.api = api
        self.navigate = navigate
        self.cooldown_seconds = cooldown_seconds
        self.mode = SIGN_IN
        self.loading = False
        self.error = False
        self.status: Optional[str] = None
        self.countdown = Countdown(interval=tick_interval)

    @property
    def registering(self) -> bool:
        return self.mode == REGISTER

    @property
    def cooldown(self) -> int:
        return self.countdown.remaining

    @property
    def can_submit(self) -> bool:
        return not self.loading and self.cooldown <= 0

    @property
    def button_label(self) -> str:
        if self.loading:
            return "Processing..."
        if self.cooldown > 0:
            action = "registering" if self.registering else "logging in"
            return f"Please wait {self.cooldown} seconds before {action}"
        return "Sign Up" if self.registering else "Sign In"

    def toggle_mode(self):
        self.error = False
        self.status = None
        self.mode = SIGN_IN if self.registering else REGISTER

    def oauth_url(self, provider: str = "google") -> str:
        return f"/auth/oauth/{provider}"

    async def submit(self, email: str, password: str, confirm_password: Optional[str] = None) -> bool:
        """Submit the form. Returns True when the route accepted the credentials."""
        if not self.can_submit:
            return False

        self.loading = True
        self.error = False
        self.status = ""
        try:
            if self.registering:
                if password != confirm_password:
                    self._fail(PASSWORD_MISMATCH)
                    return False
                status, data = await self.api.post("/api/register", {"email": email, "password": password})
                if status >= 400:
                    self._fail("Your register is failed: " + str(data.get("error")))
                    return False
                self.status = REGISTER_SUCCESS
            else:
                status, data = await self.api.post("/api/login", {"email": email, "password": password})
                if status >= 400:
                    self._fail("Your login is failed: " + str(data.get("error")))
                    return False
                self.status = LOGIN_SUCCESS
                self.navigate("/")
            self.countdown.start(self.cooldown_seconds)
            return True
        except (aiohttp.ClientError, ValueError) as e:
            logger.error("Authentication request failed: %s", e)
            self._fail("Your authentication is failed: " + str(e))
            return False
        finally:
            self.loading = False

    def _fail(self, message: str):
        self.error = True
        self.status = message

    def close(self):
        self.countdown.cancel()
