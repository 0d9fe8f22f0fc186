"""
Configuration management module.

This module loads the application settings from environment variables
(optionally from a .env file) and holds the fixed constants shared by the
map, search and authentication flows.
"""

import logging
import os
import secrets
from functools import lru_cache
from typing import Optional, Tuple

from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)

# Jakarta, used when the device location is unavailable
DEFAULT_LOCATION: Tuple[float, float] = (-6.2088, 106.8456)
DEFAULT_ZOOM = 13

AUTH_COOLDOWN_MS = 30_000
AUTH_COOLDOWN_SECONDS = AUTH_COOLDOWN_MS // 1000

SEARCH_DEBOUNCE_SECONDS = 0.8
SEARCH_BLUR_GRACE_SECONDS = 0.2
SEARCH_RESULT_LIMIT = 5

MEMORY_SUCCESS_DELAY_SECONDS = 2.0
MEMORIES_TABLE = "memories"


class Settings:
    """Application settings loaded from environment variables."""

    def __init__(self):
        self.backend_url: str = os.getenv("BACKEND_URL", "http://localhost:54321").rstrip("/")
        self.backend_anon_key: Optional[str] = os.getenv("BACKEND_ANON_KEY")
        self.site_url: str = os.getenv("SITE_URL", "http://localhost:3000").rstrip("/")
        self.storage_bucket: str = os.getenv("STORAGE_BUCKET", "memories")
        self.geocode_url: str = os.getenv(
            "GEOCODE_URL", "https://nominatim.openstreetmap.org"
        ).rstrip("/")
        self.geocode_language: str = os.getenv("GEOCODE_LANGUAGE", "en")
        self.cooldown_store: str = os.getenv("COOLDOWN_STORE", "memory").lower()
        self.database_url: str = os.getenv("DATABASE_URL", "sqlite:///./map_of_us.db")
        self.cooldown_max_entries: int = int(os.getenv("COOLDOWN_MAX_ENTRIES", "10000"))
        self.log_level: str = os.getenv("LOG_LEVEL", "INFO").upper()

        session_secret = os.getenv("SESSION_SECRET_KEY")
        if not session_secret:
            session_secret = secrets.token_urlsafe(32)
            logger.warning(
                "SESSION_SECRET_KEY not set. Using temporary key. Set this in .env for production."
            )
        self.session_secret_key: str = session_secret

        if not self.backend_anon_key:
            logger.warning("BACKEND_ANON_KEY not set. Backend requests will be rejected.")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
