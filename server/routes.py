"""
Basic page and API routes.

This module serves the map and sign-in pages and the small public
configuration the browser needs to set up the map and search box.
"""

import json
import logging
import os

from fastapi import APIRouter, Depends
from fastapi.responses import FileResponse, HTMLResponse, JSONResponse

from logic.config import (
    AUTH_COOLDOWN_SECONDS,
    DEFAULT_LOCATION,
    DEFAULT_ZOOM,
    MEMORY_SUCCESS_DELAY_SECONDS,
    SEARCH_BLUR_GRACE_SECONDS,
    SEARCH_DEBOUNCE_SECONDS,
    SEARCH_RESULT_LIMIT,
    get_settings,
)
from logic.auth_form import LOGIN_SUCCESS, PASSWORD_MISMATCH, REGISTER_SUCCESS
from logic.map_view import AUTH_PATH, NO_MEMORIES_MESSAGE
from logic.memory_form import FAILURE_ALERT
from logic.search import GeocodingClient, GeocodingError

logger = logging.getLogger(__name__)

router = APIRouter()

BASE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
STATIC_DIR = os.path.join(BASE_DIR, "static")
VERSION_PATH = os.path.join(BASE_DIR, "version.json")
DEFAULT_VERSION = "0.1.0"


@router.get("/", response_class=HTMLResponse)
def index():
    """Serve the map page.

    Returns:
        HTML page from static/index.html.
    """
    return FileResponse(os.path.join(STATIC_DIR, "index.html"))


@router.get("/auth", response_class=HTMLResponse)
def auth_page():
    """Serve the sign-in / registration page."""
    return FileResponse(os.path.join(STATIC_DIR, "auth.html"))


@router.get("/api/config")
def get_public_config():
    """Get the settings and messages the browser pages need.

    The pages take their timings and user-facing messages from here so they
    behave like the map, search and form controllers in `logic/`.
    """
    settings = get_settings()
    return {
        "default_location": list(DEFAULT_LOCATION),
        "zoom": DEFAULT_ZOOM,
        "geocode_url": settings.geocode_url,
        "geocode_language": settings.geocode_language,
        "search_debounce_ms": int(SEARCH_DEBOUNCE_SECONDS * 1000),
        "search_blur_grace_ms": int(SEARCH_BLUR_GRACE_SECONDS * 1000),
        "search_limit": SEARCH_RESULT_LIMIT,
        "memory_success_delay_ms": int(MEMORY_SUCCESS_DELAY_SECONDS * 1000),
        "auth_cooldown_seconds": AUTH_COOLDOWN_SECONDS,
        "auth_path": AUTH_PATH,
        "messages": {
            "no_memories": NO_MEMORIES_MESSAGE,
            "memory_failed": FAILURE_ALERT,
            "password_mismatch": PASSWORD_MISMATCH,
            "login_success": LOGIN_SUCCESS,
            "register_success": REGISTER_SUCCESS,
        },
    }


def get_geocoder() -> GeocodingClient:
    settings = get_settings()
    return GeocodingClient(settings.geocode_url, language=settings.geocode_language)


@router.get("/api/search")
async def search_places(q: str = "", geocoder: GeocodingClient = Depends(get_geocoder)):
    """Look up places for the map's search box.

    Returns:
        Dictionary with up to five places, or 502 if the geocoder failed.
    """
    if not q.strip():
        return {"places": []}
    try:
        places = await geocoder.search(q)
    except GeocodingError as e:
        logger.error("Place search failed for %r: %s", q, e)
        return JSONResponse({"error": "Search failed"}, status_code=502)
    return {"places": [p.model_dump() for p in places]}


@router.get("/api/version")
def get_version():
    """Get the application version.

    Returns:
        Dictionary with version string.
    """
    try:
        with open(VERSION_PATH, "r", encoding="utf-8") as f:
            version_data = json.load(f)
        return version_data
    except (FileNotFoundError, json.JSONDecodeError, KeyError):
        return {"version": DEFAULT_VERSION}
