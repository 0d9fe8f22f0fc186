"""
Place search against the geocoding service.

Typing restarts an 800 ms debounce; only the query standing when the timer
fires is sent. Requests already in flight are not cancelled, so a slow older
response may land after a newer one.
"""

import asyncio
import logging
from typing import Callable, List, Optional

import aiohttp
from pydantic import BaseModel

from logic.config import (
    SEARCH_BLUR_GRACE_SECONDS,
    SEARCH_DEBOUNCE_SECONDS,
    SEARCH_RESULT_LIMIT,
)
from logic.timers import Debouncer

logger = logging.getLogger(__name__)

IDLE = "idle"
DEBOUNCING = "debouncing"
QUERYING = "querying"
RESULTS = "results"
EMPTY = "empty"
ERROR = "error"

USER_AGENT = "map-of-us/0.1"


class Place(BaseModel):
    display_name: str
    lat: float
    lon: float


class GeocodingError(Exception):
    """Raised when the geocoding service fails or returns an unusable answer."""


class GeocodingClient:
    """Free-text place lookup (Nominatim-compatible /search endpoint)."""

    def __init__(
        self,
        base_url: str,
        language: str = "en",
        limit: int = SEARCH_RESULT_LIMIT,
        timeout: float = 10.0,
    ):
        self.base_url = base_url.rstrip("/")
        self.language = language
        self.limit = limit
        self.timeout = aiohttp.ClientTimeout(total=timeout)

    async def search(self, query: str) -> List[Place]:
        params = {"q": query, "format": "json", "limit": str(self.limit)}
        headers = {"Accept-Language": self.language, "User-Agent": USER_AGENT}
        try:
            async with aiohttp.ClientSession(timeout=self.timeout) as session:
                async with session.get(f"{self.base_url}/search", params=params, headers=headers) as resp:
                    if resp.status != 200:
                        raise GeocodingError(f"Geocoding failed ({resp.status})")
                    data = await resp.json(content_type=None)
        except asyncio.TimeoutError:
            raise GeocodingError("Geocoding request timed out")
        except (aiohttp.ClientError, ValueError) as e:
            raise GeocodingError(str(e))

        if not isinstance(data, list):
            raise GeocodingError("Unexpected geocoding response")
        try:
            return [Place(**item) for item in data[: self.limit]]
        except (TypeError, ValueError) as e:
            raise GeocodingError(f"Malformed geocoding result: {e}")


class PlaceSearch:
    """Debounced search box state.

    Args:
        geocoder: Object with an async `search(query)` returning places.
        on_select: Called with the chosen place (recenters the map).
    """

    def __init__(
        self,
        geocoder,
        on_select: Optional[Callable[[Place], None]] = None,
        debounce: float = SEARCH_DEBOUNCE_SECONDS,
        blur_grace: float = SEARCH_BLUR_GRACE_SECONDS,
    ):
        self.geocoder = geocoder
        self.on_select = on_select
        self.query = ""
        self.results: List[Place] = []
        self.state = IDLE
        self.show_results = False
        self._debouncer = Debouncer(debounce)
        self._blur_timer = Debouncer(blur_grace)

    def set_query(self, text: str):
        self.query = text
        if not text.strip():
            self._debouncer.cancel()
            self.results = []
            self.state = IDLE
            return
        self.state = DEBOUNCING
        self._debouncer.schedule(lambda: self._run(text))

    async def _run(self, text: str):
        self.state = QUERYING
        try:
            places = await self.geocoder.search(text)
        except (GeocodingError, asyncio.TimeoutError, aiohttp.ClientError) as e:
            logger.error("Search error: %s", e)
            self.results = []
            self.state = ERROR
            return
        self.results = places
        self.state = RESULTS if places else EMPTY
        self.show_results = True

    async def wait(self):
        await self._debouncer.wait()

    def select(self, place: Place):
        if self.on_select:
            self.on_select(place)
        self._debouncer.cancel()
        self.query = ""
        self.results = []
        self.state = IDLE
        self.show_results = False

    def focus(self):
        self._blur_timer.cancel()
        self.show_results = True

    def blur(self):
        async def hide():
            self.show_results = False

        self._blur_timer.schedule(hide)

    async def wait_blur(self):
        await self._blur_timer.wait()

    def close(self):
        self._debouncer.cancel()
        self._blur_timer.cancel()
