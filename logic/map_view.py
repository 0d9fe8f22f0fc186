"""
Interactive memory map state.

MapViewController ties together location lookup, the memory list, the
signed-in session and place search. It starts in `locating` and moves to
`ready` once a location (real or fallback) is known.
"""

import asyncio
import logging
import random
from typing import Callable, List, Optional

from pydantic import BaseModel

from logic.config import DEFAULT_ZOOM, MEMORY_SUCCESS_DELAY_SECONDS
from logic.geolocation import GeolocationResolver
from logic.memories import Memory, MemoryStoreClient
from logic.memory_form import MemoryFormController
from logic.search import Place, PlaceSearch
from logic.session import SessionTracker

logger = logging.getLogger(__name__)

LOCATING = "locating"
READY = "ready"

AUTH_PATH = "/auth"
NO_MEMORIES_MESSAGE = "No memories available yet!"


class PendingMarker(BaseModel):
    lat: float
    lng: float


class MarkerPreview(BaseModel):
    """Content shown when hovering or tapping a memory marker."""

    image_url: Optional[str]
    content: str
    date: str


class MapViewController:
    """Map page controller.

    Args:
        store: MemoryStoreClient.
        sessions: SessionTracker for the current user.
        geolocation: GeolocationResolver.
        search: Optional PlaceSearch; its selections recenter the map.
        navigate: Called with a path to move to another page.
        reload: Called with a path to fully reload the page.
        alert: Called with a message to show to the user.
        interactive: When False, map clicks are ignored.
        rng: Random source for the random memory action.
    """

    def __init__(
        self,
        store: MemoryStoreClient,
        sessions: SessionTracker,
        geolocation: GeolocationResolver,
        navigate: Callable[[str], None],
        reload: Callable[[str], None],
        alert: Callable[[str], None],
        search: Optional[PlaceSearch] = None,
        interactive: bool = True,
        rng: Optional[random.Random] = None,
        success_delay: float = MEMORY_SUCCESS_DELAY_SECONDS,
    ):
        self.store = store
        self.sessions = sessions
        self.geolocation = geolocation
        self.navigate = navigate
        self.reload = reload
        self.alert = alert
        self.search = search
        self.interactive = interactive
        self.rng = rng or random.Random()
        self.success_delay = success_delay

        self.state = LOCATING
        self.center: Optional[tuple] = None
        self.zoom = DEFAULT_ZOOM
        self.markers: List[Memory] = []
        self.pending: Optional[PendingMarker] = None
        self.form: Optional[MemoryFormController] = None

        self.geolocation.on_location(lambda loc: self.recenter(*loc))
        if self.search is not None:
            self.search.on_select = self._on_place_selected

    @property
    def user(self):
        return self.sessions.user

    @property
    def random_available(self) -> bool:
        return len(self.markers) > 0

    async def start(self):
        await self.sessions.start()
        await asyncio.gather(self.refresh(), self.geolocation.resolve())
        self.state = READY

    async def stop(self):
        self.sessions.stop()
        if self.search is not None:
            self.search.close()

    async def refresh(self) -> List[Memory]:
        self.markers = await self.store.fetch_all()
        return self.markers

    def recenter(self, lat: float, lng: float):
        self.center = (lat, lng)
        self.zoom = DEFAULT_ZOOM

    def _on_place_selected(self, place: Place):
        self.recenter(place.lat, place.lon)

    def click(self, lat: float, lng: float) -> Optional[PendingMarker]:
        """Handle a click on the map surface.

        Returns:
            The new pending marker, or None if the click placed nothing.
        """
        if not self.interactive or self.state != READY:
            return None

        if self.user is None:
            self.navigate(AUTH_PATH)
            return None

        self.pending = PendingMarker(lat=lat, lng=lng)
        self.form = MemoryFormController(
            self.store,
            lat,
            lng,
            on_success=self._memory_saved,
            on_cancel=self._cancel_pending,
            alert=self.alert,
            success_delay=self.success_delay,
        )
        return self.pending

    async def _memory_saved(self):
        self.pending = None
        self.form = None
        await self.refresh()

    def _cancel_pending(self):
        self.pending = None
        self.form = None

    def marker_preview(self, memory: Memory) -> MarkerPreview:
        return MarkerPreview(
            image_url=memory.image_url,
            content=memory.content,
            date=memory.formatted_date(),
        )

    def random_memory(self) -> Optional[Memory]:
        """Recenter on a uniformly chosen memory."""
        if not self.markers:
            self.alert(NO_MEMORIES_MESSAGE)
            return None

        memory = self.markers[self.rng.randrange(len(self.markers))]
        self.recenter(memory.latitude, memory.longitude)
        return memory

    async def sign_out(self):
        try:
            await self.sessions.auth.sign_out()
        except Exception as e:
            logger.error("Error signing out: %s", e)
        self.sessions.clear()
        self.reload("/")
