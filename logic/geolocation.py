"""
Device location lookup with a fixed fallback.

A single attempt is made per resolver; denial, errors and a missing
location capability all resolve to DEFAULT_LOCATION.
"""

import logging
from typing import Awaitable, Callable, List, Optional, Tuple

from logic.config import DEFAULT_LOCATION

logger = logging.getLogger(__name__)

Location = Tuple[float, float]


class GeolocationResolver:
    """Resolve the user's coordinates once.

    Args:
        locate: Coroutine function returning (latitude, longitude), or None
            when the environment has no location capability.
        fallback: Coordinates used when locating fails.
    """

    def __init__(
        self,
        locate: Optional[Callable[[], Awaitable[Location]]] = None,
        fallback: Location = DEFAULT_LOCATION,
    ):
        self.locate = locate
        self.fallback = fallback
        self.location: Optional[Location] = None
        self._listeners: List[Callable[[Location], None]] = []

    def on_location(self, listener: Callable[[Location], None]):
        self._listeners.append(listener)

    async def resolve(self) -> Location:
        if self.location is not None:
            return self.location

        if self.locate is None:
            logger.info("Geolocation unavailable, using fallback %s", self.fallback)
            location = self.fallback
        else:
            try:
                lat, lng = await self.locate()
                location = (float(lat), float(lng))
            except Exception as e:
                logger.warning("Error getting location: %s", e)
                location = self.fallback

        self.location = location
        for listener in list(self._listeners):
            listener(location)
        return location
