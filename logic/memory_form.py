"""
Submission form for a pending marker.
"""

import asyncio
import logging
from typing import Callable, Optional

from logic.config import MEMORY_SUCCESS_DELAY_SECONDS
from logic.memories import ImageUpload, Memory, MemorySubmitError

logger = logging.getLogger(__name__)

FAILURE_ALERT = "Failed to save memory. Check console for details."


class MemoryFormController:
    """Collect content and an optional photo for a memory at (lat, lng).

    On success the form shows its success state for `success_delay` seconds
    and then calls `on_success`. On failure it alerts and stays open.
    """

    def __init__(
        self,
        store,
        lat: float,
        lng: float,
        on_success: Callable[[], Optional[object]],
        on_cancel: Callable[[], None],
        alert: Callable[[str], None],
        success_delay: float = MEMORY_SUCCESS_DELAY_SECONDS,
    ):
        self.store = store
        self.lat = lat
        self.lng = lng
        self.on_success = on_success
        self.on_cancel = on_cancel
        self.alert = alert
        self.success_delay = success_delay
        self.loading = False
        self.success = False

    @property
    def disabled(self) -> bool:
        return self.loading or self.success

    async def submit(self, content: str, image: Optional[ImageUpload] = None) -> Optional[Memory]:
        if self.disabled:
            return None

        self.loading = True
        try:
            memory = await self.store.submit(content, image, self.lat, self.lng)
        except MemorySubmitError as e:
            logger.error("Error saving memory: %s", e.cause or e)
            self.alert(FAILURE_ALERT)
            self.success = False
            return None
        finally:
            self.loading = False

        self.success = True
        await asyncio.sleep(self.success_delay)
        self.success = False
        result = self.on_success()
        if asyncio.iscoroutine(result):
            await result
        return memory

    def cancel(self):
        if self.disabled:
            return
        self.on_cancel()
