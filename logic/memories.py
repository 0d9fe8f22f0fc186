"""
Memory records and the client that reads and writes them.

Memories live in the backend's memories table; attached photos go to the
storage bucket first and the row stores their public URL. An upload that
succeeds before a failed insert is left in the bucket.
"""

import asyncio
import logging
import time
from datetime import datetime
from typing import List, Optional

import aiohttp
from pydantic import BaseModel, Field

from logic.config import MEMORIES_TABLE
from logic.errors import BackendError
from logic.validation import (
    ValidationError,
    file_extension,
    sanitise_content,
    sanitise_latitude,
    sanitise_longitude,
)

logger = logging.getLogger(__name__)

SUBMIT_FAILED_MESSAGE = "Failed to save memory."


class Memory(BaseModel):
    """A geotagged note with an optional photo."""

    id: str
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    content: str = Field(..., min_length=1)
    image_url: Optional[str] = None
    created_at: datetime

    def formatted_date(self) -> str:
        """Date as shown in marker previews, e.g. 'March 5, 2025'."""
        return f"{self.created_at:%B} {self.created_at.day}, {self.created_at.year}"


class ImageUpload(BaseModel):
    """Photo attached to a memory submission."""

    filename: str
    data: bytes
    content_type: str = "application/octet-stream"


class MemorySubmitError(Exception):
    """Raised when a memory could not be saved."""

    def __init__(self, message: str = SUBMIT_FAILED_MESSAGE, cause: Optional[Exception] = None):
        super().__init__(message)
        self.message = message
        self.cause = cause


def _now_ms() -> int:
    return int(time.time() * 1000)


class MemoryStoreClient:
    """Fetch and persist memories through the backend client."""

    def __init__(self, backend, bucket: str = "memories", table: str = MEMORIES_TABLE, clock=_now_ms):
        self.backend = backend
        self.bucket = bucket
        self.table = table
        self.clock = clock

    async def fetch_all(self) -> List[Memory]:
        """Return every memory, or an empty list if the fetch fails.

        Rows that do not form a valid memory are logged and skipped; the
        rest are still returned.
        """
        try:
            rows = await self.backend.select(self.table)
        except (BackendError, aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            logger.error("Error fetching memories: %s", e)
            return []
        if not isinstance(rows, list):
            logger.error("Unexpected memories payload: %r", rows)
            return []

        memories = []
        for row in rows:
            try:
                memories.append(Memory(**row))
            except (TypeError, ValueError) as e:
                logger.warning("Skipping malformed memory row %r: %s", row, e)
        return memories

    async def submit(
        self,
        content: str,
        image: Optional[ImageUpload],
        latitude: float,
        longitude: float,
    ) -> Memory:
        """Upload the optional image, then insert one memory row.

        Raises:
            MemorySubmitError: If validation, the upload or the insert fails.
        """
        try:
            row = {
                "content": sanitise_content(content),
                "image_url": None,
                "latitude": sanitise_latitude(latitude),
                "longitude": sanitise_longitude(longitude),
            }
        except ValidationError as e:
            raise MemorySubmitError(str(e), e)

        try:
            if image is not None:
                file_name = f"{self.clock()}.{file_extension(image.filename)}"
                await self.backend.upload(self.bucket, file_name, image.data, image.content_type)
                row["image_url"] = self.backend.get_public_url(self.bucket, file_name)

            inserted = await self.backend.insert(self.table, [row])
            return Memory(**inserted[0])
        except (BackendError, aiohttp.ClientError, asyncio.TimeoutError, ValueError, LookupError, TypeError) as e:
            logger.error("Error saving memory: %s", e)
            raise MemorySubmitError(cause=e)
