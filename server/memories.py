"""
Memory API routes.

Lists every memory for the map and accepts new memories (text plus an
optional photo) from signed-in users.
"""

import logging
from io import BytesIO
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Response, UploadFile
from PIL import Image, UnidentifiedImageError

from logic.config import get_settings
from logic.memories import ImageUpload, Memory, MemorySubmitError, MemoryStoreClient
from logic.session import Session
from logic.validation import ValidationError
from server.backend import BackendClient, get_backend
from user_context import require_session

logger = logging.getLogger(__name__)

router = APIRouter()

MAX_IMAGE_BYTES = 10 * 1024 * 1024


def get_memory_store(backend: BackendClient = Depends(get_backend)) -> MemoryStoreClient:
    return MemoryStoreClient(backend, bucket=get_settings().storage_bucket)


def memory_json(memory: Memory) -> dict:
    """Memory as sent to the map page, with its preview date."""
    return dict(memory.model_dump(mode="json"), date=memory.formatted_date())


def verify_image(data: bytes):
    """Check that uploaded bytes decode as an image.

    Raises:
        HTTPException: If the data is too large or not an image.
    """
    if len(data) > MAX_IMAGE_BYTES:
        raise HTTPException(status_code=400, detail="Image too large")
    try:
        with Image.open(BytesIO(data)) as img:
            img.verify()
    except (UnidentifiedImageError, OSError, SyntaxError):
        raise HTTPException(status_code=400, detail="Uploaded file is not an image")


@router.get("/api/memories")
async def list_memories(store: MemoryStoreClient = Depends(get_memory_store)):
    """Get every memory on the map.

    Returns:
        Dictionary with the list of memories (empty if the fetch failed).
    """
    memories = await store.fetch_all()
    return {"memories": [memory_json(m) for m in memories]}


@router.post("/api/memories")
async def create_memory(
    response: Response,
    content: str = Form(...),
    latitude: float = Form(...),
    longitude: float = Form(...),
    image: Optional[UploadFile] = File(None),
    session: Session = Depends(require_session),
    store: MemoryStoreClient = Depends(get_memory_store),
):
    """Save a memory at the given coordinates.

    Returns:
        The stored memory, 400 for invalid input, 500 if saving failed.
    """
    store.backend.session = session

    upload = None
    if image is not None and image.filename:
        data = await image.read()
        verify_image(data)
        upload = ImageUpload(
            filename=image.filename,
            data=data,
            content_type=image.content_type or "application/octet-stream",
        )

    try:
        memory = await store.submit(content, upload, latitude, longitude)
    except MemorySubmitError as e:
        response.status_code = 400 if isinstance(e.cause, ValidationError) else 500
        return {"error": e.message}

    logger.info("Memory %s saved by %s", memory.id, session.user.get("id"))
    return {"success": True, "memory": memory_json(memory)}
