"""
Map of Us FastAPI Application

Main entry point for the Map of Us application, serving the map pages, the
memory API and the rate-limited authentication routes.

Author: Map of Us maintainers
Date: 2026-10-19
"""

import logging
import os

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles

from logic.config import get_settings
from server.auth import router as auth_router
from server.memories import router as memories_router
from server.routes import router as routes_router

# Load environment variables
load_dotenv()

logging.basicConfig(
    level=get_settings().log_level,
    format="[%(asctime)s] %(levelname)s %(name)s - %(message)s",
)

app = FastAPI(title="Map of Us")

# Include all routers
app.include_router(routes_router)
app.include_router(auth_router)
app.include_router(memories_router)

# ============================================================
# Static Files
# ============================================================

STATIC_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), "static")
app.mount("/static", StaticFiles(directory=STATIC_DIR), name="static")
