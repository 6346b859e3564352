"""LoopForge API: FastAPI application entry point."""

import logging
import os
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from loopapi.routes import plant, compensator
from loopcore import __version__
from loopcore.settings import AnalysisSettings

load_dotenv()

logging.basicConfig(
    level=os.getenv("LOOPFORGE_LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup and shutdown."""
    settings = AnalysisSettings.from_env()
    app.state.settings = settings
    logger.info(
        "Analysis settings: search %.6g-%.6g Hz, %d iterations",
        settings.search_start_hz, settings.search_end_hz, settings.max_iterations,
    )
    yield


app = FastAPI(
    title="LoopForge API",
    description="Frequency-domain plant analysis and compensator design",
    version=__version__,
    lifespan=lifespan,
)

# CORS: allow the editor's origin and local development
_editor_url = os.getenv("EDITOR_URL")
app.add_middleware(
    CORSMiddleware,
    allow_origins=[_editor_url] if _editor_url else [],
    allow_origin_regex=r"^https?://(localhost|127\.0\.0\.1)(:\d+)?$",
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register route modules
app.include_router(plant.router, prefix="/api", tags=["Plant"])
app.include_router(compensator.router, prefix="/api", tags=["Compensator"])


@app.get("/api/health")
async def health_check():
    return {"status": "healthy", "service": "loopforge-api", "version": __version__}
