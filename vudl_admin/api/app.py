"""FastAPI application"""
import sys

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

from .. import __version__
from ..config import config
from .edit import router as edit_router
from .schemas import HealthResponse
from .utils import lifespan

logger.remove()
logger.add(sys.stderr, level=config.LOG_LEVEL)

# Create app
app = FastAPI(
    title="VuDL Admin",
    description="Repository hierarchy editing and state propagation service",
    version=__version__,
    lifespan=lifespan,
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(edit_router)


@app.get("/health", response_model=HealthResponse)
async def health_check():
    """Health check"""
    return HealthResponse(status="ok")
