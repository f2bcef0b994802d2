"""
Opencast Bridge API - FastAPI application.

Provides endpoints for:
- Browsing Opencast series and episodes per configured instance
- Identifying whether an Opencast id is an episode or a series
- Series/episode choices for the series mapped to a course
"""
from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api.routers import catalog, courses
from opencast_bridge.integrations.opencast.transport import OpencastTransportError

logger = logging.getLogger(__name__)


def get_cors_origins() -> list[str]:
    """
    Get CORS allowed origins from environment.
    Set CORS_ALLOW_ORIGINS as comma-separated list of origins.
    Example: CORS_ALLOW_ORIGINS=https://lms.example.org,https://media.example.org
    """
    origins_str = os.getenv("CORS_ALLOW_ORIGINS", "")
    if not origins_str:
        return []
    return [origin.strip() for origin in origins_str.split(",") if origin.strip()]


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown events."""
    logger.info("Starting up Opencast Bridge API...")
    yield
    logger.info("Shutting down Opencast Bridge API...")


app = FastAPI(
    title="Opencast Bridge API",
    description="Read-only facade over the Opencast external API for course pages",
    version="0.1.0",
    lifespan=lifespan,
)

# If no origins are configured, allow all origins but disable credentials
cors_origins = get_cors_origins()
allow_credentials = len(cors_origins) > 0

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins if cors_origins else ["*"],
    allow_credentials=allow_credentials,
    allow_methods=["GET", "OPTIONS"],
    allow_headers=["*"],
)


@app.exception_handler(OpencastTransportError)
async def opencast_transport_error_handler(request: Request, exc: OpencastTransportError) -> JSONResponse:
    logger.error(f"Opencast unreachable while handling {request.url.path}: {exc}")
    # Don't leak upstream details to the client
    return JSONResponse(status_code=502, content={"detail": "Opencast request failed"})


app.include_router(catalog.router, prefix="/api/v1")
app.include_router(courses.router, prefix="/api/v1")


@app.get("/")
def root():
    """Health check endpoint."""
    return {"status": "ok", "service": "opencast-bridge"}


@app.get("/health")
def health():
    """Health check endpoint."""
    return {"status": "healthy"}
