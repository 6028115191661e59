# src/vecinu/main.py
"""Main entry point for the Vecinu application."""

from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware

from vecinu.api import ROUTERS
from vecinu.core.errors import register_exception_handlers
from vecinu.core.logging import configure_logging
from vecinu.core.settings import settings
from vecinu.services.container import ServiceContainer, build_services

configure_logging()
logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title="Vecinu API",
    description="Neighborhood social feed with community moderation",
    version=settings.app_version,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
)

# Add GZip middleware for compression
app.add_middleware(GZipMiddleware)

register_exception_handlers(app)

# Include API routers
for router in ROUTERS:
    app.include_router(router, prefix="/api")


@app.on_event("startup")
async def on_startup() -> None:
    if getattr(app.state, "services", None) is None:
        app.state.services = build_services()
    logger.info("%s %s started", settings.app_name, settings.app_version)


@app.on_event("shutdown")
async def on_shutdown() -> None:
    services: ServiceContainer | None = getattr(app.state, "services", None)
    if services is not None:
        await services.close()
        app.state.services = None


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint to verify the service is running."""
    return {"status": "ok"}


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint with basic information about the API."""
    return {
        "name": "Vecinu API",
        "version": settings.app_version,
        "description": "Neighborhood social feed with community moderation",
        "docs": "/docs",
        "redoc": "/redoc",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("vecinu.main:app", host="0.0.0.0", port=8000, reload=settings.debug)
