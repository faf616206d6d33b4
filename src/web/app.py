"""
FastAPI application factory for the vision narrator control API.

Routes:
- /api/* -> REST API (status, voice controls, thresholds)
"""

from __future__ import annotations

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .routes import api


def create_app() -> FastAPI:
    """Create the FastAPI app and wire routes."""
    app = FastAPI(
        title="Vision Narrator",
        version="0.1.0",
        description="Spoken scene narration for vision-impaired users",
    )

    # CORS for companion apps on the local network
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:5173", "http://127.0.0.1:5173"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(api.router, prefix="/api")

    return app
