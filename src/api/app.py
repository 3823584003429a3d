"""FastAPI application factory."""

from __future__ import annotations

import logging
import pathlib
from typing import TYPE_CHECKING

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from src.config.settings import get_settings

if TYPE_CHECKING:
    from fastapi import APIRouter

logger = logging.getLogger(__name__)

PROJECT_ROOT = pathlib.Path(__file__).resolve().parent.parent.parent


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        Configured FastAPI instance.
    """
    app = FastAPI(
        title="Adaptive Patient Studio",
        description="Standardized patient voice agents on ElevenLabs",
        version="0.1.0",
    )

    settings = get_settings()
    if not settings.elevenlabs_api_key or not settings.elevenlabs_agent_id:
        logger.warning(
            "elevenlabs_config_missing",
            extra={
                "has_api_key": bool(settings.elevenlabs_api_key),
                "has_agent_id": bool(settings.elevenlabs_agent_id),
            },
        )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(_health_router())

    from src.api.agents import router as agents_router
    from src.api.patients import router as patients_router

    app.include_router(agents_router)
    app.include_router(patients_router)

    _mount_public(app, PROJECT_ROOT / settings.public_dir)

    return app


def _mount_public(app: FastAPI, public_dir: pathlib.Path) -> None:
    """Mount the browser client static files if the directory exists.

    Must be mounted last so API routes take priority.

    Args:
        app: FastAPI application instance.
        public_dir: Directory holding index.html and assets.
    """
    if public_dir.is_dir():
        app.mount(
            "/",
            StaticFiles(directory=str(public_dir), html=True),
            name="public",
        )


def _health_router() -> APIRouter:
    """Create health check router.

    Returns:
        Router with health endpoints.
    """
    from fastapi import APIRouter

    router = APIRouter(tags=["health"])

    @router.get("/health")
    async def health() -> dict[str, str]:
        """Return application health status.

        Returns:
            Dict with status key.
        """
        return {"status": "ok"}

    return router


app = create_app()
