"""Base FastAPI service with common functionality."""
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from blogengine import __version__
from blogengine.core.logging import get_logger, setup_logging


def create_app(service_name: str, lifespan: Optional[Callable[[FastAPI], Any]] = None) -> FastAPI:
    """Create FastAPI application with common configuration."""
    setup_logging(service_name)
    logger = get_logger(__name__)

    app = FastAPI(
        title=f"Blog Engine - {service_name.title()}",
        description=f"Kyndall blog engine {service_name} service",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
    )

    @app.get("/healthz")
    async def health_check():
        """Liveness check."""
        logger.debug(f"{service_name} health check")
        return {
            "ok": True,
            "service": service_name,
            "version": __version__,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    return app
