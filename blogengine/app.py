"""
FastAPI application for the blog engine.

Read endpoints report health, run status and corpus stats. Trigger endpoints
start a generation run or a backfill sweep in the background; they require
a bearer token and answer 202 (started), 409 (another job holds the run
slot) or 401 (bad token).
"""

import secrets
from contextlib import asynccontextmanager
from typing import Any, Awaitable, Callable, Dict, Optional

import uvicorn
from fastapi import Depends, FastAPI, HTTPException, Query, Request, status
from fastapi.responses import JSONResponse

from blogengine import __version__
from blogengine.core.errors import ConcurrencyConflict, PersistenceFailure
from blogengine.core.logging import get_logger
from blogengine.core.settings import Settings, get_settings
from blogengine.services.base import create_app
from blogengine.services.container import Services, build_services

SERVICE_NAME = "blog-engine"

logger = get_logger(__name__)


def create_application(services: Optional[Services] = None, settings: Optional[Settings] = None) -> FastAPI:
    """
    Build the FastAPI app around a Services container.

    Args:
        services: Pre-built collaborators (tests inject fakes here)
        settings: Settings used when ``services`` is not given
    """
    services = services or build_services(settings or get_settings())
    settings = services.settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(f"{SERVICE_NAME} starting on port {settings.port}")
        if services.cms_ready:
            result = await services.run_reference_types()
            logger.info(f"Reference type migration: {result.updated} updated")
            if settings.run_startup_migrations:
                try:
                    services.runner.start("startup-migrations", services.run_startup_sweeps)
                except ConcurrencyConflict as e:
                    logger.warning(f"Startup sweeps not started: {e}")
        yield
        await services.runner.shutdown(timeout=settings.shutdown_grace_seconds)
        await services.aclose()
        logger.info(f"{SERVICE_NAME} stopped")

    app = create_app(SERVICE_NAME, lifespan=lifespan)
    app.state.services = services

    def require_token(request: Request) -> None:
        header = request.headers.get("Authorization", "")
        scheme, _, token = header.partition(" ")
        if scheme.lower() != "bearer" or not secrets.compare_digest(token.strip(), settings.api_secret):
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")

    def require_cms() -> None:
        if not services.cms_ready:
            raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="CMS not configured")

    def start_job(job: str, func: Callable[[], Awaitable[Any]], message: str) -> JSONResponse:
        try:
            services.runner.start(job, func)
        except ConcurrencyConflict as e:
            return JSONResponse(
                status_code=status.HTTP_409_CONFLICT,
                content={
                    "success": False,
                    "status": "busy",
                    "message": "A job is already running. Please wait.",
                    "runningJob": e.running_job,
                },
            )
        logger.info(f"Triggered job '{job}'")
        return JSONResponse(
            status_code=status.HTTP_202_ACCEPTED,
            content={"success": True, "status": "started", "job": job, "message": message},
        )

    def compact_last_run() -> Optional[Dict[str, Any]]:
        last = services.runner.status.last_run_result
        if last is None:
            return None
        return {
            "job": last.get("job"),
            "success": last.get("success"),
            "articlesGenerated": last.get("articlesGenerated", 0),
        }

    @app.get("/")
    @app.get("/health")
    async def health():
        """Liveness plus a compact view of the last run."""
        snapshot = services.runner.status.snapshot()
        return {
            "status": "healthy",
            "service": SERVICE_NAME,
            "version": __version__,
            "isRunning": snapshot["isRunning"],
            "lastRunTime": snapshot["lastRunTime"],
            "lastRunResult": compact_last_run(),
        }

    @app.get("/status")
    async def run_status():
        """Run slot state and the latest result of each job kind."""
        snapshot = services.runner.status.snapshot()
        snapshot["cmsConfigured"] = services.cms_ready
        snapshot["sources"] = {source.name: source.is_configured for source in services.sources}
        return snapshot

    @app.get("/stats")
    async def stats(_: None = Depends(require_cms)):
        """Article counters from the CMS."""
        try:
            corpus = await services.gateway.get_stats()
        except PersistenceFailure as e:
            logger.error(f"Stats query failed: {e}")
            raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))
        return corpus.to_dict()

    @app.post("/generate", dependencies=[Depends(require_token), Depends(require_cms)])
    @app.post("/trigger", dependencies=[Depends(require_token), Depends(require_cms)])
    async def trigger_generation():
        """Start a generation run followed by the backfill sweeps."""
        return start_job("generate", services.run_generation, "Article generation started")

    @app.post("/migrate-geo", dependencies=[Depends(require_token), Depends(require_cms)])
    @app.post("/backfill-geo", dependencies=[Depends(require_token), Depends(require_cms)])
    async def trigger_geo(limit: Optional[int] = Query(default=None, ge=1)):
        """Start a GEO backfill sweep."""
        return start_job(
            "migrate-geo",
            lambda: services.run_geo(limit=limit),
            "GEO migration started",
        )

    @app.post("/migrate-blog-geo", dependencies=[Depends(require_token), Depends(require_cms)])
    @app.post("/backfill-blog-geo", dependencies=[Depends(require_token), Depends(require_cms)])
    async def trigger_blog_post_geo(limit: Optional[int] = Query(default=None, ge=1)):
        """Start a GEO backfill sweep over blog posts."""
        return start_job(
            "migrate-blog-geo",
            lambda: services.run_blog_post_geo(limit=limit),
            "Blog post GEO migration started",
        )

    @app.post("/backfill-references", dependencies=[Depends(require_token), Depends(require_cms)])
    @app.post("/migrate-references", dependencies=[Depends(require_token), Depends(require_cms)])
    async def trigger_references(limit: Optional[int] = Query(default=None, ge=1)):
        """Start a references backfill sweep."""
        return start_job(
            "backfill-references",
            lambda: services.run_references(limit=limit),
            "References backfill started",
        )

    return app


def main() -> None:
    """Run the API server."""
    settings = get_settings()
    uvicorn.run(
        "blogengine.app:create_application",
        factory=True,
        host=settings.service_host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
