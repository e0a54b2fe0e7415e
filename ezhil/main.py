"""FastAPI application for the Ezhil backend."""

import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from ezhil import __version__
from ezhil.config import get_settings
from ezhil.database import check_db_ready
from ezhil.rate_limit import limiter
from ezhil.routers import (
    assistant_router,
    dashboard_router,
    health_router,
    leaderboard_router,
    reports_router,
)
from ezhil.services.report_store import InvalidTransitionError, ReportNotFoundError
from ezhil.tasks.scheduler import setup_scheduler, shutdown_scheduler
from ezhil.websocket import websocket_router

settings = get_settings()

logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Uploaded photos are served back to the feed from here.
upload_dir = Path(settings.upload_dir)
upload_dir.mkdir(parents=True, exist_ok=True)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Check the schema, then keep the leaderboard job running while serving."""
    logger.info(f"Starting Ezhil backend {__version__}")

    try:
        await check_db_ready()
    except Exception as e:
        logger.error(f"Database not ready: {e}")
        raise
    logger.info("Database ready")

    if not settings.gemini_api_key:
        logger.warning("GEMINI_API_KEY is not set; new reports will end up ai_failed")

    setup_scheduler()
    try:
        yield
    finally:
        shutdown_scheduler()
        logger.info("Ezhil backend shut down")


app = FastAPI(
    title="Ezhil API",
    description="Citizen waste reporting and city cleanliness scores for Madurai",
    version=__version__,
    lifespan=lifespan,
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ReportNotFoundError)
async def report_not_found_handler(request: Request, exc: ReportNotFoundError):
    return JSONResponse(status_code=404, content={"detail": "Report not found"})


@app.exception_handler(InvalidTransitionError)
async def invalid_transition_handler(request: Request, exc: InvalidTransitionError):
    """Lifecycle violations are conflicts with the report's current state."""
    logger.info(f"Rejected transition: {exc}")
    return JSONResponse(
        status_code=409,
        content={"detail": str(exc), "status": exc.current},
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Handle unhandled exceptions."""
    logger.error(f"Unhandled exception on {request.url.path}: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error"},
    )


app.include_router(health_router)
for router in (reports_router, dashboard_router, leaderboard_router, assistant_router):
    app.include_router(router, prefix=settings.api_v1_prefix)
app.include_router(websocket_router)  # /ws/dashboard

app.mount("/uploads", StaticFiles(directory=upload_dir), name="uploads")


@app.get("/")
async def root():
    """Root endpoint with API info."""
    return {
        "name": "Ezhil API",
        "version": __version__,
        "docs": "/docs",
        "health": "/health",
        "live": "/ws/dashboard",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "ezhil.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
    )
