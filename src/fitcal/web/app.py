"""FastAPI application for the fitcal schedule API."""

import logging
from contextlib import asynccontextmanager
from pathlib import Path

import aiosqlite
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .. import __version__
from ..config import configure_logging, get_settings
from ..data.template_loader import seed_default_templates
from ..data.workout_loader import seed_workout_templates
from ..db.engine import get_db_path, init_db
from ..errors import ScheduleError, StorageError
from .routers import active, calendar, daily_templates, schedule, templates, weekly_templates, workouts

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler - runs on startup and shutdown."""
    db_path = app.state.db_path
    if not db_path.exists():
        await init_db(db_path)
        await seed_workout_templates(db_path)
        await seed_default_templates(db_path)
    yield


def create_app(db_path: Path | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        db_path: SQLite file to serve from. Defaults to the configured path.
    """
    settings = get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title="fitcal",
        description="Recurring workout schedules, calendars and template generation",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.db_path = db_path or get_db_path()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(ScheduleError)
    async def schedule_error_handler(request: Request, exc: ScheduleError):
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(aiosqlite.Error)
    async def storage_error_handler(request: Request, exc: aiosqlite.Error):
        logger.error(
            "Storage failure on %s %s", request.method, request.url.path, exc_info=exc
        )
        error = StorageError("storage failure")
        return JSONResponse(status_code=error.status_code, content=error.to_dict())

    # Calendar first so /schedule/calendar is not read as a week route
    app.include_router(calendar.router)
    app.include_router(daily_templates.router)
    app.include_router(weekly_templates.router)
    app.include_router(active.router)
    app.include_router(templates.router)
    app.include_router(schedule.router)
    app.include_router(workouts.router)

    @app.get("/health")
    async def health():
        """Health check endpoint."""
        return {"status": "healthy", "version": __version__}

    return app
