"""FastAPI application factory."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from sqlalchemy.exc import SQLAlchemyError

from buddy.activities.router import router as activities_router
from buddy.config import get_settings
from buddy.database import close_db, get_session_factory, init_db
from buddy.digest.router import router as digest_router
from buddy.health.router import router as health_router
from buddy.middleware import setup_middleware
from buddy.planner.router import router as planner_router
from buddy.progress.badges import seed_badges
from buddy.progress.router import router as progress_router
from buddy.redis_client import close_redis, init_redis

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup and shutdown lifecycle."""
    settings = get_settings()
    await init_db(settings.database_url)
    await init_redis(settings.redis_url)

    # Seed badge catalogue (idempotent)
    try:
        async with get_session_factory()() as db:
            await seed_badges(db)
    except SQLAlchemyError:
        logger.warning("Badge seeding failed (tables may not exist yet)", exc_info=True)

    yield

    await close_db()
    await close_redis()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Buddy Study Companion API",
        description="Progress ledger, study planner digests, and learning activities",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    setup_middleware(app, settings)
    app.include_router(health_router, tags=["Health"])
    app.include_router(progress_router)
    app.include_router(planner_router)
    app.include_router(activities_router)
    app.include_router(digest_router)

    return app


app = create_app()
