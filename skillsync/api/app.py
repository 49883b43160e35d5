"""SkillSync Marketplace — FastAPI application.

REST API for:
- Projects, bids and the candidate pipeline (view → shortlist → interview → hire/reject)
- Notifications (list, read state, Server-Sent-Events stream)
- Profiles, messages, reviews, support tickets
- Admin moderation and mirror sync
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .. import __version__
from ..config import ServiceConfig, get_config
from ..db.connection import get_engine, get_session_factory, init_db
from ..errors import SkillSyncError
from ..mirror.backend import create_document_store
from ..mirror.job import MirrorJob
from ..mirror.queue import MirrorQueue
from ..notifications.bus import NotificationBus
from ..notifications.email import HireEmailSender
from .routers import (
    admin,
    analytics,
    bids,
    candidates,
    health,
    messages,
    notifications,
    profiles,
    projects,
    reviews,
    support,
)

logger = logging.getLogger(__name__)


def configure_logging(config: ServiceConfig) -> None:
    logging.basicConfig(level=config.logging.level, format=config.logging.format)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize database, event bus and mirror worker on startup."""
    config: ServiceConfig = app.state.config
    engine = app.state.engine
    init_db(engine)

    mirror_job = None
    if config.mirror.enabled:
        store = create_document_store(config.mirror)
        mirror_job = MirrorJob(app.state.session_factory, store, config.mirror.collection)
    app.state.mirror_job = mirror_job
    app.state.mirror = MirrorQueue(mirror_job, config.mirror)
    app.state.mirror.start()

    logger.info(f"SkillSync API v{app.version} started")
    logger.info(
        f"Mirror: {config.mirror.backend if mirror_job else 'disabled'}, "
        f"email: {'enabled' if app.state.email.is_enabled else 'disabled'}"
    )
    yield
    await app.state.mirror.stop()
    if mirror_job is not None:
        await mirror_job.store.close()
    logger.info("Shutting down")


async def skillsync_error_handler(request: Request, exc: SkillSyncError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


def create_app(config: Optional[ServiceConfig] = None) -> FastAPI:
    """Build the application. Tests pass their own config (in-memory DB)."""
    config = config or get_config()
    configure_logging(config)

    app = FastAPI(
        title="SkillSync Marketplace API",
        description="Freelance marketplace backend: projects, bids, candidate pipeline",
        version=__version__,
        lifespan=lifespan,
    )

    engine = get_engine(config.database.url, echo=config.database.echo)
    app.state.config = config
    app.state.engine = engine
    app.state.session_factory = get_session_factory(engine)
    app.state.bus = NotificationBus()
    app.state.email = HireEmailSender(config.email)
    app.state.mirror_job = None
    app.state.mirror = MirrorQueue(None, config.mirror)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors.allow_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(SkillSyncError, skillsync_error_handler)

    app.include_router(health.router, tags=["Health"])
    app.include_router(projects.router, prefix="/api/projects", tags=["Projects"])
    app.include_router(
        candidates.router,
        prefix="/api/projects/{project_id}/candidates",
        tags=["Candidates"],
    )
    app.include_router(bids.router, prefix="/api/bids", tags=["Bids"])
    app.include_router(notifications.router, prefix="/api/notifications", tags=["Notifications"])
    app.include_router(profiles.router, prefix="/api/profiles", tags=["Profiles"])
    app.include_router(messages.router, prefix="/api/messages", tags=["Messages"])
    app.include_router(reviews.router, prefix="/api/reviews", tags=["Reviews"])
    app.include_router(support.router, prefix="/api/support", tags=["Support"])
    app.include_router(admin.router, prefix="/api/admin", tags=["Admin"])
    app.include_router(analytics.router, prefix="/api/analytics", tags=["Analytics"])

    @app.get("/")
    async def root():
        return {
            "name": "SkillSync Marketplace API",
            "version": __version__,
            "docs": "/docs",
            "health": "/health",
        }

    return app
