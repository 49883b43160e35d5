"""Request-scoped dependencies backed by app.state (set up in the lifespan)."""

from typing import Generator, Optional

from fastapi import Request
from sqlalchemy.orm import Session

from ..config import ServiceConfig
from ..mirror.job import MirrorJob
from ..notifications.bus import NotificationBus
from ..notifications.email import HireEmailSender
from ..pipeline.transaction import PipelineHooks


def get_db(request: Request) -> Generator[Session, None, None]:
    session = request.app.state.session_factory()
    try:
        yield session
    finally:
        session.close()


def get_config(request: Request) -> ServiceConfig:
    return request.app.state.config


def get_bus(request: Request) -> NotificationBus:
    return request.app.state.bus


def get_hooks(request: Request) -> PipelineHooks:
    return PipelineHooks(bus=request.app.state.bus, mirror=request.app.state.mirror)


def get_email(request: Request) -> HireEmailSender:
    return request.app.state.email


def get_mirror_job(request: Request) -> Optional[MirrorJob]:
    return request.app.state.mirror_job
