"""
Admin API Endpoints: moderation, platform stats, manual mirror sync
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from ...marketplace import (
    grant_admin,
    list_tickets,
    list_users,
    platform_stats,
    resolve_ticket,
    revoke_admin,
)
from ...mirror.job import MirrorJob
from ...notifications.bus import NotificationBus
from ...pipeline import SessionContext
from ..auth import get_admin_context
from ..deps import get_bus, get_db, get_mirror_job
from ..schemas import ProfileResponse, TicketResponse

logger = logging.getLogger(__name__)

router = APIRouter()


class UserResponse(ProfileResponse):
    is_admin: bool = False


class MirrorSyncRequest(BaseModel):
    action: str = "all"
    ids: Optional[List[str]] = None


@router.get("/users", response_model=List[UserResponse])
async def users(
    role: Optional[str] = None,
    search: Optional[str] = None,
    db: Session = Depends(get_db),
    ctx: SessionContext = Depends(get_admin_context),
):
    result = []
    for profile in list_users(db, ctx, role=role, search=search):
        user = UserResponse.model_validate(profile)
        user.is_admin = any(r.role == "admin" for r in profile.roles)
        result.append(user)
    return result


@router.post("/users/{user_id}/admin")
async def make_admin(
    user_id: str,
    db: Session = Depends(get_db),
    ctx: SessionContext = Depends(get_admin_context),
):
    grant = grant_admin(db, ctx, user_id)
    return {"user_id": grant.user_id, "role": grant.role}


@router.delete("/users/{user_id}/admin", status_code=204)
async def remove_admin(
    user_id: str,
    db: Session = Depends(get_db),
    ctx: SessionContext = Depends(get_admin_context),
):
    revoke_admin(db, ctx, user_id)


@router.get("/stats")
async def stats(
    db: Session = Depends(get_db),
    ctx: SessionContext = Depends(get_admin_context),
):
    return platform_stats(db, ctx)


@router.get("/tickets", response_model=List[TicketResponse])
async def tickets(
    status: Optional[str] = None,
    db: Session = Depends(get_db),
    ctx: SessionContext = Depends(get_admin_context),
):
    return [TicketResponse.model_validate(t) for t in list_tickets(db, ctx, status=status)]


@router.post("/tickets/{ticket_id}/resolve", response_model=TicketResponse)
async def resolve(
    ticket_id: str,
    db: Session = Depends(get_db),
    ctx: SessionContext = Depends(get_admin_context),
    bus: NotificationBus = Depends(get_bus),
):
    return TicketResponse.model_validate(resolve_ticket(db, ctx, ticket_id, bus=bus))


@router.post("/mirror/sync")
async def mirror_sync(
    data: MirrorSyncRequest,
    ctx: SessionContext = Depends(get_admin_context),
    job: Optional[MirrorJob] = Depends(get_mirror_job),
):
    """Run a mirror sync now and report per-document results"""
    if job is None:
        return {"status": "disabled", "synced": 0, "failed": 0, "details": []}
    logger.info(f"Manual mirror sync ({data.action}) requested by {ctx.user_id}")
    result = await job.sync(data.action, data.ids)
    return {"status": "completed", **result}
