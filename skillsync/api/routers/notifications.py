"""
Notifications API Endpoints

Includes a Server-Sent-Events stream fed by the in-process NotificationBus.
"""

import asyncio
import json
import logging
from typing import AsyncIterator, Awaitable, Callable, List, Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from ...notifications import service
from ...notifications.bus import EventFilter, NotificationBus, Subscription
from ...pipeline import SessionContext
from ..auth import get_session_context
from ..deps import get_bus, get_db
from ..schemas import NotificationResponse

logger = logging.getLogger(__name__)

router = APIRouter()

KEEPALIVE_SECONDS = 15.0


async def event_stream(
    sub: Subscription,
    is_disconnected: Callable[[], Awaitable[bool]],
    keepalive: float = KEEPALIVE_SECONDS,
) -> AsyncIterator[str]:
    """Format bus events as SSE frames until the client goes away."""
    try:
        while not await is_disconnected():
            try:
                event = await sub.get(timeout=keepalive)
            except asyncio.TimeoutError:
                yield ": keepalive\n\n"
                continue
            yield f"event: notification\ndata: {json.dumps(event.to_dict())}\n\n"
    finally:
        sub.close()


@router.get("", response_model=List[NotificationResponse])
async def list_notifications(
    unread_only: bool = False,
    limit: Optional[int] = None,
    db: Session = Depends(get_db),
    ctx: SessionContext = Depends(get_session_context),
):
    """Caller's notifications, newest first"""
    rows = service.list_notifications(db, ctx.user_id, unread_only=unread_only, limit=limit)
    return [NotificationResponse.model_validate(n) for n in rows]


@router.get("/unread-count")
async def unread_count(
    db: Session = Depends(get_db),
    ctx: SessionContext = Depends(get_session_context),
):
    return {"unread": service.unread_count(db, ctx.user_id)}


@router.get("/stream")
async def stream(
    request: Request,
    ctx: SessionContext = Depends(get_session_context),
    bus: NotificationBus = Depends(get_bus),
):
    """Realtime push of the caller's new notifications (text/event-stream)"""
    sub = bus.subscribe(EventFilter(user_id=ctx.user_id))
    logger.info(f"SSE subscriber connected: {ctx.user_id}")
    return StreamingResponse(
        event_stream(sub, request.is_disconnected),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache"},
    )


@router.post("/read-all")
async def mark_all_read(
    db: Session = Depends(get_db),
    ctx: SessionContext = Depends(get_session_context),
):
    return {"updated": service.mark_all_read(db, ctx.user_id)}


@router.post("/{notification_id}/read", response_model=NotificationResponse)
async def mark_read(
    notification_id: str,
    db: Session = Depends(get_db),
    ctx: SessionContext = Depends(get_session_context),
):
    return NotificationResponse.model_validate(
        service.mark_read(db, ctx.user_id, notification_id)
    )


@router.delete("/{notification_id}", status_code=204)
async def delete_notification(
    notification_id: str,
    db: Session = Depends(get_db),
    ctx: SessionContext = Depends(get_session_context),
):
    service.delete_notification(db, ctx.user_id, notification_id)


@router.delete("")
async def clear_notifications(
    db: Session = Depends(get_db),
    ctx: SessionContext = Depends(get_session_context),
):
    return {"deleted": service.clear_notifications(db, ctx.user_id)}
