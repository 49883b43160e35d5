"""
Messages API Endpoints
"""

from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from ...marketplace import get_thread, list_conversations, send_message
from ...notifications.bus import NotificationBus
from ...pipeline import SessionContext
from ..auth import get_session_context
from ..deps import get_bus, get_db
from ..schemas import MessageResponse, ProfileSummary

router = APIRouter()


class MessageCreate(BaseModel):
    receiver_id: str
    content: str
    project_id: Optional[str] = None


class ConversationResponse(BaseModel):
    partner: Optional[ProfileSummary] = None
    last_message: MessageResponse
    unread: int


@router.post("", response_model=MessageResponse, status_code=201)
async def post_message(
    data: MessageCreate,
    db: Session = Depends(get_db),
    ctx: SessionContext = Depends(get_session_context),
    bus: NotificationBus = Depends(get_bus),
):
    message = send_message(
        db, ctx, data.receiver_id, data.content, project_id=data.project_id, bus=bus
    )
    return MessageResponse.model_validate(message)


@router.get("", response_model=List[ConversationResponse])
async def conversations(
    db: Session = Depends(get_db),
    ctx: SessionContext = Depends(get_session_context),
):
    """One entry per partner, latest first, with unread counts"""
    return [
        ConversationResponse(
            partner=ProfileSummary.model_validate(c["partner"]) if c["partner"] else None,
            last_message=MessageResponse.model_validate(c["last_message"]),
            unread=c["unread"],
        )
        for c in list_conversations(db, ctx)
    ]


@router.get("/{partner_id}", response_model=List[MessageResponse])
async def thread(
    partner_id: str,
    db: Session = Depends(get_db),
    ctx: SessionContext = Depends(get_session_context),
):
    """Chronological thread; the partner's messages are marked read"""
    return [MessageResponse.model_validate(m) for m in get_thread(db, ctx, partner_id)]
