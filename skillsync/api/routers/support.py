"""
Support Ticket API Endpoints (user side; admin side lives in admin.py)
"""

from typing import List

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from ...marketplace import create_ticket, list_my_tickets
from ...pipeline import SessionContext
from ..auth import get_session_context
from ..deps import get_db
from ..schemas import TicketResponse

router = APIRouter()


class TicketCreate(BaseModel):
    subject: str
    description: str
    category: str = "general"
    priority: str = "medium"


@router.post("", response_model=TicketResponse, status_code=201)
async def open_ticket(
    data: TicketCreate,
    db: Session = Depends(get_db),
    ctx: SessionContext = Depends(get_session_context),
):
    ticket = create_ticket(db, ctx, **data.model_dump())
    return TicketResponse.model_validate(ticket)


@router.get("", response_model=List[TicketResponse])
async def my_tickets(
    db: Session = Depends(get_db),
    ctx: SessionContext = Depends(get_session_context),
):
    return [TicketResponse.model_validate(t) for t in list_my_tickets(db, ctx)]
