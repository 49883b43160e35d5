"""
Candidate Pipeline API Endpoints

Everything the client's "manage candidates" view needs for one project.
"""

import logging
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from ...notifications.email import HireEmailSender
from ...pipeline import (
    PipelineHooks,
    SessionContext,
    candidate_board,
    hire,
    mark_viewed,
    reject,
    schedule_interview,
    set_interview_status,
    shortlist,
    update_shortlist_notes,
)
from ..auth import get_session_context
from ..deps import get_db, get_email, get_hooks
from ..schemas import (
    BidResponse,
    InterviewResponse,
    ProfileSummary,
    ProjectResponse,
    ShortlistResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()


# Pydantic schemas
class BoardResponse(BaseModel):
    project: ProjectResponse
    bids: List[BidResponse]
    shortlists: List[ShortlistResponse]
    interviews: List[InterviewResponse]


class ShortlistCreate(BaseModel):
    bid_id: str
    notes: Optional[str] = None


class NotesUpdate(BaseModel):
    notes: Optional[str] = None


class InterviewCreate(BaseModel):
    freelancer_id: str
    scheduled_at: Optional[datetime] = None
    duration_minutes: int = 60
    meeting_link: Optional[str] = None
    notes: Optional[str] = None


class InterviewStatusUpdate(BaseModel):
    status: str


class Decision(BaseModel):
    freelancer_id: str
    bid_id: Optional[str] = None


class HireResponse(BaseModel):
    project: ProjectResponse
    freelancer: ProfileSummary
    bid: Optional[BidResponse] = None
    shortlist: Optional[ShortlistResponse] = None
    notified: bool
    email: str
    mirror: str


class RejectResponse(BaseModel):
    bid: Optional[BidResponse] = None
    shortlist: Optional[ShortlistResponse] = None


# API Endpoints
@router.get("", response_model=BoardResponse)
async def board(
    project_id: str,
    db: Session = Depends(get_db),
    ctx: SessionContext = Depends(get_session_context),
):
    """Bids (newest first), shortlist and interviews (soonest first)"""
    data = candidate_board(db, ctx, project_id)
    return BoardResponse(
        project=ProjectResponse.model_validate(data["project"]),
        bids=[BidResponse.model_validate(b) for b in data["bids"]],
        shortlists=[ShortlistResponse.model_validate(s) for s in data["shortlists"]],
        interviews=[InterviewResponse.model_validate(i) for i in data["interviews"]],
    )


@router.post("/bids/{bid_id}/view", response_model=BidResponse)
async def view_bid(
    project_id: str,
    bid_id: str,
    db: Session = Depends(get_db),
    ctx: SessionContext = Depends(get_session_context),
):
    bid = mark_viewed(db, ctx, bid_id, project_id=project_id)
    return BidResponse.model_validate(bid)


@router.post("/shortlist", response_model=ShortlistResponse)
async def add_to_shortlist(
    project_id: str,
    data: ShortlistCreate,
    db: Session = Depends(get_db),
    ctx: SessionContext = Depends(get_session_context),
):
    entry = shortlist(db, ctx, data.bid_id, notes=data.notes, project_id=project_id)
    return ShortlistResponse.model_validate(entry)


@router.patch("/shortlist/{freelancer_id}", response_model=ShortlistResponse)
async def edit_shortlist_notes(
    project_id: str,
    freelancer_id: str,
    data: NotesUpdate,
    db: Session = Depends(get_db),
    ctx: SessionContext = Depends(get_session_context),
):
    entry = update_shortlist_notes(db, ctx, project_id, freelancer_id, data.notes)
    return ShortlistResponse.model_validate(entry)


@router.post("/interviews", response_model=InterviewResponse, status_code=201)
async def add_interview(
    project_id: str,
    data: InterviewCreate,
    db: Session = Depends(get_db),
    ctx: SessionContext = Depends(get_session_context),
):
    interview = schedule_interview(
        db, ctx, project_id, data.freelancer_id, data.scheduled_at,
        meeting_link=data.meeting_link,
        notes=data.notes,
        duration_minutes=data.duration_minutes,
    )
    return InterviewResponse.model_validate(interview)


@router.patch("/interviews/{interview_id}", response_model=InterviewResponse)
async def update_interview(
    project_id: str,
    interview_id: str,
    data: InterviewStatusUpdate,
    db: Session = Depends(get_db),
    ctx: SessionContext = Depends(get_session_context),
):
    return InterviewResponse.model_validate(
        set_interview_status(db, ctx, interview_id, data.status, project_id=project_id)
    )


@router.post("/hire", response_model=HireResponse)
async def hire_freelancer(
    project_id: str,
    data: Decision,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    ctx: SessionContext = Depends(get_session_context),
    hooks: PipelineHooks = Depends(get_hooks),
    email: HireEmailSender = Depends(get_email),
):
    """Hire a freelancer; the project moves to in_progress.

    The confirmation email goes out after the response (best-effort).
    """
    result = hire(db, ctx, project_id, data.freelancer_id, bid_id=data.bid_id, hooks=hooks)

    email_status = "disabled"
    if email.is_enabled:
        client = result.project.client
        background_tasks.add_task(
            email.send_hire_confirmation,
            client_email=client.email,
            client_name=client.full_name,
            freelancer_name=result.freelancer.full_name,
            project_title=result.project.title,
            bid_amount=result.bid.amount if result.bid else None,
            delivery_days=result.bid.delivery_days if result.bid else None,
        )
        email_status = "queued"

    return HireResponse(
        project=ProjectResponse.model_validate(result.project),
        freelancer=ProfileSummary.model_validate(result.freelancer),
        bid=BidResponse.model_validate(result.bid) if result.bid else None,
        shortlist=ShortlistResponse.model_validate(result.shortlist) if result.shortlist else None,
        notified=result.notification is not None,
        email=email_status,
        mirror=result.mirror,
    )


@router.post("/reject", response_model=RejectResponse)
async def reject_freelancer(
    project_id: str,
    data: Decision,
    db: Session = Depends(get_db),
    ctx: SessionContext = Depends(get_session_context),
):
    result = reject(db, ctx, project_id, data.freelancer_id, bid_id=data.bid_id)
    return RejectResponse(
        bid=BidResponse.model_validate(result.bid) if result.bid else None,
        shortlist=ShortlistResponse.model_validate(result.shortlist) if result.shortlist else None,
    )
