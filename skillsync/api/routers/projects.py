"""
Projects API Endpoints
"""

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from ...pipeline import (
    PipelineHooks,
    SessionContext,
    cancel_project,
    complete_project,
    get_project,
    list_bids,
    list_my_projects,
    list_open_projects,
    post_project,
    submit_bid,
)
from ..auth import get_session_context
from ..deps import get_db, get_hooks
from ..schemas import BidResponse, ProjectResponse

router = APIRouter()


# Pydantic schemas
class ProjectCreate(BaseModel):
    title: str
    description: str
    category: str = "other"
    budget_min: Optional[float] = None
    budget_max: Optional[float] = None
    deadline: Optional[datetime] = None
    duration: Optional[str] = None
    required_skills: List[str] = []


class BidCreate(BaseModel):
    amount: float
    delivery_days: int
    proposal: str


class BidSubmitted(BaseModel):
    bid: BidResponse
    mirror: str


# API Endpoints
@router.post("", response_model=ProjectResponse, status_code=201)
async def create_project(
    data: ProjectCreate,
    db: Session = Depends(get_db),
    ctx: SessionContext = Depends(get_session_context),
):
    """Post a new project (clients only)"""
    project = post_project(db, ctx, **data.model_dump())
    return ProjectResponse.model_validate(project)


@router.get("", response_model=List[ProjectResponse])
async def browse_projects(
    category: Optional[str] = None,
    search: Optional[str] = None,
    db: Session = Depends(get_db),
    ctx: SessionContext = Depends(get_session_context),
):
    """List open projects, newest first"""
    return [
        ProjectResponse.model_validate(p)
        for p in list_open_projects(db, category=category, search=search)
    ]


@router.get("/mine", response_model=List[ProjectResponse])
async def my_projects(
    db: Session = Depends(get_db),
    ctx: SessionContext = Depends(get_session_context),
):
    return [ProjectResponse.model_validate(p) for p in list_my_projects(db, ctx)]


@router.get("/{project_id}", response_model=ProjectResponse)
async def project_details(
    project_id: str,
    db: Session = Depends(get_db),
    ctx: SessionContext = Depends(get_session_context),
):
    return ProjectResponse.model_validate(get_project(db, project_id))


@router.post("/{project_id}/cancel", response_model=ProjectResponse)
async def cancel(
    project_id: str,
    db: Session = Depends(get_db),
    ctx: SessionContext = Depends(get_session_context),
):
    return ProjectResponse.model_validate(cancel_project(db, ctx, project_id))


@router.post("/{project_id}/complete", response_model=ProjectResponse)
async def complete(
    project_id: str,
    db: Session = Depends(get_db),
    ctx: SessionContext = Depends(get_session_context),
    hooks: PipelineHooks = Depends(get_hooks),
):
    """Mark an in-progress project completed"""
    return ProjectResponse.model_validate(complete_project(db, ctx, project_id, hooks=hooks))


@router.post("/{project_id}/bids", response_model=BidSubmitted, status_code=201)
async def place_bid(
    project_id: str,
    data: BidCreate,
    db: Session = Depends(get_db),
    ctx: SessionContext = Depends(get_session_context),
    hooks: PipelineHooks = Depends(get_hooks),
):
    """Submit a bid (freelancers only, one per project)"""
    result = submit_bid(
        db, ctx, project_id, data.amount, data.delivery_days, data.proposal, hooks=hooks
    )
    return BidSubmitted(bid=BidResponse.model_validate(result.bid), mirror=result.mirror)


@router.get("/{project_id}/bids", response_model=List[BidResponse])
async def project_bids(
    project_id: str,
    db: Session = Depends(get_db),
    ctx: SessionContext = Depends(get_session_context),
):
    """Bids on a project, newest first"""
    return [BidResponse.model_validate(b) for b in list_bids(db, ctx, project_id)]
