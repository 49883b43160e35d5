"""
Reviews API Endpoints
"""

from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from ...marketplace import list_reviews, reputation, submit_review
from ...notifications.bus import NotificationBus
from ...pipeline import SessionContext
from ..auth import get_session_context
from ..deps import get_bus, get_db
from ..schemas import ReviewResponse

router = APIRouter()


class ReviewCreate(BaseModel):
    project_id: str
    reviewee_id: str
    rating: int
    comment: Optional[str] = None


class ReputationResponse(BaseModel):
    average_rating: float
    total_reviews: int
    completed_projects: int
    score: int
    label: str


@router.post("", response_model=ReviewResponse, status_code=201)
async def create_review(
    data: ReviewCreate,
    db: Session = Depends(get_db),
    ctx: SessionContext = Depends(get_session_context),
    bus: NotificationBus = Depends(get_bus),
):
    review = submit_review(
        db, ctx, data.project_id, data.reviewee_id, data.rating,
        comment=data.comment, bus=bus,
    )
    return ReviewResponse.model_validate(review)


@router.get("/{user_id}", response_model=List[ReviewResponse])
async def reviews_for(
    user_id: str,
    limit: int = 5,
    db: Session = Depends(get_db),
    ctx: SessionContext = Depends(get_session_context),
):
    return [ReviewResponse.model_validate(r) for r in list_reviews(db, user_id, limit=limit)]


@router.get("/{user_id}/reputation", response_model=ReputationResponse)
async def reputation_for(
    user_id: str,
    db: Session = Depends(get_db),
    ctx: SessionContext = Depends(get_session_context),
):
    return reputation(db, user_id)
