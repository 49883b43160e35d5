"""
Bids API Endpoints (freelancer side)
"""

from typing import List

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from ...pipeline import SessionContext, list_my_bids
from ..auth import get_session_context
from ..deps import get_db
from ..schemas import BidResponse, ProjectResponse


class MyBidResponse(BidResponse):
    project: ProjectResponse


router = APIRouter()


@router.get("/mine", response_model=List[MyBidResponse])
async def my_bids(
    db: Session = Depends(get_db),
    ctx: SessionContext = Depends(get_session_context),
):
    """Caller's bids with their projects, newest first"""
    return [MyBidResponse.model_validate(b) for b in list_my_bids(db, ctx)]
