"""
Analytics API Endpoints
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...marketplace import analytics_for
from ...pipeline import SessionContext
from ..auth import get_session_context
from ..deps import get_db

router = APIRouter()


@router.get("/me")
async def my_analytics(
    db: Session = Depends(get_db),
    ctx: SessionContext = Depends(get_session_context),
):
    """Dashboard numbers for the caller's role"""
    return analytics_for(db, ctx)
