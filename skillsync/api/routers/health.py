"""
Health Check Endpoint
"""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Request
from sqlalchemy import text
from sqlalchemy.orm import Session

from ... import __version__
from ..deps import get_db

router = APIRouter()


@router.get("/health")
async def health_check(request: Request, db: Session = Depends(get_db)):
    """Health check endpoint"""
    try:
        db.execute(text("SELECT 1"))
        db_status = "healthy"
    except Exception as e:
        db_status = f"unhealthy: {str(e)}"

    return {
        "status": "healthy" if db_status == "healthy" else "degraded",
        "database": db_status,
        "mirror": request.app.state.mirror.stats,
        "subscribers": request.app.state.bus.subscriber_count,
        "version": __version__,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
