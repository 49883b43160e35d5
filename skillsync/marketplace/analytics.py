"""Per-user dashboard analytics."""
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from ..db.models import Bid, BidStatus, Project, ProjectStatus, Review
from ..pipeline.context import SessionContext


def _average_rating(session: Session, user_id: str) -> float:
    avg = session.scalar(select(func.avg(Review.rating)).where(Review.reviewee_id == user_id))
    return round(float(avg or 0), 2)


def client_analytics(session: Session, user_id: str) -> dict:
    statuses = list(session.scalars(select(Project.status).where(Project.client_id == user_id)))
    return {
        "total_projects": len(statuses),
        "active_projects": statuses.count(ProjectStatus.IN_PROGRESS.value),
        "completed_projects": statuses.count(ProjectStatus.COMPLETED.value),
        "average_rating": _average_rating(session, user_id),
    }


def freelancer_analytics(session: Session, user_id: str) -> dict:
    """Accepted bids stand in for projects won; earnings are their total."""
    rows = session.execute(
        select(Bid.status, Bid.amount, Project.status)
        .join(Project, Bid.project_id == Project.id)
        .where(Bid.freelancer_id == user_id)
    ).all()
    accepted = [r for r in rows if r[0] == BidStatus.ACCEPTED.value]
    return {
        "total_projects": len(accepted),
        "active_projects": sum(1 for r in accepted if r[2] == ProjectStatus.IN_PROGRESS.value),
        "completed_projects": sum(1 for r in accepted if r[2] == ProjectStatus.COMPLETED.value),
        "total_bids": len(rows),
        "total_earnings": sum(r[1] for r in accepted),
        "average_rating": _average_rating(session, user_id),
    }


def analytics_for(session: Session, ctx: SessionContext) -> dict:
    if ctx.is_freelancer:
        return {"role": ctx.role, **freelancer_analytics(session, ctx.user_id)}
    return {"role": ctx.role, **client_analytics(session, ctx.user_id)}
