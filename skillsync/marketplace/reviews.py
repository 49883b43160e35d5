"""Reviews and reputation.

Reputation score (0-100) weights:
    50% average rating, 30% review count (max at 20), 20% completed projects (max at 15)
"""
import logging
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session, selectinload

from ..db.models import Profile, Project, ProjectStatus, Review
from ..errors import AuthorizationError, InvalidTransitionError, NotFoundError, ValidationError
from ..notifications.bus import NotificationBus
from ..notifications.service import notify_new_review
from ..pipeline.context import SessionContext
from ..pipeline.transaction import unit_of_work

logger = logging.getLogger(__name__)

SCORE_LABELS = ((80, "Excellent"), (60, "Good"), (40, "Fair"))


def submit_review(
    session: Session,
    ctx: SessionContext,
    project_id: str,
    reviewee_id: str,
    rating: int,
    comment: Optional[str] = None,
    bus: Optional[NotificationBus] = None,
) -> Review:
    """Review the other party of a completed project.

    Raises:
        ValidationError: rating outside 1..5, or reviewing yourself
        InvalidTransitionError: project not completed
        AuthorizationError: reviewer/reviewee are not the project's parties
        ConflictError: already reviewed (unique per project/reviewer/reviewee)
    """
    if rating is None or not 1 <= rating <= 5:
        raise ValidationError("Rating must be between 1 and 5")
    if reviewee_id == ctx.user_id:
        raise ValidationError("You cannot review yourself")

    with unit_of_work(session, ctx, "submit_review"):
        project = session.get(Project, project_id)
        if project is None:
            raise NotFoundError(f"Project {project_id} not found")
        if project.status != ProjectStatus.COMPLETED.value:
            raise InvalidTransitionError("Only completed projects can be reviewed")
        parties = {project.client_id, project.freelancer_id}
        if ctx.user_id not in parties or reviewee_id not in parties:
            raise AuthorizationError("Only the client and the hired freelancer can review")
        review = Review(
            project_id=project_id,
            reviewer_id=ctx.user_id,
            reviewee_id=reviewee_id,
            rating=int(rating),
            comment=(comment or "").strip() or None,
        )
        session.add(review)

    logger.info(f"Review {review.id}: {ctx.user_id} → {reviewee_id} ({rating}★)")
    reviewer = session.get(Profile, ctx.user_id)
    notify_new_review(
        session, reviewee_id, reviewer.full_name if reviewer else "Someone", rating, bus=bus
    )
    return review


def list_reviews(session: Session, user_id: str, limit: int = 5) -> list[Review]:
    """Most recent reviews received by a user."""
    return list(session.scalars(
        select(Review)
        .options(selectinload(Review.reviewer))
        .where(Review.reviewee_id == user_id)
        .order_by(Review.created_at.desc())
        .limit(limit)
    ))


def reputation_score(average_rating: float, total_reviews: int, completed_projects: int) -> int:
    rating_part = (average_rating / 5) * 50
    reviews_part = min(total_reviews / 20, 1) * 30
    projects_part = min(completed_projects / 15, 1) * 20
    return round(rating_part + reviews_part + projects_part)


def reputation_label(score: int) -> str:
    for threshold, label in SCORE_LABELS:
        if score >= threshold:
            return label
    return "New"


def reputation(session: Session, user_id: str) -> dict:
    """Aggregate reputation for a user.

    Returns:
        {"average_rating", "total_reviews", "completed_projects", "score", "label"}
    """
    average, total = session.execute(
        select(func.avg(Review.rating), func.count(Review.id))
        .where(Review.reviewee_id == user_id)
    ).one()
    completed = session.scalar(
        select(func.count(Project.id)).where(
            Project.freelancer_id == user_id,
            Project.status == ProjectStatus.COMPLETED.value,
        )
    ) or 0
    average = float(average or 0)
    score = reputation_score(average, total or 0, completed)
    return {
        "average_rating": round(average, 2),
        "total_reviews": total or 0,
        "completed_projects": completed,
        "score": score,
        "label": reputation_label(score),
    }
