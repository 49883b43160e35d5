"""Bid submission — a freelancer's proposal against an open project."""
import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from ..db.models import Bid, BidStatus, Notification, Profile, Project, ProjectStatus
from ..errors import (
    AuthorizationError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from ..notifications.service import notify_new_bid
from .context import SessionContext
from .transaction import NO_HOOKS, PipelineHooks, unit_of_work

logger = logging.getLogger(__name__)


@dataclass
class BidSubmission:
    bid: Bid
    notification: Optional[Notification]
    mirror: str


def _validate_bid(amount, delivery_days, proposal) -> None:
    if amount is None or amount <= 0:
        raise ValidationError("Bid amount must be greater than zero")
    if delivery_days is None or delivery_days < 1:
        raise ValidationError("delivery_days must be at least 1")
    if not proposal or not proposal.strip():
        raise ValidationError("Proposal text is required")


def submit_bid(
    session: Session,
    ctx: SessionContext,
    project_id: str,
    amount: float,
    delivery_days: int,
    proposal: str,
    hooks: PipelineHooks = NO_HOOKS,
) -> BidSubmission:
    """Place a bid (status 'pending') and notify the project's client.

    A second bid by the same freelancer on the same project violates the
    (project_id, freelancer_id) unique constraint and raises ConflictError.

    Raises:
        AuthorizationError: caller is not a freelancer, or owns the project
        InvalidTransitionError: project is not open for bidding
        ValidationError: amount, delivery_days or proposal invalid
    """
    if not ctx.is_freelancer:
        raise AuthorizationError("Only freelancers can place bids")
    _validate_bid(amount, delivery_days, proposal)

    with unit_of_work(session, ctx, "submit_bid"):
        project = session.get(Project, project_id)
        if project is None:
            raise NotFoundError(f"Project {project_id} not found")
        if project.client_id == ctx.user_id:
            raise AuthorizationError("You cannot bid on your own project")
        if project.status != ProjectStatus.OPEN.value:
            raise InvalidTransitionError(
                f"Project {project_id} is '{project.status}' and not accepting bids"
            )
        bid = Bid(
            project_id=project_id,
            freelancer_id=ctx.user_id,
            amount=float(amount),
            delivery_days=int(delivery_days),
            proposal=proposal.strip(),
            status=BidStatus.PENDING.value,
        )
        session.add(bid)

    logger.info(
        f"Bid {bid.id} placed on project {project_id} by {ctx.user_id} "
        f"(amount={bid.amount}, days={bid.delivery_days})"
    )

    freelancer = session.get(Profile, ctx.user_id)
    freelancer_name = freelancer.full_name if freelancer else "A freelancer"
    notification = notify_new_bid(
        session,
        project.client_id,
        freelancer_name,
        project.title,
        bid.amount,
        project_id,
        bus=hooks.bus,
    )
    mirror = hooks.enqueue_mirror("bid", [bid.id])
    return BidSubmission(bid=bid, notification=notification, mirror=mirror)


def list_my_bids(session: Session, ctx: SessionContext) -> list[Bid]:
    """Caller's bids, newest first, with their projects loaded."""
    return list(session.scalars(
        select(Bid)
        .options(selectinload(Bid.project))
        .where(Bid.freelancer_id == ctx.user_id)
        .order_by(Bid.created_at.desc())
    ))
