"""Candidate Pipeline — client-side evaluation of a project's bids.

Moves a freelancer through the client's evaluation of one project and
keeps bid, shortlist and project state consistent.

Bid flow:
    sent/pending → viewed → shortlisted → accepted  (hire: project assigned)
                                        → rejected  (reject: project untouched)

Each action is one unit of work: it commits on success and rolls back
entirely on failure. Notifications and mirror sync run after the commit
and never undo it.

Usage:
    from skillsync.pipeline import hire, reject, shortlist

    ctx = SessionContext(user_id=client.id, role="client")
    result = hire(session, ctx, project_id, freelancer_id, bid_id=bid.id)
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.orm import Session, selectinload

from ..db.models import (
    Bid,
    BidStatus,
    Interview,
    InterviewStatus,
    Notification,
    PipelineEvent,
    Profile,
    Project,
    ProjectStatus,
    Shortlist,
    ShortlistStatus,
    UserRole,
    utcnow,
)
from ..errors import (
    ConflictError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from ..notifications.service import notify_project_status_change
from .context import SessionContext, require_project_owner
from .states import LIVE_BID_STATES, TERMINAL_SHORTLIST_STATES, check_bid_transition
from .transaction import NO_HOOKS, PipelineHooks, unit_of_work

logger = logging.getLogger(__name__)

HIRED_STATUS_TEXT = "In Progress - You've been hired!"


@dataclass
class HireResult:
    project: Project
    freelancer: Profile
    bid: Optional[Bid]
    shortlist: Optional[Shortlist]
    notification: Optional[Notification]
    mirror: str


@dataclass
class RejectResult:
    bid: Optional[Bid]
    shortlist: Optional[Shortlist]


# ---------------------------------------------------------------------------
# Lookups
# ---------------------------------------------------------------------------

def _get_project(session: Session, project_id: str) -> Project:
    project = session.get(Project, project_id)
    if project is None:
        raise NotFoundError(f"Project {project_id} not found")
    return project


def _get_bid(session: Session, bid_id: str, project_id: Optional[str] = None) -> Bid:
    """Load a bid; when project_id is given the bid must belong to it."""
    bid = session.get(Bid, bid_id)
    if bid is None or (project_id is not None and bid.project_id != project_id):
        raise NotFoundError(f"Bid {bid_id} not found")
    return bid


def _get_freelancer(session: Session, freelancer_id: str) -> Profile:
    freelancer = session.get(Profile, freelancer_id)
    if freelancer is None:
        raise NotFoundError(f"Freelancer {freelancer_id} not found")
    return freelancer


def _find_shortlist(
    session: Session, client_id: str, freelancer_id: str, project_id: str
) -> Optional[Shortlist]:
    return session.scalar(
        select(Shortlist).where(
            Shortlist.client_id == client_id,
            Shortlist.freelancer_id == freelancer_id,
            Shortlist.project_id == project_id,
        )
    )


def _candidate_bid(
    session: Session,
    project: Project,
    freelancer_id: str,
    bid_id: Optional[str],
) -> Optional[Bid]:
    """The supplied bid (checked against project/freelancer), or the live one."""
    if bid_id is not None:
        bid = _get_bid(session, bid_id)
        if bid.project_id != project.id or bid.freelancer_id != freelancer_id:
            raise ValidationError(
                f"Bid {bid_id} does not belong to freelancer {freelancer_id} "
                f"on project {project.id}"
            )
        return bid
    return session.scalar(
        select(Bid).where(
            Bid.project_id == project.id,
            Bid.freelancer_id == freelancer_id,
            Bid.status.in_(LIVE_BID_STATES),
        )
    )


# ---------------------------------------------------------------------------
# 1) View: sent/pending → viewed
# ---------------------------------------------------------------------------

def mark_viewed(
    session: Session,
    ctx: SessionContext,
    bid_id: str,
    project_id: Optional[str] = None,
) -> Bid:
    """Record that the client opened a proposal.

    Raises:
        InvalidTransitionError: bid is past sent/pending
    """
    with unit_of_work(session, ctx, "mark_viewed"):
        bid = _get_bid(session, bid_id, project_id)
        require_project_owner(ctx, bid.project)
        if bid.status not in (BidStatus.SENT.value, BidStatus.PENDING.value):
            raise InvalidTransitionError(
                f"Bid {bid_id} is '{bid.status}'; only sent/pending bids can be viewed"
            )
        bid.status = BidStatus.VIEWED.value

    logger.info(f"Bid {bid_id} viewed by {ctx.user_id}")
    return bid


# ---------------------------------------------------------------------------
# 2) Shortlist: sent/pending/viewed → shortlisted (+ shortlist upsert)
# ---------------------------------------------------------------------------

def shortlist(
    session: Session,
    ctx: SessionContext,
    bid_id: str,
    notes: Optional[str] = None,
    project_id: Optional[str] = None,
) -> Shortlist:
    """Mark a bid shortlisted and upsert the client's shortlist row.

    Shortlisting the same candidate twice leaves exactly one row.

    Args:
        session: SQLAlchemy session
        ctx: acting client (or admin)
        bid_id: Bid.id to shortlist
        notes: Optional private notes (kept when None)
        project_id: When given, the bid must belong to this project

    Returns:
        The Shortlist row for (client, freelancer, project)
    """
    with unit_of_work(session, ctx, "shortlist"):
        bid = _get_bid(session, bid_id, project_id)
        project = bid.project
        require_project_owner(ctx, project)
        # Re-shortlisting only refreshes the row
        if bid.status != BidStatus.SHORTLISTED.value:
            check_bid_transition(bid.id, bid.status, BidStatus.SHORTLISTED.value)
            bid.status = BidStatus.SHORTLISTED.value

        entry = _find_shortlist(session, project.client_id, bid.freelancer_id, project.id)
        if entry is None:
            entry = Shortlist(
                client_id=project.client_id,
                freelancer_id=bid.freelancer_id,
                project_id=project.id,
                notes=notes,
                status=ShortlistStatus.SHORTLISTED.value,
            )
            session.add(entry)
        else:
            entry.status = ShortlistStatus.SHORTLISTED.value
            if notes is not None:
                entry.notes = notes

    logger.info(
        f"Shortlisted freelancer {bid.freelancer_id} on project {project.id} "
        f"(bid {bid_id})"
    )
    return entry


def update_shortlist_notes(
    session: Session,
    ctx: SessionContext,
    project_id: str,
    freelancer_id: str,
    notes: Optional[str],
) -> Shortlist:
    with unit_of_work(session, ctx, "update_shortlist_notes"):
        project = _get_project(session, project_id)
        require_project_owner(ctx, project)
        entry = _find_shortlist(session, project.client_id, freelancer_id, project_id)
        if entry is None:
            raise NotFoundError(
                f"Freelancer {freelancer_id} is not shortlisted on project {project_id}"
            )
        entry.notes = notes
    return entry


# ---------------------------------------------------------------------------
# 3) Interviews (do not gate hire/reject)
# ---------------------------------------------------------------------------

def schedule_interview(
    session: Session,
    ctx: SessionContext,
    project_id: str,
    freelancer_id: str,
    scheduled_at: Optional[datetime],
    meeting_link: Optional[str] = None,
    notes: Optional[str] = None,
    duration_minutes: int = 60,
) -> Interview:
    """Schedule an interview with a candidate.

    Bid and shortlist state are left as they are.

    Raises:
        ValidationError: scheduled_at missing or duration not positive
        InvalidTransitionError: project is completed or cancelled
    """
    if scheduled_at is None:
        raise ValidationError("scheduled_at is required")
    if duration_minutes is None or duration_minutes < 1:
        raise ValidationError("duration_minutes must be at least 1")

    with unit_of_work(session, ctx, "schedule_interview"):
        project = _get_project(session, project_id)
        require_project_owner(ctx, project)
        if project.status not in (ProjectStatus.OPEN.value, ProjectStatus.IN_PROGRESS.value):
            raise InvalidTransitionError(
                f"Cannot schedule interviews on a {project.status} project"
            )
        _get_freelancer(session, freelancer_id)
        entry = _find_shortlist(session, project.client_id, freelancer_id, project_id)
        interview = Interview(
            client_id=project.client_id,
            freelancer_id=freelancer_id,
            project_id=project_id,
            shortlist_id=entry.id if entry is not None else None,
            scheduled_at=scheduled_at,
            duration_minutes=duration_minutes,
            meeting_link=meeting_link,
            notes=notes,
            status=InterviewStatus.SCHEDULED.value,
        )
        session.add(interview)

    logger.info(
        f"Interview scheduled: project {project_id}, freelancer {freelancer_id} "
        f"at {scheduled_at.isoformat()}"
    )
    return interview


def set_interview_status(
    session: Session,
    ctx: SessionContext,
    interview_id: str,
    status: str,
    project_id: Optional[str] = None,
) -> Interview:
    """scheduled → completed | cancelled."""
    if status not in (InterviewStatus.COMPLETED.value, InterviewStatus.CANCELLED.value):
        raise ValidationError(f"Invalid interview status '{status}'")

    with unit_of_work(session, ctx, "set_interview_status"):
        interview = session.get(Interview, interview_id)
        if interview is None:
            raise NotFoundError(f"Interview {interview_id} not found")
        if project_id is not None and interview.project_id != project_id:
            raise NotFoundError(f"Interview {interview_id} not found on project {project_id}")
        require_project_owner(ctx, _get_project(session, interview.project_id))
        if interview.status != InterviewStatus.SCHEDULED.value:
            raise InvalidTransitionError(
                f"Interview {interview_id} is already {interview.status}"
            )
        interview.status = status
    return interview


# ---------------------------------------------------------------------------
# 4) Hire: bid → accepted, shortlist → hired, project → in_progress
# ---------------------------------------------------------------------------

def hire(
    session: Session,
    ctx: SessionContext,
    project_id: str,
    freelancer_id: str,
    bid_id: Optional[str] = None,
    hooks: PipelineHooks = NO_HOOKS,
) -> HireResult:
    """Hire a freelancer onto an open project.

    One transaction covers the shortlist, the bid and the project. The
    project assignment is a conditional UPDATE guarded on status='open',
    so when two hires race exactly one commits and the other rolls back
    with a ConflictError.

    Args:
        session: SQLAlchemy session
        ctx: acting client (or admin)
        project_id: Project to staff
        freelancer_id: Freelancer to hire
        bid_id: The accepted bid; defaults to the freelancer's live bid

    Returns:
        HireResult (post-commit notification and mirror status included)

    Raises:
        ValidationError: profile is not a freelancer, or bid_id does not match
        NotFoundError: freelancer has neither a bid nor a shortlist row
        InvalidTransitionError: project not open, or bid/shortlist terminal
        ConflictError: project was assigned concurrently
    """
    with unit_of_work(session, ctx, "hire"):
        project = _get_project(session, project_id)
        require_project_owner(ctx, project)
        if project.status != ProjectStatus.OPEN.value:
            raise InvalidTransitionError(
                f"Project {project_id} is '{project.status}'; only open projects can hire"
            )
        freelancer = _get_freelancer(session, freelancer_id)
        if freelancer.user_role != UserRole.FREELANCER.value:
            raise ValidationError(f"Profile {freelancer_id} is not a freelancer")

        bid = _candidate_bid(session, project, freelancer_id, bid_id)
        entry = _find_shortlist(session, project.client_id, freelancer_id, project_id)
        if bid is None and entry is None:
            raise NotFoundError(
                f"Freelancer {freelancer_id} has no candidacy on project {project_id}"
            )

        if bid is not None:
            check_bid_transition(bid.id, bid.status, BidStatus.ACCEPTED.value)
            bid.status = BidStatus.ACCEPTED.value
        if entry is not None:
            if entry.status in TERMINAL_SHORTLIST_STATES:
                raise InvalidTransitionError(
                    f"Shortlist entry for {freelancer_id} is already {entry.status}"
                )
            entry.status = ShortlistStatus.HIRED.value
        session.flush()

        previous_freelancer = project.freelancer_id
        result = session.execute(
            update(Project)
            .where(Project.id == project_id, Project.status == ProjectStatus.OPEN.value)
            .values(
                freelancer_id=freelancer_id,
                status=ProjectStatus.IN_PROGRESS.value,
                updated_at=utcnow(),
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise ConflictError(f"Project {project_id} was assigned concurrently")

        # Bulk UPDATE bypasses the before_flush audit listener
        session.add_all([
            PipelineEvent(
                entity="project", entity_id=project_id, field_changed="status",
                old_value=ProjectStatus.OPEN.value,
                new_value=ProjectStatus.IN_PROGRESS.value,
                changed_by=ctx.user_id,
            ),
            PipelineEvent(
                entity="project", entity_id=project_id, field_changed="freelancer_id",
                old_value=previous_freelancer, new_value=freelancer_id,
                changed_by=ctx.user_id,
            ),
        ])

    session.refresh(project)
    logger.info(
        f"Hired freelancer {freelancer_id} on project {project_id} "
        f"(bid {bid.id if bid else '-'})"
    )

    notification = notify_project_status_change(
        session, freelancer_id, project.title, HIRED_STATUS_TEXT, bus=hooks.bus
    )
    mirror = hooks.enqueue_mirror("project", [project_id])
    return HireResult(
        project=project,
        freelancer=freelancer,
        bid=bid,
        shortlist=entry,
        notification=notification,
        mirror=mirror,
    )


# ---------------------------------------------------------------------------
# 5) Reject: bid → rejected, shortlist → rejected, project untouched
# ---------------------------------------------------------------------------

def reject(
    session: Session,
    ctx: SessionContext,
    project_id: str,
    freelancer_id: str,
    bid_id: Optional[str] = None,
) -> RejectResult:
    """Reject a candidate. Accepted/rejected rows cannot be rejected again.

    Raises:
        NotFoundError: freelancer has neither a live bid nor a shortlist row
        InvalidTransitionError: the bid or shortlist row is terminal
    """
    with unit_of_work(session, ctx, "reject"):
        project = _get_project(session, project_id)
        require_project_owner(ctx, project)

        bid = _candidate_bid(session, project, freelancer_id, bid_id)
        entry = _find_shortlist(session, project.client_id, freelancer_id, project_id)
        if bid is None and entry is None:
            raise NotFoundError(
                f"Freelancer {freelancer_id} has no candidacy on project {project_id}"
            )

        if bid is not None:
            check_bid_transition(bid.id, bid.status, BidStatus.REJECTED.value)
            bid.status = BidStatus.REJECTED.value
        if entry is not None:
            if entry.status in TERMINAL_SHORTLIST_STATES:
                raise InvalidTransitionError(
                    f"Shortlist entry for {freelancer_id} is already {entry.status}"
                )
            entry.status = ShortlistStatus.REJECTED.value

    logger.info(f"Rejected freelancer {freelancer_id} on project {project_id}")
    return RejectResult(bid=bid, shortlist=entry)


# ---------------------------------------------------------------------------
# 6) Reads for the "manage candidates" view
# ---------------------------------------------------------------------------

def list_bids(session: Session, ctx: SessionContext, project_id: str) -> list[Bid]:
    """Bids on a project, newest first.

    The owner (or an admin) sees every bid; anyone else only their own.
    """
    project = _get_project(session, project_id)
    stmt = (
        select(Bid)
        .options(selectinload(Bid.freelancer))
        .where(Bid.project_id == project_id)
        .order_by(Bid.created_at.desc())
    )
    if not (ctx.is_admin or project.client_id == ctx.user_id):
        stmt = stmt.where(Bid.freelancer_id == ctx.user_id)
    return list(session.scalars(stmt))


def list_shortlists(
    session: Session, ctx: SessionContext, project_id: str
) -> list[Shortlist]:
    project = _get_project(session, project_id)
    require_project_owner(ctx, project)
    return list(session.scalars(
        select(Shortlist)
        .options(selectinload(Shortlist.freelancer))
        .where(
            Shortlist.project_id == project_id,
            Shortlist.client_id == project.client_id,
        )
        .order_by(Shortlist.created_at.desc())
    ))


def list_interviews(
    session: Session, ctx: SessionContext, project_id: str
) -> list[Interview]:
    """Interviews for a project, soonest first."""
    project = _get_project(session, project_id)
    require_project_owner(ctx, project)
    return list(session.scalars(
        select(Interview)
        .options(selectinload(Interview.freelancer))
        .where(Interview.project_id == project_id)
        .order_by(Interview.scheduled_at.asc())
    ))


def candidate_board(session: Session, ctx: SessionContext, project_id: str) -> dict:
    """Everything the candidate-management view renders.

    Returns:
        {"project": Project, "bids": [...], "shortlists": [...], "interviews": [...]}
    """
    project = _get_project(session, project_id)
    require_project_owner(ctx, project)
    return {
        "project": project,
        "bids": list_bids(session, ctx, project_id),
        "shortlists": list_shortlists(session, ctx, project_id),
        "interviews": list_interviews(session, ctx, project_id),
    }
