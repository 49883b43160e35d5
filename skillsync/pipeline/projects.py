"""Project lifecycle: post, browse, cancel, complete."""
import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from ..db.models import Project, ProjectCategory, ProjectStatus
from ..errors import AuthorizationError, NotFoundError, ValidationError
from ..notifications.service import notify_project_status_change
from .context import SessionContext, require_project_owner
from .states import check_project_transition
from .transaction import NO_HOOKS, PipelineHooks, unit_of_work

logger = logging.getLogger(__name__)

CATEGORIES = {c.value for c in ProjectCategory}


def post_project(
    session: Session,
    ctx: SessionContext,
    title: str,
    description: str,
    category: str = ProjectCategory.OTHER.value,
    budget_min: Optional[float] = None,
    budget_max: Optional[float] = None,
    deadline: Optional[datetime] = None,
    duration: Optional[str] = None,
    required_skills: Optional[list[str]] = None,
) -> Project:
    """Create an open project owned by the calling client.

    Raises:
        AuthorizationError: caller is not a client
        ValidationError: missing title/description, unknown category,
            or budget_min > budget_max
    """
    if not ctx.is_client:
        raise AuthorizationError("Only clients can post projects")
    if not title or not title.strip():
        raise ValidationError("Project title is required")
    if not description or not description.strip():
        raise ValidationError("Project description is required")
    if category not in CATEGORIES:
        raise ValidationError(f"Unknown category '{category}'")
    for label, value in (("budget_min", budget_min), ("budget_max", budget_max)):
        if value is not None and value < 0:
            raise ValidationError(f"{label} cannot be negative")
    if budget_min is not None and budget_max is not None and budget_min > budget_max:
        raise ValidationError("budget_min cannot exceed budget_max")

    with unit_of_work(session, ctx, "post_project"):
        project = Project(
            client_id=ctx.user_id,
            title=title.strip(),
            description=description.strip(),
            category=category,
            budget_min=budget_min,
            budget_max=budget_max,
            deadline=deadline,
            duration=duration,
            required_skills=[s.strip() for s in (required_skills or []) if s.strip()],
            status=ProjectStatus.OPEN.value,
        )
        session.add(project)

    logger.info(f"Project posted: {project.id} '{project.title}' by {ctx.user_id}")
    return project


def get_project(session: Session, project_id: str) -> Project:
    project = session.get(Project, project_id)
    if project is None:
        raise NotFoundError(f"Project {project_id} not found")
    return project


def list_open_projects(
    session: Session,
    category: Optional[str] = None,
    search: Optional[str] = None,
    limit: Optional[int] = None,
) -> list[Project]:
    """Open projects, newest first. search matches title or description."""
    stmt = select(Project).where(Project.status == ProjectStatus.OPEN.value)
    if category:
        stmt = stmt.where(Project.category == category)
    if search:
        pattern = f"%{search}%"
        stmt = stmt.where(or_(
            Project.title.ilike(pattern),
            Project.description.ilike(pattern),
        ))
    stmt = stmt.order_by(Project.created_at.desc())
    if limit:
        stmt = stmt.limit(limit)
    return list(session.scalars(stmt))


def list_my_projects(session: Session, ctx: SessionContext) -> list[Project]:
    """Projects the caller posted (client) or was hired onto (freelancer)."""
    column = Project.freelancer_id if ctx.is_freelancer else Project.client_id
    return list(session.scalars(
        select(Project)
        .where(column == ctx.user_id)
        .order_by(Project.created_at.desc())
    ))


def cancel_project(session: Session, ctx: SessionContext, project_id: str) -> Project:
    """open | in_progress → cancelled. Completed projects are immutable."""
    with unit_of_work(session, ctx, "cancel_project"):
        project = get_project(session, project_id)
        require_project_owner(ctx, project)
        check_project_transition(project_id, project.status, ProjectStatus.CANCELLED.value)
        project.status = ProjectStatus.CANCELLED.value

    logger.info(f"Project {project_id} cancelled by {ctx.user_id}")
    return project


def complete_project(
    session: Session,
    ctx: SessionContext,
    project_id: str,
    hooks: PipelineHooks = NO_HOOKS,
) -> Project:
    """in_progress → completed, then notify the assigned freelancer."""
    with unit_of_work(session, ctx, "complete_project"):
        project = get_project(session, project_id)
        require_project_owner(ctx, project)
        check_project_transition(project_id, project.status, ProjectStatus.COMPLETED.value)
        project.status = ProjectStatus.COMPLETED.value

    logger.info(f"Project {project_id} completed")
    if project.freelancer_id:
        notify_project_status_change(
            session, project.freelancer_id, project.title, "Completed", bus=hooks.bus
        )
    return project
