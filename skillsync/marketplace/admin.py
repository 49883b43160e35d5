"""Admin moderation: role grants, user listing, platform statistics."""
import logging
from typing import Optional

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session, selectinload

from ..db.models import (
    AppRole,
    Bid,
    Profile,
    Project,
    SupportTicket,
    TicketStatus,
    UserRole,
    UserRoleGrant,
)
from ..errors import AuthorizationError, NotFoundError
from ..pipeline.context import SessionContext, require_admin
from ..pipeline.transaction import unit_of_work

logger = logging.getLogger(__name__)


def _admin_grant(session: Session, user_id: str) -> Optional[UserRoleGrant]:
    return session.scalar(
        select(UserRoleGrant).where(
            UserRoleGrant.user_id == user_id,
            UserRoleGrant.role == AppRole.ADMIN.value,
        )
    )


def is_admin(session: Session, user_id: str) -> bool:
    return _admin_grant(session, user_id) is not None


def grant_admin(session: Session, ctx: SessionContext, user_id: str) -> UserRoleGrant:
    """Give a user the admin role. Granting twice returns the existing row."""
    require_admin(ctx)
    with unit_of_work(session, ctx, "grant_admin"):
        if session.get(Profile, user_id) is None:
            raise NotFoundError(f"Profile {user_id} not found")
        grant = _admin_grant(session, user_id)
        if grant is None:
            grant = UserRoleGrant(user_id=user_id, role=AppRole.ADMIN.value)
            session.add(grant)

    logger.info(f"Admin role granted to {user_id} by {ctx.user_id}")
    return grant


def revoke_admin(session: Session, ctx: SessionContext, user_id: str) -> None:
    require_admin(ctx)
    if user_id == ctx.user_id:
        raise AuthorizationError("You cannot revoke your own admin role")
    with unit_of_work(session, ctx, "revoke_admin"):
        grant = _admin_grant(session, user_id)
        if grant is None:
            raise NotFoundError(f"User {user_id} is not an admin")
        session.delete(grant)
    logger.info(f"Admin role revoked from {user_id} by {ctx.user_id}")


def list_users(
    session: Session,
    ctx: SessionContext,
    role: Optional[str] = None,
    search: Optional[str] = None,
) -> list[Profile]:
    """All profiles, newest first, with their role grants loaded."""
    require_admin(ctx)
    stmt = select(Profile).options(selectinload(Profile.roles))
    if role:
        stmt = stmt.where(Profile.user_role == role)
    if search:
        pattern = f"%{search}%"
        stmt = stmt.where(or_(Profile.full_name.ilike(pattern), Profile.email.ilike(pattern)))
    return list(session.scalars(stmt.order_by(Profile.created_at.desc())))


def platform_stats(session: Session, ctx: SessionContext) -> dict:
    """Counts for the admin dashboard."""
    require_admin(ctx)
    users_by_role = dict(session.execute(
        select(Profile.user_role, func.count(Profile.id)).group_by(Profile.user_role)
    ).all())
    projects_by_status = dict(session.execute(
        select(Project.status, func.count(Project.id)).group_by(Project.status)
    ).all())
    return {
        "total_users": sum(users_by_role.values()),
        "clients": users_by_role.get(UserRole.CLIENT.value, 0),
        "freelancers": users_by_role.get(UserRole.FREELANCER.value, 0),
        "total_projects": sum(projects_by_status.values()),
        "projects_by_status": projects_by_status,
        "total_bids": session.scalar(select(func.count(Bid.id))) or 0,
        "open_tickets": session.scalar(
            select(func.count(SupportTicket.id)).where(
                SupportTicket.status == TicketStatus.OPEN.value
            )
        ) or 0,
    }
