"""Caller identity passed explicitly into every pipeline operation."""

from dataclasses import dataclass
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..db.models import AppRole, Profile, Project, UserRole, UserRoleGrant
from ..errors import AuthorizationError, NotFoundError


@dataclass(frozen=True)
class SessionContext:
    """Who is acting. Built by the API auth layer, the CLI, or tests."""

    user_id: str
    role: str = UserRole.CLIENT.value
    is_admin: bool = False
    email: Optional[str] = None

    @property
    def is_client(self) -> bool:
        return self.role == UserRole.CLIENT.value

    @property
    def is_freelancer(self) -> bool:
        return self.role == UserRole.FREELANCER.value


def context_for(session: Session, user_id: str) -> SessionContext:
    """Build a SessionContext from the stored profile and role grants."""
    profile = session.get(Profile, user_id)
    if profile is None:
        raise NotFoundError(f"Profile {user_id} not found")
    admin = session.scalar(
        select(UserRoleGrant.id).where(
            UserRoleGrant.user_id == user_id,
            UserRoleGrant.role == AppRole.ADMIN.value,
        )
    )
    return SessionContext(
        user_id=profile.id,
        role=profile.user_role,
        is_admin=admin is not None,
        email=profile.email,
    )


def require_project_owner(ctx: SessionContext, project: Project) -> None:
    """Only the project's client (or an admin) may manage it."""
    if ctx.is_admin or project.client_id == ctx.user_id:
        return
    raise AuthorizationError(
        f"User {ctx.user_id} may not manage project {project.id}"
    )


def require_admin(ctx: SessionContext) -> None:
    if not ctx.is_admin:
        raise AuthorizationError("Admin role required")
