"""Profiles — accounts, freelancer directory, completion score, verification."""
import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..db.models import AvailabilityStatus, Profile, UserRole, VerificationStatus
from ..errors import AuthorizationError, InvalidTransitionError, NotFoundError, ValidationError
from ..notifications.bus import NotificationBus
from ..notifications.service import notify_profile_view
from ..pipeline.context import SessionContext
from ..pipeline.transaction import unit_of_work

logger = logging.getLogger(__name__)

ROLES = {r.value for r in UserRole}
AVAILABILITY = {a.value for a in AvailabilityStatus}

UPDATABLE_FIELDS = (
    "full_name", "bio", "location", "hourly_rate", "experience_years",
    "portfolio_url", "avatar_url", "skills", "languages", "certifications",
    "availability_status",
)

# (field, weight); weights sum to 100
COMPLETION_WEIGHTS = (
    ("full_name", 10),
    ("bio", 15),
    ("location", 10),
    ("hourly_rate", 10),
    ("experience_years", 10),
    ("portfolio_url", 10),
    ("avatar_url", 10),
    ("skills", 10),
    ("languages", 10),
    ("certifications", 5),
)

COMPLETION_TIPS = (
    ("bio", "Add a compelling bio to introduce yourself"),
    ("location", "Add your location"),
    ("hourly_rate", "Set your hourly rate"),
    ("experience_years", "Add your years of experience"),
    ("portfolio_url", "Add your portfolio URL"),
    ("skills", "Add your skills"),
    ("languages", "Add languages you speak"),
    ("certifications", "Add your certifications"),
)


def _validate_fields(fields: dict) -> None:
    for key in ("hourly_rate", "experience_years"):
        value = fields.get(key)
        if value is not None and value < 0:
            raise ValidationError(f"{key} cannot be negative")
    status = fields.get("availability_status")
    if status is not None and status not in AVAILABILITY:
        raise ValidationError(f"Unknown availability status '{status}'")
    if "full_name" in fields and not (fields["full_name"] or "").strip():
        raise ValidationError("full_name cannot be empty")


def create_profile(
    session: Session,
    email: str,
    full_name: str,
    user_role: str = UserRole.CLIENT.value,
    **fields,
) -> Profile:
    """Create an account profile. Duplicate email → ConflictError."""
    if not email or "@" not in email:
        raise ValidationError("A valid email is required")
    if not full_name or not full_name.strip():
        raise ValidationError("full_name is required")
    if user_role not in ROLES:
        raise ValidationError(f"Unknown role '{user_role}'")
    unknown = set(fields) - set(UPDATABLE_FIELDS)
    if unknown:
        raise ValidationError(f"Unknown profile fields: {sorted(unknown)}")
    _validate_fields(fields)

    with unit_of_work(session, None, "create_profile"):
        profile = Profile(
            email=email.strip().lower(),
            full_name=full_name.strip(),
            user_role=user_role,
            **fields,
        )
        session.add(profile)

    logger.info(f"Profile created: {profile.id} ({profile.user_role})")
    return profile


def get_profile(session: Session, user_id: str) -> Profile:
    profile = session.get(Profile, user_id)
    if profile is None:
        raise NotFoundError(f"Profile {user_id} not found")
    return profile


def update_profile(
    session: Session,
    ctx: SessionContext,
    user_id: str,
    **changes,
) -> Profile:
    """Edit your own profile. The client/freelancer role cannot change."""
    if user_id != ctx.user_id:
        raise AuthorizationError("You can only edit your own profile")
    if "user_role" in changes:
        raise ValidationError("user_role cannot be changed")
    unknown = set(changes) - set(UPDATABLE_FIELDS)
    if unknown:
        raise ValidationError(f"Unknown profile fields: {sorted(unknown)}")
    _validate_fields(changes)

    with unit_of_work(session, ctx, "update_profile"):
        profile = get_profile(session, user_id)
        for key, value in changes.items():
            setattr(profile, key, value)
    return profile


def find_freelancers(
    session: Session,
    skill: Optional[str] = None,
    available_only: bool = False,
    search: Optional[str] = None,
) -> list[Profile]:
    """Freelancer directory, newest first.

    Skill matching is case-insensitive against the skills list.
    """
    stmt = select(Profile).where(Profile.user_role == UserRole.FREELANCER.value)
    if available_only:
        stmt = stmt.where(Profile.availability_status == AvailabilityStatus.AVAILABLE.value)
    if search:
        stmt = stmt.where(Profile.full_name.ilike(f"%{search}%"))
    profiles = list(session.scalars(stmt.order_by(Profile.created_at.desc())))
    if skill:
        wanted = skill.strip().lower()
        profiles = [
            p for p in profiles
            if any(s.lower() == wanted for s in (p.skills or []))
        ]
    return profiles


def view_profile(
    session: Session,
    ctx: SessionContext,
    profile_id: str,
    bus: Optional[NotificationBus] = None,
) -> Profile:
    """Fetch a profile and let its owner know who looked (not for self-views)."""
    profile = get_profile(session, profile_id)
    if profile_id != ctx.user_id:
        viewer = session.get(Profile, ctx.user_id)
        viewer_name = viewer.full_name if viewer else "Someone"
        notify_profile_view(session, profile_id, viewer_name, bus=bus)
    return profile


def _is_filled(value) -> bool:
    if value is None:
        return False
    if isinstance(value, str):
        return value.strip() != ""
    if isinstance(value, (list, tuple)):
        return len(value) > 0
    return bool(value)


def profile_completion(profile: Profile) -> int:
    """Weighted completion percentage (0-100)."""
    total = sum(weight for _, weight in COMPLETION_WEIGHTS)
    done = sum(
        weight for field, weight in COMPLETION_WEIGHTS
        if _is_filled(getattr(profile, field, None))
    )
    return round(done / total * 100)


def profile_completion_tips(profile: Profile) -> list[str]:
    return [
        tip for field, tip in COMPLETION_TIPS
        if not _is_filled(getattr(profile, field, None))
    ]


def request_verification(session: Session, ctx: SessionContext) -> Profile:
    """unverified | rejected → pending. Re-requesting while pending is a no-op."""
    with unit_of_work(session, ctx, "request_verification"):
        profile = get_profile(session, ctx.user_id)
        if profile.verification_status == VerificationStatus.VERIFIED.value:
            raise InvalidTransitionError("Profile is already verified")
        profile.verification_status = VerificationStatus.PENDING.value

    logger.info(f"Verification requested by {ctx.user_id}")
    return profile
