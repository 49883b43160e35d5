"""SQLAlchemy 2.0 models for the marketplace.

Tables:
- profiles / user_roles:          accounts, client/freelancer role, admin grants
- projects / bids:                postings and the proposals against them
- shortlists / interviews:        client-side candidate evaluation
- notifications / messages:       side-channel and direct messages
- reviews / support_tickets:      reputation and moderation
- pipeline_events:                audit trail for status changes
"""

import enum
import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import (
    Boolean,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    JSON,
    String,
    Text,
    UniqueConstraint,
    event,
    inspect,
)
from sqlalchemy.orm import (
    DeclarativeBase,
    Mapped,
    Session,
    mapped_column,
    relationship,
)


def _uuid() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """Shared declarative base for all marketplace models."""
    pass


# --- Enums ---


class UserRole(str, enum.Enum):
    CLIENT = "client"
    FREELANCER = "freelancer"


class AppRole(str, enum.Enum):
    ADMIN = "admin"
    USER = "user"


class ProjectStatus(str, enum.Enum):
    OPEN = "open"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class ProjectCategory(str, enum.Enum):
    WEB_DEVELOPMENT = "web_development"
    MOBILE_DEVELOPMENT = "mobile_development"
    DESIGN = "design"
    WRITING = "writing"
    MARKETING = "marketing"
    DATA_SCIENCE = "data_science"
    OTHER = "other"


class BidStatus(str, enum.Enum):
    """Proposal lifecycle. SENT and PENDING are both entry states."""
    SENT = "sent"
    PENDING = "pending"
    VIEWED = "viewed"
    SHORTLISTED = "shortlisted"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class ShortlistStatus(str, enum.Enum):
    SHORTLISTED = "shortlisted"
    HIRED = "hired"
    REJECTED = "rejected"


class InterviewStatus(str, enum.Enum):
    SCHEDULED = "scheduled"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class NotificationType(str, enum.Enum):
    NEW_BID = "new_bid"
    MESSAGE_RECEIVED = "message_received"
    TICKET_RESOLVED = "ticket_resolved"
    PROFILE_VIEW = "profile_view"
    PROJECT_STATUS = "project_status"
    NEW_REVIEW = "new_review"


class AvailabilityStatus(str, enum.Enum):
    AVAILABLE = "available"
    BUSY = "busy"
    UNAVAILABLE = "unavailable"


class VerificationStatus(str, enum.Enum):
    UNVERIFIED = "unverified"
    PENDING = "pending"
    VERIFIED = "verified"
    REJECTED = "rejected"


class TicketStatus(str, enum.Enum):
    OPEN = "open"
    RESOLVED = "resolved"


class TicketPriority(str, enum.Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


# --- Accounts ---


class Profile(Base):
    """A marketplace account — either a client or a freelancer."""

    __tablename__ = "profiles"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    full_name: Mapped[str] = mapped_column(String(200), nullable=False)
    user_role: Mapped[str] = mapped_column(
        String(20), nullable=False, default=UserRole.CLIENT.value
    )

    bio: Mapped[Optional[str]] = mapped_column(Text)
    location: Mapped[Optional[str]] = mapped_column(String(200))
    hourly_rate: Mapped[Optional[float]] = mapped_column(Float)
    experience_years: Mapped[Optional[int]] = mapped_column(Integer)
    portfolio_url: Mapped[Optional[str]] = mapped_column(String(500))
    avatar_url: Mapped[Optional[str]] = mapped_column(String(500))
    skills: Mapped[Optional[list]] = mapped_column(JSON)
    languages: Mapped[Optional[list]] = mapped_column(JSON)
    certifications: Mapped[Optional[list]] = mapped_column(JSON)
    availability_status: Mapped[str] = mapped_column(
        String(20), default=AvailabilityStatus.AVAILABLE.value
    )
    verification_status: Mapped[str] = mapped_column(
        String(20), default=VerificationStatus.UNVERIFIED.value
    )

    last_active_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    roles: Mapped[list["UserRoleGrant"]] = relationship(
        back_populates="profile", cascade="all, delete-orphan"
    )

    __table_args__ = (
        Index("ix_profiles_user_role", "user_role"),
    )

    def __repr__(self) -> str:
        return f"<Profile(id={self.id}, name='{self.full_name}', role='{self.user_role}')>"


class UserRoleGrant(Base):
    """Platform-level role grant (admin moderation rights)."""

    __tablename__ = "user_roles"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False
    )
    role: Mapped[str] = mapped_column(String(20), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    profile: Mapped["Profile"] = relationship(back_populates="roles")

    __table_args__ = (
        UniqueConstraint("user_id", "role", name="uq_user_roles_user_role"),
    )


# --- Projects & Bids ---


class Project(Base):
    """A job posted by a client. At most one freelancer is ever assigned."""

    __tablename__ = "projects"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    client_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("profiles.id"), nullable=False
    )
    freelancer_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("profiles.id")
    )
    title: Mapped[str] = mapped_column(String(300), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    category: Mapped[str] = mapped_column(
        String(50), nullable=False, default=ProjectCategory.OTHER.value
    )
    budget_min: Mapped[Optional[float]] = mapped_column(Float)
    budget_max: Mapped[Optional[float]] = mapped_column(Float)
    deadline: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    duration: Mapped[Optional[str]] = mapped_column(String(100))
    required_skills: Mapped[Optional[list]] = mapped_column(JSON)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=ProjectStatus.OPEN.value
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    client: Mapped["Profile"] = relationship(foreign_keys=[client_id])
    freelancer: Mapped[Optional["Profile"]] = relationship(foreign_keys=[freelancer_id])
    bids: Mapped[list["Bid"]] = relationship(
        back_populates="project",
        cascade="all, delete-orphan",
        order_by="Bid.created_at.desc()",
    )

    __table_args__ = (
        Index("ix_projects_status", "status"),
        Index("ix_projects_client", "client_id"),
        Index("ix_projects_freelancer", "freelancer_id"),
        Index("ix_projects_category", "category"),
    )

    def __repr__(self) -> str:
        return (
            f"<Project(id={self.id}, title='{self.title[:40]}', "
            f"status='{self.status}')>"
        )


class Bid(Base):
    """A freelancer's proposal against a project — one per (project, freelancer)."""

    __tablename__ = "bids"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    project_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("projects.id", ondelete="CASCADE"), nullable=False
    )
    freelancer_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("profiles.id"), nullable=False
    )
    amount: Mapped[float] = mapped_column(Float, nullable=False)
    delivery_days: Mapped[int] = mapped_column(Integer, nullable=False)
    proposal: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=BidStatus.PENDING.value
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    project: Mapped["Project"] = relationship(back_populates="bids")
    freelancer: Mapped["Profile"] = relationship()

    __table_args__ = (
        UniqueConstraint("project_id", "freelancer_id", name="uq_bids_project_freelancer"),
        Index("ix_bids_status", "status"),
        Index("ix_bids_freelancer", "freelancer_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<Bid(id={self.id}, project={self.project_id}, "
            f"amount={self.amount}, status='{self.status}')>"
        )


# --- Candidate evaluation ---


class Shortlist(Base):
    """Client's private marker that a freelancer is under consideration."""

    __tablename__ = "shortlists"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    client_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("profiles.id"), nullable=False
    )
    freelancer_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("profiles.id"), nullable=False
    )
    project_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("projects.id", ondelete="CASCADE"), nullable=False
    )
    notes: Mapped[Optional[str]] = mapped_column(Text)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=ShortlistStatus.SHORTLISTED.value
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    freelancer: Mapped["Profile"] = relationship(foreign_keys=[freelancer_id])

    __table_args__ = (
        UniqueConstraint(
            "client_id", "freelancer_id", "project_id",
            name="uq_shortlists_client_freelancer_project",
        ),
        Index("ix_shortlists_project", "project_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<Shortlist(project={self.project_id}, "
            f"freelancer={self.freelancer_id}, status='{self.status}')>"
        )


class Interview(Base):
    """Ad-hoc interview slot. Does not gate hire/reject."""

    __tablename__ = "interviews"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    client_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("profiles.id"), nullable=False
    )
    freelancer_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("profiles.id"), nullable=False
    )
    project_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("projects.id", ondelete="CASCADE"), nullable=False
    )
    shortlist_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("shortlists.id", ondelete="SET NULL")
    )
    scheduled_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    duration_minutes: Mapped[int] = mapped_column(Integer, default=60)
    meeting_link: Mapped[Optional[str]] = mapped_column(String(500))
    notes: Mapped[Optional[str]] = mapped_column(Text)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=InterviewStatus.SCHEDULED.value
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    freelancer: Mapped["Profile"] = relationship(foreign_keys=[freelancer_id])

    __table_args__ = (
        Index("ix_interviews_project", "project_id"),
        Index("ix_interviews_scheduled_at", "scheduled_at"),
    )


# --- Side-channel & social ---


class Notification(Base):
    __tablename__ = "notifications"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False
    )
    type: Mapped[str] = mapped_column(String(30), nullable=False)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    data: Mapped[Optional[dict]] = mapped_column(JSON)
    is_read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    __table_args__ = (
        Index("ix_notifications_user_read", "user_id", "is_read"),
    )

    def __repr__(self) -> str:
        return f"<Notification(user={self.user_id}, type='{self.type}', read={self.is_read})>"


class Message(Base):
    __tablename__ = "messages"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    sender_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("profiles.id"), nullable=False
    )
    receiver_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("profiles.id"), nullable=False
    )
    project_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("projects.id", ondelete="SET NULL")
    )
    content: Mapped[str] = mapped_column(Text, nullable=False)
    is_read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    __table_args__ = (
        Index("ix_messages_sender", "sender_id"),
        Index("ix_messages_receiver", "receiver_id"),
    )


class Review(Base):
    __tablename__ = "reviews"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    project_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("projects.id", ondelete="CASCADE"), nullable=False
    )
    reviewer_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("profiles.id"), nullable=False
    )
    reviewee_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("profiles.id"), nullable=False
    )
    rating: Mapped[int] = mapped_column(Integer, nullable=False)
    comment: Mapped[Optional[str]] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    reviewer: Mapped["Profile"] = relationship(foreign_keys=[reviewer_id])

    __table_args__ = (
        UniqueConstraint(
            "project_id", "reviewer_id", "reviewee_id",
            name="uq_reviews_project_reviewer_reviewee",
        ),
        Index("ix_reviews_reviewee", "reviewee_id"),
    )


class SupportTicket(Base):
    __tablename__ = "support_tickets"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("profiles.id"), nullable=False
    )
    subject: Mapped[str] = mapped_column(String(300), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    category: Mapped[str] = mapped_column(String(50), nullable=False, default="general")
    priority: Mapped[str] = mapped_column(
        String(20), nullable=False, default=TicketPriority.MEDIUM.value
    )
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=TicketStatus.OPEN.value
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    __table_args__ = (
        Index("ix_support_tickets_status", "status"),
    )


# --- Audit trail ---


class PipelineEvent(Base):
    """Audit trail — one row per tracked field change."""

    __tablename__ = "pipeline_events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    entity: Mapped[str] = mapped_column(String(20), nullable=False)
    entity_id: Mapped[str] = mapped_column(String(36), nullable=False)
    field_changed: Mapped[str] = mapped_column(String(50), nullable=False)
    old_value: Mapped[Optional[str]] = mapped_column(Text)
    new_value: Mapped[Optional[str]] = mapped_column(Text)
    changed_by: Mapped[Optional[str]] = mapped_column(String(36))
    changed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    __table_args__ = (
        Index("ix_pipeline_events_entity", "entity", "entity_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<PipelineEvent({self.entity}:{self.entity_id} "
            f"{self.field_changed} '{self.old_value}' → '{self.new_value}')>"
        )


# ---------------------------------------------------------------------------
# Auto-history via SQLAlchemy event listeners
# ---------------------------------------------------------------------------
TRACKED_FIELDS = {
    Bid: ("bid", ("status",)),
    Shortlist: ("shortlist", ("status",)),
    Project: ("project", ("status", "freelancer_id")),
    Interview: ("interview", ("status",)),
}


def track_pipeline_changes(session: Session) -> list[PipelineEvent]:
    """Collect audit entries for dirty pipeline objects.

    The acting user is read from session.info["actor"] (set by the
    pipeline before mutating).
    """
    changes = []
    actor = session.info.get("actor")
    for obj in session.dirty:
        tracked = TRACKED_FIELDS.get(type(obj))
        if tracked is None:
            continue
        entity, fields = tracked
        state = inspect(obj)
        for attr in fields:
            hist = state.attrs[attr].history
            if hist.has_changes():
                old = hist.deleted[0] if hist.deleted else None
                new = hist.added[0] if hist.added else None
                changes.append(PipelineEvent(
                    entity=entity,
                    entity_id=obj.id,
                    field_changed=attr,
                    old_value=str(old) if old is not None else None,
                    new_value=str(new) if new is not None else None,
                    changed_by=actor,
                ))
    if changes:
        session.add_all(changes)
    return changes


@event.listens_for(Session, "before_flush")
def _before_flush_track_changes(session, flush_context, instances):
    """Automatically create audit entries during flush."""
    track_pipeline_changes(session)
