"""Relational store for the marketplace."""

from .models import (
    Base,
    Profile,
    UserRoleGrant,
    Project,
    Bid,
    Shortlist,
    Interview,
    Notification,
    Message,
    Review,
    SupportTicket,
    PipelineEvent,
    UserRole,
    AppRole,
    ProjectStatus,
    ProjectCategory,
    BidStatus,
    ShortlistStatus,
    InterviewStatus,
    NotificationType,
    AvailabilityStatus,
    VerificationStatus,
    TicketStatus,
    TicketPriority,
)
from .connection import get_engine, get_session, get_session_factory, init_db

__all__ = [
    # Models
    "Base",
    "Profile",
    "UserRoleGrant",
    "Project",
    "Bid",
    "Shortlist",
    "Interview",
    "Notification",
    "Message",
    "Review",
    "SupportTicket",
    "PipelineEvent",
    # Enums
    "UserRole",
    "AppRole",
    "ProjectStatus",
    "ProjectCategory",
    "BidStatus",
    "ShortlistStatus",
    "InterviewStatus",
    "NotificationType",
    "AvailabilityStatus",
    "VerificationStatus",
    "TicketStatus",
    "TicketPriority",
    # Connection
    "get_engine",
    "get_session",
    "get_session_factory",
    "init_db",
]
