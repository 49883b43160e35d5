"""Marketplace glue around the candidate pipeline."""

from .admin import grant_admin, is_admin, list_users, platform_stats, revoke_admin
from .analytics import analytics_for, client_analytics, freelancer_analytics
from .messages import get_thread, list_conversations, send_message
from .profiles import (
    create_profile,
    find_freelancers,
    get_profile,
    profile_completion,
    profile_completion_tips,
    request_verification,
    update_profile,
    view_profile,
)
from .reviews import list_reviews, reputation, reputation_label, reputation_score, submit_review
from .support import create_ticket, list_my_tickets, list_tickets, resolve_ticket

__all__ = [
    "grant_admin",
    "is_admin",
    "list_users",
    "platform_stats",
    "revoke_admin",
    "analytics_for",
    "client_analytics",
    "freelancer_analytics",
    "get_thread",
    "list_conversations",
    "send_message",
    "create_profile",
    "find_freelancers",
    "get_profile",
    "profile_completion",
    "profile_completion_tips",
    "request_verification",
    "update_profile",
    "view_profile",
    "list_reviews",
    "reputation",
    "reputation_label",
    "reputation_score",
    "submit_review",
    "create_ticket",
    "list_my_tickets",
    "list_tickets",
    "resolve_ticket",
]
