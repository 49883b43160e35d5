"""Notification side-channel: rows, realtime event bus, hire email."""

from .bus import EventFilter, NotificationBus, NotificationEvent, Subscription
from .email import HireEmailSender
from .service import (
    create_notification,
    notify_new_bid,
    notify_message_received,
    notify_ticket_resolved,
    notify_profile_view,
    notify_project_status_change,
    notify_new_review,
    list_notifications,
    unread_count,
    mark_read,
    mark_all_read,
    delete_notification,
    clear_notifications,
)

__all__ = [
    # Event bus
    "EventFilter",
    "NotificationBus",
    "NotificationEvent",
    "Subscription",
    # Email
    "HireEmailSender",
    # Create
    "create_notification",
    "notify_new_bid",
    "notify_message_received",
    "notify_ticket_resolved",
    "notify_profile_view",
    "notify_project_status_change",
    "notify_new_review",
    # Recipient side
    "list_notifications",
    "unread_count",
    "mark_read",
    "mark_all_read",
    "delete_notification",
    "clear_notifications",
]
