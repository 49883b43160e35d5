"""Notification side-channel.

Fire-and-forget creation of notification rows for pipeline and marketplace
events. A failed notification is logged and swallowed — it must never block
or roll back the mutation that triggered it, so callers invoke these helpers
only after their own unit of work has committed.

Usage:
    from skillsync.notifications import notify_new_bid
    notify_new_bid(session, client_id, "Asha", "Landing page", 800, project_id)
"""
import logging
from typing import Optional

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..db.models import Notification, NotificationType
from ..errors import NotFoundError
from .bus import NotificationBus, NotificationEvent

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# 1) Create (best-effort)
# ---------------------------------------------------------------------------

def create_notification(
    session: Session,
    user_id: str,
    type: NotificationType | str,
    title: str,
    message: str,
    data: Optional[dict] = None,
    bus: Optional[NotificationBus] = None,
) -> Optional[Notification]:
    """Insert and commit a notification row, then push it to subscribers.

    Returns:
        The Notification, or None if the insert failed (error is logged).
    """
    type_value = type.value if isinstance(type, NotificationType) else type
    notification = Notification(
        user_id=user_id,
        type=type_value,
        title=title,
        message=message,
        data=data or {},
    )
    try:
        session.add(notification)
        session.commit()
    except SQLAlchemyError as e:
        session.rollback()
        logger.error(f"Error creating notification ({type_value} → {user_id}): {e}")
        return None

    if bus is not None:
        bus.publish(NotificationEvent(
            user_id=user_id,
            type=type_value,
            title=title,
            message=message,
            data=notification.data or {},
            notification_id=notification.id,
            created_at=notification.created_at,
        ))
    logger.debug(f"Notification {type_value} → {user_id}")
    return notification


# ---------------------------------------------------------------------------
# 2) Helpers for the event kinds
# ---------------------------------------------------------------------------

def notify_new_bid(
    session: Session,
    project_owner_id: str,
    freelancer_name: str,
    project_title: str,
    bid_amount: float,
    project_id: str,
    bus: Optional[NotificationBus] = None,
) -> Optional[Notification]:
    return create_notification(
        session,
        user_id=project_owner_id,
        type=NotificationType.NEW_BID,
        title="New Bid Received",
        message=f'{freelancer_name} placed a bid of ₹{bid_amount:g} on "{project_title}"',
        data={
            "projectId": project_id,
            "freelancerName": freelancer_name,
            "bidAmount": bid_amount,
        },
        bus=bus,
    )


def notify_message_received(
    session: Session,
    receiver_id: str,
    sender_name: str,
    message_preview: str,
    bus: Optional[NotificationBus] = None,
) -> Optional[Notification]:
    preview = message_preview[:50] + ("..." if len(message_preview) > 50 else "")
    return create_notification(
        session,
        user_id=receiver_id,
        type=NotificationType.MESSAGE_RECEIVED,
        title="New Message",
        message=f"{sender_name}: {preview}",
        data={"senderName": sender_name},
        bus=bus,
    )


def notify_ticket_resolved(
    session: Session,
    user_id: str,
    ticket_subject: str,
    bus: Optional[NotificationBus] = None,
) -> Optional[Notification]:
    return create_notification(
        session,
        user_id=user_id,
        type=NotificationType.TICKET_RESOLVED,
        title="Support Ticket Resolved",
        message=f'Your support ticket "{ticket_subject}" has been resolved',
        data={"ticketSubject": ticket_subject},
        bus=bus,
    )


def notify_profile_view(
    session: Session,
    profile_owner_id: str,
    viewer_name: str,
    bus: Optional[NotificationBus] = None,
) -> Optional[Notification]:
    return create_notification(
        session,
        user_id=profile_owner_id,
        type=NotificationType.PROFILE_VIEW,
        title="Profile Viewed",
        message=f"{viewer_name} viewed your profile",
        data={"viewerName": viewer_name},
        bus=bus,
    )


def notify_project_status_change(
    session: Session,
    user_id: str,
    project_title: str,
    new_status: str,
    bus: Optional[NotificationBus] = None,
) -> Optional[Notification]:
    return create_notification(
        session,
        user_id=user_id,
        type=NotificationType.PROJECT_STATUS,
        title="Project Status Updated",
        message=f'Your project "{project_title}" status changed to {new_status}',
        data={"projectTitle": project_title, "newStatus": new_status},
        bus=bus,
    )


def notify_new_review(
    session: Session,
    user_id: str,
    reviewer_name: str,
    rating: int,
    bus: Optional[NotificationBus] = None,
) -> Optional[Notification]:
    return create_notification(
        session,
        user_id=user_id,
        type=NotificationType.NEW_REVIEW,
        title="New Review Received",
        message=f"{reviewer_name} left you a {rating}-star review",
        data={"reviewerName": reviewer_name, "rating": rating},
        bus=bus,
    )


# ---------------------------------------------------------------------------
# 3) Recipient-side reads and updates
# ---------------------------------------------------------------------------

def list_notifications(
    session: Session,
    user_id: str,
    unread_only: bool = False,
    limit: Optional[int] = None,
) -> list[Notification]:
    """Caller's notifications, newest first."""
    stmt = select(Notification).where(Notification.user_id == user_id)
    if unread_only:
        stmt = stmt.where(Notification.is_read.is_(False))
    stmt = stmt.order_by(Notification.created_at.desc())
    if limit:
        stmt = stmt.limit(limit)
    return list(session.scalars(stmt))


def unread_count(session: Session, user_id: str) -> int:
    return session.scalar(
        select(func.count(Notification.id)).where(
            Notification.user_id == user_id,
            Notification.is_read.is_(False),
        )
    ) or 0


def _get_own(session: Session, user_id: str, notification_id: str) -> Notification:
    notification = session.get(Notification, notification_id)
    if notification is None or notification.user_id != user_id:
        raise NotFoundError(f"Notification {notification_id} not found")
    return notification


def mark_read(session: Session, user_id: str, notification_id: str) -> Notification:
    notification = _get_own(session, user_id, notification_id)
    notification.is_read = True
    session.commit()
    return notification


def mark_all_read(session: Session, user_id: str) -> int:
    result = session.execute(
        update(Notification)
        .where(Notification.user_id == user_id, Notification.is_read.is_(False))
        .values(is_read=True)
    )
    session.commit()
    return result.rowcount


def delete_notification(session: Session, user_id: str, notification_id: str) -> None:
    notification = _get_own(session, user_id, notification_id)
    session.delete(notification)
    session.commit()


def clear_notifications(session: Session, user_id: str) -> int:
    result = session.execute(
        delete(Notification).where(Notification.user_id == user_id)
    )
    session.commit()
    logger.info(f"Cleared {result.rowcount} notifications for {user_id}")
    return result.rowcount
