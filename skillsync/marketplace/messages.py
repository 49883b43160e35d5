"""Direct messages between users."""
import logging
from typing import Optional

from sqlalchemy import or_, select, update
from sqlalchemy.orm import Session

from ..db.models import Message, Profile, Project
from ..errors import NotFoundError, ValidationError
from ..notifications.bus import NotificationBus
from ..notifications.service import notify_message_received
from ..pipeline.context import SessionContext
from ..pipeline.transaction import unit_of_work

logger = logging.getLogger(__name__)


def send_message(
    session: Session,
    ctx: SessionContext,
    receiver_id: str,
    content: str,
    project_id: Optional[str] = None,
    bus: Optional[NotificationBus] = None,
) -> Message:
    """Send a message and notify the receiver."""
    content = (content or "").strip()
    if not content:
        raise ValidationError("Message content cannot be empty")
    if receiver_id == ctx.user_id:
        raise ValidationError("You cannot message yourself")

    with unit_of_work(session, ctx, "send_message"):
        if session.get(Profile, receiver_id) is None:
            raise NotFoundError(f"Profile {receiver_id} not found")
        if project_id is not None and session.get(Project, project_id) is None:
            raise NotFoundError(f"Project {project_id} not found")
        message = Message(
            sender_id=ctx.user_id,
            receiver_id=receiver_id,
            project_id=project_id,
            content=content,
        )
        session.add(message)

    sender = session.get(Profile, ctx.user_id)
    notify_message_received(
        session, receiver_id, sender.full_name if sender else "Someone", content, bus=bus
    )
    return message


def list_conversations(session: Session, ctx: SessionContext) -> list[dict]:
    """One entry per conversation partner, most recent conversation first.

    Returns:
        [{"partner": Profile, "last_message": Message, "unread": int}, ...]
    """
    messages = session.scalars(
        select(Message)
        .where(or_(Message.sender_id == ctx.user_id, Message.receiver_id == ctx.user_id))
        .order_by(Message.created_at.desc())
    )
    conversations: dict[str, dict] = {}
    for message in messages:
        partner_id = (
            message.receiver_id if message.sender_id == ctx.user_id else message.sender_id
        )
        entry = conversations.get(partner_id)
        if entry is None:
            entry = conversations[partner_id] = {
                "partner": session.get(Profile, partner_id),
                "last_message": message,
                "unread": 0,
            }
        if message.receiver_id == ctx.user_id and not message.is_read:
            entry["unread"] += 1
    return list(conversations.values())


def get_thread(session: Session, ctx: SessionContext, partner_id: str) -> list[Message]:
    """Chronological thread with a partner; marks their messages to you read."""
    thread = list(session.scalars(
        select(Message)
        .where(or_(
            (Message.sender_id == ctx.user_id) & (Message.receiver_id == partner_id),
            (Message.sender_id == partner_id) & (Message.receiver_id == ctx.user_id),
        ))
        .order_by(Message.created_at.asc())
    ))
    if any(m.receiver_id == ctx.user_id and not m.is_read for m in thread):
        with unit_of_work(session, ctx, "get_thread"):
            session.execute(
                update(Message)
                .where(
                    Message.sender_id == partner_id,
                    Message.receiver_id == ctx.user_id,
                    Message.is_read.is_(False),
                )
                .values(is_read=True)
                .execution_options(synchronize_session="fetch")
            )
    return thread
