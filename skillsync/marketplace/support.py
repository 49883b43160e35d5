"""Support tickets — raised by users, resolved by admins."""
import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..db.models import SupportTicket, TicketPriority, TicketStatus
from ..errors import InvalidTransitionError, NotFoundError, ValidationError
from ..notifications.bus import NotificationBus
from ..notifications.service import notify_ticket_resolved
from ..pipeline.context import SessionContext, require_admin
from ..pipeline.transaction import unit_of_work

logger = logging.getLogger(__name__)

PRIORITIES = {p.value for p in TicketPriority}
STATUSES = {s.value for s in TicketStatus}


def create_ticket(
    session: Session,
    ctx: SessionContext,
    subject: str,
    description: str,
    category: str = "general",
    priority: str = TicketPriority.MEDIUM.value,
) -> SupportTicket:
    if not subject or not subject.strip():
        raise ValidationError("Ticket subject is required")
    if not description or not description.strip():
        raise ValidationError("Ticket description is required")
    if priority not in PRIORITIES:
        raise ValidationError(f"Unknown priority '{priority}'")

    with unit_of_work(session, ctx, "create_ticket"):
        ticket = SupportTicket(
            user_id=ctx.user_id,
            subject=subject.strip(),
            description=description.strip(),
            category=category or "general",
            priority=priority,
            status=TicketStatus.OPEN.value,
        )
        session.add(ticket)

    logger.info(f"Support ticket {ticket.id} opened by {ctx.user_id} ({priority})")
    return ticket


def list_my_tickets(session: Session, ctx: SessionContext) -> list[SupportTicket]:
    return list(session.scalars(
        select(SupportTicket)
        .where(SupportTicket.user_id == ctx.user_id)
        .order_by(SupportTicket.created_at.desc())
    ))


def list_tickets(
    session: Session,
    ctx: SessionContext,
    status: Optional[str] = None,
) -> list[SupportTicket]:
    """All tickets (admin), newest first."""
    require_admin(ctx)
    stmt = select(SupportTicket)
    if status:
        if status not in STATUSES:
            raise ValidationError(f"Unknown ticket status '{status}'")
        stmt = stmt.where(SupportTicket.status == status)
    return list(session.scalars(stmt.order_by(SupportTicket.created_at.desc())))


def resolve_ticket(
    session: Session,
    ctx: SessionContext,
    ticket_id: str,
    bus: Optional[NotificationBus] = None,
) -> SupportTicket:
    """open → resolved (admin); the ticket owner is notified."""
    require_admin(ctx)
    with unit_of_work(session, ctx, "resolve_ticket"):
        ticket = session.get(SupportTicket, ticket_id)
        if ticket is None:
            raise NotFoundError(f"Ticket {ticket_id} not found")
        if ticket.status == TicketStatus.RESOLVED.value:
            raise InvalidTransitionError(f"Ticket {ticket_id} is already resolved")
        ticket.status = TicketStatus.RESOLVED.value

    logger.info(f"Support ticket {ticket_id} resolved by {ctx.user_id}")
    notify_ticket_resolved(session, ticket.user_id, ticket.subject, bus=bus)
    return ticket
