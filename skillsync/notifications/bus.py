"""In-process notification event bus — the realtime push interface.

Subscribers receive NotificationEvents matching their filter as an async
stream:

    sub = bus.subscribe(EventFilter(user_id="..."))
    async with sub:
        async for event in sub:
            ...

Handles:
- Per-subscriber bounded queues (a slow subscriber never blocks publishers)
- Filtering by recipient and notification type
- Error isolation (one broken subscriber doesn't affect others)

publish() must be called from the event loop thread.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

logger = logging.getLogger(__name__)


@dataclass
class NotificationEvent:
    """Row-insert event for the notifications table."""
    user_id: str
    type: str
    title: str
    message: str
    data: dict = field(default_factory=dict)
    notification_id: Optional[str] = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict:
        return {
            "id": self.notification_id,
            "user_id": self.user_id,
            "type": self.type,
            "title": self.title,
            "message": self.message,
            "data": self.data,
            "created_at": self.created_at.isoformat(),
        }


@dataclass
class EventFilter:
    """Which events a subscriber wants. None means 'any'."""
    user_id: Optional[str] = None
    types: Optional[frozenset] = None

    def matches(self, event: NotificationEvent) -> bool:
        if self.user_id is not None and event.user_id != self.user_id:
            return False
        if self.types is not None and event.type not in self.types:
            return False
        return True


class Subscription:
    """Async iterator over events delivered to one subscriber."""

    def __init__(self, bus: "NotificationBus", event_filter: EventFilter, maxsize: int):
        self.bus = bus
        self.filter = event_filter
        self.queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize)
        self.dropped = 0
        self.closed = False

    def deliver(self, event: NotificationEvent) -> bool:
        try:
            self.queue.put_nowait(event)
            return True
        except asyncio.QueueFull:
            self.dropped += 1
            logger.warning(
                f"Subscriber queue full, dropped {event.type} for {event.user_id} "
                f"(dropped={self.dropped})"
            )
            return False

    async def get(self, timeout: Optional[float] = None) -> NotificationEvent:
        if timeout is None:
            return await self.queue.get()
        return await asyncio.wait_for(self.queue.get(), timeout)

    def close(self) -> None:
        if not self.closed:
            self.closed = True
            self.bus.unsubscribe(self)

    def __aiter__(self):
        return self

    async def __anext__(self) -> NotificationEvent:
        if self.closed:
            raise StopAsyncIteration
        return await self.queue.get()

    async def __aenter__(self) -> "Subscription":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.close()


class NotificationBus:
    """Fan-out of notification events to filtered subscribers."""

    def __init__(self, default_maxsize: int = 100):
        self.default_maxsize = default_maxsize
        self._subscribers: list[Subscription] = []

    def subscribe(
        self,
        event_filter: Optional[EventFilter] = None,
        maxsize: Optional[int] = None,
    ) -> Subscription:
        sub = Subscription(self, event_filter or EventFilter(), maxsize or self.default_maxsize)
        self._subscribers.append(sub)
        logger.debug(f"Subscribed {sub.filter} ({len(self._subscribers)} active)")
        return sub

    def unsubscribe(self, sub: Subscription) -> None:
        if sub in self._subscribers:
            self._subscribers.remove(sub)

    def publish(self, event: NotificationEvent) -> int:
        """Deliver event to all matching subscribers.

        Returns:
            Number of subscribers the event was queued for.
        """
        delivered = 0
        for sub in list(self._subscribers):
            try:
                if sub.filter.matches(event) and sub.deliver(event):
                    delivered += 1
            except Exception as e:
                logger.error(f"Subscriber delivery failed: {e}", exc_info=True)
        return delivered

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)
