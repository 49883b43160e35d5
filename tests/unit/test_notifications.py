"""
Tests for the notification side-channel.

Covers:
- create_notification (row + bus publish, failure swallowed)
- notify_* helpers message formats
- recipient reads: list, unread count, mark read, delete, clear
"""

from unittest.mock import patch

import pytest
from sqlalchemy.exc import OperationalError

from skillsync.errors import NotFoundError
from skillsync.notifications import service
from skillsync.notifications.bus import EventFilter, NotificationBus


# ---------------------------------------------------------------------------
# Create
# ---------------------------------------------------------------------------

class TestCreate:
    def test_inserts_unread_row(self, session, freelancer):
        note = service.create_notification(
            session, freelancer.id, "project_status", "Title", "Body", {"k": "v"}
        )
        assert note.id is not None
        assert note.is_read is False
        assert note.data == {"k": "v"}

    def test_publishes_to_bus(self, session, freelancer):
        bus = NotificationBus()
        sub = bus.subscribe(EventFilter(user_id=freelancer.id))
        note = service.notify_profile_view(session, freelancer.id, "Priya", bus=bus)

        event = sub.queue.get_nowait()
        assert event.notification_id == note.id
        assert event.type == "profile_view"
        assert event.message == "Priya viewed your profile"

    def test_store_failure_returns_none(self, session, freelancer):
        with patch.object(session, "commit", side_effect=OperationalError("INSERT", {}, Exception("locked"))):
            note = service.create_notification(session, freelancer.id, "new_bid", "T", "M")
        assert note is None
        assert service.list_notifications(session, freelancer.id) == []

    def test_failure_does_not_publish(self, session, freelancer):
        bus = NotificationBus()
        sub = bus.subscribe()
        with patch.object(session, "commit", side_effect=OperationalError("INSERT", {}, Exception("locked"))):
            service.create_notification(session, freelancer.id, "new_bid", "T", "M", bus=bus)
        assert sub.queue.empty()


class TestHelpers:
    def test_new_bid(self, session, client_profile):
        note = service.notify_new_bid(session, client_profile.id, "Asha", "Landing page", 800.0, "p1")
        assert note.type == "new_bid"
        assert note.message == 'Asha placed a bid of ₹800 on "Landing page"'
        assert note.data == {"projectId": "p1", "freelancerName": "Asha", "bidAmount": 800.0}

    def test_message_preview_truncated(self, session, freelancer):
        note = service.notify_message_received(session, freelancer.id, "Priya", "x" * 80)
        assert note.message == "Priya: " + "x" * 50 + "..."

    def test_short_message_not_truncated(self, session, freelancer):
        note = service.notify_message_received(session, freelancer.id, "Priya", "hello")
        assert note.message == "Priya: hello"

    def test_ticket_resolved(self, session, freelancer):
        note = service.notify_ticket_resolved(session, freelancer.id, "Payment stuck")
        assert note.type == "ticket_resolved"
        assert '"Payment stuck"' in note.message

    def test_new_review(self, session, freelancer):
        note = service.notify_new_review(session, freelancer.id, "Priya", 4)
        assert note.message == "Priya left you a 4-star review"
        assert note.data["rating"] == 4

    def test_project_status(self, session, freelancer):
        note = service.notify_project_status_change(session, freelancer.id, "Landing page", "Completed")
        assert note.message == 'Your project "Landing page" status changed to Completed'


# ---------------------------------------------------------------------------
# Recipient side
# ---------------------------------------------------------------------------

class TestRecipient:
    @pytest.fixture
    def notes(self, session, freelancer):
        return [
            service.create_notification(session, freelancer.id, "new_bid", f"T{i}", f"M{i}")
            for i in range(3)
        ]

    def test_unread_count_and_mark_read(self, session, freelancer, notes):
        assert service.unread_count(session, freelancer.id) == 3
        service.mark_read(session, freelancer.id, notes[0].id)
        assert service.unread_count(session, freelancer.id) == 2
        unread = service.list_notifications(session, freelancer.id, unread_only=True)
        assert notes[0].id not in {n.id for n in unread}

    def test_mark_all_read(self, session, freelancer, notes):
        assert service.mark_all_read(session, freelancer.id) == 3
        assert service.unread_count(session, freelancer.id) == 0

    def test_cannot_touch_others(self, session, client_profile, notes):
        with pytest.raises(NotFoundError):
            service.mark_read(session, client_profile.id, notes[0].id)
        with pytest.raises(NotFoundError):
            service.delete_notification(session, client_profile.id, notes[0].id)

    def test_delete_and_clear(self, session, freelancer, notes):
        service.delete_notification(session, freelancer.id, notes[0].id)
        assert len(service.list_notifications(session, freelancer.id)) == 2
        assert service.clear_notifications(session, freelancer.id) == 2
        assert service.list_notifications(session, freelancer.id) == []

    def test_limit(self, session, freelancer, notes):
        assert len(service.list_notifications(session, freelancer.id, limit=2)) == 2
