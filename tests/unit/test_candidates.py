"""
Tests for the candidate pipeline.

Covers:
- mark_viewed / shortlist (upsert) / update_shortlist_notes
- schedule_interview and interview status changes
- hire: one transaction across shortlist, bid and project
- reject: bid and shortlist rejected, project untouched
- owner checks and the read side (board, bid visibility)
"""

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import func, select

from skillsync.db.models import Bid, Notification, PipelineEvent, Project, Shortlist
from skillsync.errors import (
    AuthorizationError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from skillsync.notifications.bus import EventFilter, NotificationBus
from skillsync.pipeline import (
    PipelineHooks,
    cancel_project,
    candidate_board,
    hire,
    list_bids,
    list_interviews,
    list_shortlists,
    mark_viewed,
    reject,
    schedule_interview,
    set_interview_status,
    shortlist,
    update_shortlist_notes,
)


def _shortlist_rows(session, project_id):
    return list(session.scalars(
        select(Shortlist).where(Shortlist.project_id == project_id)
    ))


# ---------------------------------------------------------------------------
# View & shortlist
# ---------------------------------------------------------------------------

class TestMarkViewed:
    def test_pending_becomes_viewed(self, session, project, bid, client_profile, as_ctx):
        result = mark_viewed(session, as_ctx(client_profile), bid.id)
        assert result.status == "viewed"

    def test_viewed_twice_rejected(self, session, bid, client_profile, as_ctx):
        ctx = as_ctx(client_profile)
        mark_viewed(session, ctx, bid.id)
        with pytest.raises(InvalidTransitionError):
            mark_viewed(session, ctx, bid.id)

    def test_only_owner(self, session, bid, make_profile, as_ctx):
        stranger = make_profile("client")
        with pytest.raises(AuthorizationError):
            mark_viewed(session, as_ctx(stranger), bid.id)
        session.refresh(bid)
        assert bid.status == "pending"

    def test_admin_may_act(self, session, bid, make_profile, as_ctx):
        admin = make_profile("client")
        assert mark_viewed(session, as_ctx(admin, is_admin=True), bid.id).status == "viewed"

    def test_unknown_bid(self, session, client_profile, as_ctx):
        with pytest.raises(NotFoundError):
            mark_viewed(session, as_ctx(client_profile), "missing")

    def test_bid_from_another_project(self, session, project, bid, make_project, client_profile, as_ctx):
        other = make_project(title="Logo design")
        with pytest.raises(NotFoundError):
            mark_viewed(session, as_ctx(client_profile), bid.id, project_id=other.id)
        session.refresh(bid)
        assert bid.status == "pending"


class TestShortlist:
    def test_creates_row_and_moves_bid(self, session, project, bid, client_profile, freelancer, as_ctx):
        entry = shortlist(session, as_ctx(client_profile), bid.id, notes="strong portfolio")

        assert bid.status == "shortlisted"
        assert entry.status == "shortlisted"
        assert entry.client_id == client_profile.id
        assert entry.freelancer_id == freelancer.id
        assert entry.project_id == project.id
        assert entry.notes == "strong portfolio"

    def test_from_viewed(self, session, bid, client_profile, as_ctx):
        ctx = as_ctx(client_profile)
        mark_viewed(session, ctx, bid.id)
        assert shortlist(session, ctx, bid.id).status == "shortlisted"

    def test_twice_keeps_one_row(self, session, project, bid, client_profile, as_ctx):
        ctx = as_ctx(client_profile)
        first = shortlist(session, ctx, bid.id, notes="first")
        second = shortlist(session, ctx, bid.id, notes="second")

        rows = _shortlist_rows(session, project.id)
        assert len(rows) == 1
        assert first.id == second.id
        assert rows[0].notes == "second"

    def test_twice_without_notes_keeps_notes(self, session, bid, client_profile, as_ctx):
        ctx = as_ctx(client_profile)
        shortlist(session, ctx, bid.id, notes="keep me")
        assert shortlist(session, ctx, bid.id).notes == "keep me"

    def test_rejected_bid_cannot_be_shortlisted(self, session, project, bid, client_profile, freelancer, as_ctx):
        ctx = as_ctx(client_profile)
        reject(session, ctx, project.id, freelancer.id, bid_id=bid.id)
        with pytest.raises(InvalidTransitionError):
            shortlist(session, ctx, bid.id)
        assert _shortlist_rows(session, project.id) == []

    def test_bid_from_another_project(self, session, project, bid, make_project, client_profile, as_ctx):
        other = make_project(title="Logo design")
        with pytest.raises(NotFoundError):
            shortlist(session, as_ctx(client_profile), bid.id, project_id=other.id)
        assert _shortlist_rows(session, project.id) == []
        assert _shortlist_rows(session, other.id) == []

    def test_update_notes(self, session, project, bid, client_profile, freelancer, as_ctx):
        ctx = as_ctx(client_profile)
        shortlist(session, ctx, bid.id)
        entry = update_shortlist_notes(session, ctx, project.id, freelancer.id, "call Tuesday")
        assert entry.notes == "call Tuesday"

    def test_update_notes_requires_row(self, session, project, freelancer, client_profile, as_ctx):
        with pytest.raises(NotFoundError):
            update_shortlist_notes(session, as_ctx(client_profile), project.id, freelancer.id, "x")


# ---------------------------------------------------------------------------
# Interviews
# ---------------------------------------------------------------------------

class TestInterviews:
    def _when(self, days=1):
        return datetime.now(timezone.utc) + timedelta(days=days)

    def test_schedule_leaves_bid_alone(self, session, project, bid, client_profile, freelancer, as_ctx):
        interview = schedule_interview(
            session, as_ctx(client_profile), project.id, freelancer.id, self._when(),
            meeting_link="https://meet.example.com/abc", notes="intro call",
        )
        assert interview.status == "scheduled"
        assert interview.duration_minutes == 60
        assert interview.shortlist_id is None
        session.refresh(bid)
        assert bid.status == "pending"

    def test_links_shortlist_row(self, session, project, bid, client_profile, freelancer, as_ctx):
        ctx = as_ctx(client_profile)
        entry = shortlist(session, ctx, bid.id)
        interview = schedule_interview(session, ctx, project.id, freelancer.id, self._when())
        assert interview.shortlist_id == entry.id
        assert entry.status == "shortlisted"

    def test_requires_time(self, session, project, client_profile, freelancer, as_ctx):
        with pytest.raises(ValidationError):
            schedule_interview(session, as_ctx(client_profile), project.id, freelancer.id, None)

    def test_rejects_zero_duration(self, session, project, client_profile, freelancer, as_ctx):
        with pytest.raises(ValidationError):
            schedule_interview(
                session, as_ctx(client_profile), project.id, freelancer.id,
                self._when(), duration_minutes=0,
            )

    def test_not_on_cancelled_project(self, session, project, client_profile, freelancer, as_ctx):
        ctx = as_ctx(client_profile)
        cancel_project(session, ctx, project.id)
        with pytest.raises(InvalidTransitionError):
            schedule_interview(session, ctx, project.id, freelancer.id, self._when())

    def test_allowed_while_in_progress(self, session, project, bid, client_profile, freelancer, as_ctx):
        ctx = as_ctx(client_profile)
        hire(session, ctx, project.id, freelancer.id, bid_id=bid.id)
        interview = schedule_interview(session, ctx, project.id, freelancer.id, self._when())
        assert interview.status == "scheduled"

    def test_listed_soonest_first(self, session, project, client_profile, freelancer, as_ctx):
        ctx = as_ctx(client_profile)
        later = schedule_interview(session, ctx, project.id, freelancer.id, self._when(3))
        sooner = schedule_interview(session, ctx, project.id, freelancer.id, self._when(1))
        assert [i.id for i in list_interviews(session, ctx, project.id)] == [sooner.id, later.id]

    def test_complete_then_cannot_cancel(self, session, project, client_profile, freelancer, as_ctx):
        ctx = as_ctx(client_profile)
        interview = schedule_interview(session, ctx, project.id, freelancer.id, self._when())
        assert set_interview_status(session, ctx, interview.id, "completed").status == "completed"
        with pytest.raises(InvalidTransitionError):
            set_interview_status(session, ctx, interview.id, "cancelled")

    def test_unknown_status(self, session, project, client_profile, freelancer, as_ctx):
        ctx = as_ctx(client_profile)
        interview = schedule_interview(session, ctx, project.id, freelancer.id, self._when())
        with pytest.raises(ValidationError):
            set_interview_status(session, ctx, interview.id, "no_show")

    def test_status_scoped_to_project(self, session, project, make_project, client_profile, freelancer, as_ctx):
        ctx = as_ctx(client_profile)
        other = make_project(title="Logo design")
        interview = schedule_interview(session, ctx, project.id, freelancer.id, self._when())
        with pytest.raises(NotFoundError):
            set_interview_status(session, ctx, interview.id, "cancelled", project_id=other.id)
        session.refresh(interview)
        assert interview.status == "scheduled"


# ---------------------------------------------------------------------------
# Hire
# ---------------------------------------------------------------------------

class TestHire:
    def test_assigns_project_and_accepts_bid(self, session, project, bid, client_profile, freelancer, as_ctx):
        result = hire(session, as_ctx(client_profile), project.id, freelancer.id, bid_id=bid.id)

        assert result.project.status == "in_progress"
        assert result.project.freelancer_id == freelancer.id
        assert result.bid.status == "accepted"
        assert result.shortlist is None
        assert result.mirror == "disabled"

        stored = session.get(Project, project.id)
        assert stored.status == "in_progress"
        assert stored.freelancer_id == freelancer.id

    def test_marks_shortlist_hired(self, session, project, bid, client_profile, freelancer, as_ctx):
        ctx = as_ctx(client_profile)
        shortlist(session, ctx, bid.id)
        result = hire(session, ctx, project.id, freelancer.id, bid_id=bid.id)
        assert result.shortlist.status == "hired"

    def test_without_bid_id_uses_live_bid(self, session, project, bid, client_profile, freelancer, as_ctx):
        result = hire(session, as_ctx(client_profile), project.id, freelancer.id)
        assert result.bid.id == bid.id
        assert result.bid.status == "accepted"

    def test_notifies_freelancer(self, session, project, bid, client_profile, freelancer, as_ctx):
        bus = NotificationBus()
        sub = bus.subscribe(EventFilter(user_id=freelancer.id))
        result = hire(
            session, as_ctx(client_profile), project.id, freelancer.id,
            bid_id=bid.id, hooks=PipelineHooks(bus=bus),
        )

        assert result.notification.type == "project_status"
        assert "You've been hired!" in result.notification.message
        assert project.title in result.notification.message
        assert sub.queue.qsize() == 1

    def test_project_must_be_open(self, session, project, bid, make_bid, make_profile, client_profile, freelancer, as_ctx):
        ctx = as_ctx(client_profile)
        other = make_profile("freelancer")
        other_bid = make_bid(project, other, amount=900.0)
        hire(session, ctx, project.id, freelancer.id, bid_id=bid.id)

        with pytest.raises(InvalidTransitionError):
            hire(session, ctx, project.id, other.id, bid_id=other_bid.id)

        session.refresh(other_bid)
        assert other_bid.status == "pending"
        assert session.get(Project, project.id).freelancer_id == freelancer.id

    def test_shortlisted_candidate_on_cancelled_project(self, session, project, bid, client_profile, freelancer, as_ctx):
        ctx = as_ctx(client_profile)
        entry = shortlist(session, ctx, bid.id)
        cancel_project(session, ctx, project.id)

        with pytest.raises(InvalidTransitionError):
            hire(session, ctx, project.id, freelancer.id)

        session.refresh(entry)
        session.refresh(bid)
        assert entry.status == "shortlisted"
        assert bid.status == "shortlisted"

    def test_bid_must_match(self, session, project, bid, client_profile, make_profile, as_ctx):
        other = make_profile("freelancer")
        with pytest.raises(ValidationError):
            hire(session, as_ctx(client_profile), project.id, other.id, bid_id=bid.id)

    def test_client_profile_cannot_be_hired(self, session, project, client_profile, as_ctx):
        with pytest.raises(ValidationError):
            hire(session, as_ctx(client_profile), project.id, client_profile.id)

        stored = session.get(Project, project.id)
        assert stored.status == "open"
        assert stored.freelancer_id is None

    def test_freelancer_without_candidacy(self, session, project, bid, make_profile, client_profile, as_ctx):
        outsider = make_profile("freelancer")
        with pytest.raises(NotFoundError):
            hire(session, as_ctx(client_profile), project.id, outsider.id)

        stored = session.get(Project, project.id)
        assert stored.status == "open"
        assert stored.freelancer_id is None
        assert session.get(Bid, bid.id).status == "pending"

    def test_notification_failure_keeps_hire(
        self, session, project, bid, client_profile, freelancer, as_ctx, notifications_down
    ):
        bus = NotificationBus()
        sub = bus.subscribe()
        result = hire(
            session, as_ctx(client_profile), project.id, freelancer.id,
            bid_id=bid.id, hooks=PipelineHooks(bus=bus),
        )

        assert result.notification is None
        assert sub.queue.empty()
        stored = session.get(Project, project.id)
        assert stored.status == "in_progress"
        assert stored.freelancer_id == freelancer.id
        assert session.get(Bid, bid.id).status == "accepted"
        assert session.scalar(
            select(func.count(Notification.id)).where(Notification.user_id == freelancer.id)
        ) == 0

    def test_rejected_bid_cannot_be_hired(self, session, project, bid, client_profile, freelancer, as_ctx):
        ctx = as_ctx(client_profile)
        reject(session, ctx, project.id, freelancer.id, bid_id=bid.id)
        with pytest.raises(InvalidTransitionError):
            hire(session, ctx, project.id, freelancer.id, bid_id=bid.id)
        assert session.get(Project, project.id).status == "open"

    def test_only_owner(self, session, project, bid, freelancer, as_ctx):
        with pytest.raises(AuthorizationError):
            hire(session, as_ctx(freelancer), project.id, freelancer.id, bid_id=bid.id)
        assert session.get(Project, project.id).status == "open"

    def test_writes_audit_trail(self, session, project, bid, client_profile, freelancer, as_ctx):
        hire(session, as_ctx(client_profile), project.id, freelancer.id, bid_id=bid.id)

        events = list(session.scalars(
            select(PipelineEvent).where(PipelineEvent.entity_id.in_([project.id, bid.id]))
        ))
        changes = {(e.entity, e.field_changed, e.new_value) for e in events}
        assert ("project", "status", "in_progress") in changes
        assert ("project", "freelancer_id", freelancer.id) in changes
        assert ("bid", "status", "accepted") in changes
        assert all(e.changed_by == client_profile.id for e in events)


# ---------------------------------------------------------------------------
# Reject
# ---------------------------------------------------------------------------

class TestReject:
    def test_rejects_bid_and_shortlist(self, session, project, bid, client_profile, freelancer, as_ctx):
        ctx = as_ctx(client_profile)
        shortlist(session, ctx, bid.id)
        result = reject(session, ctx, project.id, freelancer.id, bid_id=bid.id)

        assert result.bid.status == "rejected"
        assert result.shortlist.status == "rejected"
        stored = session.get(Project, project.id)
        assert stored.status == "open"
        assert stored.freelancer_id is None

    def test_without_shortlist(self, session, project, bid, client_profile, freelancer, as_ctx):
        result = reject(session, as_ctx(client_profile), project.id, freelancer.id)
        assert result.bid.status == "rejected"
        assert result.shortlist is None

    def test_accepted_bid_cannot_be_rejected(self, session, project, bid, client_profile, freelancer, as_ctx):
        ctx = as_ctx(client_profile)
        hire(session, ctx, project.id, freelancer.id, bid_id=bid.id)
        with pytest.raises(InvalidTransitionError):
            reject(session, ctx, project.id, freelancer.id, bid_id=bid.id)
        session.refresh(bid)
        assert bid.status == "accepted"

    def test_no_candidacy(self, session, project, make_profile, client_profile, as_ctx):
        nobody = make_profile("freelancer")
        with pytest.raises(NotFoundError):
            reject(session, as_ctx(client_profile), project.id, nobody.id)

    def test_does_not_notify(self, session, project, bid, client_profile, freelancer, as_ctx):
        reject(session, as_ctx(client_profile), project.id, freelancer.id)
        count = session.scalar(
            select(func.count(Notification.id)).where(Notification.user_id == freelancer.id)
        )
        assert count == 0


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------

class TestReads:
    def test_bids_newest_first(self, session, project, make_bid, make_profile, client_profile, as_ctx):
        first = make_bid(project, make_profile("freelancer"))
        second = make_bid(project, make_profile("freelancer"))
        first.created_at = datetime(2024, 1, 1, tzinfo=timezone.utc)
        second.created_at = datetime(2024, 1, 2, tzinfo=timezone.utc)
        session.commit()

        ids = [b.id for b in list_bids(session, as_ctx(client_profile), project.id)]
        assert ids == [second.id, first.id]

    def test_freelancer_sees_only_own_bid(self, session, project, bid, make_bid, make_profile, freelancer, as_ctx):
        make_bid(project, make_profile("freelancer"))
        visible = list_bids(session, as_ctx(freelancer), project.id)
        assert [b.id for b in visible] == [bid.id]

    def test_board(self, session, project, bid, client_profile, as_ctx):
        ctx = as_ctx(client_profile)
        shortlist(session, ctx, bid.id)
        board = candidate_board(session, ctx, project.id)

        assert board["project"].id == project.id
        assert [b.id for b in board["bids"]] == [bid.id]
        assert len(board["shortlists"]) == 1
        assert board["interviews"] == []

    def test_shortlists_for_owner(self, session, project, bid, client_profile, freelancer, as_ctx):
        ctx = as_ctx(client_profile)
        shortlist(session, ctx, bid.id, notes="strong portfolio")
        rows = list_shortlists(session, ctx, project.id)
        assert [(r.freelancer_id, r.notes) for r in rows] == [(freelancer.id, "strong portfolio")]
        with pytest.raises(AuthorizationError):
            list_shortlists(session, as_ctx(freelancer), project.id)

    def test_board_owner_only(self, session, project, freelancer, as_ctx):
        with pytest.raises(AuthorizationError):
            candidate_board(session, as_ctx(freelancer), project.id)

    def test_bid_count_unchanged_by_pipeline(self, session, project, bid, client_profile, freelancer, as_ctx):
        ctx = as_ctx(client_profile)
        mark_viewed(session, ctx, bid.id)
        shortlist(session, ctx, bid.id)
        hire(session, ctx, project.id, freelancer.id, bid_id=bid.id)
        assert session.scalar(select(func.count(Bid.id))) == 1
