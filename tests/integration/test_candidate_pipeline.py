"""
End-to-end candidate pipeline scenarios.

1. Client posts a ₹500–₹2000 project, a freelancer bids ₹800 / 5 days, the
   client views, shortlists and hires; notifications and the mirror follow.
2. Two clients' sessions race to hire on the same project: exactly one wins,
   the loser's transaction leaves nothing behind.
"""

import pytest
from sqlalchemy import select

from skillsync.config import MirrorConfig
from skillsync.db.connection import get_engine, get_session_factory, init_db
from skillsync.db.models import Bid, PipelineEvent, Project, Shortlist
from skillsync.errors import ConflictError
from skillsync.marketplace.profiles import create_profile
from skillsync.mirror.backend import LocalDocumentStore
from skillsync.mirror.job import MirrorJob
from skillsync.mirror.queue import MirrorQueue
from skillsync.notifications.bus import EventFilter, NotificationBus
from skillsync.notifications.service import list_notifications
from skillsync.pipeline import (
    PipelineHooks,
    SessionContext,
    hire,
    mark_viewed,
    post_project,
    shortlist,
    submit_bid,
)


def _ctx(profile):
    return SessionContext(user_id=profile.id, role=profile.user_role, email=profile.email)


@pytest.mark.integration
@pytest.mark.asyncio
async def test_post_bid_view_shortlist_hire(tmp_path):
    engine = get_engine(f"sqlite:///{tmp_path}/pipeline.db")
    init_db(engine)
    session_factory = get_session_factory(engine)
    session = session_factory()
    bus = NotificationBus()
    store = LocalDocumentStore(str(tmp_path / "mirror"))
    mirror = MirrorQueue(MirrorJob(session_factory, store), MirrorConfig(enabled=True))
    hooks = PipelineHooks(bus=bus, mirror=mirror)

    client = create_profile(session, "priya@example.com", "Priya", "client")
    freelancer = create_profile(session, "asha@example.com", "Asha", "freelancer")
    client_feed = bus.subscribe(EventFilter(user_id=client.id))
    freelancer_feed = bus.subscribe(EventFilter(user_id=freelancer.id))

    project = post_project(
        session, _ctx(client), "Landing page", "Responsive landing page",
        category="web_development", budget_min=500, budget_max=2000,
    )
    submission = submit_bid(
        session, _ctx(freelancer), project.id, 800, 5, "I build React sites", hooks=hooks
    )
    bid = submission.bid
    assert bid.status == "pending"
    assert submission.mirror == "queued"
    assert (await client_feed.get(timeout=1.0)).type == "new_bid"

    assert mark_viewed(session, _ctx(client), bid.id).status == "viewed"

    entry = shortlist(session, _ctx(client), bid.id)
    assert bid.status == "shortlisted"
    rows = list(session.scalars(select(Shortlist).where(Shortlist.project_id == project.id)))
    assert [(r.client_id, r.freelancer_id) for r in rows] == [(client.id, freelancer.id)]

    result = hire(session, _ctx(client), project.id, freelancer.id, bid_id=bid.id, hooks=hooks)

    assert result.project.freelancer_id == freelancer.id
    assert result.project.status == "in_progress"
    assert result.bid.status == "accepted"
    assert result.shortlist.id == entry.id
    assert result.shortlist.status == "hired"
    assert result.mirror == "queued"

    hired = await freelancer_feed.get(timeout=1.0)
    assert hired.type == "project_status"
    assert "You've been hired!" in hired.message
    assert len(list_notifications(session, freelancer.id)) == 1

    mirror.start()
    await mirror.join()
    await mirror.stop()

    doc = await store.get("projects", project.id)
    assert doc["status"] == "in_progress"
    assert doc["freelancer"]["id"] == freelancer.id
    assert doc["bids"][0]["status"] == "accepted"
    assert mirror.stats["synced"] == 2

    history = [
        (e.entity, e.new_value)
        for e in session.scalars(
            select(PipelineEvent)
            .where(PipelineEvent.entity_id == bid.id)
            .order_by(PipelineEvent.id)
        )
    ]
    assert history == [("bid", "viewed"), ("bid", "shortlisted"), ("bid", "accepted")]
    session.close()
    engine.dispose()


@pytest.mark.integration
def test_concurrent_hires_exactly_one_wins(tmp_path):
    engine = get_engine(f"sqlite:///{tmp_path}/race.db")
    init_db(engine)
    factory = get_session_factory(engine)

    with factory() as setup:
        client = create_profile(setup, "priya@example.com", "Priya", "client")
        first = create_profile(setup, "asha@example.com", "Asha", "freelancer")
        second = create_profile(setup, "ravi@example.com", "Ravi", "freelancer")
        project = post_project(setup, _ctx(client), "Landing page", "Responsive page")
        bid_a = submit_bid(setup, _ctx(first), project.id, 800, 5, "Asha's offer").bid
        bid_b = submit_bid(setup, _ctx(second), project.id, 900, 4, "Ravi's offer").bid

    session_a = factory()
    session_b = factory()
    try:
        # Both sessions hold the project as read while it was still open
        seen_by_a = session_a.get(Project, project.id)
        seen_by_b = session_b.get(Project, project.id)
        assert seen_by_a.status == seen_by_b.status == "open"

        hire(session_b, _ctx(client), project.id, second.id, bid_id=bid_b.id)

        with pytest.raises(ConflictError):
            hire(session_a, _ctx(client), project.id, first.id, bid_id=bid_a.id)
    finally:
        session_a.close()
        session_b.close()

    with factory() as check:
        stored = check.get(Project, project.id)
        assert stored.status == "in_progress"
        assert stored.freelancer_id == second.id
        assert check.get(Bid, bid_a.id).status == "pending"
        assert check.get(Bid, bid_b.id).status == "accepted"
        accepted_events = check.scalars(
            select(PipelineEvent).where(
                PipelineEvent.entity == "bid", PipelineEvent.new_value == "accepted"
            )
        ).all()
        assert [e.entity_id for e in accepted_events] == [bid_b.id]
    engine.dispose()
