"""
SkillSync Test Configuration

Shared fixtures for all tests.
"""
import pytest
from sqlalchemy.exc import OperationalError

from skillsync.db.connection import get_engine, get_session_factory, init_db
from skillsync.db.models import Notification
from skillsync.marketplace.profiles import create_profile
from skillsync.pipeline import SessionContext, post_project, submit_bid


# =============================================================================
# FIXTURES: Database
# =============================================================================

@pytest.fixture
def engine():
    eng = get_engine("sqlite://")
    init_db(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return get_session_factory(engine)


@pytest.fixture
def session(session_factory):
    s = session_factory()
    yield s
    s.close()


# =============================================================================
# FIXTURES: Factories
# =============================================================================

def ctx_for(profile, is_admin: bool = False) -> SessionContext:
    """SessionContext for a stored profile."""
    return SessionContext(
        user_id=profile.id,
        role=profile.user_role,
        is_admin=is_admin,
        email=profile.email,
    )


@pytest.fixture
def as_ctx():
    return ctx_for


@pytest.fixture
def make_profile(session):
    counter = {"n": 0}

    def _make(role="client", name=None, email=None, **fields):
        counter["n"] += 1
        n = counter["n"]
        return create_profile(
            session,
            email=email or f"{role}{n}@example.com",
            full_name=name or f"{role.title()} {n}",
            user_role=role,
            **fields,
        )

    return _make


@pytest.fixture
def client_profile(make_profile):
    return make_profile("client", name="Priya Client")


@pytest.fixture
def freelancer(make_profile):
    return make_profile("freelancer", name="Asha Rao", skills=["React", "Python"])


@pytest.fixture
def make_project(session, client_profile):
    def _make(owner=None, **fields):
        owner = owner or client_profile
        defaults = {
            "title": "Landing page",
            "description": "Build a responsive landing page",
            "category": "web_development",
            "budget_min": 500.0,
            "budget_max": 2000.0,
        }
        defaults.update(fields)
        return post_project(session, ctx_for(owner), **defaults)

    return _make


@pytest.fixture
def project(make_project):
    return make_project()


@pytest.fixture
def make_bid(session):
    def _make(project, freelancer, amount=800.0, delivery_days=5, proposal="I can do this"):
        return submit_bid(
            session, ctx_for(freelancer), project.id, amount, delivery_days, proposal
        ).bid

    return _make


@pytest.fixture
def bid(make_bid, project, freelancer):
    return make_bid(project, freelancer)


# =============================================================================
# FIXTURES: Failure injection
# =============================================================================

@pytest.fixture
def notifications_down(session, monkeypatch):
    """Any commit carrying a new Notification row fails; other commits go through."""
    real_commit = session.commit

    def _commit():
        if any(isinstance(obj, Notification) for obj in session.new):
            raise OperationalError(
                "INSERT INTO notifications", {}, Exception("database is locked")
            )
        real_commit()

    monkeypatch.setattr(session, "commit", _commit)
