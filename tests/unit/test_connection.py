"""Tests for engine/session helpers and the audit listener."""

import pytest
from sqlalchemy import select

from skillsync.db.connection import get_engine, get_session, get_session_factory, init_db
from skillsync.db.models import PipelineEvent, Profile, Project


@pytest.fixture
def file_engine(tmp_path):
    engine = get_engine(f"sqlite:///{tmp_path}/nested/skillsync.db")
    init_db(engine)
    yield engine
    engine.dispose()


class TestGetSession:
    def test_commits_on_exit(self, file_engine):
        with get_session(file_engine) as session:
            session.add(Profile(email="a@example.com", full_name="Asha", user_role="freelancer"))

        with get_session(file_engine) as session:
            assert session.scalar(select(Profile.email)) == "a@example.com"

    def test_rolls_back_on_error(self, file_engine):
        with pytest.raises(RuntimeError):
            with get_session(file_engine) as session:
                session.add(Profile(email="b@example.com", full_name="Ravi", user_role="client"))
                session.flush()
                raise RuntimeError("boom")

        with get_session(file_engine) as session:
            assert session.scalar(select(Profile)) is None


class TestAuditListener:
    def test_status_change_recorded_with_actor(self, file_engine):
        factory = get_session_factory(file_engine)
        with factory() as session:
            client = Profile(email="c@example.com", full_name="Priya", user_role="client")
            session.add(client)
            session.flush()
            project = Project(client_id=client.id, title="Landing page", description="Page")
            session.add(project)
            session.commit()

            session.info["actor"] = client.id
            project.status = "cancelled"
            session.commit()

            event = session.scalar(select(PipelineEvent))
            assert (event.entity, event.field_changed) == ("project", "status")
            assert (event.old_value, event.new_value) == ("open", "cancelled")
            assert event.changed_by == client.id
