import itertools
import os

os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from booking_app.database import get_session
from booking_app.main import app
from booking_app.models.event_type import EventType
from booking_app.models.organization import Membership, Organization
from booking_app.models.profile import Profile
from booking_app.models.user import User
from booking_app.repositories.profile_repo import ProfileRepository


@pytest.fixture(name="engine")
def engine_fixture():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)


@pytest.fixture(name="session")
def session_fixture(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture(name="client")
def client_fixture(session: Session):
    def get_session_override():
        return session

    app.dependency_overrides[get_session] = get_session_override
    client = TestClient(app)
    yield client
    app.dependency_overrides.clear()


def _persist(session: Session, row):
    session.add(row)
    session.commit()
    session.refresh(row)
    return row


@pytest.fixture
def make_user(session: Session):
    counter = itertools.count(1)

    def _make_user(username: str | None = "alice", **fields) -> User:
        n = next(counter)
        fields.setdefault("email", f"{username or 'user'}{n}@example.com")
        return _persist(session, User(username=username, **fields))

    return _make_user


@pytest.fixture
def make_org(session: Session):
    def _make_org(name: str = "Acme", slug: str | None = "acme", metadata: dict | None = None) -> Organization:
        return _persist(session, Organization(name=name, slug=slug, org_metadata=metadata))

    return _make_org


@pytest.fixture
def make_profile(session: Session):
    def _make_profile(user: User, org: Organization, username: str | None = None) -> Profile:
        _persist(session, Membership(user_id=user.id, team_id=org.id, accepted=True))
        return _persist(
            session,
            Profile(
                uid=ProfileRepository.generate_profile_uid(),
                user_id=user.id,
                organization_id=org.id,
                username=username or user.username,
            ),
        )

    return _make_profile


@pytest.fixture
def make_event_type(session: Session):
    def _make_event_type(user: User, slug: str, **fields) -> EventType:
        fields.setdefault("title", slug.replace("-", " ").title())
        return _persist(session, EventType(user_id=user.id, slug=slug, **fields))

    return _make_event_type
