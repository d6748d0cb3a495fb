"""
Shared fixtures.

Every test gets its own in-memory SQLite database and a clock pinned to a
known instant, so policy boundaries (lead time, cancellation cutoff) can be
hit exactly.
"""

from datetime import datetime, timedelta

import pytest
from fastapi.testclient import TestClient

from workout_booking.api.dependencies import get_clock, get_db_session
from workout_booking.config.settings import Settings, get_settings
from workout_booking.core.booking.clock import CIVIL_TZ
from workout_booking.core.booking.models import (
    Activity,
    Principal,
    Role,
    UserProfile,
    Workout,
    WorkoutState,
)
from workout_booking.infrastructure.auth import create_access_token
from workout_booking.infrastructure.database.client import (
    create_database_engine,
    create_session_factory,
    init_database,
    session_scope,
)
from workout_booking.infrastructure.database.repositories import (
    FeedbackRepository,
    UserRepository,
    WorkoutRepository,
)
from workout_booking.main import create_app

# Monday 2 November 2026, 08:00 civil time
NOW = datetime(2026, 11, 2, 8, 0, tzinfo=CIVIL_TZ)

COACH_SLOTS = ["9:00 AM - 10:00 AM", "10:30 AM - 11:30 AM", "6:00 PM - 7:30 PM"]


class FixedClock:
    """A clock that only moves when told to."""

    def __init__(self, now: datetime) -> None:
        self.current = now

    def now(self) -> datetime:
        return self.current

    def set(self, now: datetime) -> None:
        self.current = now

    def advance(self, **kwargs) -> None:
        self.current = self.current + timedelta(**kwargs)


# ---------------------------------------------------------------------------
# Infrastructure
# ---------------------------------------------------------------------------

@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(NOW)


@pytest.fixture
def engine():
    engine = create_database_engine("sqlite://")
    init_database(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return create_session_factory(engine)


@pytest.fixture
def session(session_factory):
    with session_scope(session_factory) as session:
        yield session


@pytest.fixture
def user_repo(session) -> UserRepository:
    return UserRepository(session)


@pytest.fixture
def workout_repo(session) -> WorkoutRepository:
    return WorkoutRepository(session)


@pytest.fixture
def feedback_repo(session) -> FeedbackRepository:
    return FeedbackRepository(session)


# ---------------------------------------------------------------------------
# People
# ---------------------------------------------------------------------------

@pytest.fixture
def coach(user_repo) -> UserProfile:
    return user_repo.save_user(UserProfile(
        first_name="Anita",
        last_name="Rao",
        email="anita@example.com",
        role=Role.COACH,
        preferable_activity=Activity.YOGA,
        available_time_slots=list(COACH_SLOTS),
        title="Yoga Instructor",
    ))


@pytest.fixture
def other_coach(user_repo) -> UserProfile:
    return user_repo.save_user(UserProfile(
        first_name="Vikram",
        last_name="Shah",
        email="vikram@example.com",
        role=Role.COACH,
        preferable_activity=Activity.STRENGTH_TRAINING,
        available_time_slots=["9:00 AM - 10:30 AM", "5:00 PM - 6:00 PM"],
        about="Ten years of helping beginners lift safely.",
    ))


@pytest.fixture
def client(user_repo) -> UserProfile:
    return user_repo.save_user(UserProfile(
        first_name="Meera",
        last_name="Iyer",
        email="meera@example.com",
        role=Role.CLIENT,
    ))


@pytest.fixture
def other_client(user_repo) -> UserProfile:
    return user_repo.save_user(UserProfile(
        first_name="Arjun",
        last_name="Menon",
        email="arjun@example.com",
        role=Role.CLIENT,
    ))


@pytest.fixture
def principal_of():
    """Turn a saved profile into the Principal its token would carry."""
    def _principal(user: UserProfile) -> Principal:
        return Principal(id=user.id, role=user.role)
    return _principal


@pytest.fixture
def make_workout(workout_repo):
    """Insert a workout directly, bypassing booking rules."""
    def _make(coach: UserProfile, start: datetime, state: WorkoutState,
              client: UserProfile | None = None, duration: int = 60) -> Workout:
        return workout_repo.add(Workout(
            coach_id=coach.id,
            client_id=client.id if client else None,
            date_time=start,
            duration=duration,
            activity=coach.preferable_activity or Activity.YOGA,
            name=f"{(coach.preferable_activity or Activity.YOGA).value} class",
            description="seeded",
            state=state,
        ))
    return _make


# ---------------------------------------------------------------------------
# HTTP
# ---------------------------------------------------------------------------

@pytest.fixture
def settings() -> Settings:
    return Settings(auth_secret_key="test-secret", database_mock_mode=True)


@pytest.fixture
def api(session_factory, clock, settings) -> TestClient:
    """
    A client for an app wired to the test database and clock.

    The lifespan is not entered, so no engine of the app's own is built.
    """
    app = create_app()

    def _session():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db_session] = _session
    app.dependency_overrides[get_clock] = lambda: clock
    app.dependency_overrides[get_settings] = lambda: settings
    return TestClient(app)


@pytest.fixture
def auth_headers(settings):
    """Bearer headers for a saved profile."""
    def _headers(user: UserProfile) -> dict[str, str]:
        token = create_access_token(
            user.id, user.role, settings.auth_secret_key, settings.auth_algorithm
        )
        return {"Authorization": f"Bearer {token}"}
    return _headers
