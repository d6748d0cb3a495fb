"""
FastAPI dependency injection.

Dependencies provide instances of services, repositories, and configuration
to route handlers. Using dependency injection means:
- Routes don't instantiate their own dependencies (easier to test)
- Dependencies can be overridden in tests (clock, database session)
- Configuration is centralized

One database session is opened per request. FastAPI caches dependencies
within a request, so every repository a handler touches shares it.
"""

import logging
from datetime import timedelta
from typing import Annotated, Generator, Optional

from fastapi import Depends, HTTPException, Security, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session, sessionmaker

from ..config.settings import Settings, get_settings
from ..core.booking.availability import AvailabilityResolver
from ..core.booking.booking import BookingTransactor
from ..core.booking.cancellation import CancellationHandler
from ..core.booking.clock import Clock, SystemClock
from ..core.booking.feedback import CoachReviewReader, FeedbackService
from ..core.booking.lifecycle import WorkoutLifecycle
from ..core.booking.models import Principal
from ..infrastructure.auth.tokens import InvalidTokenError, decode_access_token
from ..infrastructure.database.client import (
    create_database_engine,
    create_session_factory,
    init_database,
)
from ..infrastructure.database.repositories import (
    FeedbackRepository,
    UserRepository,
    WorkoutRepository,
)

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)

# Process-wide engine and session factory (built on first use)
_session_factory: Optional[sessionmaker] = None


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------

def get_session_factory(settings: Settings) -> sessionmaker:
    """
    Build the engine once per process and create missing tables.

    In mock mode the engine is an in-memory SQLite database shared by every
    request, so data persists for the lifetime of the process.
    """
    global _session_factory

    if _session_factory is None:
        engine = create_database_engine(
            settings.effective_database_url,
            echo=settings.database_echo,
        )
        init_database(engine)
        _session_factory = create_session_factory(engine)
        logger.info(
            "Session factory created",
            extra={"mock_mode": settings.database_mock_mode}
        )

    return _session_factory


def get_db_session(
    settings: Annotated[Settings, Depends(get_settings)],
) -> Generator[Session, None, None]:
    """
    Provide a database session for one request.

    This is a generator dependency: FastAPI runs the code after `yield`
    once the response has been produced, so the session is always closed.
    """
    session = get_session_factory(settings)()
    try:
        yield session
    finally:
        session.close()


def get_clock() -> Clock:
    """The wall clock. Tests override this with a fixed one."""
    return SystemClock()


# ---------------------------------------------------------------------------
# Authentication
# ---------------------------------------------------------------------------

async def get_current_principal(
    settings: Annotated[Settings, Depends(get_settings)],
    credentials: Optional[HTTPAuthorizationCredentials] = Security(bearer_scheme),
) -> Principal:
    """
    Verify the bearer token and return the caller.

    Raises 401 if the token is missing or invalid.
    """
    if credentials is None or not credentials.credentials:
        logger.warning("Request missing bearer token")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required. Provide a Bearer token.",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        return decode_access_token(
            credentials.credentials,
            secret_key=settings.auth_secret_key,
            algorithm=settings.auth_algorithm,
        )
    except InvalidTokenError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(e),
            headers={"WWW-Authenticate": "Bearer"},
        )


# ---------------------------------------------------------------------------
# Repository Dependencies
# ---------------------------------------------------------------------------

def get_user_repository(
    session: Annotated[Session, Depends(get_db_session)],
) -> UserRepository:
    return UserRepository(session)


def get_workout_repository(
    session: Annotated[Session, Depends(get_db_session)],
) -> WorkoutRepository:
    return WorkoutRepository(session)


def get_feedback_repository(
    session: Annotated[Session, Depends(get_db_session)],
) -> FeedbackRepository:
    return FeedbackRepository(session)


# ---------------------------------------------------------------------------
# Service Dependencies
# ---------------------------------------------------------------------------

def get_availability_resolver(
    users: Annotated[UserRepository, Depends(get_user_repository)],
    workouts: Annotated[WorkoutRepository, Depends(get_workout_repository)],
    clock: Annotated[Clock, Depends(get_clock)],
) -> AvailabilityResolver:
    return AvailabilityResolver(users, workouts, clock)


def get_booking_transactor(
    settings: Annotated[Settings, Depends(get_settings)],
    users: Annotated[UserRepository, Depends(get_user_repository)],
    workouts: Annotated[WorkoutRepository, Depends(get_workout_repository)],
    clock: Annotated[Clock, Depends(get_clock)],
) -> BookingTransactor:
    return BookingTransactor(
        users,
        workouts,
        clock,
        lead_time=timedelta(minutes=settings.booking_lead_minutes),
    )


def get_workout_lifecycle(
    workouts: Annotated[WorkoutRepository, Depends(get_workout_repository)],
    clock: Annotated[Clock, Depends(get_clock)],
) -> WorkoutLifecycle:
    return WorkoutLifecycle(workouts, clock)


def get_cancellation_handler(
    settings: Annotated[Settings, Depends(get_settings)],
    workouts: Annotated[WorkoutRepository, Depends(get_workout_repository)],
    clock: Annotated[Clock, Depends(get_clock)],
) -> CancellationHandler:
    return CancellationHandler(
        workouts,
        clock,
        cutoff=timedelta(hours=settings.cancellation_cutoff_hours),
    )


def get_feedback_service(
    workouts: Annotated[WorkoutRepository, Depends(get_workout_repository)],
    feedback: Annotated[FeedbackRepository, Depends(get_feedback_repository)],
) -> FeedbackService:
    return FeedbackService(workouts, feedback)


def get_coach_review_reader(
    users: Annotated[UserRepository, Depends(get_user_repository)],
    feedback: Annotated[FeedbackRepository, Depends(get_feedback_repository)],
) -> CoachReviewReader:
    return CoachReviewReader(users, feedback)


# ---------------------------------------------------------------------------
# Convenience Type Aliases
# ---------------------------------------------------------------------------

# These type aliases make route signatures cleaner
CurrentPrincipal = Annotated[Principal, Depends(get_current_principal)]
DbSessionDep = Annotated[Session, Depends(get_db_session)]
AvailabilityResolverDep = Annotated[AvailabilityResolver, Depends(get_availability_resolver)]
BookingTransactorDep = Annotated[BookingTransactor, Depends(get_booking_transactor)]
UserStoreDep = Annotated[UserRepository, Depends(get_user_repository)]
WorkoutLifecycleDep = Annotated[WorkoutLifecycle, Depends(get_workout_lifecycle)]
CancellationHandlerDep = Annotated[CancellationHandler, Depends(get_cancellation_handler)]
FeedbackServiceDep = Annotated[FeedbackService, Depends(get_feedback_service)]
CoachReviewReaderDep = Annotated[CoachReviewReader, Depends(get_coach_review_reader)]
SettingsDep = Annotated[Settings, Depends(get_settings)]
