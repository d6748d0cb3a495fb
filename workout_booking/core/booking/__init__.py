"""
Booking and scheduling engine.

Contains the domain models, the availability resolver, the booking
transactor, the workout state machine, cancellation policy and
feedback-triggered transitions.
"""

from .availability import AvailabilityResolver
from .booking import BookingResult, BookingTransactor
from .cancellation import CancellationHandler, CancellationOutcome, CancellationResult
from .clock import CIVIL_TZ, Clock, SystemClock
from .errors import (
    BookingError,
    ConflictError,
    ForbiddenError,
    InvalidInputError,
    InvalidStateError,
    NotFoundError,
)
from .feedback import CoachReviewReader, FeedbackService, ReviewPage
from .lifecycle import (
    WorkoutLifecycle,
    advance_by_feedback,
    advance_by_time,
    counterpart_profiles,
)
from .models import (
    Activity,
    AuthorRole,
    Feedback,
    Principal,
    Role,
    SlotCalendar,
    TimeSlot,
    UserProfile,
    Workout,
    WorkoutState,
)

__all__ = [
    "AvailabilityResolver",
    "BookingResult",
    "BookingTransactor",
    "CancellationHandler",
    "CancellationOutcome",
    "CancellationResult",
    "CIVIL_TZ",
    "Clock",
    "SystemClock",
    "BookingError",
    "ConflictError",
    "ForbiddenError",
    "InvalidInputError",
    "InvalidStateError",
    "NotFoundError",
    "CoachReviewReader",
    "FeedbackService",
    "ReviewPage",
    "WorkoutLifecycle",
    "advance_by_feedback",
    "advance_by_time",
    "counterpart_profiles",
    "Activity",
    "AuthorRole",
    "Feedback",
    "Principal",
    "Role",
    "SlotCalendar",
    "TimeSlot",
    "UserProfile",
    "Workout",
    "WorkoutState",
]
