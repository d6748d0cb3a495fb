"""
Booking transactor.

Turns a client's request for (coach, date, start time) into a SCHEDULED
workout. All checks run before any write. The checks themselves are not
race-free: two requests can both pass them. The store settles that race,
either through the compare-and-swap on a placeholder or the unique index
on (coach, instant), and the loser gets a ConflictError.
"""

import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional
from uuid import UUID

from .clock import Clock, civil_instant, parse_civil_date, parse_time_of_day
from .errors import (
    ConflictError,
    ForbiddenError,
    InvalidInputError,
    InvalidStateError,
    NotFoundError,
)
from .lifecycle import check_transition
from .models import (
    CLIENT_BUSY_STATES,
    LIVE_STATES,
    Principal,
    Role,
    UserProfile,
    Workout,
    WorkoutState,
)
from .stores import UserStore, WorkoutStore

logger = logging.getLogger(__name__)


DEFAULT_LEAD_TIME = timedelta(minutes=30)

CLIENT_CONFLICT_MESSAGE = "You already have a workout scheduled at this time."
COACH_CONFLICT_MESSAGE = "Coach already has a workout scheduled at this time slot."
SLOT_TAKEN_MESSAGE = "This time slot is already booked. Please try a different time or date."


@dataclass
class BookingResult:
    """A booked workout and whether it was freshly created."""
    workout: Workout
    created: bool


class BookingTransactor:
    """
    Validates and executes reservations.

    A placeholder left behind by a client cancellation is reused in place,
    keeping its id. Otherwise a new workout is minted directly in SCHEDULED.
    """

    def __init__(
        self,
        users: UserStore,
        workouts: WorkoutStore,
        clock: Clock,
        lead_time: timedelta = DEFAULT_LEAD_TIME,
    ) -> None:
        self._users = users
        self._workouts = workouts
        self._clock = clock
        self._lead_time = lead_time

    def book(
        self,
        principal: Principal,
        coach_id: Optional[UUID],
        date_text: Optional[str],
        time_slot: Optional[str],
    ) -> BookingResult:
        """
        Reserve a slot for `principal`.

        Raises:
            ForbiddenError: caller is not a client
            InvalidInputError: missing fields, bad date/time, lead time not met
            NotFoundError: unknown coach, or coach has no slot at that start
            ConflictError: client or coach already busy at that instant
        """
        if principal.role != Role.CLIENT:
            raise ForbiddenError("Only clients can book workouts")

        if not coach_id or not date_text or not time_slot:
            raise InvalidInputError("coachId, date, and timeSlot are required.")

        start_time = parse_time_of_day(time_slot)

        coach = self._users.get_user(coach_id)
        if coach is None or not coach.is_coach:
            raise NotFoundError("Coach not found.")

        slot = coach.slot_calendar.find_by_start(start_time)
        if slot is None:
            raise NotFoundError("Coach not available at the selected time slot.")

        day = parse_civil_date(date_text)
        instant = civil_instant(day, start_time)
        lead_minutes = int(self._lead_time.total_seconds() // 60)
        if instant < self._clock.now() + self._lead_time:
            raise InvalidInputError(
                f"Workouts must be scheduled at least {lead_minutes} minutes in advance."
            )

        if self._workouts.find_for_client_at(principal.id, instant, CLIENT_BUSY_STATES):
            raise ConflictError(CLIENT_CONFLICT_MESSAGE)

        if self._workouts.find_for_coach_at(coach.id, instant, LIVE_STATES):
            raise ConflictError(COACH_CONFLICT_MESSAGE)

        placeholder = self._workouts.find_for_coach_at(
            coach.id, instant, (WorkoutState.AVAILABLE,)
        )
        if placeholder is not None:
            return self._claim(placeholder, principal)

        workout = self._new_workout(coach, principal, instant, slot.duration_minutes)
        self._workouts.add(workout)

        logger.info(
            "Workout booked",
            extra={
                "workout_id": str(workout.id),
                "coach_id": str(coach.id),
                "client_id": str(principal.id),
                "date_time": workout.date_time.isoformat(),
            }
        )
        return BookingResult(workout=workout, created=True)

    def _claim(self, placeholder: Workout, principal: Principal) -> BookingResult:
        """Compare-and-swap an AVAILABLE placeholder into SCHEDULED."""
        check_transition(placeholder.state, WorkoutState.SCHEDULED)

        swapped = self._workouts.transition(
            placeholder.id,
            WorkoutState.AVAILABLE,
            WorkoutState.SCHEDULED,
            client_id=principal.id,
        )
        if not swapped:
            logger.warning(
                "Placeholder claimed concurrently",
                extra={"workout_id": str(placeholder.id), "client_id": str(principal.id)}
            )
            raise ConflictError(SLOT_TAKEN_MESSAGE)

        placeholder.client_id = principal.id
        placeholder.state = WorkoutState.SCHEDULED

        logger.info(
            "Placeholder workout claimed",
            extra={
                "workout_id": str(placeholder.id),
                "client_id": str(principal.id),
            }
        )
        return BookingResult(workout=placeholder, created=False)

    def _new_workout(
        self,
        coach: UserProfile,
        principal: Principal,
        instant,
        duration_minutes: int,
    ) -> Workout:
        activity = coach.preferable_activity
        if activity is None:
            raise InvalidStateError("Coach has no preferable activity configured.")

        return Workout(
            coach_id=coach.id,
            client_id=principal.id,
            date_time=instant,
            duration=duration_minutes,
            activity=activity,
            name=f"{activity.value} class",
            description=f"{activity.value} class with coach {coach.full_name}",
            state=WorkoutState.SCHEDULED,
        )
