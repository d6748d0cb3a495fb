"""
Availability resolution.

Read-only questions about the calendar: which of a coach's slots are still
free on a date, and which coaches are free at a given instant. Nothing here
writes to the store.
"""

import logging
from typing import Optional
from uuid import UUID

from .clock import (
    Clock,
    civil_day_bounds,
    civil_instant,
    ensure_not_past_day,
    parse_civil_date,
    parse_time_of_day,
)
from .errors import InvalidInputError, NotFoundError
from .models import LIVE_STATES, Activity, UserProfile
from .stores import UserStore, WorkoutStore

logger = logging.getLogger(__name__)


class AvailabilityResolver:
    """
    Answers availability queries from the Slot Calendar and live workouts.

    A slot is taken only by a live workout. CANCELED history and AVAILABLE
    placeholders never hide a slot; a placeholder is unclaimed capacity.
    """

    def __init__(self, users: UserStore, workouts: WorkoutStore, clock: Clock) -> None:
        self._users = users
        self._workouts = workouts
        self._clock = clock

    def list_coaches(self) -> list[UserProfile]:
        return self._users.list_coaches()

    def get_coach(self, coach_id: UUID) -> UserProfile:
        """Load a coach profile or raise NotFoundError."""
        user = self._users.get_user(coach_id)
        if user is None or not user.is_coach:
            raise NotFoundError("Coach not found")
        return user

    def resolve(self, coach_id: UUID, date_text: str) -> list[str]:
        """
        Free slot labels for a coach on a civil date, in template order.

        Equals the coach's Slot Calendar minus the slots of every live
        workout that coach has on that day.
        """
        day = parse_civil_date(date_text)
        ensure_not_past_day(day, self._clock.now())
        coach = self.get_coach(coach_id)

        start, end = civil_day_bounds(day)
        booked = self._workouts.list_for_coach_between(coach.id, start, end, LIVE_STATES)
        occupied = {workout.time_slot for workout in booked}

        available = coach.slot_calendar.remaining(occupied)

        logger.debug(
            "Resolved coach availability",
            extra={
                "coach_id": str(coach_id),
                "date": date_text,
                "booked": len(booked),
                "available": len(available),
            }
        )
        return available

    def open_coaches(
        self,
        date_text: str,
        time_text: str,
        activity: Optional[str] = None,
        coach_id: Optional[UUID] = None,
    ) -> list[UserProfile]:
        """
        Coaches who publish a slot starting at `time_text` and are free then.

        Optional filters narrow the candidates by activity (case-insensitive)
        and by coach id.
        """
        if not date_text or not time_text:
            raise InvalidInputError("Date and time are required.")

        wanted_activity = None
        if activity:
            try:
                wanted_activity = Activity.parse(activity)
            except ValueError as e:
                raise InvalidInputError(str(e))

        day = parse_civil_date(date_text)
        time_of_day = parse_time_of_day(time_text)
        instant = civil_instant(day, time_of_day)

        if instant < self._clock.now():
            raise InvalidInputError("Workouts cannot be scheduled in the past.")

        candidates = [
            coach for coach in self._users.list_coaches()
            if coach.slot_calendar.find_by_start(time_of_day) is not None
            and (wanted_activity is None or coach.preferable_activity == wanted_activity)
            and (coach_id is None or coach.id == coach_id)
        ]
        if not candidates:
            return []

        busy = self._workouts.busy_coach_ids_at(
            [coach.id for coach in candidates],
            instant,
            LIVE_STATES,
        )
        return [coach for coach in candidates if coach.id not in busy]
