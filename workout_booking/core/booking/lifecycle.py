"""
Workout state machine.

The transition rules are plain functions so the read-triggered promotion
in WorkoutLifecycle.list_for and the periodic sweep share exactly the same
logic. Both are idempotent: applying them twice at the same instant changes
nothing the second time.

    AVAILABLE --claim--> SCHEDULED --start--> IN_PROGRESS --end--> WAITING_FOR_FEEDBACK_FROM_CLIENT
    WAITING_FOR_FEEDBACK_FROM_CLIENT --client feedback--> WAITING_FOR_FEEDBACK_FROM_COACH
    WAITING_FOR_FEEDBACK_FROM_COACH --coach feedback--> FINISHED
    SCHEDULED --client cancel--> CANCELED

Coach cancellation deletes the record instead of transitioning it.
"""

import logging
from datetime import datetime
from typing import Iterable
from uuid import UUID

from .clock import Clock
from .errors import InvalidInputError, InvalidStateError
from .models import AuthorRole, Principal, Role, UserProfile, Workout, WorkoutState
from .stores import UserStore, WorkoutStore

logger = logging.getLogger(__name__)


ALLOWED_TRANSITIONS: dict[WorkoutState, frozenset[WorkoutState]] = {
    WorkoutState.AVAILABLE: frozenset({WorkoutState.SCHEDULED}),
    WorkoutState.SCHEDULED: frozenset({
        WorkoutState.IN_PROGRESS,
        WorkoutState.WAITING_FOR_FEEDBACK_FROM_CLIENT,
        WorkoutState.CANCELED,
    }),
    WorkoutState.IN_PROGRESS: frozenset({WorkoutState.WAITING_FOR_FEEDBACK_FROM_CLIENT}),
    WorkoutState.WAITING_FOR_FEEDBACK_FROM_CLIENT: frozenset({
        WorkoutState.WAITING_FOR_FEEDBACK_FROM_COACH,
    }),
    WorkoutState.WAITING_FOR_FEEDBACK_FROM_COACH: frozenset({WorkoutState.FINISHED}),
    WorkoutState.FINISHED: frozenset(),
    WorkoutState.CANCELED: frozenset(),
}

# The state a workout must be in for each author role to leave feedback.
FEEDBACK_AWAITED_FROM: dict[AuthorRole, WorkoutState] = {
    AuthorRole.CLIENT: WorkoutState.WAITING_FOR_FEEDBACK_FROM_CLIENT,
    AuthorRole.COACH: WorkoutState.WAITING_FOR_FEEDBACK_FROM_COACH,
}

# States the clock can move a workout out of.
TIME_DRIVEN_STATES = (WorkoutState.SCHEDULED, WorkoutState.IN_PROGRESS)


def check_transition(current: WorkoutState, target: WorkoutState) -> None:
    """Raise InvalidStateError unless current -> target is in the table."""
    if target not in ALLOWED_TRANSITIONS[current]:
        raise InvalidStateError(
            f"Workout cannot move from {current.value} to {target.value}."
        )


def advance_by_time(workout: Workout, now: datetime) -> WorkoutState:
    """
    The state `workout` should be in at `now`, considering only the clock.

    Pure: it never mutates the workout, so callers decide whether and how
    to persist the result.
    """
    if workout.state not in TIME_DRIVEN_STATES:
        return workout.state

    if now >= workout.end_time:
        return WorkoutState.WAITING_FOR_FEEDBACK_FROM_CLIENT

    if workout.state == WorkoutState.SCHEDULED and now >= workout.date_time:
        return WorkoutState.IN_PROGRESS

    return workout.state


def advance_by_feedback(current: WorkoutState, author_role: AuthorRole) -> WorkoutState:
    """The state after `author_role` leaves feedback on a workout in `current`."""
    awaited = FEEDBACK_AWAITED_FROM[author_role]
    if current != awaited:
        raise InvalidStateError(
            f"Feedback can only be submitted when the workout is in "
            f"'{awaited.value}' state."
        )

    if author_role == AuthorRole.CLIENT:
        return WorkoutState.WAITING_FOR_FEEDBACK_FROM_COACH
    return WorkoutState.FINISHED


class WorkoutLifecycle:
    """
    Applies time-driven transitions and serves the "my workouts" listing.

    Promotion happens when someone looks. There is no background timer
    unless the optional sweep is scheduled, and the sweep calls the same
    promote() as the read path.
    """

    def __init__(self, workouts: WorkoutStore, clock: Clock) -> None:
        self._workouts = workouts
        self._clock = clock

    def list_for(self, principal: Principal) -> list[Workout]:
        """
        The caller's workouts ordered by start, promoted to the current state.

        Clients see every workout they booked. Coaches see every workout
        they run except unclaimed placeholders.
        """
        if principal.role == Role.CLIENT:
            workouts = self._workouts.list_for_client(principal.id)
        elif principal.role == Role.COACH:
            workouts = self._workouts.list_for_coach(
                principal.id,
                exclude_states=(WorkoutState.AVAILABLE,),
            )
        else:
            raise InvalidInputError("Invalid user role")

        promoted = self.promote(workouts)
        return sorted(promoted, key=lambda w: w.date_time)

    def promote(self, workouts: list[Workout]) -> list[Workout]:
        """Persist any clock-driven transitions, returning fresh workouts."""
        now = self._clock.now()
        result = []

        for workout in workouts:
            target = advance_by_time(workout, now)
            if target == workout.state:
                result.append(workout)
                continue

            check_transition(workout.state, target)
            swapped = self._workouts.transition(workout.id, workout.state, target)
            if swapped:
                logger.info(
                    "Workout promoted",
                    extra={
                        "workout_id": str(workout.id),
                        "from_state": workout.state.value,
                        "to_state": target.value,
                    }
                )
                workout.state = target
                result.append(workout)
                continue

            # Another request changed it first; report what is stored now.
            current = self._workouts.get(workout.id)
            if current is not None:
                result.append(current)

        return result

    def sweep(self) -> int:
        """
        Promote every workout whose start has passed.

        Returns the number of workouts that changed state.
        """
        now = self._clock.now()
        due = self._workouts.list_started_before(now, TIME_DRIVEN_STATES)
        before = {w.id: w.state for w in due}
        promoted = self.promote(due)
        changed = sum(1 for w in promoted if before.get(w.id) != w.state)

        logger.info(
            "Lifecycle sweep finished",
            extra={"examined": len(due), "promoted": changed}
        )
        return changed


def counterpart_profiles(
    users: UserStore,
    principal: Principal,
    workouts: Iterable[Workout],
) -> dict[UUID, UserProfile]:
    """
    Profiles of the other party on each workout, keyed by user id.

    A client's counterpart is the coach, a coach's is the client. Each
    distinct person is looked up once. Ids the profile store no longer
    knows are left out.
    """
    if principal.role == Role.CLIENT:
        ids = {w.coach_id for w in workouts}
    else:
        ids = {w.client_id for w in workouts if w.client_id is not None}

    profiles = {}
    for user_id in ids:
        profile = users.get_user(user_id)
        if profile is not None:
            profiles[user_id] = profile
    return profiles
