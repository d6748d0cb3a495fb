"""
Cancellation policy.

Who cancels decides what happens to the slot:
- a client cancelling keeps the workout as CANCELED history and puts an
  AVAILABLE placeholder back for other clients;
- a coach cancelling removes the workout outright, taking that capacity
  off the calendar.

Either way it has to happen at least the cutoff (12 hours) before start.
"""

import logging
from dataclasses import dataclass
from datetime import timedelta
from enum import Enum
from uuid import UUID

from .clock import Clock
from .errors import ForbiddenError, InvalidStateError, NotFoundError
from .lifecycle import check_transition
from .models import Principal, Role, Workout, WorkoutState
from .stores import WorkoutStore

logger = logging.getLogger(__name__)


DEFAULT_CUTOFF = timedelta(hours=12)


class CancellationOutcome(Enum):
    RELEASED = "released"  # client cancelled, placeholder restored
    REMOVED = "removed"    # coach cancelled, record deleted


@dataclass(frozen=True)
class CancellationResult:
    workout_id: UUID
    outcome: CancellationOutcome
    message: str


class CancellationHandler:
    """Enforces the cutoff and applies the per-role side effect."""

    def __init__(
        self,
        workouts: WorkoutStore,
        clock: Clock,
        cutoff: timedelta = DEFAULT_CUTOFF,
    ) -> None:
        self._workouts = workouts
        self._clock = clock
        self._cutoff = cutoff

    def cancel(self, principal: Principal, workout_id: UUID) -> CancellationResult:
        """
        Cancel a workout on behalf of its coach or its client.

        Raises:
            NotFoundError: no such workout
            ForbiddenError: caller is neither the coach nor the client
            InvalidStateError: inside the cutoff, or the state forbids it
        """
        workout = self._workouts.get(workout_id)
        if workout is None:
            raise NotFoundError("Workout not found")

        is_coach = principal.role == Role.COACH and workout.coach_id == principal.id
        is_client = principal.role == Role.CLIENT and workout.client_id == principal.id
        if not is_coach and not is_client:
            logger.warning(
                "Cancellation by unrelated user rejected",
                extra={"workout_id": str(workout_id), "user_id": str(principal.id)}
            )
            raise ForbiddenError("Not authorized to cancel this workout")

        cutoff_hours = int(self._cutoff.total_seconds() // 3600)
        if workout.date_time - self._clock.now() < self._cutoff:
            raise InvalidStateError(
                f"Workout can only be cancelled {cutoff_hours} hours in advance"
            )

        if is_client:
            return self._cancel_as_client(workout)
        return self._cancel_as_coach(workout)

    def _cancel_as_client(self, workout: Workout) -> CancellationResult:
        if workout.state != WorkoutState.SCHEDULED:
            raise InvalidStateError("Only scheduled workouts can be cancelled")
        check_transition(workout.state, WorkoutState.CANCELED)

        placeholder = workout.released_copy()
        if not self._workouts.cancel_and_release(workout.id, placeholder):
            raise InvalidStateError("Only scheduled workouts can be cancelled")

        logger.info(
            "Workout cancelled by client",
            extra={
                "workout_id": str(workout.id),
                "placeholder_id": str(placeholder.id),
            }
        )
        return CancellationResult(
            workout_id=workout.id,
            outcome=CancellationOutcome.RELEASED,
            message="Workout cancelled and new slot made available",
        )

    def _cancel_as_coach(self, workout: Workout) -> CancellationResult:
        if workout.is_terminal:
            raise InvalidStateError(
                f"A {workout.state.value} workout cannot be cancelled"
            )

        if not self._workouts.delete(workout.id):
            raise NotFoundError("Workout not found")

        logger.info(
            "Workout cancelled by coach",
            extra={"workout_id": str(workout.id), "coach_id": str(workout.coach_id)}
        )
        return CancellationResult(
            workout_id=workout.id,
            outcome=CancellationOutcome.REMOVED,
            message="Workout cancelled and removed from availability",
        )
