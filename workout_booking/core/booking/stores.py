"""
Storage interfaces the booking engine depends on.

Using Protocols here means the services don't know or care whether
workouts live in SQLite, PostgreSQL or an in-memory fake. The
infrastructure layer provides the implementations.

Every write that can collide with a concurrent request is expressed as a
single call (insert, compare-and-swap, or a multi-row change the store runs
in one transaction) so the store can enforce it atomically.
"""

from datetime import datetime
from typing import Iterable, Optional, Protocol
from uuid import UUID

from .models import AuthorRole, Feedback, UserProfile, Workout, WorkoutState


class UserStore(Protocol):
    """Read-only view of the user/profile collaborator."""

    def get_user(self, user_id: UUID) -> Optional[UserProfile]:
        ...

    def list_coaches(self) -> list[UserProfile]:
        ...


class WorkoutStore(Protocol):
    """Durable storage for Workout aggregates."""

    def get(self, workout_id: UUID) -> Optional[Workout]:
        ...

    def find_for_coach_at(
        self,
        coach_id: UUID,
        instant: datetime,
        states: Iterable[WorkoutState],
    ) -> Optional[Workout]:
        ...

    def find_for_client_at(
        self,
        client_id: UUID,
        instant: datetime,
        states: Iterable[WorkoutState],
    ) -> Optional[Workout]:
        ...

    def list_for_coach_between(
        self,
        coach_id: UUID,
        start: datetime,
        end: datetime,
        states: Iterable[WorkoutState],
    ) -> list[Workout]:
        ...

    def busy_coach_ids_at(
        self,
        coach_ids: Iterable[UUID],
        instant: datetime,
        states: Iterable[WorkoutState],
    ) -> set[UUID]:
        ...

    def list_for_client(self, client_id: UUID) -> list[Workout]:
        ...

    def list_for_coach(
        self,
        coach_id: UUID,
        exclude_states: Iterable[WorkoutState] = (),
    ) -> list[Workout]:
        ...

    def list_started_before(
        self,
        instant: datetime,
        states: Iterable[WorkoutState],
    ) -> list[Workout]:
        ...

    def add(self, workout: Workout) -> Workout:
        """Insert. Raises ConflictError on a (coach, instant) collision."""
        ...

    def transition(
        self,
        workout_id: UUID,
        expected: WorkoutState,
        new_state: WorkoutState,
        client_id: Optional[UUID] = None,
    ) -> bool:
        """Compare-and-swap on state. Returns False if the swap lost."""
        ...

    def cancel_and_release(self, workout_id: UUID, placeholder: Workout) -> bool:
        """Mark a SCHEDULED workout CANCELED and insert its placeholder atomically."""
        ...

    def delete(self, workout_id: UUID) -> bool:
        ...


class FeedbackStore(Protocol):
    """Feedback artifacts, plus the state change they trigger."""

    def exists(self, workout_id: UUID, author_role: AuthorRole) -> bool:
        ...

    def record(
        self,
        feedback: Feedback,
        expected: WorkoutState,
        new_state: WorkoutState,
    ) -> Feedback:
        """
        Store the feedback and advance the workout in one transaction.

        Raises InvalidStateError if feedback for that role already exists
        or the workout moved out of `expected` meanwhile.
        """
        ...

    def list_for_coach(
        self,
        coach_id: UUID,
        author_role: AuthorRole,
        offset: int,
        limit: int,
        sort_field: str = "date",
        descending: bool = True,
    ) -> list[Feedback]:
        """A page of feedback about a coach. sort_field is 'date' or 'rating'."""
        ...

    def count_for_coach(self, coach_id: UUID, author_role: AuthorRole) -> int:
        ...
