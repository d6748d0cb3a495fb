"""
Workout repository.

Implements core.booking.stores.WorkoutStore on SQLAlchemy. The repository:
1. Translates between Workout dataclasses and rows
2. Encapsulates every query on the workouts table
3. Turns uniqueness violations into ConflictError at this boundary

Writes that race with other requests are single statements or single
transactions: an INSERT guarded by the (coach, instant) unique index, or an
UPDATE ... WHERE state = :expected compare-and-swap.
"""

import logging
from datetime import datetime
from typing import Iterable, Optional
from uuid import UUID

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ....core.booking.booking import SLOT_TAKEN_MESSAGE
from ....core.booking.errors import ConflictError
from ....core.booking.models import Activity, Workout, WorkoutState
from ..tables import WorkoutRow, from_storage_time, storage_now, to_storage_time

logger = logging.getLogger(__name__)


def _state_values(states: Iterable[WorkoutState]) -> list[str]:
    return [state.value for state in states]


class WorkoutRepository:
    """
    Persistence for Workout aggregates.

    Each public write method is its own unit of work and commits before
    returning.
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    # -----------------------------------------------------------------------
    # Reads
    # -----------------------------------------------------------------------

    def get(self, workout_id: UUID) -> Optional[Workout]:
        row = self._session.get(WorkoutRow, workout_id)
        return self._to_domain(row) if row else None

    def find_for_coach_at(
        self,
        coach_id: UUID,
        instant: datetime,
        states: Iterable[WorkoutState],
    ) -> Optional[Workout]:
        row = self._session.scalars(
            select(WorkoutRow)
            .where(
                WorkoutRow.coach_id == coach_id,
                WorkoutRow.date_time == to_storage_time(instant),
                WorkoutRow.state.in_(_state_values(states)),
            )
            .limit(1)
        ).first()
        return self._to_domain(row) if row else None

    def find_for_client_at(
        self,
        client_id: UUID,
        instant: datetime,
        states: Iterable[WorkoutState],
    ) -> Optional[Workout]:
        row = self._session.scalars(
            select(WorkoutRow)
            .where(
                WorkoutRow.client_id == client_id,
                WorkoutRow.date_time == to_storage_time(instant),
                WorkoutRow.state.in_(_state_values(states)),
            )
            .limit(1)
        ).first()
        return self._to_domain(row) if row else None

    def list_for_coach_between(
        self,
        coach_id: UUID,
        start: datetime,
        end: datetime,
        states: Iterable[WorkoutState],
    ) -> list[Workout]:
        """Workouts with start in the half-open range [start, end)."""
        rows = self._session.scalars(
            select(WorkoutRow)
            .where(
                WorkoutRow.coach_id == coach_id,
                WorkoutRow.date_time >= to_storage_time(start),
                WorkoutRow.date_time < to_storage_time(end),
                WorkoutRow.state.in_(_state_values(states)),
            )
            .order_by(WorkoutRow.date_time)
        ).all()
        return [self._to_domain(row) for row in rows]

    def busy_coach_ids_at(
        self,
        coach_ids: Iterable[UUID],
        instant: datetime,
        states: Iterable[WorkoutState],
    ) -> set[UUID]:
        ids = list(coach_ids)
        if not ids:
            return set()

        rows = self._session.scalars(
            select(WorkoutRow.coach_id).where(
                WorkoutRow.coach_id.in_(ids),
                WorkoutRow.date_time == to_storage_time(instant),
                WorkoutRow.state.in_(_state_values(states)),
            )
        ).all()
        return set(rows)

    def list_for_client(self, client_id: UUID) -> list[Workout]:
        rows = self._session.scalars(
            select(WorkoutRow)
            .where(WorkoutRow.client_id == client_id)
            .order_by(WorkoutRow.date_time)
        ).all()
        return [self._to_domain(row) for row in rows]

    def list_for_coach(
        self,
        coach_id: UUID,
        exclude_states: Iterable[WorkoutState] = (),
    ) -> list[Workout]:
        query = select(WorkoutRow).where(WorkoutRow.coach_id == coach_id)
        excluded = _state_values(exclude_states)
        if excluded:
            query = query.where(WorkoutRow.state.not_in(excluded))

        rows = self._session.scalars(query.order_by(WorkoutRow.date_time)).all()
        return [self._to_domain(row) for row in rows]

    def list_started_before(
        self,
        instant: datetime,
        states: Iterable[WorkoutState],
    ) -> list[Workout]:
        rows = self._session.scalars(
            select(WorkoutRow)
            .where(
                WorkoutRow.date_time <= to_storage_time(instant),
                WorkoutRow.state.in_(_state_values(states)),
            )
            .order_by(WorkoutRow.date_time)
        ).all()
        return [self._to_domain(row) for row in rows]

    # -----------------------------------------------------------------------
    # Writes
    # -----------------------------------------------------------------------

    def add(self, workout: Workout) -> Workout:
        """
        Insert a new workout.

        The unique index on (coach_id, date_time) for non-canceled rows is
        the last word on double booking: if a concurrent request won, the
        commit fails here and the caller sees a ConflictError.
        """
        self._session.add(self._to_row(workout))
        try:
            self._session.commit()
        except IntegrityError as e:
            self._session.rollback()
            logger.warning(
                "Workout insert rejected by uniqueness constraint",
                extra={
                    "coach_id": str(workout.coach_id),
                    "date_time": workout.date_time.isoformat(),
                    "error": str(e.orig),
                }
            )
            raise ConflictError(SLOT_TAKEN_MESSAGE) from e
        return workout

    def transition(
        self,
        workout_id: UUID,
        expected: WorkoutState,
        new_state: WorkoutState,
        client_id: Optional[UUID] = None,
    ) -> bool:
        """Compare-and-swap the state. Returns False if it was not `expected`."""
        values: dict = {"state": new_state.value, "updated_at": storage_now()}
        if client_id is not None:
            values["client_id"] = client_id

        try:
            result = self._session.execute(
                update(WorkoutRow)
                .where(WorkoutRow.id == workout_id, WorkoutRow.state == expected.value)
                .values(**values)
            )
            self._session.commit()
        except IntegrityError as e:
            self._session.rollback()
            raise ConflictError(SLOT_TAKEN_MESSAGE) from e

        return result.rowcount == 1

    def cancel_and_release(self, workout_id: UUID, placeholder: Workout) -> bool:
        """
        Cancel a SCHEDULED workout and restore its slot, in one transaction.

        The cancel runs first so the partial unique index no longer counts
        the old row when the placeholder is inserted.
        """
        try:
            result = self._session.execute(
                update(WorkoutRow)
                .where(
                    WorkoutRow.id == workout_id,
                    WorkoutRow.state == WorkoutState.SCHEDULED.value,
                )
                .values(state=WorkoutState.CANCELED.value, updated_at=storage_now())
            )
            if result.rowcount != 1:
                self._session.rollback()
                return False

            self._session.add(self._to_row(placeholder))
            self._session.commit()
        except IntegrityError as e:
            self._session.rollback()
            logger.error(
                "Placeholder insert failed during cancellation",
                extra={"workout_id": str(workout_id), "error": str(e.orig)}
            )
            raise ConflictError(SLOT_TAKEN_MESSAGE) from e

        return True

    def delete(self, workout_id: UUID) -> bool:
        result = self._session.execute(delete(WorkoutRow).where(WorkoutRow.id == workout_id))
        self._session.commit()
        return result.rowcount == 1

    # -----------------------------------------------------------------------
    # Private Methods
    # -----------------------------------------------------------------------

    def _to_row(self, workout: Workout) -> WorkoutRow:
        return WorkoutRow(
            id=workout.id,
            name=workout.name,
            activity=workout.activity.value,
            description=workout.description,
            date_time=to_storage_time(workout.date_time),
            duration=workout.duration,
            coach_id=workout.coach_id,
            client_id=workout.client_id,
            state=workout.state.value,
            feedback_id=workout.feedback_id,
            created_at=to_storage_time(workout.created_at),
            updated_at=to_storage_time(workout.updated_at),
        )

    def _to_domain(self, row: WorkoutRow) -> Workout:
        return Workout(
            id=row.id,
            name=row.name,
            activity=Activity(row.activity),
            description=row.description or "",
            date_time=from_storage_time(row.date_time),
            duration=row.duration,
            coach_id=row.coach_id,
            client_id=row.client_id,
            state=WorkoutState(row.state),
            feedback_id=row.feedback_id,
            created_at=from_storage_time(row.created_at),
            updated_at=from_storage_time(row.updated_at),
        )
