"""
Feedback repository.

Storing a feedback and advancing its workout happen in one transaction: the
feedback row is inserted, then the workout is compare-and-swapped from the
state the caller observed. Either both land or neither does.
"""

import logging
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ....core.booking.errors import InvalidStateError
from ....core.booking.feedback import DUPLICATE_FEEDBACK_MESSAGE
from ....core.booking.models import AuthorRole, Feedback, WorkoutState
from ..tables import FeedbackRow, WorkoutRow, from_storage_time, storage_now, to_storage_time

logger = logging.getLogger(__name__)

STALE_STATE_MESSAGE = "Workout state changed while submitting feedback. Please try again."


class FeedbackRepository:
    """Implements FeedbackStore."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def exists(self, workout_id: UUID, author_role: AuthorRole) -> bool:
        found = self._session.scalars(
            select(FeedbackRow.id).where(
                FeedbackRow.workout_id == workout_id,
                FeedbackRow.author_role == author_role.value,
            )
        ).first()
        return found is not None

    def record(
        self,
        feedback: Feedback,
        expected: WorkoutState,
        new_state: WorkoutState,
    ) -> Feedback:
        self._session.add(FeedbackRow(
            id=feedback.id,
            workout_id=feedback.workout_id,
            client_id=feedback.client_id,
            coach_id=feedback.coach_id,
            author_role=feedback.author_role.value,
            rating=feedback.rating,
            comment=feedback.comment,
            created_at=to_storage_time(feedback.created_at),
        ))

        try:
            self._session.flush()
        except IntegrityError as e:
            self._session.rollback()
            logger.warning(
                "Duplicate feedback rejected",
                extra={
                    "workout_id": str(feedback.workout_id),
                    "author_role": feedback.author_role.value,
                }
            )
            raise InvalidStateError(DUPLICATE_FEEDBACK_MESSAGE) from e

        result = self._session.execute(
            update(WorkoutRow)
            .where(
                WorkoutRow.id == feedback.workout_id,
                WorkoutRow.state == expected.value,
            )
            .values(
                state=new_state.value,
                feedback_id=feedback.id,
                updated_at=storage_now(),
            )
        )
        if result.rowcount != 1:
            self._session.rollback()
            logger.warning(
                "Workout moved before feedback could advance it",
                extra={"workout_id": str(feedback.workout_id), "expected": expected.value}
            )
            raise InvalidStateError(STALE_STATE_MESSAGE)

        self._session.commit()
        return feedback

    def list_for_coach(
        self,
        coach_id: UUID,
        author_role: AuthorRole,
        offset: int,
        limit: int,
        sort_field: str = "date",
        descending: bool = True,
    ) -> list[Feedback]:
        column = FeedbackRow.rating if sort_field == "rating" else FeedbackRow.created_at
        order = column.desc() if descending else column.asc()

        rows = self._session.scalars(
            select(FeedbackRow)
            .where(
                FeedbackRow.coach_id == coach_id,
                FeedbackRow.author_role == author_role.value,
            )
            .order_by(order, FeedbackRow.id)
            .offset(offset)
            .limit(limit)
        ).all()
        return [self._to_domain(row) for row in rows]

    def count_for_coach(self, coach_id: UUID, author_role: AuthorRole) -> int:
        return self._session.scalar(
            select(func.count())
            .select_from(FeedbackRow)
            .where(
                FeedbackRow.coach_id == coach_id,
                FeedbackRow.author_role == author_role.value,
            )
        ) or 0

    def _to_domain(self, row: FeedbackRow) -> Feedback:
        return Feedback(
            id=row.id,
            workout_id=row.workout_id,
            client_id=row.client_id,
            coach_id=row.coach_id,
            author_role=AuthorRole(row.author_role),
            rating=row.rating,
            comment=row.comment,
            created_at=from_storage_time(row.created_at),
        )
