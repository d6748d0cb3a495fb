"""
Feedback-triggered transitions.

Recording feedback is what closes a workout: the client's feedback hands the
workout to the coach, the coach's feedback finishes it. Client feedback is
also what visitors read on a coach's profile, a page at a time.
"""

import logging
import math
from dataclasses import dataclass
from typing import Optional, Union
from uuid import UUID

from .errors import ForbiddenError, InvalidInputError, InvalidStateError, NotFoundError
from .lifecycle import advance_by_feedback
from .models import AuthorRole, Feedback, Principal, Role, UserProfile
from .stores import FeedbackStore, UserStore, WorkoutStore

logger = logging.getLogger(__name__)

DUPLICATE_FEEDBACK_MESSAGE = "You have already provided feedback for this workout."


def parse_rating(value: Union[int, float, str, None]) -> float:
    """Ratings arrive as numbers or numeric strings; valid range is (0, 5]."""
    if value is None or value == "":
        raise InvalidInputError("Please provide all the required fields.")
    try:
        rating = float(value)
    except (TypeError, ValueError):
        raise InvalidInputError("Invalid Rating.")
    if not 0 < rating <= 5:
        raise InvalidInputError("Invalid Rating.")
    return rating


class FeedbackService:
    """Validates feedback and applies the state change it triggers."""

    def __init__(self, workouts: WorkoutStore, feedback: FeedbackStore) -> None:
        self._workouts = workouts
        self._feedback = feedback

    def submit(
        self,
        principal: Principal,
        workout_id: Optional[UUID],
        rating: Union[int, float, str, None],
        comment: Optional[str],
    ) -> Feedback:
        """
        Record feedback from the workout's client or coach.

        Guards run in order: input, role, existence, state, identity,
        duplicate. The insert and the state change commit together.
        """
        if not workout_id or not comment or not comment.strip():
            raise InvalidInputError("Please provide all the required fields.")
        score = parse_rating(rating)

        if principal.role == Role.CLIENT:
            author_role = AuthorRole.CLIENT
        elif principal.role == Role.COACH:
            author_role = AuthorRole.COACH
        else:
            raise ForbiddenError("Only clients and coaches can leave feedback.")

        workout = self._workouts.get(workout_id)
        if workout is None:
            raise NotFoundError("Workout not found.")

        next_state = advance_by_feedback(workout.state, author_role)

        owner = workout.client_id if author_role == AuthorRole.CLIENT else workout.coach_id
        if owner != principal.id:
            raise ForbiddenError("You are not authorized to provide feedback for this workout.")

        if self._feedback.exists(workout.id, author_role):
            raise InvalidStateError(DUPLICATE_FEEDBACK_MESSAGE)

        feedback = Feedback(
            workout_id=workout.id,
            client_id=workout.client_id,
            coach_id=workout.coach_id,
            author_role=author_role,
            rating=score,
            comment=comment.strip(),
        )
        stored = self._feedback.record(feedback, workout.state, next_state)

        logger.info(
            "Feedback recorded",
            extra={
                "workout_id": str(workout.id),
                "feedback_id": str(stored.id),
                "author_role": author_role.value,
                "new_state": next_state.value,
            }
        )
        return stored


# ---------------------------------------------------------------------------
# Coach reviews
# ---------------------------------------------------------------------------

DEFAULT_PAGE_SIZE = 5
REVIEW_SORT_FIELDS = ("date", "rating")


def parse_review_sort(sort: Optional[str]) -> tuple[str, bool]:
    """
    Parse 'field,order' into (field, descending).

    Unknown fields fall back to date; anything but 'asc' sorts descending.
    """
    if not sort:
        return "date", True

    field_name, _, order = sort.partition(",")
    field_name = field_name.strip().lower()
    if field_name not in REVIEW_SORT_FIELDS:
        field_name = "date"
    return field_name, order.strip().lower() != "asc"


@dataclass
class ReviewPage:
    """One page of client feedback about a coach, with each author's profile."""
    entries: list[tuple[Feedback, Optional[UserProfile]]]
    page: int
    size: int
    total: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.size) if self.size else 0


class CoachReviewReader:
    """Pages through the feedback clients left for a coach."""

    def __init__(self, users: UserStore, feedback: FeedbackStore) -> None:
        self._users = users
        self._feedback = feedback

    def page(
        self,
        coach_id: UUID,
        page: int = 1,
        size: int = DEFAULT_PAGE_SIZE,
        sort: Optional[str] = None,
    ) -> ReviewPage:
        coach = self._users.get_user(coach_id)
        if coach is None or not coach.is_coach:
            raise NotFoundError("Coach not found")

        page = page if page and page > 0 else 1
        size = size if size and size > 0 else DEFAULT_PAGE_SIZE
        sort_field, descending = parse_review_sort(sort)

        items = self._feedback.list_for_coach(
            coach.id,
            AuthorRole.CLIENT,
            offset=(page - 1) * size,
            limit=size,
            sort_field=sort_field,
            descending=descending,
        )
        total = self._feedback.count_for_coach(coach.id, AuthorRole.CLIENT)

        authors: dict[UUID, Optional[UserProfile]] = {}
        for item in items:
            if item.client_id not in authors:
                authors[item.client_id] = self._users.get_user(item.client_id)

        return ReviewPage(
            entries=[(item, authors[item.client_id]) for item in items],
            page=page,
            size=size,
            total=total,
        )
