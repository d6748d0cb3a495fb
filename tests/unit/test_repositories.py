"""Tests for the SQLAlchemy repositories: time handling and store constraints."""

from datetime import datetime, timedelta, timezone
from uuid import uuid4

import pytest

from workout_booking.core.booking.clock import CIVIL_TZ
from workout_booking.core.booking.errors import ConflictError
from workout_booking.core.booking.models import (
    Activity,
    LIVE_STATES,
    Role,
    UserProfile,
    Workout,
    WorkoutState,
)

START = datetime(2026, 11, 3, 9, 0, tzinfo=CIVIL_TZ)


def _workout(coach, state, start=START, client=None) -> Workout:
    return Workout(
        coach_id=coach.id,
        client_id=client.id if client else None,
        date_time=start,
        duration=60,
        activity=Activity.YOGA,
        name="Yoga class",
        state=state,
    )


class TestWorkoutRepository:

    def test_instant_survives_storage_in_any_offset(self, workout_repo, coach):
        """03:30 UTC is 09:00 civil; it reads back as the same instant."""
        utc_start = datetime(2026, 11, 3, 3, 30, tzinfo=timezone.utc)
        stored = workout_repo.add(_workout(coach, WorkoutState.AVAILABLE, start=utc_start))

        loaded = workout_repo.get(stored.id)

        assert loaded.date_time == START
        assert loaded.date_time.utcoffset() == timedelta(hours=5, minutes=30)

    def test_second_live_row_for_same_slot_conflicts(self, workout_repo, coach, client):
        workout_repo.add(_workout(coach, WorkoutState.SCHEDULED, client=client))
        with pytest.raises(ConflictError):
            workout_repo.add(_workout(coach, WorkoutState.AVAILABLE))

    def test_cancelled_rows_do_not_count_toward_uniqueness(self, workout_repo, coach, client):
        workout_repo.add(_workout(coach, WorkoutState.CANCELED, client=client))
        workout_repo.add(_workout(coach, WorkoutState.CANCELED, client=client))
        workout_repo.add(_workout(coach, WorkoutState.SCHEDULED, client=client))

        rows = workout_repo.list_for_coach_between(
            coach.id, START, START + timedelta(minutes=1), list(WorkoutState)
        )
        assert sorted(w.state.value for w in rows) == ["CANCELED", "CANCELED", "SCHEDULED"]

    def test_transition_is_compare_and_swap(self, workout_repo, coach):
        placeholder = workout_repo.add(_workout(coach, WorkoutState.AVAILABLE))

        assert workout_repo.transition(
            placeholder.id, WorkoutState.AVAILABLE, WorkoutState.SCHEDULED
        )
        assert not workout_repo.transition(
            placeholder.id, WorkoutState.AVAILABLE, WorkoutState.SCHEDULED
        )

    def test_cancel_and_release_is_all_or_nothing(self, workout_repo, coach, client):
        booked = workout_repo.add(_workout(coach, WorkoutState.SCHEDULED, client=client))

        # A placeholder that cannot be inserted takes the cancel down with it
        clashing = _workout(coach, WorkoutState.AVAILABLE)
        clashing.coach_id = uuid4()
        with pytest.raises(ConflictError):
            workout_repo.cancel_and_release(booked.id, clashing)

        assert workout_repo.get(booked.id).state == WorkoutState.SCHEDULED

    def test_cancel_and_release_requires_scheduled(self, workout_repo, coach, client):
        running = workout_repo.add(_workout(coach, WorkoutState.IN_PROGRESS, client=client))

        assert not workout_repo.cancel_and_release(
            running.id, _workout(coach, WorkoutState.AVAILABLE)
        )
        assert workout_repo.get(running.id).state == WorkoutState.IN_PROGRESS

    def test_busy_coach_ids_only_counts_requested_states(
        self, workout_repo, coach, other_coach, client
    ):
        workout_repo.add(_workout(coach, WorkoutState.SCHEDULED, client=client))
        workout_repo.add(_workout(other_coach, WorkoutState.AVAILABLE))

        busy = workout_repo.busy_coach_ids_at([coach.id, other_coach.id], START, LIVE_STATES)

        assert busy == {coach.id}

    def test_list_started_before_is_inclusive(self, workout_repo, coach, client):
        workout_repo.add(_workout(coach, WorkoutState.SCHEDULED, client=client))

        assert len(workout_repo.list_started_before(START, [WorkoutState.SCHEDULED])) == 1
        assert workout_repo.list_started_before(
            START - timedelta(minutes=1), [WorkoutState.SCHEDULED]
        ) == []

    def test_delete(self, workout_repo, coach):
        placeholder = workout_repo.add(_workout(coach, WorkoutState.AVAILABLE))

        assert workout_repo.delete(placeholder.id)
        assert not workout_repo.delete(placeholder.id)


class TestUserRepository:

    def test_email_lookup_ignores_case(self, user_repo, coach):
        assert user_repo.get_by_email("ANITA@example.com").id == coach.id

    def test_coaches_are_listed_by_name(self, user_repo, coach, other_coach, client):
        assert [c.last_name for c in user_repo.list_coaches()] == ["Rao", "Shah"]

    def test_save_drops_repeated_slots(self, user_repo):
        saved = user_repo.save_user(UserProfile(
            first_name="Kiran",
            last_name="Das",
            email="kiran@example.com",
            role=Role.COACH,
            preferable_activity=Activity.CLIMBING,
            available_time_slots=["6:00 PM - 7:00 PM", "9:00 AM - 10:00 AM", "06:00 pm - 07:00 pm"],
        ))

        assert user_repo.get_user(saved.id).available_time_slots == [
            "6:00 PM - 7:00 PM",
            "9:00 AM - 10:00 AM",
        ]

    def test_save_rejects_unreadable_slot(self, user_repo):
        with pytest.raises(ValueError):
            user_repo.save_user(UserProfile(
                first_name="Kiran",
                last_name="Das",
                email="kiran@example.com",
                role=Role.COACH,
                preferable_activity=Activity.CLIMBING,
                available_time_slots=["whenever"],
            ))
