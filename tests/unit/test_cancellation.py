"""Tests for CancellationHandler: the cutoff and the per-role side effects."""

from datetime import datetime, timedelta
from uuid import uuid4

import pytest

from workout_booking.core.booking.availability import AvailabilityResolver
from workout_booking.core.booking.cancellation import CancellationHandler, CancellationOutcome
from workout_booking.core.booking.clock import CIVIL_TZ
from workout_booking.core.booking.errors import (
    ForbiddenError,
    InvalidStateError,
    NotFoundError,
)
from workout_booking.core.booking.models import WorkoutState

from conftest import COACH_SLOTS

START = datetime(2026, 11, 3, 9, 0, tzinfo=CIVIL_TZ)


@pytest.fixture
def handler(workout_repo, clock) -> CancellationHandler:
    return CancellationHandler(workout_repo, clock)


@pytest.fixture
def booked(coach, client, make_workout):
    return make_workout(coach, START, WorkoutState.SCHEDULED, client)


def _all_at_start(workout_repo, coach):
    states = list(WorkoutState)
    return workout_repo.list_for_coach_between(coach.id, START, START + timedelta(minutes=1), states)


class TestClientCancellation:

    def test_twelve_hours_and_a_minute_ahead_releases_slot(
        self, handler, clock, workout_repo, coach, booked, principal_of, client
    ):
        clock.set(START - timedelta(hours=12, minutes=1))

        result = handler.cancel(principal_of(client), booked.id)

        assert result.outcome == CancellationOutcome.RELEASED
        assert result.message == "Workout cancelled and new slot made available"
        assert workout_repo.get(booked.id).state == WorkoutState.CANCELED

        siblings = [w for w in _all_at_start(workout_repo, coach) if w.id != booked.id]
        assert len(siblings) == 1
        placeholder = siblings[0]
        assert placeholder.state == WorkoutState.AVAILABLE
        assert placeholder.client_id is None
        assert (placeholder.name, placeholder.activity, placeholder.duration) == (
            booked.name, booked.activity, booked.duration
        )

    def test_exactly_twelve_hours_ahead_is_allowed(
        self, handler, clock, booked, principal_of, client
    ):
        clock.set(START - timedelta(hours=12))
        assert handler.cancel(principal_of(client), booked.id).outcome == CancellationOutcome.RELEASED

    def test_eleven_hours_fifty_nine_is_too_late(
        self, handler, clock, workout_repo, booked, principal_of, client
    ):
        clock.set(START - timedelta(hours=11, minutes=59))

        with pytest.raises(InvalidStateError, match="12 hours in advance"):
            handler.cancel(principal_of(client), booked.id)
        assert workout_repo.get(booked.id).state == WorkoutState.SCHEDULED

    def test_released_slot_shows_as_available_again(
        self, handler, user_repo, workout_repo, clock, coach, booked, principal_of, client
    ):
        resolver = AvailabilityResolver(user_repo, workout_repo, clock)
        assert "9:00 AM - 10:00 AM" not in resolver.resolve(coach.id, "2026-11-03")

        handler.cancel(principal_of(client), booked.id)

        assert resolver.resolve(coach.id, "2026-11-03") == COACH_SLOTS

    def test_client_cannot_cancel_twice(self, handler, booked, principal_of, client):
        handler.cancel(principal_of(client), booked.id)
        with pytest.raises(InvalidStateError, match="Only scheduled workouts"):
            handler.cancel(principal_of(client), booked.id)

    def test_client_cannot_cancel_in_progress(
        self, handler, coach, client, make_workout, principal_of
    ):
        workout = make_workout(coach, START, WorkoutState.IN_PROGRESS, client)
        with pytest.raises(InvalidStateError, match="Only scheduled workouts"):
            handler.cancel(principal_of(client), workout.id)

    def test_other_client_is_forbidden(self, handler, booked, principal_of, other_client):
        with pytest.raises(ForbiddenError):
            handler.cancel(principal_of(other_client), booked.id)


class TestCoachCancellation:

    def test_coach_cancel_removes_record_without_placeholder(
        self, handler, workout_repo, coach, booked, principal_of
    ):
        result = handler.cancel(principal_of(coach), booked.id)

        assert result.outcome == CancellationOutcome.REMOVED
        assert result.message == "Workout cancelled and removed from availability"
        assert workout_repo.get(booked.id) is None
        assert _all_at_start(workout_repo, coach) == []

    def test_coach_can_withdraw_an_open_placeholder(
        self, handler, workout_repo, coach, make_workout, principal_of
    ):
        placeholder = make_workout(coach, START, WorkoutState.AVAILABLE)
        handler.cancel(principal_of(coach), placeholder.id)
        assert workout_repo.get(placeholder.id) is None

    def test_coach_is_bound_by_cutoff_too(self, handler, clock, booked, coach, principal_of):
        clock.set(START - timedelta(hours=1))
        with pytest.raises(InvalidStateError):
            handler.cancel(principal_of(coach), booked.id)

    def test_terminal_workout_cannot_be_cancelled(
        self, handler, coach, client, make_workout, principal_of
    ):
        workout = make_workout(coach, START, WorkoutState.FINISHED, client)
        with pytest.raises(InvalidStateError, match="cannot be cancelled"):
            handler.cancel(principal_of(coach), workout.id)

    def test_other_coach_is_forbidden(self, handler, booked, other_coach, principal_of):
        with pytest.raises(ForbiddenError):
            handler.cancel(principal_of(other_coach), booked.id)


class TestCancelLookup:

    def test_unknown_workout(self, handler, client, principal_of):
        with pytest.raises(NotFoundError):
            handler.cancel(principal_of(client), uuid4())
