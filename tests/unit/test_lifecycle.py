"""
Tests for the workout state machine.

The pure transition functions are checked on their own; WorkoutLifecycle is
checked against a real (in-memory) store so promotion is actually persisted.
"""

from datetime import datetime, timedelta
from uuid import uuid4

import pytest

from workout_booking.core.booking.clock import CIVIL_TZ
from workout_booking.core.booking.errors import InvalidInputError, InvalidStateError
from workout_booking.core.booking.lifecycle import (
    ALLOWED_TRANSITIONS,
    WorkoutLifecycle,
    advance_by_feedback,
    advance_by_time,
    check_transition,
    counterpart_profiles,
)
from workout_booking.core.booking.models import (
    Activity,
    AuthorRole,
    Principal,
    Role,
    TERMINAL_STATES,
    Workout,
    WorkoutState,
)

from conftest import NOW


def _workout(state: WorkoutState, start: datetime, duration: int = 60) -> Workout:
    return Workout(
        coach_id=uuid4(),
        date_time=start,
        duration=duration,
        activity=Activity.YOGA,
        state=state,
    )


# ---------------------------------------------------------------------------
# Pure transitions
# ---------------------------------------------------------------------------

class TestAdvanceByTime:

    START = datetime(2026, 11, 2, 9, 0, tzinfo=CIVIL_TZ)

    def test_before_start_nothing_changes(self):
        workout = _workout(WorkoutState.SCHEDULED, self.START)
        assert advance_by_time(workout, self.START - timedelta(minutes=1)) == WorkoutState.SCHEDULED

    def test_at_start_becomes_in_progress(self):
        workout = _workout(WorkoutState.SCHEDULED, self.START)
        assert advance_by_time(workout, self.START) == WorkoutState.IN_PROGRESS

    def test_at_end_waits_for_client_feedback(self):
        workout = _workout(WorkoutState.SCHEDULED, self.START)
        assert advance_by_time(workout, self.START + timedelta(minutes=60)) == \
            WorkoutState.WAITING_FOR_FEEDBACK_FROM_CLIENT

    def test_in_progress_moves_on_after_end(self):
        workout = _workout(WorkoutState.IN_PROGRESS, self.START)
        assert advance_by_time(workout, self.START + timedelta(hours=3)) == \
            WorkoutState.WAITING_FOR_FEEDBACK_FROM_CLIENT

    def test_in_progress_stays_until_end(self):
        workout = _workout(WorkoutState.IN_PROGRESS, self.START)
        assert advance_by_time(workout, self.START + timedelta(minutes=59)) == \
            WorkoutState.IN_PROGRESS

    @pytest.mark.parametrize("state", [
        WorkoutState.AVAILABLE,
        WorkoutState.WAITING_FOR_FEEDBACK_FROM_CLIENT,
        WorkoutState.WAITING_FOR_FEEDBACK_FROM_COACH,
        WorkoutState.FINISHED,
        WorkoutState.CANCELED,
    ])
    def test_clock_never_moves_other_states(self, state):
        workout = _workout(state, self.START)
        assert advance_by_time(workout, self.START + timedelta(days=2)) == state

    def test_is_idempotent(self):
        workout = _workout(WorkoutState.SCHEDULED, self.START)
        later = self.START + timedelta(hours=2)
        workout.state = advance_by_time(workout, later)
        assert advance_by_time(workout, later) == workout.state


class TestAdvanceByFeedback:

    def test_client_feedback_hands_over_to_coach(self):
        assert advance_by_feedback(
            WorkoutState.WAITING_FOR_FEEDBACK_FROM_CLIENT, AuthorRole.CLIENT
        ) == WorkoutState.WAITING_FOR_FEEDBACK_FROM_COACH

    def test_coach_feedback_finishes(self):
        assert advance_by_feedback(
            WorkoutState.WAITING_FOR_FEEDBACK_FROM_COACH, AuthorRole.COACH
        ) == WorkoutState.FINISHED

    def test_coach_cannot_go_first(self):
        with pytest.raises(InvalidStateError, match="WAITING_FOR_FEEDBACK_FROM_COACH"):
            advance_by_feedback(WorkoutState.WAITING_FOR_FEEDBACK_FROM_CLIENT, AuthorRole.COACH)

    def test_no_feedback_on_scheduled(self):
        with pytest.raises(InvalidStateError):
            advance_by_feedback(WorkoutState.SCHEDULED, AuthorRole.CLIENT)


class TestTransitionTable:

    def test_terminal_states_have_no_exits(self):
        for state in TERMINAL_STATES:
            assert ALLOWED_TRANSITIONS[state] == frozenset()

    def test_every_state_has_an_entry(self):
        assert set(ALLOWED_TRANSITIONS) == set(WorkoutState)

    def test_check_transition_rejects_backwards_move(self):
        with pytest.raises(InvalidStateError):
            check_transition(WorkoutState.FINISHED, WorkoutState.SCHEDULED)

    def test_check_transition_allows_claim(self):
        check_transition(WorkoutState.AVAILABLE, WorkoutState.SCHEDULED)


# ---------------------------------------------------------------------------
# Lazy promotion and sweep
# ---------------------------------------------------------------------------

class TestWorkoutLifecycle:

    def test_listing_promotes_and_persists(
        self, workout_repo, clock, coach, client, make_workout, principal_of
    ):
        """Given a workout that ended an hour ago, listing it moves it on for good."""
        ended = make_workout(coach, NOW - timedelta(hours=2), WorkoutState.SCHEDULED, client)
        lifecycle = WorkoutLifecycle(workout_repo, clock)

        listed = lifecycle.list_for(principal_of(client))

        assert [w.state for w in listed] == [WorkoutState.WAITING_FOR_FEEDBACK_FROM_CLIENT]
        assert workout_repo.get(ended.id).state == WorkoutState.WAITING_FOR_FEEDBACK_FROM_CLIENT

    def test_running_workout_shows_in_progress(
        self, workout_repo, clock, coach, client, make_workout, principal_of
    ):
        make_workout(coach, NOW - timedelta(minutes=30), WorkoutState.SCHEDULED, client)
        lifecycle = WorkoutLifecycle(workout_repo, clock)

        [listed] = lifecycle.list_for(principal_of(client))

        assert listed.state == WorkoutState.IN_PROGRESS

    def test_listing_twice_is_stable(
        self, workout_repo, clock, coach, client, make_workout, principal_of
    ):
        make_workout(coach, NOW - timedelta(hours=2), WorkoutState.SCHEDULED, client)
        lifecycle = WorkoutLifecycle(workout_repo, clock)

        first = lifecycle.list_for(principal_of(client))
        second = lifecycle.list_for(principal_of(client))

        assert [w.state for w in first] == [w.state for w in second]

    def test_coach_listing_hides_placeholders(
        self, workout_repo, clock, coach, client, make_workout, principal_of
    ):
        make_workout(coach, NOW + timedelta(days=1), WorkoutState.AVAILABLE)
        booked = make_workout(coach, NOW + timedelta(days=2), WorkoutState.SCHEDULED, client)
        lifecycle = WorkoutLifecycle(workout_repo, clock)

        listed = lifecycle.list_for(principal_of(coach))

        assert [w.id for w in listed] == [booked.id]

    def test_listing_is_ordered_by_start(
        self, workout_repo, clock, coach, other_coach, client, make_workout, principal_of
    ):
        later = make_workout(coach, NOW + timedelta(days=3), WorkoutState.SCHEDULED, client)
        sooner = make_workout(other_coach, NOW + timedelta(days=1), WorkoutState.SCHEDULED, client)
        lifecycle = WorkoutLifecycle(workout_repo, clock)

        listed = lifecycle.list_for(principal_of(client))

        assert [w.id for w in listed] == [sooner.id, later.id]

    def test_admin_has_no_listing(self, workout_repo, clock):
        lifecycle = WorkoutLifecycle(workout_repo, clock)
        with pytest.raises(InvalidInputError, match="Invalid user role"):
            lifecycle.list_for(Principal(id=uuid4(), role=Role.ADMIN))

    def test_lost_swap_reports_stored_state(
        self, workout_repo, clock, coach, client, make_workout
    ):
        """If another request already moved the workout, promote returns what is stored."""
        workout = make_workout(coach, NOW - timedelta(hours=2), WorkoutState.SCHEDULED, client)
        stale = workout_repo.get(workout.id)
        workout_repo.transition(
            workout.id, WorkoutState.SCHEDULED, WorkoutState.WAITING_FOR_FEEDBACK_FROM_CLIENT
        )
        lifecycle = WorkoutLifecycle(workout_repo, clock)

        [result] = lifecycle.promote([stale])

        assert result.state == WorkoutState.WAITING_FOR_FEEDBACK_FROM_CLIENT

    def test_sweep_promotes_everything_due(
        self, workout_repo, clock, coach, other_coach, client, other_client, make_workout
    ):
        make_workout(coach, NOW - timedelta(hours=3), WorkoutState.SCHEDULED, client)
        make_workout(other_coach, NOW - timedelta(minutes=10), WorkoutState.SCHEDULED, other_client)
        future = make_workout(coach, NOW + timedelta(days=1), WorkoutState.SCHEDULED, client)
        lifecycle = WorkoutLifecycle(workout_repo, clock)

        assert lifecycle.sweep() == 2
        assert lifecycle.sweep() == 0
        assert workout_repo.get(future.id).state == WorkoutState.SCHEDULED


class CountingUsers:
    """Wraps a user store and records every lookup."""

    def __init__(self, users):
        self._users = users
        self.calls = []

    def get_user(self, user_id):
        self.calls.append(user_id)
        return self._users.get_user(user_id)

    def list_coaches(self):
        return self._users.list_coaches()


class TestCounterpartProfiles:

    def test_client_gets_each_coach_once(
        self, user_repo, coach, other_coach, client, make_workout, principal_of
    ):
        workouts = [
            make_workout(coach, NOW + timedelta(days=1), WorkoutState.SCHEDULED, client),
            make_workout(coach, NOW + timedelta(days=2), WorkoutState.SCHEDULED, client),
            make_workout(other_coach, NOW + timedelta(days=3), WorkoutState.SCHEDULED, client),
        ]
        users = CountingUsers(user_repo)

        profiles = counterpart_profiles(users, principal_of(client), workouts)

        assert set(profiles) == {coach.id, other_coach.id}
        assert profiles[coach.id].title == "Yoga Instructor"
        assert sorted(users.calls, key=str) == sorted([coach.id, other_coach.id], key=str)

    def test_coach_gets_clients_and_skips_empty_slots(
        self, user_repo, coach, client, other_client, make_workout, principal_of
    ):
        workouts = [
            make_workout(coach, NOW + timedelta(days=1), WorkoutState.SCHEDULED, client),
            make_workout(coach, NOW + timedelta(days=2), WorkoutState.SCHEDULED, other_client),
            make_workout(coach, NOW + timedelta(days=3), WorkoutState.AVAILABLE),
        ]

        profiles = counterpart_profiles(user_repo, principal_of(coach), workouts)

        assert {p.email for p in profiles.values()} == {"meera@example.com", "arjun@example.com"}

    def test_unknown_people_are_left_out(self, user_repo, client, principal_of):
        ghost = _workout(WorkoutState.SCHEDULED, NOW + timedelta(days=1))

        assert counterpart_profiles(user_repo, principal_of(client), [ghost]) == {}
