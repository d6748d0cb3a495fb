"""
Domain models for workout booking.

These models represent the core business concepts. They have no dependencies
on external frameworks, databases, or APIs. A Workout here is the same
object whether it came from SQLite, PostgreSQL or a test fixture.
"""

import re
from dataclasses import dataclass, field
from datetime import datetime, time, timedelta
from enum import Enum
from typing import Iterable, Optional
from uuid import UUID, uuid4

from .clock import civil_now


class Role(Enum):
    """Actor roles issued by the identity provider."""
    CLIENT = "CLIENT"
    COACH = "COACH"
    ADMIN = "ADMIN"


class AuthorRole(Enum):
    """Who wrote a feedback artifact."""
    CLIENT = "CLIENT"
    COACH = "COACH"


class Activity(Enum):
    """The closed set of activities a coach can run."""
    YOGA = "Yoga"
    CLIMBING = "Climbing"
    STRENGTH_TRAINING = "Strength training"
    CROSS_FIT = "Cross-fit"
    CARDIO_TRAINING = "Cardio Training"
    REHABILITATION = "Rehabilitation"

    @classmethod
    def parse(cls, value: str) -> "Activity":
        """Case-insensitive lookup by display value."""
        wanted = value.strip().lower()
        for activity in cls:
            if activity.value.lower() == wanted:
                return activity
        valid = ", ".join(a.value for a in cls)
        raise ValueError(f"Invalid activity. Valid activities are: {valid}")


class WorkoutState(Enum):
    """
    Lifecycle of a Workout.

    AVAILABLE is a placeholder (reusable capacity), not an occupation.
    FINISHED and CANCELED are terminal.
    """
    AVAILABLE = "AVAILABLE"
    SCHEDULED = "SCHEDULED"
    IN_PROGRESS = "IN_PROGRESS"
    WAITING_FOR_FEEDBACK_FROM_CLIENT = "WAITING_FOR_FEEDBACK_FROM_CLIENT"
    WAITING_FOR_FEEDBACK_FROM_COACH = "WAITING_FOR_FEEDBACK_FROM_COACH"
    FINISHED = "FINISHED"
    CANCELED = "CANCELED"


# States that occupy a calendar instant.
LIVE_STATES = frozenset({
    WorkoutState.SCHEDULED,
    WorkoutState.IN_PROGRESS,
    WorkoutState.WAITING_FOR_FEEDBACK_FROM_CLIENT,
    WorkoutState.WAITING_FOR_FEEDBACK_FROM_COACH,
})

# States a client can hold that block them from booking the same instant.
CLIENT_BUSY_STATES = frozenset({
    WorkoutState.SCHEDULED,
    WorkoutState.IN_PROGRESS,
})

TERMINAL_STATES = frozenset({
    WorkoutState.FINISHED,
    WorkoutState.CANCELED,
})


# ---------------------------------------------------------------------------
# Slot values
# ---------------------------------------------------------------------------

_CLOCK_PATTERN = re.compile(r"^\s*([0-9]{1,2}):([0-9]{2})\s*([AaPp][Mm])\s*$")
_MINUTES_PER_DAY = 24 * 60


def format_clock(value: time) -> str:
    """12-hour display format used in slot labels: '9:00 AM', '12:30 PM'."""
    period = "PM" if value.hour >= 12 else "AM"
    hour12 = value.hour % 12 or 12
    return f"{hour12}:{value.minute:02d} {period}"


def parse_clock(text: str) -> time:
    """Inverse of format_clock. Raises ValueError on anything else."""
    match = _CLOCK_PATTERN.match(text)
    if not match:
        raise ValueError(f"Invalid 12-hour time: {text!r}")

    hour12, minute, period = int(match.group(1)), int(match.group(2)), match.group(3).upper()
    if not 1 <= hour12 <= 12 or minute > 59:
        raise ValueError(f"Invalid 12-hour time: {text!r}")

    hour = hour12 % 12 + (12 if period == "PM" else 0)
    return time(hour, minute)


@dataclass(frozen=True)
class TimeSlot:
    """
    A recurring time-of-day range, e.g. 10:30 AM - 11:30 AM.

    Frozen because slots are values. Two slots with the same start and end
    are the same slot no matter how their labels were typed.
    """
    start: time
    end: time

    def __post_init__(self) -> None:
        if self.start == self.end:
            raise ValueError("Slot end must differ from slot start")

    @classmethod
    def parse(cls, label: str) -> "TimeSlot":
        """Parse a display label of the form 'h:mm AM - h:mm PM'."""
        parts = label.split("-")
        if len(parts) != 2:
            raise ValueError(f"Invalid slot label: {label!r}")
        return cls(start=parse_clock(parts[0]), end=parse_clock(parts[1]))

    @classmethod
    def starting_at(cls, start: datetime, duration_minutes: int) -> "TimeSlot":
        """The slot occupied by a session starting at `start`."""
        end = start + timedelta(minutes=duration_minutes)
        return cls(start=start.time().replace(second=0, microsecond=0),
                   end=end.time().replace(second=0, microsecond=0))

    @property
    def label(self) -> str:
        return f"{format_clock(self.start)} - {format_clock(self.end)}"

    @property
    def duration_minutes(self) -> int:
        """Length in minutes. An end before the start wraps past midnight."""
        start = self.start.hour * 60 + self.start.minute
        end = self.end.hour * 60 + self.end.minute
        return (end - start) % _MINUTES_PER_DAY


@dataclass(frozen=True)
class SlotCalendar:
    """
    A coach's published weekly availability template.

    Keeps the original labels for display and the parsed slots for matching.
    The engine reads this; it never edits it.
    """
    entries: tuple[tuple[str, TimeSlot], ...] = ()

    @classmethod
    def from_labels(cls, labels: Iterable[str]) -> "SlotCalendar":
        entries = []
        seen: set[TimeSlot] = set()
        for label in labels:
            slot = TimeSlot.parse(label)
            if slot in seen:
                continue
            seen.add(slot)
            entries.append((label, slot))
        return cls(entries=tuple(entries))

    @property
    def labels(self) -> list[str]:
        return [label for label, _ in self.entries]

    def __contains__(self, slot: object) -> bool:
        return any(existing == slot for _, existing in self.entries)

    def __len__(self) -> int:
        return len(self.entries)

    def find_by_start(self, start: time) -> Optional[TimeSlot]:
        """The first slot beginning at `start`, if any."""
        for _, slot in self.entries:
            if slot.start == start:
                return slot
        return None

    def remaining(self, occupied: Iterable[TimeSlot]) -> list[str]:
        """Labels not in `occupied`, in template order."""
        taken = set(occupied)
        return [label for label, slot in self.entries if slot not in taken]


# ---------------------------------------------------------------------------
# Actors
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Principal:
    """The authenticated caller as issued by the identity provider."""
    id: UUID
    role: Role


@dataclass
class UserProfile:
    """
    A user as the profile store describes them.

    Only coaches carry a Slot Calendar and a preferred activity; the engine
    reads these and never writes them.
    """
    id: UUID = field(default_factory=uuid4)
    first_name: str = ""
    last_name: str = ""
    email: str = ""
    role: Role = Role.CLIENT
    preferable_activity: Optional[Activity] = None
    available_time_slots: list[str] = field(default_factory=list)
    specializations: list[str] = field(default_factory=list)
    title: str = ""
    about: Optional[str] = None
    image_url: str = ""

    @property
    def is_coach(self) -> bool:
        return self.role == Role.COACH

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def slot_calendar(self) -> SlotCalendar:
        return SlotCalendar.from_labels(self.available_time_slots)

    @property
    def about_text(self) -> str:
        if self.about:
            return self.about
        activity = self.preferable_activity.value if self.preferable_activity else "Fitness"
        return (
            f"A {activity} Expert dedicated to crafting personalized workout "
            f"plans that align with your goals."
        )


# ---------------------------------------------------------------------------
# Workouts and feedback
# ---------------------------------------------------------------------------

@dataclass
class Workout:
    """
    A single time-boxed session between a coach and (eventually) a client.

    This is the aggregate the whole engine revolves around. `date_time` is
    always timezone-aware in the fixed civil offset.
    """
    coach_id: UUID
    date_time: datetime
    activity: Activity
    name: str = ""
    description: str = ""
    id: UUID = field(default_factory=uuid4)
    duration: int = 60
    client_id: Optional[UUID] = None
    state: WorkoutState = WorkoutState.AVAILABLE
    feedback_id: Optional[UUID] = None
    created_at: datetime = field(default_factory=civil_now)
    updated_at: datetime = field(default_factory=civil_now)

    def __post_init__(self) -> None:
        if self.date_time.tzinfo is None:
            raise ValueError("Workout date_time must be timezone-aware")
        if self.duration <= 0:
            raise ValueError("Workout duration must be positive")

    @property
    def end_time(self) -> datetime:
        return self.date_time + timedelta(minutes=self.duration)

    @property
    def time_slot(self) -> TimeSlot:
        return TimeSlot.starting_at(self.date_time, self.duration)

    @property
    def is_live(self) -> bool:
        return self.state in LIVE_STATES

    @property
    def is_terminal(self) -> bool:
        return self.state in TERMINAL_STATES

    def released_copy(self) -> "Workout":
        """A fresh AVAILABLE placeholder for the same coach and instant."""
        return Workout(
            coach_id=self.coach_id,
            date_time=self.date_time,
            activity=self.activity,
            name=self.name,
            description=self.description,
            duration=self.duration,
            state=WorkoutState.AVAILABLE,
        )


@dataclass
class Feedback:
    """
    A rating and comment left on a finished session.

    Immutable once stored. At most one per (workout, author role).
    """
    workout_id: UUID
    client_id: UUID
    coach_id: UUID
    author_role: AuthorRole
    rating: float
    comment: str
    id: UUID = field(default_factory=uuid4)
    created_at: datetime = field(default_factory=civil_now)

    def __post_init__(self) -> None:
        if not 0 < self.rating <= 5:
            raise ValueError("Rating must be greater than 0 and at most 5")
        if not self.comment.strip():
            raise ValueError("Feedback comment cannot be empty")
