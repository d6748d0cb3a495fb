"""
SQLAlchemy table definitions.

These are storage shapes, not domain objects. Repositories translate rows
into the dataclasses in core.booking.models and back.

Date-times are stored naive, as civil time in the fixed offset. Every
instant the engine handles is in that one offset, so naive civil values
compare and index exactly like the aware ones they came from.
"""

from datetime import datetime

from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import declarative_base

from ...core.booking.clock import CIVIL_TZ, civil_now, to_civil

Base = declarative_base()


def to_storage_time(value: datetime) -> datetime:
    """Aware datetime -> naive civil datetime for storage."""
    return to_civil(value).replace(tzinfo=None)


def from_storage_time(value: datetime) -> datetime:
    """Naive civil datetime from storage -> aware datetime."""
    if value.tzinfo is not None:
        return to_civil(value)
    return value.replace(tzinfo=CIVIL_TZ)


def storage_now() -> datetime:
    return to_storage_time(civil_now())


class UserRow(Base):
    """Profile data owned by the user collaborator. Read-only to the engine."""
    __tablename__ = "users"

    id = Column(Uuid, primary_key=True)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    email = Column(String(255), unique=True, nullable=False)
    role = Column(String(16), nullable=False, default="CLIENT", index=True)
    preferable_activity = Column(String(32), nullable=True)
    available_time_slots = Column(JSON, nullable=False, default=list)
    specializations = Column(JSON, nullable=False, default=list)
    title = Column(String(255), nullable=False, default="")
    about = Column(Text, nullable=True)
    image_url = Column(String(1024), nullable=False, default="")
    created_at = Column(DateTime, nullable=False, default=storage_now)


class WorkoutRow(Base):
    __tablename__ = "workouts"

    id = Column(Uuid, primary_key=True)
    name = Column(String(255), nullable=False)
    activity = Column(String(32), nullable=False)
    description = Column(Text, nullable=False, default="")
    date_time = Column(DateTime, nullable=False)
    duration = Column(Integer, nullable=False, default=60)
    coach_id = Column(Uuid, ForeignKey("users.id"), nullable=False)
    client_id = Column(Uuid, ForeignKey("users.id"), nullable=True)
    state = Column(String(40), nullable=False, default="AVAILABLE")
    feedback_id = Column(Uuid, nullable=True)
    created_at = Column(DateTime, nullable=False, default=storage_now)
    updated_at = Column(DateTime, nullable=False, default=storage_now)

    __table_args__ = (
        # One live occupant per coach and instant. CANCELED rows are history.
        Index(
            "uq_workouts_coach_slot",
            "coach_id",
            "date_time",
            unique=True,
            sqlite_where=(state != "CANCELED"),
            postgresql_where=(state != "CANCELED"),
        ),
        Index("ix_workouts_client_slot", "client_id", "date_time"),
        Index("ix_workouts_state_date_time", "state", "date_time"),
    )


class FeedbackRow(Base):
    __tablename__ = "feedbacks"

    id = Column(Uuid, primary_key=True)
    workout_id = Column(Uuid, ForeignKey("workouts.id", ondelete="CASCADE"), nullable=False)
    client_id = Column(Uuid, ForeignKey("users.id"), nullable=False)
    coach_id = Column(Uuid, ForeignKey("users.id"), nullable=False, index=True)
    author_role = Column(String(16), nullable=False)
    rating = Column(Float, nullable=False)
    comment = Column(Text, nullable=False)
    created_at = Column(DateTime, nullable=False, default=storage_now)

    __table_args__ = (
        UniqueConstraint("workout_id", "author_role", name="uq_feedbacks_workout_author"),
    )
