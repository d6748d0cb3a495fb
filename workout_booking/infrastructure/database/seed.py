"""
Load user profiles from plain records (e.g. a JSON file).

Profiles belong to the user service in production. Seeding exists so a
local or mock-mode deployment has coaches to book.
"""

import logging
from typing import Any, Iterable
from uuid import UUID, uuid4

from sqlalchemy.orm import Session

from ...core.booking.models import Activity, Role, SlotCalendar, UserProfile
from .repositories.users import UserRepository

logger = logging.getLogger(__name__)


class SeedRecordError(ValueError):
    """A record could not be turned into a profile."""
    pass


def profile_from_record(record: dict[str, Any]) -> UserProfile:
    """
    Build a UserProfile from a camelCase record.

    Required: firstName, lastName, email. Coaches also need a
    preferableActivity and at least one parseable availableTimeSlots label.
    """
    missing = [key for key in ("firstName", "lastName", "email") if not record.get(key)]
    if missing:
        raise SeedRecordError(f"Missing fields: {', '.join(missing)}")

    try:
        role = Role(str(record.get("role", "CLIENT")).upper())
    except ValueError:
        raise SeedRecordError(f"Unknown role: {record.get('role')!r}")

    activity = None
    if record.get("preferableActivity"):
        try:
            activity = Activity.parse(record["preferableActivity"])
        except ValueError as e:
            raise SeedRecordError(str(e))

    labels = list(record.get("availableTimeSlots") or [])
    try:
        calendar = SlotCalendar.from_labels(labels)
    except ValueError as e:
        raise SeedRecordError(str(e))

    if role == Role.COACH:
        if activity is None:
            raise SeedRecordError(f"Coach {record['email']} has no preferableActivity")
        if not len(calendar):
            raise SeedRecordError(f"Coach {record['email']} has no availableTimeSlots")

    try:
        user_id = UUID(str(record["id"])) if record.get("id") else uuid4()
    except ValueError:
        raise SeedRecordError(f"Invalid id for {record['email']}: {record['id']!r}")

    return UserProfile(
        id=user_id,
        first_name=record["firstName"],
        last_name=record["lastName"],
        email=record["email"],
        role=role,
        preferable_activity=activity,
        available_time_slots=calendar.labels,
        specializations=list(record.get("specializations") or []),
        title=record.get("title", ""),
        about=record.get("about"),
        image_url=record.get("imageUrl", ""),
    )


def seed_users(session: Session, records: Iterable[dict[str, Any]]) -> list[UserProfile]:
    """
    Validate every record, then save them all.

    Nothing is written if any record is invalid.
    """
    profiles = [profile_from_record(record) for record in records]

    repository = UserRepository(session)
    for profile in profiles:
        existing = repository.get_by_email(profile.email)
        if existing is not None:
            profile.id = existing.id
        repository.save_user(profile)

    logger.info(
        "Users seeded",
        extra={
            "total": len(profiles),
            "coaches": sum(1 for p in profiles if p.is_coach),
        }
    )
    return profiles
