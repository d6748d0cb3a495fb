"""
User repository.

The booking engine only reads profiles (implements UserStore). The write
methods exist for seeding and tests; in production the profile service
owns these rows.
"""

import logging
from typing import Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from ....core.booking.models import Activity, Role, SlotCalendar, UserProfile
from ..tables import UserRow

logger = logging.getLogger(__name__)


class UserRepository:
    """
    Repository for user profiles.

    Slot labels are validated on the way in so the engine can trust every
    calendar it reads back.
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    def get_user(self, user_id: UUID) -> Optional[UserProfile]:
        row = self._session.get(UserRow, user_id)
        return self._to_domain(row) if row else None

    def get_by_email(self, email: str) -> Optional[UserProfile]:
        row = self._session.scalars(
            select(UserRow).where(UserRow.email == email.lower())
        ).first()
        return self._to_domain(row) if row else None

    def list_coaches(self) -> list[UserProfile]:
        rows = self._session.scalars(
            select(UserRow)
            .where(UserRow.role == Role.COACH.value)
            .order_by(UserRow.last_name, UserRow.first_name)
        ).all()
        return [self._to_domain(row) for row in rows]

    def save_user(self, user: UserProfile) -> UserProfile:
        """
        Insert or update a profile.

        Raises:
            ValueError: If any slot label does not parse
        """
        calendar = SlotCalendar.from_labels(user.available_time_slots)

        row = self._session.get(UserRow, user.id)
        if row is None:
            row = UserRow(id=user.id)
            self._session.add(row)

        row.first_name = user.first_name
        row.last_name = user.last_name
        row.email = user.email.lower()
        row.role = user.role.value
        row.preferable_activity = (
            user.preferable_activity.value if user.preferable_activity else None
        )
        row.available_time_slots = calendar.labels
        row.specializations = list(user.specializations)
        row.title = user.title
        row.about = user.about
        row.image_url = user.image_url

        self._session.commit()

        logger.info(
            "User saved",
            extra={"user_id": str(user.id), "role": user.role.value, "slots": len(calendar)}
        )
        return user

    def _to_domain(self, row: UserRow) -> UserProfile:
        return UserProfile(
            id=row.id,
            first_name=row.first_name,
            last_name=row.last_name,
            email=row.email,
            role=Role(row.role),
            preferable_activity=(
                Activity(row.preferable_activity) if row.preferable_activity else None
            ),
            available_time_slots=list(row.available_time_slots or []),
            specializations=list(row.specializations or []),
            title=row.title or "",
            about=row.about,
            image_url=row.image_url or "",
        )
