"""
Repository pattern implementations for SQLAlchemy.

Repositories translate between domain models and database representations.
"""

from .feedback import FeedbackRepository
from .users import UserRepository
from .workouts import WorkoutRepository

__all__ = ["FeedbackRepository", "UserRepository", "WorkoutRepository"]
