"""
Infrastructure layer - external service integrations.

Each subdirectory wraps an external dependency:
- database: SQLAlchemy persistence for users, workouts and feedback
- auth: Bearer token verification
- scheduler: Periodic lifecycle sweep

These wrappers translate between external formats and our domain models.
"""
