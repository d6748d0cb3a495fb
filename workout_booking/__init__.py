"""
Workout Booking - coach/client session booking service.

This package contains the complete application:
- core: Framework-agnostic booking engine (slots, booking, lifecycle)
- infrastructure: Persistence, identity and scheduling integrations
- api: FastAPI routes and dependencies
- config: Application configuration
"""

__version__ = "0.1.0"
