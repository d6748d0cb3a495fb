"""
Booking engine error taxonomy.

Every failure the engine reports to a caller is one of these. The API layer
maps them onto HTTP status codes; nothing in core knows about HTTP.
"""


class BookingError(Exception):
    """Base class for all domain-level booking failures."""

    code = "booking_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InvalidInputError(BookingError):
    """Malformed or missing fields, bad date/time, unrecognized enum."""
    code = "invalid_input"


class NotFoundError(BookingError):
    """Coach, workout or slot does not exist."""
    code = "not_found"


class ForbiddenError(BookingError):
    """The actor has no authority over the target."""
    code = "forbidden"


class InvalidStateError(BookingError):
    """Operation illegal in the entity's current state or policy window."""
    code = "invalid_state"


class ConflictError(BookingError):
    """Double booking, usually detected by the store's uniqueness constraint."""
    code = "conflict"
