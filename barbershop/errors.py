# barbershop/errors.py
"""Domain errors raised by the scheduling engine.

Every error carries a human readable ``reason`` and the HTTP status the API
layer answers with. Callers that need to branch (the customer cancel flow,
subscription materialisation) catch the specific subclass.
"""


class BookingError(Exception):
    status_code = 400

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


class ValidationError(BookingError):
    """Missing or malformed input."""

    status_code = 422


class ConflictError(BookingError):
    """Time overlap, duplicate waitlist entry or an already active booking."""

    status_code = 409


class NotFoundError(BookingError):
    status_code = 404


class PolicyError(BookingError):
    """A business rule forbids the operation (ban, inactive barber, late cancel...)."""

    status_code = 403
