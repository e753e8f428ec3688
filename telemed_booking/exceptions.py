"""Error taxonomy for the booking platform.

Every error carries a client-safe ``message``. The HTTP layer maps each class
to a status code; nothing else inspects the type.
"""


class TelemedError(Exception):
    """Base class for expected, client-visible failures."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(TelemedError):
    """Request is missing a required field or has a malformed value."""

    status_code = 400


class AuthFailure(TelemedError):
    """Login failed. Never says whether the email or the password was wrong."""

    status_code = 401

    def __init__(self, message: str = "Invalid credentials"):
        super().__init__(message)


class NotFound(TelemedError):
    """An id did not resolve to a record."""

    status_code = 404


class InvalidBooking(NotFound):
    """Doctor, patient or slot of a booking request does not exist."""

    def __init__(self, message: str = "Invalid booking"):
        super().__init__(message)


class DuplicateEmail(TelemedError):
    """Another account already uses this email."""

    status_code = 409

    def __init__(self, message: str = "Email already registered"):
        super().__init__(message)


class SlotUnavailable(TelemedError):
    """The slot was already reserved."""

    status_code = 409

    def __init__(self, message: str = "Slot is no longer available"):
        super().__init__(message)


class InvalidTransition(TelemedError):
    """A status change that the lifecycle does not allow."""

    status_code = 409
