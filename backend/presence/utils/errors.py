"""Exception taxonomy surfaced to callers."""


class PresenceError(Exception):
    """Base error carrying the HTTP status it maps to."""
    status_code = 500

    def __init__(self, message: str, status_code: int = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ValidationError(PresenceError):
    """Malformed input: bad descriptor, non-finite coordinate, bad status."""
    status_code = 400


class DimensionMismatchError(ValidationError):
    """Two descriptors of different lengths were compared."""


class AuthorizationError(PresenceError):
    status_code = 403


class NotFoundError(PresenceError):
    status_code = 404


class DuplicateAttendanceError(PresenceError):
    """A finalized record already exists for this user and session."""
    status_code = 409


class ImmutableRecordError(PresenceError):
    """An append-only row was about to be changed or removed."""
