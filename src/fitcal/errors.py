"""Error taxonomy for schedule operations."""


class ScheduleError(Exception):
    """Base class for errors raised by fitcal services."""

    status_code = 500

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        """Convert to an error response body."""
        body = {"error": self.message}
        body.update(self.details)
        return body


class ScheduleValidationError(ScheduleError):
    """A request was rejected before any mutation was applied."""

    status_code = 400


class NotFoundError(ScheduleError):
    """The referenced template, schedule, or item does not exist for the user."""

    status_code = 404


class StorageError(ScheduleError):
    """The database could not complete the operation."""

    status_code = 500
