from typing import Optional

from fastapi import status


class AppException(Exception):
    """Base class for errors that terminate a service call."""

    def __init__(self, message: str, detail: Optional[str] = None):
        self.message = message
        self.detail = detail or message
        super().__init__(self.message)

    @property
    def status_code(self) -> int:
        return status.HTTP_500_INTERNAL_SERVER_ERROR


class ValidationError(AppException):
    """Malformed or policy-violating input (400)."""

    @property
    def status_code(self) -> int:
        return status.HTTP_400_BAD_REQUEST


class AuthorizationError(AppException):
    """The acting user has no rights over the target (403)."""

    @property
    def status_code(self) -> int:
        return status.HTTP_403_FORBIDDEN


class NotFoundError(AppException):
    """Referenced event, request, user or category is absent (404)."""

    @property
    def status_code(self) -> int:
        return status.HTTP_404_NOT_FOUND


class ConflictError(AppException):
    """A state-dependent business rule was violated (409)."""

    @property
    def status_code(self) -> int:
        return status.HTTP_409_CONFLICT


class StateConflictError(ConflictError):
    """The event's lifecycle state forbids the requested change (409)."""


class InternalError(AppException):
    pass


class ConcurrencyConflict(Exception):
    """Another writer claimed the event first; the whole operation may be re-run."""

    def __init__(self, event_id: int):
        self.event_id = event_id
        super().__init__(f"Event with ID = {event_id} was modified concurrently.")
