# backend/app/core/exceptions.py
"""
Exceptions raised by services and turned into HTTP problems by the API.

Each DomainException subclass fixes an HTTP status; instances carry a
stable machine code (``SLOT_FULL``, ``MENTOR_NOT_FOUND`` ...) that clients
branch on, a human message, and optional structured details.
"""

from typing import Any, Dict, Optional

from fastapi import HTTPException, status


class DomainException(Exception):
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or type(self).__name__
        self.details = details or {}
        self.headers = headers

    def to_http_exception(self) -> HTTPException:
        return HTTPException(
            status_code=self.status_code,
            detail={
                "message": self.message,
                "code": self.code,
                "error": self.code,
                "details": self.details,
            },
            headers=self.headers,
        )


class ValidationException(DomainException):
    """Input is well-formed but not acceptable."""

    status_code = status.HTTP_400_BAD_REQUEST


class ForbiddenException(DomainException):
    status_code = status.HTTP_403_FORBIDDEN


class NotFoundException(DomainException):
    status_code = status.HTTP_404_NOT_FOUND


class ConflictException(DomainException):
    """The request collides with current state (slot taken, overlap, ...)."""

    status_code = status.HTTP_409_CONFLICT


class ServiceException(DomainException):
    """An operation failed for reasons the caller cannot fix; maps to 500."""


class SlotLockedException(ConflictException):
    """Another booking attempt holds the reservation for this exact slot."""

    def __init__(self, lock_key: str, retry_after_seconds: int = 1):
        super().__init__(
            message="Another booking for this time slot is in progress. Please retry shortly.",
            code="SLOT_LOCKED",
            details={"lock_key": lock_key, "retryable": True},
            headers={"Retry-After": str(retry_after_seconds)},
        )


class SlotFullException(ConflictException):
    def __init__(self, capacity: int, booked: int):
        super().__init__(
            message="This time slot has already been fully booked.",
            code="SLOT_FULL",
            details={"capacity": capacity, "booked": booked, "retryable": False},
        )


class MentorConflictException(ConflictException):
    def __init__(self, conflicting_session_id: Optional[str] = None):
        super().__init__(
            message="Mentor already has a session that overlaps with this time.",
            code="MENTOR_CONFLICT",
            details={"conflicting_session_id": conflicting_session_id},
        )


class RepositoryException(Exception):
    """A query or write against the database failed."""
