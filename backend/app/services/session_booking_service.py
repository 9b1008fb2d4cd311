# backend/app/services/session_booking_service.py
"""
Session booking coordinator.

Booking a slot runs in three steps so that two mentees can never both take
the last seat of a slot, whichever worker or host serves them:

1. Acquire: insert a ``booking_locks`` row keyed by mentor, start and
   duration, and commit it on its own. Unique keys on the full key and on
   mentor plus start admit one request per start at a time, whatever the
   duration; the loser fails fast with SLOT_LOCKED.
2. Verify: with the reservation held, count the active sessions already
   starting at that instant and look for overlapping sessions of the mentor.
3. Commit or abort: under capacity, insert the session and delete the
   reservation in a single commit; otherwise delete the reservation and fail
   with SLOT_FULL.

No path leaves a session behind without its reservation having been held,
and a reservation abandoned by a crashed request dies at ``expires_at``.
Rescheduling moves an existing session through the same three steps.
"""

from datetime import datetime, timedelta
import logging
import math
from typing import Any, Callable, Dict, Optional, Tuple, Union

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.constants import (
    DEFAULT_BOOKING_SUBJECT,
    DEFAULT_ROOM_PLACEHOLDER,
    DEFAULT_SESSION_DURATION,
    ERROR_MENTEE_ONLY,
    ERROR_MENTOR_ONLY,
    MAX_SESSION_DURATION,
    MIN_SESSION_DURATION,
)
from ..core.exceptions import (
    ForbiddenException,
    MentorConflictException,
    NotFoundException,
    RepositoryException,
    ServiceException,
    SlotFullException,
    SlotLockedException,
    ValidationException,
)
from ..core.timezone_utils import isoformat_z, parse_iso_datetime, utc_now
from ..models.availability import Availability
from ..models.booking_lock import BookingLock
from ..models.session import MentoringSession, SessionStatus
from ..models.user import User
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories.factory import RepositoryFactory
from .availability_service import AvailabilityService
from .base import BaseService
from .booking_lock_service import BookingLockService

logger = logging.getLogger(__name__)


def clamp_duration_minutes(value: Any) -> int:
    """Clamp a requested duration into the bookable range, defaulting when unusable."""
    try:
        minutes = float(value)
    except (TypeError, ValueError):
        return DEFAULT_SESSION_DURATION
    if not math.isfinite(minutes):
        return DEFAULT_SESSION_DURATION
    return int(min(MAX_SESSION_DURATION, max(MIN_SESSION_DURATION, round(minutes))))


def sanitize_subject(subject: Optional[str]) -> str:
    if not isinstance(subject, str):
        return DEFAULT_BOOKING_SUBJECT
    return subject.strip() or DEFAULT_BOOKING_SUBJECT


def sanitize_room(room: Optional[str], fallback: Optional[str] = None) -> str:
    for candidate in (room, fallback):
        if isinstance(candidate, str) and candidate.strip():
            return candidate.strip()
    return DEFAULT_ROOM_PLACEHOLDER


class SessionBookingService(BaseService):
    """Creates mentoring sessions under a slot reservation."""

    def __init__(
        self,
        db: Session,
        lock_service: Optional[BookingLockService] = None,
        availability_service: Optional[AvailabilityService] = None,
    ):
        super().__init__(db)
        self.lock_service = lock_service or BookingLockService(db)
        self.availability_service = availability_service or AvailabilityService(db)
        self.session_repository = RepositoryFactory.create_session_repository(db)
        self.lock_repository = RepositoryFactory.create_booking_lock_repository(db)
        self.user_repository = RepositoryFactory.create_user_repository(db)

    @BaseService.measure_operation("book_session")
    def book_session(
        self,
        mentee: User,
        mentor_id: Optional[str],
        scheduled_at: Union[str, datetime, None],
        duration_minutes: Any = None,
        availability_ref: Optional[str] = None,
        subject: Optional[str] = None,
        room: Optional[str] = None,
    ) -> MentoringSession:
        """
        Book a session for ``mentee`` with ``mentor_id`` at ``scheduled_at``.

        Returns:
            The new session in ``pending`` status

        Raises:
            ForbiddenException: caller is not an active mentee
            ValidationException: MENTOR_REQUIRED, INVALID_DATE,
                PAST_DATE_NOT_ALLOWED or SLOT_OUT_OF_RANGE
            NotFoundException: MENTOR_NOT_FOUND or AVAILABILITY_NOT_FOUND
            SlotLockedException: another request holds this slot right now
            MentorConflictException: the mentor is busy during the window
            SlotFullException: the slot has no remaining capacity
            ServiceException: SESSION_BOOK_FAILED on unexpected storage errors
        """
        if not mentee.is_mentee or not mentee.is_active:
            raise ForbiddenException(ERROR_MENTEE_ONLY, code="FORBIDDEN")
        if not mentor_id:
            raise ValidationException("Select a mentor to book.", code="MENTOR_REQUIRED")

        start = self._parse_start(scheduled_at)
        duration = clamp_duration_minutes(duration_minutes)
        end = self._session_end(start, duration)

        mentor = self.user_repository.get_active_mentor(mentor_id)
        if not mentor:
            raise NotFoundException("Mentor not found.", code="MENTOR_NOT_FOUND")

        availability = self._matching_rule(mentor.id, availability_ref, start)

        capacity = availability.capacity if availability else 1
        candidate = {
            "mentor_id": mentor.id,
            "mentee_id": mentee.id,
            "availability_id": availability.id if availability else None,
            "subject": sanitize_subject(subject),
            "scheduled_at": start,
            "duration_minutes": duration,
            "room": sanitize_room(room, availability.note if availability else None),
            "capacity": capacity,
            "is_group": capacity > 1,
        }

        def _create(lock: BookingLock) -> MentoringSession:
            return self.session_repository.create(
                **candidate,
                end_at=end,
                status=SessionStatus.PENDING.value,
                lock_key=lock.key,
            )

        session, booked = self._write_under_reservation(
            actor=mentee,
            mentor_id=mentor.id,
            start=start,
            end=end,
            duration=duration,
            capacity=capacity,
            candidate=candidate,
            write=_create,
            failure_code="SESSION_BOOK_FAILED",
        )

        prometheus_metrics.record_booking_outcome("created")
        self.log_operation(
            "session_booked",
            session_id=session.id,
            mentor_id=mentor.id,
            mentee_id=mentee.id,
            scheduled_at=isoformat_z(start),
            capacity=capacity,
            booked_before=booked,
        )
        return session

    @BaseService.measure_operation("reschedule_session")
    def reschedule_session(
        self,
        mentor: User,
        session_id: str,
        scheduled_at: Union[str, datetime, None],
        duration_minutes: Any = None,
        availability_ref: Optional[str] = None,
    ) -> MentoringSession:
        """
        Move a session to a new start on behalf of its mentor.

        The new slot goes through the same reservation, overlap and capacity
        checks as a fresh booking, with the session itself left out of the
        counts. The duration defaults to the current one. When
        ``availability_ref`` is given the session adopts that rule's
        capacity.

        Returns:
            The session in ``rescheduled`` status

        Raises:
            ForbiddenException: caller is not the session's mentor
            NotFoundException: SESSION_NOT_FOUND or AVAILABILITY_NOT_FOUND
            ValidationException: SESSION_CANCELLED, INVALID_DATE,
                PAST_DATE_NOT_ALLOWED or SLOT_OUT_OF_RANGE
            SlotLockedException, MentorConflictException, SlotFullException
            ServiceException: SESSION_RESCHEDULE_FAILED
        """
        if not mentor.is_mentor or not mentor.is_active:
            raise ForbiddenException(ERROR_MENTOR_ONLY, code="FORBIDDEN")

        session = self.session_repository.get_by_id(session_id)
        if not session:
            raise NotFoundException("Session not found.", code="SESSION_NOT_FOUND")
        if session.mentor_id != mentor.id:
            raise ForbiddenException("You can only reschedule your own sessions.", code="FORBIDDEN")
        if session.is_cancelled:
            raise ValidationException(
                "Cancelled sessions cannot be rescheduled.", code="SESSION_CANCELLED"
            )

        start = self._parse_start(scheduled_at)
        duration = clamp_duration_minutes(
            session.duration_minutes if duration_minutes is None else duration_minutes
        )
        end = self._session_end(start, duration)

        availability = self._matching_rule(mentor.id, availability_ref, start)
        capacity = availability.capacity if availability else session.capacity
        candidate = {
            "session_id": session.id,
            "mentor_id": mentor.id,
            "mentee_id": session.mentee_id,
            "availability_id": availability.id if availability else session.availability_id,
            "scheduled_at": start,
            "duration_minutes": duration,
            "capacity": capacity,
        }
        previous_start = isoformat_z(session.scheduled_at)

        def _move(lock: BookingLock) -> MentoringSession:
            session.scheduled_at = start
            session.duration_minutes = duration
            session.end_at = end
            session.status = SessionStatus.RESCHEDULED.value
            session.rescheduled_at = utc_now()
            session.lock_key = lock.key
            if availability:
                session.availability_id = availability.id
                session.capacity = availability.capacity
                session.is_group = availability.capacity > 1
            return session

        session, booked = self._write_under_reservation(
            actor=mentor,
            mentor_id=mentor.id,
            start=start,
            end=end,
            duration=duration,
            capacity=capacity,
            candidate=candidate,
            write=_move,
            failure_code="SESSION_RESCHEDULE_FAILED",
            exclude_id=session.id,
        )

        prometheus_metrics.record_booking_outcome("rescheduled")
        self.log_operation(
            "session_rescheduled",
            session_id=session.id,
            mentor_id=mentor.id,
            previous_start=previous_start,
            scheduled_at=isoformat_z(start),
            booked_before=booked,
        )
        return session

    def _matching_rule(
        self, mentor_id: str, availability_ref: Optional[str], start: datetime
    ) -> Optional[Availability]:
        if not availability_ref:
            return None
        availability = self.availability_service.get_bookable_rule(mentor_id, availability_ref)
        if not self.availability_service.is_scheduled_within(availability, start):
            raise ValidationException(
                "Selected time does not match the availability slot.",
                code="SLOT_OUT_OF_RANGE",
            )
        return availability

    def _write_under_reservation(
        self,
        *,
        actor: User,
        mentor_id: str,
        start: datetime,
        end: datetime,
        duration: int,
        capacity: int,
        candidate: Dict[str, Any],
        write: Callable[[BookingLock], MentoringSession],
        failure_code: str,
        exclude_id: Optional[str] = None,
    ) -> Tuple[MentoringSession, int]:
        """
        Hold the slot reservation while checking overlap and capacity, then
        run ``write`` and drop the reservation in one commit.

        Returns:
            (session, sessions already in the slot before the write)
        """
        try:
            lock = self.lock_service.acquire(
                mentor_id=mentor_id,
                created_by_id=actor.id,
                scheduled_at=start,
                duration_minutes=duration,
                availability_id=candidate.get("availability_id"),
                session_candidate={
                    **candidate,
                    "scheduled_at": isoformat_z(start),
                },
            )
        except SlotLockedException:
            prometheus_metrics.record_booking_outcome("SLOT_LOCKED")
            raise
        except (RepositoryException, SQLAlchemyError) as exc:
            self.db.rollback()
            prometheus_metrics.record_booking_outcome("error")
            logger.error(
                "session_booking_lock_failed",
                extra={"mentor_id": mentor_id, "actor_id": actor.id, "error": str(exc)},
            )
            raise ServiceException(
                "Unable to save session booking.", code=failure_code
            ) from exc

        try:
            if settings.booking_overlap_check_enabled:
                conflict = self.session_repository.find_overlapping_session(
                    mentor_id, start, end, exclude_id=exclude_id
                )
                if conflict:
                    self.lock_service.release(lock.key)
                    raise MentorConflictException(conflict.id)

            booked = self.session_repository.count_slot_usage(
                mentor_id, start, exclude_id=exclude_id
            )
            if booked >= capacity:
                self.lock_service.release(lock.key)
                raise SlotFullException(capacity=capacity, booked=booked)

            with self.transaction():
                session = write(lock)
                self.lock_repository.delete_by_key(lock.key)
        except (MentorConflictException, SlotFullException) as exc:
            prometheus_metrics.record_booking_outcome(exc.code)
            logger.info(
                "session_booking_rejected",
                extra={"lock_key": lock.key, "reason": exc.code, "actor_id": actor.id},
            )
            raise
        except Exception as exc:
            self.db.rollback()
            self.lock_service.release(lock.key)
            prometheus_metrics.record_booking_outcome("error")
            logger.error(
                "session_booking_failed",
                extra={
                    "lock_key": lock.key,
                    "actor_id": actor.id,
                    "error": str(exc),
                    "error_type": type(exc).__name__,
                },
            )
            raise ServiceException(
                "Unable to save session booking.", code=failure_code
            ) from exc

        return session, booked

    @staticmethod
    def _parse_start(scheduled_at: Union[str, datetime, None]) -> datetime:
        """Normalize the requested start to UTC, second precision, in the future."""
        if isinstance(scheduled_at, datetime):
            parsed = scheduled_at
        else:
            try:
                parsed = parse_iso_datetime(scheduled_at)  # type: ignore[arg-type]
            except (TypeError, ValueError, OverflowError):
                raise ValidationException("Provide a valid start time.", code="INVALID_DATE")

        start = parse_iso_datetime(isoformat_z(parsed))
        if start <= utc_now():
            raise ValidationException("Please pick a future time.", code="PAST_DATE_NOT_ALLOWED")
        return start

    @staticmethod
    def _session_end(start: datetime, duration: int) -> datetime:
        """End instant of a session, rejecting starts too late to hold it."""
        try:
            return start + timedelta(minutes=duration)
        except OverflowError:
            raise ValidationException("Provide a valid start time.", code="INVALID_DATE")
