# backend/app/services/session_service.py
"""
Session lifecycle service.

Reading, confirming, completing and cancelling sessions after they were
booked. Creation and rescheduling live in ``SessionBookingService``;
cancelling here is what frees capacity in a slot that previously reported
SLOT_FULL.
"""

from datetime import timedelta
import logging
import math
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.constants import (
    DEFAULT_PAGE_SIZE,
    ERROR_SESSION_ACCESS,
    MAX_CANCELLATION_REASON_LENGTH,
    MAX_PAGE_SIZE,
)
from ..core.exceptions import ForbiddenException, NotFoundException, ValidationException
from ..core.timezone_utils import ensure_utc, utc_now
from ..models.session import MentoringSession, SessionStatus
from ..models.user import User
from ..repositories.factory import RepositoryFactory
from .base import BaseService

logger = logging.getLogger(__name__)


class SessionService(BaseService):
    """Read and transition booked sessions."""

    def __init__(self, db: Session):
        super().__init__(db)
        self.repository = RepositoryFactory.create_session_repository(db)

    def _load(self, session_id: str) -> MentoringSession:
        session = self.repository.get_by_id(session_id)
        if not session:
            raise NotFoundException("Session not found.", code="SESSION_NOT_FOUND")
        return session

    @staticmethod
    def _ensure_access(session: MentoringSession, user: User) -> None:
        if user.is_admin or session.is_participant(user.id):
            return
        raise ForbiddenException(ERROR_SESSION_ACCESS, code="FORBIDDEN")

    @BaseService.measure_operation("get_session")
    def get_session(self, user: User, session_id: str) -> MentoringSession:
        session = self._load(session_id)
        self._ensure_access(session, user)
        return session

    @BaseService.measure_operation("list_sessions")
    def list_sessions(
        self,
        user: User,
        status: Optional[str] = None,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE,
    ) -> Tuple[List[MentoringSession], Dict[str, Any]]:
        """
        Page through the caller's sessions, newest first.

        Mentors see sessions they lead, everyone else sees sessions they
        booked.

        Returns:
            (sessions, meta) where meta holds total, page, limit,
            total_pages and count
        """
        if status and status not in {s.value for s in SessionStatus}:
            raise ValidationException(f"Unknown session status: {status}", code="INVALID_STATUS")

        page = max(1, int(page or 1))
        limit = min(MAX_PAGE_SIZE, max(1, int(limit or DEFAULT_PAGE_SIZE)))

        scope = {"mentor_id": user.id} if user.is_mentor else {"mentee_id": user.id}
        sessions, total = self.repository.list_for_participant(
            **scope, status=status, offset=(page - 1) * limit, limit=limit
        )
        meta = {
            "total": total,
            "page": page,
            "limit": limit,
            "total_pages": math.ceil(total / limit) if total else 0,
            "count": len(sessions),
        }
        return sessions, meta

    @BaseService.measure_operation("confirm_session")
    def confirm_session(self, mentor: User, session_id: str) -> MentoringSession:
        """Confirm a pending session. Only the owning mentor may confirm."""
        if not mentor.is_mentor:
            raise ForbiddenException("Only mentors can confirm sessions.", code="FORBIDDEN")

        session = self._load(session_id)
        if session.mentor_id != mentor.id:
            raise ForbiddenException("You can only confirm your own sessions.", code="FORBIDDEN")
        if session.is_cancelled:
            raise ValidationException(
                "Cancelled sessions cannot be confirmed.", code="SESSION_CANCELLED"
            )

        with self.transaction():
            session.status = SessionStatus.CONFIRMED.value
            session.confirmed_at = utc_now()

        self.log_operation("session_confirmed", session_id=session.id, mentor_id=mentor.id)
        return session

    @BaseService.measure_operation("cancel_session")
    def cancel_session(
        self, user: User, session_id: str, reason: Optional[str] = None
    ) -> MentoringSession:
        """
        Cancel a session on behalf of a participant or an admin.

        The cancelled session stops counting toward its slot's capacity.
        """
        session = self._load(session_id)
        self._ensure_access(session, user)
        if session.is_cancelled:
            raise ValidationException("Session is already cancelled.", code="ALREADY_CANCELLED")

        cleaned_reason = None
        if isinstance(reason, str) and reason.strip():
            cleaned_reason = reason.strip()[:MAX_CANCELLATION_REASON_LENGTH]

        now = utc_now()
        with self.transaction():
            session.status = SessionStatus.CANCELLED.value
            session.cancelled_at = now
            session.cancelled_by_id = user.id
            session.cancellation_reason = cleaned_reason

        penalty_window = ensure_utc(session.scheduled_at) - now <= timedelta(
            hours=settings.session_cancel_penalty_hours
        )
        if user.is_mentor and penalty_window:
            logger.warning(
                "Mentor cancelled within penalty window",
                extra={"session_id": session.id, "mentor_id": user.id},
            )

        self.log_operation(
            "session_cancelled",
            session_id=session.id,
            cancelled_by=user.id,
            penalty_window=penalty_window,
        )
        return session

    @BaseService.measure_operation("complete_session")
    def complete_session(
        self,
        user: User,
        session_id: str,
        attended: Optional[bool] = True,
        tasks_completed: Optional[float] = None,
        notes: Optional[str] = None,
    ) -> MentoringSession:
        """
        Record the outcome of a session on behalf of either participant.

        ``attended`` defaults to true and marks the session completed. Passing
        false undoes a previous completion: ``completed_at`` is cleared and a
        completed session goes back to confirmed.
        """
        session = self._load(session_id)
        if not session.is_participant(user.id):
            raise ForbiddenException(ERROR_SESSION_ACCESS, code="FORBIDDEN")
        if session.is_cancelled:
            raise ValidationException(
                "Cancelled sessions cannot be completed.", code="SESSION_CANCELLED"
            )

        if attended is None:
            attended = True
        if tasks_completed is not None:
            if not math.isfinite(tasks_completed) or tasks_completed < 0:
                raise ValidationException(
                    "Tasks completed must be zero or more.", code="INVALID_TASKS_COMPLETED"
                )
            tasks_completed = int(round(tasks_completed))

        with self.transaction():
            session.attended = attended
            if tasks_completed is not None:
                session.tasks_completed = tasks_completed
            if notes is not None:
                session.notes = notes.strip() or None
            if attended:
                session.completed_at = session.completed_at or utc_now()
                session.status = SessionStatus.COMPLETED.value
            else:
                session.completed_at = None
                if session.status == SessionStatus.COMPLETED.value:
                    session.status = SessionStatus.CONFIRMED.value

        self.log_operation(
            "session_completed",
            session_id=session.id,
            user_id=user.id,
            attended=attended,
            status=session.status,
        )
        return session
