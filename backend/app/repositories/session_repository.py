# backend/app/repositories/session_repository.py
"""
Session Repository for the mentoring platform.

Capacity and conflict queries used by the booking coordinator, plus the
listing queries behind the session endpoints. Only statuses in
ACTIVE_SESSION_STATUSES occupy a slot; cancelled sessions are ignored.
"""

from datetime import datetime
import logging
from typing import Dict, List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Query, Session, joinedload

from ..core.exceptions import RepositoryException
from ..core.timezone_utils import isoformat_z
from ..models.session import ACTIVE_SESSION_STATUSES, MentoringSession
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class SessionRepository(BaseRepository[MentoringSession]):
    """Repository for mentoring session data access."""

    def __init__(self, db: Session):
        super().__init__(db, MentoringSession)

    def _apply_eager_loading(self, query: Query) -> Query:
        return query.options(
            joinedload(MentoringSession.mentor),
            joinedload(MentoringSession.mentee),
        )

    # Booking coordination queries

    def count_slot_usage(
        self, mentor_id: str, scheduled_at: datetime, exclude_id: Optional[str] = None
    ) -> int:
        """
        Count sessions occupying the exact slot start for a mentor.

        Args:
            mentor_id: Mentor whose slot is checked
            scheduled_at: Exact UTC start of the slot
            exclude_id: Session left out of the count, used when rescheduling

        Returns:
            Number of non-cancelled sessions starting at that instant
        """
        try:
            query = self.db.query(MentoringSession).filter(
                MentoringSession.mentor_id == mentor_id,
                MentoringSession.scheduled_at == scheduled_at,
                MentoringSession.status.in_(ACTIVE_SESSION_STATUSES),
            )
            if exclude_id:
                query = query.filter(MentoringSession.id != exclude_id)
            return query.count()
        except SQLAlchemyError as e:
            self.logger.error(f"Error counting slot usage: {str(e)}")
            raise RepositoryException(f"Failed to count slot usage: {str(e)}")

    def find_overlapping_session(
        self,
        mentor_id: str,
        start: datetime,
        end: datetime,
        exclude_id: Optional[str] = None,
    ) -> Optional[MentoringSession]:
        """
        Find a session whose window overlaps [start, end) but starts elsewhere.

        Sessions starting exactly at ``start`` belong to the same slot and are
        accounted for by capacity, not treated as conflicts.
        """
        try:
            query = self.db.query(MentoringSession).filter(
                MentoringSession.mentor_id == mentor_id,
                MentoringSession.status.in_(ACTIVE_SESSION_STATUSES),
                MentoringSession.scheduled_at < end,
                MentoringSession.end_at > start,
                MentoringSession.scheduled_at != start,
            )
            if exclude_id:
                query = query.filter(MentoringSession.id != exclude_id)
            return query.order_by(MentoringSession.scheduled_at).first()
        except SQLAlchemyError as e:
            self.logger.error(f"Error checking session overlap: {str(e)}")
            raise RepositoryException(f"Failed to check session overlap: {str(e)}")

    # Listing queries

    def list_for_participant(
        self,
        *,
        mentor_id: Optional[str] = None,
        mentee_id: Optional[str] = None,
        status: Optional[str] = None,
        offset: int = 0,
        limit: int = 20,
    ) -> Tuple[List[MentoringSession], int]:
        """
        Page through sessions for a mentor or a mentee, newest first.

        Returns:
            (rows, total) where total ignores paging
        """
        try:
            query = self.db.query(MentoringSession)
            if mentor_id:
                query = query.filter(MentoringSession.mentor_id == mentor_id)
            if mentee_id:
                query = query.filter(MentoringSession.mentee_id == mentee_id)
            if status:
                query = query.filter(MentoringSession.status == status)

            total = query.count()
            rows = (
                self._apply_eager_loading(query)
                .order_by(MentoringSession.scheduled_at.desc())
                .offset(offset)
                .limit(limit)
                .all()
            )
            return rows, total
        except SQLAlchemyError as e:
            self.logger.error(f"Error listing sessions: {str(e)}")
            raise RepositoryException(f"Failed to list sessions: {str(e)}")

    def count_usage_by_slot(
        self, mentor_id: str, window_start: datetime, window_end: datetime
    ) -> Dict[Tuple[str, str], int]:
        """
        Count active sessions per (availability_id, start) inside a window.

        Keys use the ISO ``Z`` form of the start so naive SQLite values and
        aware PostgreSQL values compare equal.
        """
        try:
            rows = (
                self.db.query(
                    MentoringSession.availability_id,
                    MentoringSession.scheduled_at,
                    func.count(MentoringSession.id),
                )
                .filter(
                    MentoringSession.mentor_id == mentor_id,
                    MentoringSession.availability_id.isnot(None),
                    MentoringSession.status.in_(ACTIVE_SESSION_STATUSES),
                    MentoringSession.scheduled_at >= window_start,
                    MentoringSession.scheduled_at <= window_end,
                )
                .group_by(MentoringSession.availability_id, MentoringSession.scheduled_at)
                .all()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error counting slot usage by window: {str(e)}")
            raise RepositoryException(f"Failed to count slot usage: {str(e)}")

        return {(availability_id, isoformat_z(start)): count for availability_id, start, count in rows}
