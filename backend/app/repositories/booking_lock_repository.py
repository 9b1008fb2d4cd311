# backend/app/repositories/booking_lock_repository.py
"""
BookingLock Repository for the mentoring platform.

Data access for booking reservations. The unique constraints on ``key`` and
``slot_key`` provide mutual exclusion, so ``insert_lock`` reports a lost race
by returning None. Any other integrity violation is a RepositoryException.
"""

from datetime import datetime
import logging
from typing import Any, Optional

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import RepositoryException
from ..models.booking_lock import RESERVATION_CONSTRAINTS, BookingLock
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class BookingLockRepository(BaseRepository[BookingLock]):
    """Repository for booking reservation rows."""

    def __init__(self, db: Session):
        super().__init__(db, BookingLock)

    def insert_lock(self, **fields: Any) -> Optional[BookingLock]:
        """
        Insert a reservation row and flush it.

        Returns:
            The new lock, or None when another row already holds the key or
            slot. The session is rolled back in that case.

        Raises:
            RepositoryException: any other constraint or storage failure
        """
        lock = BookingLock(**fields)
        try:
            self.db.add(lock)
            self.db.flush()
            return lock
        except IntegrityError as e:
            self.db.rollback()
            if self._is_reservation_conflict(e):
                return None
            self.logger.error(f"Booking lock {fields.get('key')} violates a constraint: {str(e)}")
            raise RepositoryException(f"Invalid booking lock: {str(e)}") from e
        except SQLAlchemyError as e:
            self.logger.error(f"Error inserting booking lock {fields.get('key')}: {str(e)}")
            self.db.rollback()
            raise RepositoryException(f"Failed to insert booking lock: {str(e)}")

    def get_live_by_key(self, key: str, now: datetime) -> Optional[BookingLock]:
        """Return the lock for ``key`` unless it has expired."""
        try:
            return (
                self.db.query(BookingLock)
                .filter(BookingLock.key == key, BookingLock.expires_at > now)
                .first()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error loading booking lock {key}: {str(e)}")
            raise RepositoryException(f"Failed to load booking lock: {str(e)}")

    def delete_by_key(self, key: str) -> int:
        """Delete the reservation for ``key``. Returns the number of rows removed."""
        try:
            return (
                self.db.query(BookingLock)
                .filter(BookingLock.key == key)
                .delete(synchronize_session=False)
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error deleting booking lock {key}: {str(e)}")
            raise RepositoryException(f"Failed to delete booking lock: {str(e)}")

    @staticmethod
    def _is_reservation_conflict(exc: IntegrityError) -> bool:
        """Whether the violated constraint is one of the reservation keys."""
        diag = getattr(exc.orig, "diag", None)
        constraint = getattr(diag, "constraint_name", None)
        if constraint:
            return constraint in RESERVATION_CONSTRAINTS
        # SQLite reports "UNIQUE constraint failed: booking_locks.key"
        message = str(exc.orig)
        return "UNIQUE" in message.upper() and (
            "booking_locks.key" in message or "booking_locks.slot_key" in message
        )

    def delete_expired_for_key(self, key: str, now: datetime, slot_key: Optional[str] = None) -> int:
        """Delete dead reservations still occupying ``key`` or ``slot_key``."""
        holds = BookingLock.key == key
        if slot_key:
            holds = or_(holds, BookingLock.slot_key == slot_key)
        try:
            return (
                self.db.query(BookingLock)
                .filter(holds, BookingLock.expires_at <= now)
                .delete(synchronize_session=False)
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error purging expired booking lock {key}: {str(e)}")
            raise RepositoryException(f"Failed to purge booking lock: {str(e)}")

    def delete_expired(self, now: datetime) -> int:
        """Delete every reservation whose expiry has passed."""
        try:
            return (
                self.db.query(BookingLock)
                .filter(BookingLock.expires_at <= now)
                .delete(synchronize_session=False)
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error sweeping expired booking locks: {str(e)}")
            raise RepositoryException(f"Failed to sweep booking locks: {str(e)}")
