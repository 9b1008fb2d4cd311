# backend/app/services/booking_lock_service.py
"""
Booking reservation service.

A reservation is a row in ``booking_locks`` whose ``key`` identifies one exact
slot: mentor, UTC start and duration. Its ``slot_key`` drops the duration, so
two attempts at the same start collide even when they ask for different
lengths. The unique constraints on both columns are the only mutual exclusion
between concurrent booking attempts, so they hold across worker threads,
processes and hosts without any in-memory lock.

Acquisition never waits. A losing insert fails immediately with
``SlotLockedException`` and the caller is expected to retry.
"""

from datetime import datetime, timedelta
import logging
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.exceptions import SlotLockedException
from ..core.timezone_utils import ensure_utc, isoformat_z, utc_now
from ..models.booking_lock import BookingLock
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories.factory import RepositoryFactory
from .base import BaseService

logger = logging.getLogger(__name__)


class BookingLockService(BaseService):
    """Acquire, release and sweep slot reservations."""

    def __init__(self, db: Session, lock_seconds: Optional[int] = None):
        super().__init__(db)
        self.lock_repository = RepositoryFactory.create_booking_lock_repository(db)
        self.lock_seconds = lock_seconds or settings.booking_lock_seconds

    @staticmethod
    def build_key(mentor_id: str, scheduled_at: datetime, duration_minutes: int) -> str:
        """Deterministic reservation key for one mentor slot."""
        return f"{mentor_id}:{isoformat_z(scheduled_at)}:{int(duration_minutes)}"

    @staticmethod
    def build_slot_key(mentor_id: str, scheduled_at: datetime) -> str:
        """Key shared by every reservation at one mentor start, whatever the duration."""
        return f"{mentor_id}:{isoformat_z(scheduled_at)}"

    @BaseService.measure_operation("acquire_booking_lock")
    def acquire(
        self,
        *,
        mentor_id: str,
        created_by_id: str,
        scheduled_at: datetime,
        duration_minutes: int,
        availability_id: Optional[str] = None,
        session_candidate: Optional[Dict[str, Any]] = None,
        now: Optional[datetime] = None,
    ) -> BookingLock:
        """
        Insert and commit the reservation for a slot.

        A dead reservation for the same key or start is deleted in the same
        transaction, so an abandoned lock never blocks past its expiry.

        Raises:
            SlotLockedException: a live reservation already holds the key or
                another duration at the same start
        """
        now = ensure_utc(now) if now else utc_now()
        key = self.build_key(mentor_id, scheduled_at, duration_minutes)
        slot_key = self.build_slot_key(mentor_id, scheduled_at)

        purged = self.lock_repository.delete_expired_for_key(key, now, slot_key=slot_key)
        if purged:
            logger.info("booking_lock_expired_reclaimed", extra={"lock_key": key})

        lock = self.lock_repository.insert_lock(
            key=key,
            slot_key=slot_key,
            mentor_id=mentor_id,
            created_by_id=created_by_id,
            availability_id=availability_id,
            scheduled_at=ensure_utc(scheduled_at),
            duration_minutes=int(duration_minutes),
            session_candidate=session_candidate or {},
            expires_at=now + timedelta(seconds=self.lock_seconds),
        )
        if lock is None:
            prometheus_metrics.record_booking_lock("acquire", "blocked")
            logger.warning(
                "booking_lock_blocked",
                extra={"lock_key": key, "mentor_id": mentor_id, "requested_by": created_by_id},
            )
            raise SlotLockedException(key)

        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            prometheus_metrics.record_booking_lock("acquire", "error")
            raise

        prometheus_metrics.record_booking_lock("acquire", "success")
        return lock

    def release(self, key: str) -> bool:
        """
        Delete a reservation, best effort.

        Failures are logged and swallowed; an unreleased lock is reclaimed once
        it expires.

        Returns:
            True if a row was removed
        """
        try:
            deleted = self.lock_repository.delete_by_key(key)
            self.db.commit()
        except Exception as exc:
            self.db.rollback()
            prometheus_metrics.record_booking_lock("release", "error")
            logger.warning(
                "booking_lock_release_failed",
                extra={"lock_key": key, "error": str(exc), "error_type": type(exc).__name__},
            )
            return False

        if deleted:
            prometheus_metrics.record_booking_lock("release", "success")
        else:
            prometheus_metrics.record_booking_lock("release", "not_found")
        return bool(deleted)

    def is_locked(self, key: str, now: Optional[datetime] = None) -> bool:
        """Whether a live reservation currently holds ``key``."""
        now = ensure_utc(now) if now else utc_now()
        return self.lock_repository.get_live_by_key(key, now) is not None

    @BaseService.measure_operation("purge_expired_booking_locks")
    def purge_expired(self, now: Optional[datetime] = None) -> int:
        """Delete every expired reservation. Returns the number removed."""
        now = ensure_utc(now) if now else utc_now()
        with self.transaction():
            removed = self.lock_repository.delete_expired(now)

        prometheus_metrics.record_booking_lock("sweep", "success")
        prometheus_metrics.set_locks_swept(removed)
        if removed:
            logger.info("booking_locks_swept", extra={"removed": removed})
        return removed
