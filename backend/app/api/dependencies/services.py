# backend/app/api/dependencies/services.py
"""
Service layer dependencies for dependency injection.

This module provides factory functions that create service instances
with their required dependencies properly injected.
"""

from fastapi import Depends
from sqlalchemy.orm import Session

from ...services.availability_service import AvailabilityService
from ...services.booking_lock_service import BookingLockService
from ...services.session_booking_service import SessionBookingService
from ...services.session_service import SessionService
from .database import get_db


def get_booking_lock_service(db: Session = Depends(get_db)) -> BookingLockService:
    """Get booking reservation service instance."""
    return BookingLockService(db)


def get_availability_service(db: Session = Depends(get_db)) -> AvailabilityService:
    """Get availability service instance."""
    return AvailabilityService(db)


def get_session_booking_service(
    db: Session = Depends(get_db),
    lock_service: BookingLockService = Depends(get_booking_lock_service),
    availability_service: AvailabilityService = Depends(get_availability_service),
) -> SessionBookingService:
    """
    Get the booking coordinator.

    Args:
        db: Database session
        lock_service: Reservation service sharing the same session
        availability_service: Availability rule matcher

    Returns:
        SessionBookingService instance
    """
    return SessionBookingService(
        db, lock_service=lock_service, availability_service=availability_service
    )


def get_session_service(db: Session = Depends(get_db)) -> SessionService:
    """Get session lifecycle service instance."""
    return SessionService(db)
