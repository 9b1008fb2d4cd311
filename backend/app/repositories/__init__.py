# backend/app/repositories/__init__.py
"""
Repository Pattern Implementation for the mentoring platform.

This package provides the repository layer for data access,
separating business logic from database queries.

Key Components:
- BaseRepository: Foundation for all repositories with generic CRUD operations
- RepositoryFactory: Factory for creating repository instances
- BookingLockRepository: Unique-key reservations guarding session creation
- SessionRepository: Slot capacity, overlap and listing queries
- AvailabilityRepository: Mentor availability rules
- UserRepository: Account lookups and role checks

Usage:
    from app.repositories import RepositoryFactory

    # In a service:
    repository = RepositoryFactory.create_session_repository(db)
    booked = repository.count_slot_usage(mentor_id, scheduled_at)
"""

from .availability_repository import AvailabilityRepository
from .base_repository import BaseRepository
from .booking_lock_repository import BookingLockRepository
from .factory import RepositoryFactory
from .session_repository import SessionRepository
from .user_repository import UserRepository

__all__ = [
    "BaseRepository",
    "RepositoryFactory",
    "AvailabilityRepository",
    "BookingLockRepository",
    "SessionRepository",
    "UserRepository",
]
