# backend/app/api/dependencies/__init__.py
"""
Central export point for all dependencies.

This module re-exports all dependencies from submodules
for convenient access throughout the application.
"""

from .auth import (
    get_current_active_user,
    get_current_mentee,
    get_current_mentor,
    get_current_mentor_or_admin,
    get_current_user,
)
from .database import get_db
from .services import (
    get_availability_service,
    get_booking_lock_service,
    get_session_booking_service,
    get_session_service,
)

__all__ = [
    # Auth
    "get_current_user",
    "get_current_active_user",
    "get_current_mentor",
    "get_current_mentee",
    "get_current_mentor_or_admin",
    # Database
    "get_db",
    # Services
    "get_availability_service",
    "get_booking_lock_service",
    "get_session_booking_service",
    "get_session_service",
]
