# backend/app/api/dependencies/auth.py
"""
Authentication and authorization dependencies.

The bearer token identifies the caller by user id; the account itself is
loaded from the shared users table on every request.
"""

import logging

from fastapi import Depends, HTTPException, status
from sqlalchemy.orm import Session

from ...auth import get_current_user as auth_get_current_user
from ...core.constants import ERROR_MENTEE_ONLY, ERROR_MENTOR_ONLY
from ...core.exceptions import ForbiddenException
from ...models.user import User
from ...repositories.user_repository import UserRepository
from .database import get_db

logger = logging.getLogger(__name__)


def get_current_user(
    current_user_id: str = Depends(auth_get_current_user),
    db: Session = Depends(get_db),
) -> User:
    """
    Get the current authenticated user from the database.

    Args:
        current_user_id: User id from the JWT ``sub`` claim
        db: Database session

    Returns:
        User object

    Raises:
        HTTPException: If the token refers to no known user
    """
    user = UserRepository(db).get_by_id(current_user_id)
    if not user:
        logger.warning("Token subject does not match any user", extra={"user_id": current_user_id})
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


def get_current_active_user(current_user: User = Depends(get_current_user)) -> User:
    """
    Get the current authenticated and active user.

    Raises:
        HTTPException: 403 FORBIDDEN if the account is deactivated
    """
    if not current_user.is_active:
        raise ForbiddenException("Inactive user", code="FORBIDDEN").to_http_exception()
    return current_user


def get_current_mentor(current_user: User = Depends(get_current_active_user)) -> User:
    """Get the current authenticated mentor."""
    if not current_user.is_mentor:
        raise ForbiddenException(ERROR_MENTOR_ONLY, code="FORBIDDEN").to_http_exception()
    return current_user


def get_current_mentee(current_user: User = Depends(get_current_active_user)) -> User:
    """Get the current authenticated mentee."""
    if not current_user.is_mentee:
        raise ForbiddenException(ERROR_MENTEE_ONLY, code="FORBIDDEN").to_http_exception()
    return current_user


def get_current_mentor_or_admin(current_user: User = Depends(get_current_active_user)) -> User:
    if not (current_user.is_mentor or current_user.is_admin):
        raise ForbiddenException(ERROR_MENTOR_ONLY, code="FORBIDDEN").to_http_exception()
    return current_user
