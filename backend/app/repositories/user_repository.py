# backend/app/repositories/user_repository.py
"""
User Repository for the mentoring platform.

Accounts are provisioned by the identity service; this repository only reads
them for authentication and role checks.
"""

import logging
from typing import Any, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.enums import RoleName
from ..core.exceptions import RepositoryException
from ..models.user import User
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class UserRepository(BaseRepository[User]):
    """Repository for User data access."""

    def __init__(self, db: Session):
        super().__init__(db, User)

    def get_by_id(self, id: Any, load_relationships: bool = True) -> Optional[User]:
        if id is None:
            return None
        return super().get_by_id(str(id), load_relationships=False)

    def get_active_mentor(self, mentor_id: str) -> Optional[User]:
        """Return the user only if it is an active account holding the mentor role."""
        try:
            return (
                self.db.query(User)
                .filter(
                    User.id == mentor_id,
                    User.role == RoleName.MENTOR.value,
                    User.is_active.is_(True),
                )
                .first()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error loading mentor {mentor_id}: {str(e)}")
            raise RepositoryException(f"Failed to load mentor: {str(e)}")
