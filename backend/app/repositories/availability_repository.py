# backend/app/repositories/availability_repository.py
"""
Availability Repository for the mentoring platform.

Lookups for mentor availability rules. Booking only ever consults active
rules owned by the requested mentor.
"""

import logging
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import RepositoryException
from ..models.availability import Availability
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class AvailabilityRepository(BaseRepository[Availability]):
    """Repository for availability rules."""

    def __init__(self, db: Session):
        super().__init__(db, Availability)

    def get_active_for_mentor(self, availability_id: str, mentor_id: str) -> Optional[Availability]:
        """
        Load an active rule, scoped to its owning mentor.

        Returns None when the rule does not exist, is inactive, or belongs to
        someone else.
        """
        try:
            return (
                self.db.query(Availability)
                .filter(
                    Availability.id == availability_id,
                    Availability.mentor_id == mentor_id,
                    Availability.active.is_(True),
                )
                .first()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error loading availability {availability_id}: {str(e)}")
            raise RepositoryException(f"Failed to load availability: {str(e)}")

    def list_for_mentor(self, mentor_id: str, include_inactive: bool = False) -> List[Availability]:
        try:
            query = self.db.query(Availability).filter(Availability.mentor_id == mentor_id)
            if not include_inactive:
                query = query.filter(Availability.active.is_(True))
            return query.order_by(Availability.created_at.desc(), Availability.id.desc()).all()
        except SQLAlchemyError as e:
            self.logger.error(f"Error listing availability for mentor {mentor_id}: {str(e)}")
            raise RepositoryException(f"Failed to list availability: {str(e)}")
