# backend/app/models/user.py
"""
User model for the mentoring platform.

Accounts are provisioned by the identity service; this service only reads
them to resolve the caller and the mentor being booked.

Classes:
    User: Platform account with a single role (mentee, mentor or admin)
"""

import logging

from sqlalchemy import Boolean, Column, DateTime, String
from sqlalchemy.sql import func
import ulid

from ..core.enums import RoleName
from ..database import Base

logger = logging.getLogger(__name__)


class User(Base):
    """
    Platform account.

    Attributes:
        id: ULID primary key
        email: Unique email address
        first_name: User's first name
        last_name: User's last name
        role: One of RoleName values
        is_active: Whether the account may act on the platform
        created_at: Account creation timestamp
    """

    __tablename__ = "users"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))
    email = Column(String, unique=True, index=True, nullable=False)
    first_name = Column(String(50), nullable=False)
    last_name = Column(String(50), nullable=False)
    role = Column(String(20), nullable=False, default=RoleName.MENTEE.value, index=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def is_mentor(self) -> bool:
        return self.role == RoleName.MENTOR.value

    @property
    def is_mentee(self) -> bool:
        return self.role == RoleName.MENTEE.value

    @property
    def is_admin(self) -> bool:
        return self.role == RoleName.ADMIN.value

    def __repr__(self) -> str:
        return f"<User {self.email} ({self.role})>"
