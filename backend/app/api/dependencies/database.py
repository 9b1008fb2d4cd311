# backend/app/api/dependencies/database.py
"""Request-scoped SQLAlchemy session for route handlers."""

from typing import Generator

from sqlalchemy.orm import Session

from ...database import get_db as _session_scope


def get_db() -> Generator[Session, None, None]:
    """Routes depend on this name so tests can override it in one place."""
    yield from _session_scope()
