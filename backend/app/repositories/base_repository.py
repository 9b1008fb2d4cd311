# backend/app/repositories/base_repository.py
"""
Shared data access for mentoring repositories.

Subclasses bind a model and add their own queries. Nothing here commits:
services own the transaction boundary and call commit/rollback through
``BaseService.transaction``.
"""

import logging
from typing import Any, Generic, Optional, Type, TypeVar

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Query, Session

from ..core.exceptions import RepositoryException

T = TypeVar("T")

logger = logging.getLogger(__name__)


class BaseRepository(Generic[T]):
    """Primary key lookup and insert for a single model."""

    def __init__(self, db: Session, model: Type[T]):
        self.db = db
        self.model = model
        self.logger = logging.getLogger(f"{__name__}.{model.__name__}")

    def get_by_id(self, id: str, load_relationships: bool = True) -> Optional[T]:
        """Return the row with this id, or None."""
        name = self.model.__name__
        try:
            query = self.db.query(self.model).filter(self.model.id == id)
            if load_relationships:
                query = self._apply_eager_loading(query)
            return query.first()
        except SQLAlchemyError as exc:
            self.logger.error("Lookup of %s %s failed: %s", name, id, exc)
            raise RepositoryException(f"Could not load {name}: {exc}") from exc

    def create(self, **kwargs: Any) -> T:
        """
        Add a row and flush so its id and defaults are populated.

        The caller commits. Constraint violations roll the session back and
        surface as RepositoryException.
        """
        name = self.model.__name__
        entity = self.model(**kwargs)
        try:
            self.db.add(entity)
            self.db.flush()
        except IntegrityError as exc:
            self.logger.error("Constraint violated inserting %s: %s", name, exc)
            self.db.rollback()
            raise RepositoryException(f"Integrity constraint violated: {exc}") from exc
        except SQLAlchemyError as exc:
            self.logger.error("Insert of %s failed: %s", name, exc)
            self.db.rollback()
            raise RepositoryException(f"Could not create {name}: {exc}") from exc
        return entity

    def _apply_eager_loading(self, query: Query) -> Query:
        """Hook for subclasses that want relationships loaded with get_by_id."""
        return query
