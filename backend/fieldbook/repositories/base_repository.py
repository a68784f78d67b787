# backend/fieldbook/repositories/base_repository.py
"""
Base Repository Pattern for the Fieldbook platform

Provides the foundation for all repository classes with:
- Common create/read/update operations
- Type safety with generics
- Transaction support (managed by services)
- Query helpers with uniform error wrapping

Repositories never commit; the service layer owns transaction boundaries.
"""

from abc import ABC, abstractmethod
import logging
from typing import Any, Generic, List, Optional, Type, TypeVar

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Query, Session

from ..core.exceptions import RepositoryException

# Type variable for generic model support
T = TypeVar("T")

logger = logging.getLogger(__name__)


class IRepository(ABC, Generic[T]):
    """
    Abstract repository interface defining core data access methods.
    """

    @abstractmethod
    def get_by_id(self, id: str) -> Optional[T]:
        """
        Retrieve an entity by its primary key.

        Returns:
            The entity if found, None otherwise
        """

    @abstractmethod
    def create(self, **kwargs) -> T:
        """
        Create a new entity.

        Raises:
            RepositoryException: If creation fails
        """


class BaseRepository(IRepository[T]):
    """
    Concrete base repository implementation with common data access patterns.

    Attributes:
        db: SQLAlchemy session
        model: SQLAlchemy model class
    """

    def __init__(self, db: Session, model: Type[T]):
        self.db = db
        self.model = model
        self.logger = logging.getLogger(f"{__name__}.{model.__name__}")

    def get_by_id(self, id: str) -> Optional[T]:
        try:
            return self.db.query(self.model).filter(self.model.id == id).first()
        except SQLAlchemyError as e:
            self.logger.error(f"Error getting {self.model.__name__} by id {id}: {str(e)}")
            raise RepositoryException(f"Failed to retrieve {self.model.__name__}: {str(e)}")

    def create(self, **kwargs) -> T:
        """
        Create a new entity.

        Note: Does NOT commit - transaction management is handled by service layer.
        The original ``IntegrityError`` is chained so services can inspect the
        violated constraint.
        """
        try:
            entity = self.model(**kwargs)
            self.db.add(entity)
            self.db.flush()  # Get ID without committing
            return entity
        except IntegrityError as exc:
            self.logger.error(
                "Integrity error creating %s: %s", self.model.__name__, exc, exc_info=True
            )
            raise RepositoryException(f"Integrity constraint violated: {exc}") from exc
        except SQLAlchemyError as e:
            self.logger.error(f"Error creating {self.model.__name__}: {str(e)}")
            raise RepositoryException(f"Failed to create {self.model.__name__}: {str(e)}") from e

    def apply_update(self, entity: T, **kwargs) -> T:
        """Set fields on an already-loaded entity and flush."""
        try:
            for key, value in kwargs.items():
                if hasattr(entity, key):
                    setattr(entity, key, value)
            self.db.flush()
            return entity
        except IntegrityError as exc:
            self.logger.error(
                "Integrity error updating %s: %s", self.model.__name__, exc, exc_info=True
            )
            raise RepositoryException(f"Integrity constraint violated: {exc}") from exc
        except SQLAlchemyError as e:
            self.logger.error(f"Error updating {self.model.__name__}: {str(e)}")
            raise RepositoryException(f"Failed to update {self.model.__name__}: {str(e)}") from e

    # Protected helper methods for use by subclasses

    def _execute_query(self, query: Query) -> List[T]:
        """Execute query with error handling."""
        try:
            return query.all()
        except SQLAlchemyError as e:
            self.logger.error(f"Query execution error: {str(e)}")
            raise RepositoryException(f"Query failed: {str(e)}")

    def _execute_scalar(self, query: Query) -> Any:
        """Execute scalar query with error handling."""
        try:
            return query.scalar()
        except SQLAlchemyError as e:
            self.logger.error(f"Scalar query error: {str(e)}")
            raise RepositoryException(f"Scalar query failed: {str(e)}")

    def _paginate(self, query: Query, page: int, page_size: int) -> tuple[List[T], int]:
        """
        Run a count and a page fetch for ``query``.

        ``page`` is 1-based; values below 1 return every row.
        """
        try:
            total = query.order_by(None).count()
            if page >= 1:
                query = query.offset((page - 1) * page_size).limit(page_size)
            return query.all(), total
        except SQLAlchemyError as e:
            self.logger.error(f"Paginated query error: {str(e)}")
            raise RepositoryException(f"Paginated query failed: {str(e)}")
