# backend/instructor_ranking/repositories/base_repository.py
"""
Base Repository Pattern for the instructor ranking engine.

Provides the foundation for all repository classes with:
- Common read operations
- Type safety with generics
- Dialect-aware insert-if-absent (ON CONFLICT DO NOTHING)
- Uniform translation of SQLAlchemy errors into RepositoryException

Transactions are owned by the service layer: repositories flush but never
commit or roll back.
"""

import logging
from typing import Any, Dict, Generic, List, Optional, Type, TypeVar

from sqlalchemy import inspect as sa_inspect
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Query, Session

from ..core.exceptions import RepositoryException

# Type variable for generic model support
T = TypeVar("T")

logger = logging.getLogger(__name__)


class BaseRepository(Generic[T]):
    """
    Concrete base repository implementation with common data access patterns.

    Attributes:
        db: SQLAlchemy session
        model: SQLAlchemy model class
    """

    def __init__(self, db: Session, model: Type[T]):
        """
        Initialize repository with database session and model.

        Args:
            db: SQLAlchemy session (managed by service layer)
            model: SQLAlchemy model class
        """
        self.db = db
        self.model = model
        self.logger = logging.getLogger(f"{__name__}.{model.__name__}")

    @property
    def dialect_name(self) -> str:
        """Dialect of the bound engine; picks the ON CONFLICT flavour and row locking."""
        return self.db.get_bind().dialect.name

    def get_by_id(self, id: Any) -> Optional[T]:
        """Retrieve an entity by its primary key."""
        try:
            return self.db.get(self.model, id)
        except SQLAlchemyError as e:
            self.logger.error(f"Error getting {self.model.__name__} by id {id}: {str(e)}")
            raise RepositoryException(f"Failed to retrieve {self.model.__name__}: {str(e)}")

    def count(self, **kwargs: Any) -> int:
        """Count entities matching given criteria."""
        try:
            return self.db.query(self.model).filter_by(**kwargs).count()
        except SQLAlchemyError as e:
            self.logger.error(f"Error counting records: {str(e)}")
            raise RepositoryException(f"Failed to count records: {str(e)}")

    def insert_if_absent(self, values: Dict[str, Any], model: Optional[Type[Any]] = None) -> bool:
        """
        Insert a row unless its primary key already exists.

        Concurrent callers inserting the same key see exactly one ``True``.

        Returns:
            True if this call inserted the row
        """
        target = model or self.model
        pk_columns = [col.name for col in sa_inspect(target).primary_key]
        insert_fn = pg_insert if self.dialect_name == "postgresql" else sqlite_insert
        stmt = insert_fn(target).values(**values).on_conflict_do_nothing(index_elements=pk_columns)
        try:
            result = self.db.execute(stmt)
        except SQLAlchemyError as e:
            self.logger.error(f"Error inserting {target.__name__}: {str(e)}")
            raise RepositoryException(f"Failed to insert {target.__name__}: {str(e)}")
        return bool(result.rowcount)

    def flush(self) -> None:
        """Flush pending ORM changes."""
        try:
            self.db.flush()
        except SQLAlchemyError as e:
            self.logger.error(f"Flush failed for {self.model.__name__}: {str(e)}")
            raise RepositoryException(f"Failed to flush {self.model.__name__}: {str(e)}")

    # Protected helper methods for use by subclasses

    def _build_query(self) -> Query:
        """Get base query for the model."""
        return self.db.query(self.model)

    def _execute_query(self, query: Query) -> List[Any]:
        """Execute query with error handling."""
        try:
            return query.all()
        except SQLAlchemyError as e:
            self.logger.error(f"Query execution error: {str(e)}")
            raise RepositoryException(f"Query failed: {str(e)}")

    def _execute(self, statement: Any, params: Optional[Dict[str, Any]] = None) -> Any:
        """Execute a core statement with error handling."""
        try:
            return self.db.execute(statement, params or {})
        except SQLAlchemyError as e:
            self.logger.error(f"Statement execution error: {str(e)}")
            raise RepositoryException(f"Statement failed: {str(e)}")
