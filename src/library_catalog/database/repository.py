"""
Repository pattern implementation for the Library Catalog service.

Repositories keep SQL out of the HTTP handlers:

1. **Separation**: routers deal with requests and status codes, repositories
   with queries and transactions
2. **Testability**: repositories run against any session, including an
   in-memory SQLite database
3. **Serialization**: methods return Pydantic models that the routers hand
   straight to FastAPI

The base repository provides common CRUD operations keyed on the table's
integer primary key; specialized repositories add domain operations.
"""

from abc import ABC, abstractmethod
from typing import Generic, TypeVar

from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .errors import NotFoundError, RepositoryException, StoreError, UnavailableError
from .schema import Base
from .session import safe_commit, safe_query

ModelType = TypeVar("ModelType", bound=Base)
CreateSchemaType = TypeVar("CreateSchemaType", bound=BaseModel)
ResponseSchemaType = TypeVar("ResponseSchemaType", bound=BaseModel)

__all__ = [
    "BaseRepository",
    "NotFoundError",
    "RepositoryException",
    "StoreError",
    "UnavailableError",
]


class BaseRepository(ABC, Generic[ModelType, CreateSchemaType, ResponseSchemaType]):
    """
    Abstract base repository providing common CRUD operations.

    All store access goes through ``safe_query`` and ``safe_commit`` so
    driver errors surface as ``StoreError``.
    """

    def __init__(self, session: Session):
        """Initialize repository with database session."""
        self.session = session

    @property
    @abstractmethod
    def model_class(self) -> type[ModelType]:
        """Return the SQLAlchemy model class."""

    @property
    @abstractmethod
    def response_schema(self) -> type[ResponseSchemaType]:
        """Return the Pydantic response schema."""

    @property
    def entity_name(self) -> str:
        return self.model_class.__name__

    def _to_response_model(self, db_obj: ModelType) -> ResponseSchemaType:
        """Convert database model to Pydantic response model."""
        return self.response_schema.model_validate(db_obj, from_attributes=True)

    def _primary_key(self):
        return self.model_class.__mapper__.primary_key[0]

    def _get_db_obj(self, id: int, operation: str) -> ModelType | None:
        query = select(self.model_class).where(self._primary_key() == id)
        return safe_query(
            self.session,
            lambda s: s.execute(query).scalar_one_or_none(),
            f"Failed to get {self.entity_name} for {operation}",
        )

    def get_by_id(self, id: int) -> ResponseSchemaType | None:
        """
        Get entity by ID.

        Returns:
            Pydantic model or None if not found

        Raises:
            StoreError: On database errors
        """
        db_obj = self._get_db_obj(id, "read")
        if db_obj is None:
            return None
        return self._to_response_model(db_obj)

    def get_all(self) -> list[ResponseSchemaType]:
        """Get every entity, ordered by primary key."""
        query = select(self.model_class).order_by(self._primary_key().asc())
        results = safe_query(
            self.session,
            lambda s: s.execute(query).scalars().all(),
            f"Failed to list {self.entity_name}",
        )
        return [self._to_response_model(item) for item in results]

    def create(self, data: CreateSchemaType) -> ResponseSchemaType:
        """
        Create new entity.

        Raises:
            RepositoryException: On database errors, including constraint violations
        """
        try:
            db_obj = self.model_class(**data.model_dump())
            self.session.add(db_obj)
            safe_commit(self.session, f"create {self.entity_name}")
            self.session.refresh(db_obj)
            return self._to_response_model(db_obj)
        except SQLAlchemyError as e:
            self.session.rollback()
            raise RepositoryException(f"Database error: {e!s}") from e

    def delete(self, id: int) -> bool:
        """
        Delete entity by ID.

        Returns:
            True if deleted, False if not found
        """
        db_obj = self._get_db_obj(id, "deletion")
        if db_obj is None:
            return False

        self.session.delete(db_obj)
        safe_commit(self.session, f"delete {self.entity_name}")
        return True
