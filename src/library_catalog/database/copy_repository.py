"""
Copy repository implementation for the Library Catalog service.

This repository answers "which physical copies can be borrowed right now":

1. **Per book**: the book's identity plus its borrowable copies
2. **Catalog-wide**: every borrowable copy with its book's title and author
3. **Registration**: adding new physical copies to an existing book

A copy is borrowable when its status is Available or Returned. Results are
ordered by ``copy_id`` ascending and are never paginated.
"""

from pydantic import BaseModel, Field
from sqlalchemy import select

from ..models.copy import AvailableCopy, BookAvailability, BookIdentity, CopyStatus
from ..models.copy import BookCopy as BookCopyModel
from .errors import NotFoundError
from .repository import BaseRepository
from .schema import BORROWABLE_STATUSES, CopyStatusEnum
from .schema import Book as BookDB
from .schema import BookCopy as BookCopyDB
from .session import safe_commit, safe_query


class CopyCreateSchema(BaseModel):
    """Schema for registering a new physical copy."""

    book_id: int = Field(..., ge=1)
    condition: str = Field(default="Good", min_length=1, max_length=50)
    location: str = Field(default="", max_length=100)


class CopyRepository(BaseRepository[BookCopyDB, CopyCreateSchema, BookCopyModel]):
    """Repository for physical copies and their availability."""

    @property
    def model_class(self):
        return BookCopyDB

    @property
    def response_schema(self):
        return BookCopyModel

    def _to_response_model(self, db_obj: BookCopyDB) -> BookCopyModel:
        return BookCopyModel(
            copy_id=db_obj.copy_id,
            book_id=db_obj.book_id,
            status=CopyStatus(db_obj.status.value),
            condition=db_obj.condition,
            location=db_obj.location,
        )

    def _available_query(self):
        return (
            select(BookCopyDB, BookDB.title, BookDB.author)
            .join(BookDB, BookCopyDB.book_id == BookDB.id)
            .where(BookCopyDB.status.in_(BORROWABLE_STATUSES))
            .order_by(BookCopyDB.copy_id.asc())
        )

    @staticmethod
    def _to_available(copy: BookCopyDB, title: str, author: str) -> AvailableCopy:
        return AvailableCopy(
            copy_id=copy.copy_id,
            id=copy.book_id,
            status=CopyStatus(copy.status.value),
            condition=copy.condition,
            location=copy.location,
            title=title,
            author=author,
        )

    def all_available_copies(self) -> list[AvailableCopy]:
        """Every borrowable copy across the catalog, by copy_id ascending."""
        query = self._available_query()
        rows = safe_query(
            self.session,
            lambda s: s.execute(query).all(),
            "Failed to fetch available copies",
        )
        return [self._to_available(copy, title, author) for copy, title, author in rows]

    def available_copies_for_book(self, book_id: int) -> BookAvailability:
        """
        The book's identity and its borrowable copies.

        A book whose copies are all on loan (or that has no copies) yields an
        empty copy list rather than an error.

        Raises:
            NotFoundError: If the book does not exist
        """
        book = safe_query(
            self.session,
            lambda s: s.execute(select(BookDB).where(BookDB.id == book_id)).scalar_one_or_none(),
            "Failed to fetch book for availability",
        )
        if book is None:
            raise NotFoundError("Book not found")

        query = self._available_query().where(BookCopyDB.book_id == book_id)
        rows = safe_query(
            self.session,
            lambda s: s.execute(query).all(),
            f"Failed to fetch available copies for book {book_id}",
        )
        return BookAvailability(
            book=BookIdentity.model_validate(book),
            copies=[self._to_available(copy, title, author) for copy, title, author in rows],
        )

    def list_copies(self, book_id: int) -> list[BookCopyModel]:
        """All copies of a book regardless of status."""
        query = (
            select(BookCopyDB)
            .where(BookCopyDB.book_id == book_id)
            .order_by(BookCopyDB.copy_id.asc())
        )
        results = safe_query(
            self.session,
            lambda s: s.execute(query).scalars().all(),
            f"Failed to list copies for book {book_id}",
        )
        return [self._to_response_model(copy) for copy in results]

    def add_copy(self, data: CopyCreateSchema) -> BookCopyModel:
        """
        Register a new copy; it starts out Available.

        Raises:
            NotFoundError: If the owning book does not exist
        """
        book_exists = safe_query(
            self.session,
            lambda s: s.execute(select(BookDB.id).where(BookDB.id == data.book_id)).first(),
            "Failed to check book existence",
        )
        if book_exists is None:
            raise NotFoundError("Book not found")

        copy = BookCopyDB(
            book_id=data.book_id,
            status=CopyStatusEnum.AVAILABLE,
            condition=data.condition,
            location=data.location,
        )
        self.session.add(copy)
        safe_commit(self.session, "add copy")
        self.session.refresh(copy)
        return self._to_response_model(copy)
