"""
Book repository implementation for the Library Catalog service.

Catalog reads and writes:

1. **Listing**: the whole table is loaded, then searched, filtered and
   sorted in memory (fine for a branch-sized catalog; no query pushdown)
2. **Full update**: every writable field is replaced
3. **Partial update**: only the fields present in a typed patch change
4. **Statistics**: summary figures over a filtered listing
"""

import enum
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

from ..models.book import Book as BookModel
from ..models.book import BookFields
from .repository import BaseRepository
from .schema import Book as BookDB
from .session import safe_commit


class BookCreateSchema(BookFields):
    """Schema for creating a book or replacing all of its fields."""


class BookPatchSchema(BaseModel):
    """
    Schema for a partial update.

    Only the fields listed here can be patched; anything else in the
    request body is rejected.
    """

    title: str | None = Field(None, min_length=1, max_length=500)
    author: str | None = Field(None, min_length=1, max_length=200)
    genre: str | None = Field(None, min_length=1, max_length=100)
    year: int | None = Field(None, ge=0, le=datetime.now().year + 1)
    pages: int | None = Field(None, ge=0)
    publisher: str | None = Field(None, max_length=200)
    description: str | None = Field(None, max_length=5000)
    image: str | None = Field(None, max_length=500)
    price: float | None = Field(None, ge=0)

    model_config = ConfigDict(extra="forbid")

    @model_validator(mode="after")
    def validate_not_empty(self) -> "BookPatchSchema":
        if not self.model_fields_set:
            raise ValueError("Provide at least one field to update")
        for field in self.model_fields_set:
            if getattr(self, field) is None:
                raise ValueError(f"Field '{field}' cannot be null")
        return self

    def changes(self) -> dict[str, Any]:
        """Fields explicitly supplied by the caller."""
        return self.model_dump(exclude_unset=True)


class BookSortOptions(str, enum.Enum):
    """Sorting options for book listings."""

    YEAR = "year"
    TITLE = "title"
    AUTHOR = "author"

    @classmethod
    def parse(cls, value: str | None) -> "BookSortOptions | None":
        """Map a raw ``sortBy`` value to an option; unknown values mean no sort."""
        if not value:
            return None
        try:
            return cls(value.strip().lower())
        except ValueError:
            return None


class BookSearchParams(BaseModel):
    """Search parameters for listing books."""

    search: str | None = None  # Substring of title, author or description
    genre: str | None = None  # Case-insensitive exact genre
    year: int | None = None  # Exact publication year
    sort_by: BookSortOptions | None = None


class CatalogStats(BaseModel):
    """Summary figures over a book listing."""

    total_books: int = Field(..., serialization_alias="totalBooks")
    avg_pages: int = Field(..., serialization_alias="avgPages")
    oldest_book: int | None = Field(None, serialization_alias="oldestBook")
    unique_genres: int = Field(..., serialization_alias="uniqueGenres")


def filter_books(books: list[BookModel], params: BookSearchParams) -> list[BookModel]:
    """Apply search, filters and sorting to an already loaded list of books."""
    result = list(books)

    if params.search and params.search.strip():
        term = params.search.strip().casefold()
        result = [
            book
            for book in result
            if term in book.title.casefold()
            or term in book.author.casefold()
            or term in book.description.casefold()
        ]

    if params.genre:
        genre = params.genre.strip().casefold()
        result = [book for book in result if book.genre.casefold() == genre]

    if params.year is not None:
        result = [book for book in result if book.year == params.year]

    # Python's sort is stable, so ties keep id order
    if params.sort_by == BookSortOptions.YEAR:
        result.sort(key=lambda book: book.year)
    elif params.sort_by == BookSortOptions.TITLE:
        result.sort(key=lambda book: book.title.casefold())
    elif params.sort_by == BookSortOptions.AUTHOR:
        result.sort(key=lambda book: book.author.casefold())

    return result


class BookRepository(BaseRepository[BookDB, BookCreateSchema, BookModel]):
    """Repository for catalog data access."""

    @property
    def model_class(self):
        return BookDB

    @property
    def response_schema(self):
        return BookModel

    def list_books(self, params: BookSearchParams | None = None) -> list[BookModel]:
        """
        List books, optionally searched, filtered and sorted.

        Args:
            params: Search and sort criteria; None returns every book by id

        Returns:
            Matching books
        """
        books = self.get_all()
        if params is None:
            return books
        return filter_books(books, params)

    def replace(self, book_id: int, data: BookCreateSchema) -> BookModel | None:
        """
        Replace every writable field of a book.

        Returns:
            Updated book or None if not found
        """
        return self._apply(book_id, data.model_dump(), "update book")

    def patch(self, book_id: int, data: BookPatchSchema) -> BookModel | None:
        """
        Apply a partial update.

        Returns:
            Updated book or None if not found
        """
        return self._apply(book_id, data.changes(), "patch book")

    def stats(self, params: BookSearchParams | None = None) -> CatalogStats:
        """Compute summary figures over the (filtered) catalog."""
        books = self.list_books(params)
        total = len(books)
        return CatalogStats(
            total_books=total,
            avg_pages=round(sum(book.pages for book in books) / total) if total else 0,
            oldest_book=min((book.year for book in books), default=None),
            unique_genres=len({book.genre for book in books}),
        )

    def _apply(self, book_id: int, changes: dict[str, Any], operation: str) -> BookModel | None:
        book = self._get_db_obj(book_id, operation)
        if book is None:
            return None

        for field, value in changes.items():
            setattr(book, field, value)

        safe_commit(self.session, operation)
        self.session.refresh(book)
        return self._to_response_model(book)
