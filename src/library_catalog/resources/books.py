"""Book Resources - Library Catalog Access

Read-only catalog endpoints. No session cookie is needed.

Resources:
- GET /books - the catalog, with search/genre/year filters and sortBy
- GET /books/stats - summary figures over the same filtered listing
- GET /books/{book_id} - a single book
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from ..database.book_repository import (
    BookRepository,
    BookSearchParams,
    BookSortOptions,
    CatalogStats,
)
from ..dependencies import get_session
from ..models.book import Book

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/books", tags=["books"])


def _parse_year(year: str | None) -> int | None:
    # The browser form sends blank fields as empty strings
    if year is None or not year.strip():
        return None
    try:
        return int(year.strip())
    except ValueError:
        raise HTTPException(
            status_code=422,
            detail="year must be an integer",
        ) from None


def book_search_params(
    search: str | None = Query(None, description="Substring of title, author or description"),
    genre: str | None = Query(None, description="Case-insensitive genre"),
    year: str | None = Query(None, description="Exact publication year"),
    sort_by: str | None = Query(None, alias="sortBy", description="year, title or author"),
) -> BookSearchParams:
    """Query string -> search params. Unknown sortBy values keep id order."""
    return BookSearchParams(
        search=search or None,
        genre=genre.strip() if genre and genre.strip() else None,
        year=_parse_year(year),
        sort_by=BookSortOptions.parse(sort_by),
    )


@router.get("", response_model=list[Book])
def list_books(
    params: BookSearchParams = Depends(book_search_params),
    session: Session = Depends(get_session),
) -> list[Book]:
    """Returns the filtered catalog."""
    logger.debug(
        "GET /books: search=%r genre=%r year=%r sortBy=%s",
        params.search,
        params.genre,
        params.year,
        params.sort_by,
    )
    return BookRepository(session).list_books(params)


@router.get("/stats")
def catalog_stats(
    params: BookSearchParams = Depends(book_search_params),
    session: Session = Depends(get_session),
) -> dict:
    stats: CatalogStats = BookRepository(session).stats(params)
    return stats.model_dump(by_alias=True)


@router.get("/{book_id}", response_model=Book)
def get_book(book_id: int, session: Session = Depends(get_session)) -> Book:
    book = BookRepository(session).get_by_id(book_id)
    if book is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Book not found")
    return book
