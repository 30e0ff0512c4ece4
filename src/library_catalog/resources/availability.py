"""Availability Resources - Borrowable Copies

Exposes the copy availability resolver. A copy is borrowable when its
status is Available or Returned; lists are ordered by copy_id.

Resources:
- GET /books/available - every borrowable copy in the catalog
- GET /books/available/{book_id} - one book and its borrowable copies
"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..database.copy_repository import CopyRepository
from ..dependencies import get_session

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/books/available", tags=["availability"])


@router.get("")
def list_available_copies(session: Session = Depends(get_session)) -> dict:
    copies = CopyRepository(session).all_available_copies()
    return {
        "success": True,
        "count": len(copies),
        "data": [copy.model_dump(mode="json") for copy in copies],
    }


@router.get("/{book_id}")
def get_book_availability(book_id: int, session: Session = Depends(get_session)) -> dict:
    """
    A book's identity with its borrowable copies.

    A book with every copy on loan yields ``count`` 0 and an empty list;
    an unknown book is a 404 (raised as NotFoundError by the resolver).
    """
    availability = CopyRepository(session).available_copies_for_book(book_id)
    logger.debug("Book %s has %d borrowable copies", book_id, availability.count)
    return {
        "success": True,
        "book": availability.book.model_dump(),
        "count": availability.count,
        "copies": [copy.model_dump(mode="json") for copy in availability.copies],
    }
