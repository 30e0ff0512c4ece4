"""
Catalog tools for the Library Catalog service.

The write side of the catalog. Every endpoint is role-gated through the
permission table in ``library_catalog.auth``; the role check runs before
the store is touched, so an unauthorized caller never learns whether a
book exists.

1. create_book: POST /books (Admin)
2. replace_book: PUT /books/{book_id} (Admin, Librarian)
3. patch_book: PATCH /books/{book_id} (Admin, Librarian)
4. delete_book: DELETE /books/{book_id} (Admin)
5. add_copy: POST /books/{book_id}/copies (Admin, Librarian)
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session

from ..auth import CallerIdentity, CatalogOperation, require_permission
from ..database.book_repository import BookCreateSchema, BookPatchSchema, BookRepository
from ..database.copy_repository import CopyCreateSchema, CopyRepository
from ..dependencies import get_session
from ..models.copy import BookCopy

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/books", tags=["catalog"])

BOOK_NOT_FOUND = "Book not found"


class AddCopyInput(BaseModel):
    """Input schema for registering a physical copy."""

    condition: str = Field(default="Good", min_length=1, max_length=50, examples=["Good", "Worn"])
    location: str = Field(default="", max_length=100, examples=["Shelf A3"])

    model_config = ConfigDict(extra="forbid")


@router.post("", status_code=status.HTTP_201_CREATED)
def create_book(
    data: BookCreateSchema,
    caller: CallerIdentity = Depends(require_permission(CatalogOperation.CREATE_BOOK)),
    session: Session = Depends(get_session),
) -> dict:
    book = BookRepository(session).create(data)
    logger.info("Book %s created by user %s: %s", book.id, caller.user_id, book.title)
    return {"message": "Book created successfully", "id": book.id}


@router.put("/{book_id}")
def replace_book(
    book_id: int,
    data: BookCreateSchema,
    caller: CallerIdentity = Depends(require_permission(CatalogOperation.UPDATE_BOOK)),
    session: Session = Depends(get_session),
) -> dict:
    """Replace every field of a book."""
    if BookRepository(session).replace(book_id, data) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=BOOK_NOT_FOUND)
    logger.info("Book %s replaced by user %s", book_id, caller.user_id)
    return {"message": "Book updated successfully"}


@router.patch("/{book_id}")
def patch_book(
    book_id: int,
    patch: BookPatchSchema,
    caller: CallerIdentity = Depends(require_permission(CatalogOperation.UPDATE_BOOK)),
    session: Session = Depends(get_session),
) -> dict:
    """
    Change only the supplied fields.

    The body is validated against the typed patch: unknown fields, explicit
    nulls and an empty object are all rejected with 422.
    """
    if BookRepository(session).patch(book_id, patch) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=BOOK_NOT_FOUND)
    logger.info(
        "Book %s patched by user %s: %s", book_id, caller.user_id, sorted(patch.model_fields_set)
    )
    return {"message": "Book partially updated successfully"}


@router.delete("/{book_id}")
def delete_book(
    book_id: int,
    caller: CallerIdentity = Depends(require_permission(CatalogOperation.DELETE_BOOK)),
    session: Session = Depends(get_session),
) -> dict:
    """Delete a book together with its copies and their loan history."""
    if not BookRepository(session).delete(book_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=BOOK_NOT_FOUND)
    logger.info("Book %s deleted by user %s", book_id, caller.user_id)
    return {"message": "Book deleted successfully"}


@router.post("/{book_id}/copies", status_code=status.HTTP_201_CREATED, response_model=BookCopy)
def add_copy(
    book_id: int,
    data: AddCopyInput | None = None,
    caller: CallerIdentity = Depends(require_permission(CatalogOperation.ADD_COPY)),
    session: Session = Depends(get_session),
) -> BookCopy:
    data = data or AddCopyInput()
    copy = CopyRepository(session).add_copy(
        CopyCreateSchema(book_id=book_id, condition=data.condition, location=data.location)
    )
    logger.info("Copy %s of book %s added by user %s", copy.copy_id, book_id, caller.user_id)
    return copy
