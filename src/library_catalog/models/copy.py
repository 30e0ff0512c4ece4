"""
Book copy models for the Library Catalog service.

A ``BookCopy`` is one physical, individually trackable instance of a book.
The availability views are the projections returned by the availability
resolver:
- GET /books/available -> list of ``AvailableCopy``
- GET /books/available/{id} -> ``BookAvailability``
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class CopyStatus(str, Enum):
    """State of a physical copy."""

    AVAILABLE = "Available"
    RETURNED = "Returned"
    BORROWED = "Borrowed"


class BookCopy(BaseModel):
    """A physical copy as stored."""

    copy_id: int = Field(..., ge=1)
    book_id: int = Field(..., ge=1, description="Owning book identifier")
    status: CopyStatus
    condition: str
    location: str

    model_config = ConfigDict(from_attributes=True)


class AvailableCopy(BaseModel):
    """A borrowable copy joined with its book's title and author."""

    copy_id: int
    id: int = Field(..., description="Owning book identifier")
    status: CopyStatus
    condition: str
    location: str
    title: str
    author: str


class BookIdentity(BaseModel):
    """Identifying fields of a book."""

    id: int
    title: str
    author: str

    model_config = ConfigDict(from_attributes=True)


class BookAvailability(BaseModel):
    """A book together with its borrowable copies, ordered by copy_id."""

    book: BookIdentity
    copies: list[AvailableCopy] = Field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.copies)
