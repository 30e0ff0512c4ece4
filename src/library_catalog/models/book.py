"""
Book models for the Library Catalog service.

``BookFields`` lists the catalog attributes a client may write; ``Book``
adds the store-assigned identity and is what the read endpoints return:
- GET /books
- GET /books/{id}
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class BookFields(BaseModel):
    """Writable attributes of a catalog entry."""

    title: str = Field(
        ...,
        description="The title of the book",
        min_length=1,
        max_length=500,
        examples=["The Great Gatsby", "Beloved"],
    )

    author: str = Field(
        ...,
        description="Author name as displayed in the catalog",
        min_length=1,
        max_length=200,
        examples=["F. Scott Fitzgerald", "Toni Morrison"],
    )

    genre: str = Field(
        ...,
        description="Literary genre or category of the book",
        min_length=1,
        max_length=100,
        examples=["Fiction", "Science Fiction", "Biography"],
    )

    year: int = Field(
        ...,
        description="Year the book was published",
        ge=0,
        le=datetime.now().year + 1,
        examples=[1925, 1987],
    )

    pages: int = Field(..., description="Page count", ge=0, examples=[180, 324])

    publisher: str = Field(..., max_length=200, examples=["Scribner", "Knopf"])

    description: str = Field(..., max_length=5000)

    image: str = Field(
        ...,
        description="Cover image reference (URL or static path)",
        max_length=500,
        examples=["https://covers.example.org/gatsby.jpg"],
    )

    price: float = Field(..., description="List price", ge=0, examples=[12.99])

    model_config = ConfigDict(
        extra="forbid",
        json_schema_extra={
            "example": {
                "title": "The Great Gatsby",
                "author": "F. Scott Fitzgerald",
                "genre": "Fiction",
                "year": 1925,
                "pages": 180,
                "publisher": "Scribner",
                "description": "A classic American novel set in the Jazz Age.",
                "image": "https://covers.example.org/gatsby.jpg",
                "price": 12.99,
            }
        },
    )


class Book(BookFields):
    """A catalog entry as stored."""

    id: int = Field(..., description="Store-assigned book identifier", ge=1)

    model_config = ConfigDict(from_attributes=True, extra="ignore")
