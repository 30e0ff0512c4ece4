"""Library Catalog read endpoints.

Resources are the read side of the API; the write side lives in
``library_catalog.tools``. Routers with fixed paths under ``/books`` are
listed before the books router so ``/books/{book_id}`` does not shadow them.
"""

from .availability import router as availability_router
from .books import router as books_router
from .loans import router as loans_router

resource_routers = [availability_router, loans_router, books_router]

__all__ = [
    "availability_router",
    "books_router",
    "loans_router",
    "resource_routers",
]
