"""
Database package for the Library Catalog service.

This package provides:
- SQLAlchemy schema definitions (schema.py)
- Engine, session and transaction helpers (session.py)
- Repositories for books, copies and loans
"""

from .book_repository import BookRepository
from .copy_repository import CopyRepository
from .errors import NotFoundError, RepositoryException, StoreError, UnavailableError
from .loan_repository import LoanPolicy, LoanRepository, calculate_late_fee
from .repository import BaseRepository
from .schema import (
    Base,
    Book,
    BookCopy,
    CopyStatusEnum,
    Loan,
    LoanStatusEnum,
)
from .session import DatabaseManager, safe_commit, safe_query

__all__ = [
    "Base",
    "BaseRepository",
    "Book",
    "BookCopy",
    "BookRepository",
    "CopyRepository",
    "CopyStatusEnum",
    "DatabaseManager",
    "Loan",
    "LoanPolicy",
    "LoanRepository",
    "LoanStatusEnum",
    "NotFoundError",
    "RepositoryException",
    "StoreError",
    "UnavailableError",
    "calculate_late_fee",
    "safe_commit",
    "safe_query",
]
