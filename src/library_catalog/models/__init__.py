"""
Library Catalog models.

Pydantic models for the entities the service exposes:
- Book: catalog entries
- BookCopy: physical copies and their availability projections
- Loan: borrower records
"""

from .book import Book, BookFields
from .copy import AvailableCopy, BookAvailability, BookCopy, BookIdentity, CopyStatus
from .loan import Loan, LoanStatus

__all__ = [
    "AvailableCopy",
    "Book",
    "BookAvailability",
    "BookCopy",
    "BookFields",
    "BookIdentity",
    "CopyStatus",
    "Loan",
    "LoanStatus",
]
