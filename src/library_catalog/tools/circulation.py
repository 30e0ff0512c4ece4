"""
Circulation tools for the Library Catalog service.

These endpoints change who holds a copy:
1. borrow_book: POST /books/borrow opens a loan on a borrowable copy
2. return_book: POST /books/return closes the caller's loan and reports
   the late fee

Both need an authenticated caller; the user id always comes from the
session cookie, never from the request body. The state changes themselves
are atomic inside ``LoanRepository``.
"""

import logging
from collections.abc import Callable
from datetime import datetime

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from ..auth import CallerIdentity, require_caller
from ..database.loan_repository import (
    BorrowRequestSchema,
    LoanPolicy,
    LoanRepository,
    ReturnRequestSchema,
)
from ..dependencies import get_clock, get_loan_policy, get_session

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/books", tags=["circulation"])


class BorrowBookInput(BaseModel):
    """Input schema for borrowing a copy."""

    copy_id: int = Field(..., description="Copy to borrow", ge=1, examples=[12])
    librarian_id: int | None = Field(
        default=None,
        description="Librarian processing the loan; the configured default when omitted",
        ge=1,
    )


class ReturnBookInput(BaseModel):
    """Input schema for returning a copy."""

    borrower_id: int = Field(..., description="Loan (borrower record) to close", ge=1)
    librarian_id: int | None = Field(default=None, ge=1)


def _loan_repository(
    session: Session = Depends(get_session),
    policy: LoanPolicy = Depends(get_loan_policy),
    clock: Callable[[], datetime] = Depends(get_clock),
) -> LoanRepository:
    return LoanRepository(session, policy=policy, clock=clock)


@router.post("/borrow", status_code=status.HTTP_201_CREATED)
def borrow_book(
    params: BorrowBookInput,
    caller: CallerIdentity = Depends(require_caller),
    repo: LoanRepository = Depends(_loan_repository),
) -> dict:
    """
    Borrow a copy.

    Responds 400 "Book copy is not available." when the copy is already
    out or does not exist.
    """
    loan = repo.borrow(
        BorrowRequestSchema(
            copy_id=params.copy_id, user_id=caller.user_id, librarian_id=params.librarian_id
        )
    )
    return {
        "message": "Book borrowed successfully.",
        "borrower_id": loan.borrower_id,
        "return_date": loan.expected_return_date.isoformat(),
    }


@router.post("/return")
def return_book(
    params: ReturnBookInput,
    caller: CallerIdentity = Depends(require_caller),
    repo: LoanRepository = Depends(_loan_repository),
) -> dict:
    """
    Return a borrowed copy.

    Responds 404 when the loan does not exist, belongs to someone else or
    was already returned.
    """
    loan = repo.return_loan(
        ReturnRequestSchema(
            borrower_id=params.borrower_id,
            user_id=caller.user_id,
            librarian_id=params.librarian_id,
        )
    )

    message = "Book returned successfully."
    if loan.late_fee is not None:
        message = f"{message} Late fee: ${loan.late_fee:.2f}"

    return {
        "message": message,
        "return_date": loan.actual_return_date.isoformat(),
        "late_fee": loan.late_fee,
    }
