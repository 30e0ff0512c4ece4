"""Loan Resources - the caller's borrower records

Resources:
- GET /books/loans - loans of the authenticated caller, newest first;
  ``open_only=true`` limits the list to copies still out
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..auth import CallerIdentity, require_caller
from ..database.loan_repository import LoanRepository
from ..dependencies import get_session

router = APIRouter(prefix="/books/loans", tags=["loans"])


@router.get("")
def list_my_loans(
    open_only: bool = Query(False, description="Only loans that are still Borrowed"),
    caller: CallerIdentity = Depends(require_caller),
    session: Session = Depends(get_session),
) -> dict:
    loans = LoanRepository(session).loans_for_user(caller.user_id, open_only=open_only)
    return {"count": len(loans), "loans": [loan.model_dump(mode="json") for loan in loans]}
