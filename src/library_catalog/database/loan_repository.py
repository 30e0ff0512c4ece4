"""
Loan repository implementation for the Library Catalog service.

This repository owns the borrow/return lifecycle of physical copies:

    Available/Returned --borrow--> Borrowed --return--> Returned

1. **Borrow**: claims a copy and opens a loan due after the loan period
2. **Return**: closes the caller's open loan, frees the copy and assesses
   the late fee
3. **History**: lists a user's loans

Both state changes are a single conditional UPDATE (compare-and-set on the
status column) followed by the dependent writes, all in one transaction.
The affected-row count of the conditional UPDATE decides the outcome, so
two concurrent borrows of one copy cannot both succeed and a return cannot
interleave with a borrow of the same copy.
"""

import logging
import math
from collections.abc import Callable
from datetime import datetime, timedelta

from pydantic import BaseModel, Field
from sqlalchemy import select, update
from sqlalchemy.orm import Session

from ..config import CatalogConfig
from ..models.loan import Loan as LoanModel
from ..models.loan import LoanStatus
from ..observability.decorators import trace_operation
from ..observability.metrics import record_circulation_event, record_late_fee
from .errors import NotFoundError, UnavailableError
from .schema import BORROWABLE_STATUSES, CopyStatusEnum, LoanStatusEnum
from .schema import BookCopy as BookCopyDB
from .schema import Loan as LoanDB
from .session import safe_commit, safe_query

logger = logging.getLogger(__name__)

COPY_NOT_AVAILABLE = "Book copy is not available."
LOAN_NOT_FOUND = "Borrow record not found or book already returned."


class LoanPolicy(BaseModel):
    """Circulation rules applied by the repository."""

    loan_period_days: int = Field(default=14, ge=1)
    late_fee_per_day: float = Field(default=0.50, ge=0.0)
    default_librarian_id: int = Field(default=9, ge=1)

    @classmethod
    def from_config(cls, config: CatalogConfig) -> "LoanPolicy":
        return cls(
            loan_period_days=config.loan_period_days,
            late_fee_per_day=config.late_fee_per_day,
            default_librarian_id=config.default_librarian_id,
        )


class BorrowRequestSchema(BaseModel):
    """Schema for borrowing a copy."""

    copy_id: int = Field(..., ge=1)
    user_id: int
    librarian_id: int | None = Field(default=None, ge=1)


class ReturnRequestSchema(BaseModel):
    """Schema for returning a borrowed copy."""

    borrower_id: int = Field(..., ge=1)
    user_id: int
    librarian_id: int | None = Field(default=None, ge=1)


def calculate_late_fee(
    expected_return_date: datetime, actual_return_date: datetime, daily_rate: float = 0.50
) -> float | None:
    """
    Late fee for a return.

    Every started day past the expected return date costs ``daily_rate``:
    one hour late is charged as one day, exactly 48 hours late as two.

    Returns:
        The fee, or None when the copy came back on or before the due time
    """
    if actual_return_date <= expected_return_date:
        return None
    days_late = math.ceil((actual_return_date - expected_return_date) / timedelta(days=1))
    fee = round(days_late * daily_rate, 2)
    return fee if fee > 0 else None


class LoanRepository:
    """
    Repository for the loan lifecycle.

    Coordinates the ``bookcopies`` and ``borrowers`` tables; every public
    mutation commits or rolls back as a unit.
    """

    def __init__(
        self,
        session: Session,
        policy: LoanPolicy | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.session = session
        self.policy = policy or LoanPolicy()
        self._clock = clock

    def _resolve_librarian(self, librarian_id: int | None) -> int:
        if librarian_id is None:
            return self.policy.default_librarian_id
        return librarian_id

    @trace_operation("borrow")
    def borrow(self, request: BorrowRequestSchema) -> LoanModel:
        """
        Borrow a copy.

        Args:
            request: Copy, borrowing user and optional librarian

        Returns:
            The opened loan; ``expected_return_date`` is the due date

        Raises:
            UnavailableError: If the copy does not exist or is already borrowed
            StoreError: On database errors
        """
        librarian_id = self._resolve_librarian(request.librarian_id)
        borrow_date = self._clock()
        expected_return_date = borrow_date + timedelta(days=self.policy.loan_period_days)

        claim = (
            update(BookCopyDB)
            .where(
                BookCopyDB.copy_id == request.copy_id,
                BookCopyDB.status.in_(BORROWABLE_STATUSES),
            )
            .values(status=CopyStatusEnum.BORROWED)
            .execution_options(synchronize_session=False)
        )
        result = safe_query(
            self.session, lambda s: s.execute(claim), f"Failed to claim copy {request.copy_id}"
        )

        if result.rowcount != 1:
            self.session.rollback()
            logger.info(
                "Borrow refused: copy %s not available (user %s)", request.copy_id, request.user_id
            )
            raise UnavailableError(COPY_NOT_AVAILABLE)

        loan = LoanDB(
            user_id=request.user_id,
            copy_id=request.copy_id,
            librarian_id=librarian_id,
            borrow_date=borrow_date,
            expected_return_date=expected_return_date,
            status=LoanStatusEnum.BORROWED,
        )
        self.session.add(loan)
        safe_commit(self.session, "borrow copy")
        # Copies already loaded in this session predate the bulk UPDATE
        self.session.expire_all()
        self.session.refresh(loan)

        record_circulation_event("borrow")
        logger.info(
            "Copy %s borrowed by user %s (loan %s, due %s)",
            loan.copy_id,
            loan.user_id,
            loan.borrower_id,
            loan.expected_return_date.isoformat(),
        )
        return self._loan_to_model(loan)

    @trace_operation("return")
    def return_loan(self, request: ReturnRequestSchema) -> LoanModel:
        """
        Return a borrowed copy.

        Only the user who opened the loan may close it. The late fee is
        computed here, once, and stored on the loan.

        Args:
            request: Loan id, returning user and optional librarian

        Returns:
            The closed loan with ``actual_return_date`` and ``late_fee``

        Raises:
            NotFoundError: If no open loan with that id belongs to the user
            StoreError: On database errors
        """
        librarian_id = self._resolve_librarian(request.librarian_id)
        returned_at = self._clock()

        close = (
            update(LoanDB)
            .where(
                LoanDB.borrower_id == request.borrower_id,
                LoanDB.user_id == request.user_id,
                LoanDB.status == LoanStatusEnum.BORROWED,
            )
            .values(
                status=LoanStatusEnum.RETURNED,
                actual_return_date=returned_at,
                librarian_id=librarian_id,
            )
            .execution_options(synchronize_session=False)
        )
        result = safe_query(
            self.session,
            lambda s: s.execute(close),
            f"Failed to close loan {request.borrower_id}",
        )

        if result.rowcount != 1:
            self.session.rollback()
            logger.info(
                "Return refused: no open loan %s for user %s", request.borrower_id, request.user_id
            )
            raise NotFoundError(LOAN_NOT_FOUND)

        loan = safe_query(
            self.session,
            lambda s: s.execute(
                select(LoanDB)
                .where(LoanDB.borrower_id == request.borrower_id)
                .execution_options(populate_existing=True)
            ).scalar_one(),
            f"Failed to reload loan {request.borrower_id}",
        )

        late_fee = calculate_late_fee(
            loan.expected_return_date, returned_at, self.policy.late_fee_per_day
        )
        if late_fee is not None:
            loan.late_fee = late_fee

        release = (
            update(BookCopyDB)
            .where(BookCopyDB.copy_id == loan.copy_id)
            .values(status=CopyStatusEnum.RETURNED)
            .execution_options(synchronize_session=False)
        )
        safe_query(self.session, lambda s: s.execute(release), f"Failed to release copy {loan.copy_id}")

        safe_commit(self.session, "return copy")
        self.session.expire_all()
        self.session.refresh(loan)

        record_circulation_event("return")
        if late_fee is not None:
            record_late_fee(late_fee)
        logger.info(
            "Loan %s returned by user %s (copy %s, late fee %s)",
            loan.borrower_id,
            loan.user_id,
            loan.copy_id,
            late_fee,
        )
        return self._loan_to_model(loan)

    def loans_for_user(self, user_id: int, open_only: bool = False) -> list[LoanModel]:
        """
        A user's loans, newest first.

        Args:
            user_id: Borrowing user
            open_only: Only loans that are still Borrowed
        """
        query = select(LoanDB).where(LoanDB.user_id == user_id)
        if open_only:
            query = query.where(LoanDB.status == LoanStatusEnum.BORROWED)
        query = query.order_by(LoanDB.borrow_date.desc(), LoanDB.borrower_id.desc())

        results = safe_query(
            self.session,
            lambda s: s.execute(query).scalars().all(),
            f"Failed to list loans for user {user_id}",
        )
        return [self._loan_to_model(loan) for loan in results]

    def _loan_to_model(self, loan: LoanDB) -> LoanModel:
        """Convert loan DB object to Pydantic model."""
        return LoanModel(
            borrower_id=loan.borrower_id,
            user_id=loan.user_id,
            copy_id=loan.copy_id,
            librarian_id=loan.librarian_id,
            borrow_date=loan.borrow_date,
            expected_return_date=loan.expected_return_date,
            actual_return_date=loan.actual_return_date,
            status=LoanStatus(loan.status.value),
            late_fee=loan.late_fee,
        )
