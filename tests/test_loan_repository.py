"""
Tests for the loan lifecycle.

These cover the copy state machine:
    Available/Returned --borrow--> Borrowed --return--> Returned
and the rules around it: ownership of loans, the default librarian, the
loan period and late fees (driven by an injected clock).
"""

from datetime import datetime, timedelta

import pytest
from sqlalchemy import select

from library_catalog.database.copy_repository import CopyRepository
from library_catalog.database.errors import NotFoundError, UnavailableError
from library_catalog.database.loan_repository import (
    COPY_NOT_AVAILABLE,
    LOAN_NOT_FOUND,
    BorrowRequestSchema,
    LoanPolicy,
    LoanRepository,
    ReturnRequestSchema,
)
from library_catalog.database.schema import BookCopy as BookCopyDB
from library_catalog.database.schema import CopyStatusEnum, LoanStatusEnum
from library_catalog.database.schema import Loan as LoanDB
from library_catalog.models.loan import LoanStatus


class FakeClock:
    """A settable time source."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock():
    return FakeClock(datetime(2024, 3, 1, 9, 30))


@pytest.fixture
def loan_repo(test_db_session, clock):
    return LoanRepository(test_db_session, policy=LoanPolicy(), clock=clock)


def _copy_status(session, copy_id):
    return session.execute(
        select(BookCopyDB.status).where(BookCopyDB.copy_id == copy_id)
    ).scalar_one()


def _loan_status(session, borrower_id):
    return session.execute(
        select(LoanDB.status).where(LoanDB.borrower_id == borrower_id)
    ).scalar_one()


class TestBorrow:
    def test_borrow_opens_loan_and_flips_copy(self, loan_repo, test_db_session, sample_book, clock):
        _, copies = sample_book
        copy_id = copies[0].copy_id

        loan = loan_repo.borrow(BorrowRequestSchema(copy_id=copy_id, user_id=7, librarian_id=2))

        assert loan.status == LoanStatus.BORROWED
        assert loan.user_id == 7
        assert loan.librarian_id == 2
        assert loan.borrow_date == clock.now
        assert loan.expected_return_date == clock.now + timedelta(days=14)
        assert loan.actual_return_date is None
        assert loan.late_fee is None
        assert _copy_status(test_db_session, copy_id) == CopyStatusEnum.BORROWED

    def test_default_librarian_applied(self, loan_repo, sample_book):
        _, copies = sample_book
        loan = loan_repo.borrow(BorrowRequestSchema(copy_id=copies[0].copy_id, user_id=7))
        assert loan.librarian_id == 9

    def test_default_librarian_from_policy(self, test_db_session, sample_book, clock):
        _, copies = sample_book
        repo = LoanRepository(
            test_db_session, policy=LoanPolicy(default_librarian_id=4), clock=clock
        )
        loan = repo.borrow(BorrowRequestSchema(copy_id=copies[0].copy_id, user_id=7))
        assert loan.librarian_id == 4

    def test_loan_period_from_policy(self, test_db_session, sample_book, clock):
        _, copies = sample_book
        repo = LoanRepository(test_db_session, policy=LoanPolicy(loan_period_days=7), clock=clock)
        loan = repo.borrow(BorrowRequestSchema(copy_id=copies[0].copy_id, user_id=7))
        assert loan.expected_return_date - loan.borrow_date == timedelta(days=7)

    def test_borrowed_copy_is_unavailable(self, loan_repo, test_db_session, sample_book):
        _, copies = sample_book
        copy_id = copies[0].copy_id
        first = loan_repo.borrow(BorrowRequestSchema(copy_id=copy_id, user_id=7))

        with pytest.raises(UnavailableError, match=COPY_NOT_AVAILABLE):
            loan_repo.borrow(BorrowRequestSchema(copy_id=copy_id, user_id=8))

        # The failed attempt changed nothing
        assert loan_repo.loans_for_user(8) == []
        assert _loan_status(test_db_session, first.borrower_id) == LoanStatusEnum.BORROWED
        assert _copy_status(test_db_session, copy_id) == CopyStatusEnum.BORROWED

    def test_missing_copy_is_unavailable(self, loan_repo):
        with pytest.raises(UnavailableError):
            loan_repo.borrow(BorrowRequestSchema(copy_id=999, user_id=7))

    def test_borrowing_one_copy_leaves_the_other(self, loan_repo, test_db_session, sample_book):
        book, copies = sample_book
        loan_repo.borrow(BorrowRequestSchema(copy_id=copies[0].copy_id, user_id=7))

        availability = CopyRepository(test_db_session).available_copies_for_book(book.id)
        assert [c.copy_id for c in availability.copies] == [copies[1].copy_id]


class TestReturn:
    def test_on_time_return(self, loan_repo, test_db_session, sample_book, clock):
        _, copies = sample_book
        copy_id = copies[0].copy_id
        loan = loan_repo.borrow(BorrowRequestSchema(copy_id=copy_id, user_id=7))

        clock.advance(days=10)
        closed = loan_repo.return_loan(
            ReturnRequestSchema(borrower_id=loan.borrower_id, user_id=7, librarian_id=3)
        )

        assert closed.status == LoanStatus.RETURNED
        assert closed.actual_return_date == clock.now
        assert closed.librarian_id == 3
        assert closed.late_fee is None
        assert _copy_status(test_db_session, copy_id) == CopyStatusEnum.RETURNED

    def test_late_return_charges_per_started_day(self, loan_repo, sample_book, clock):
        _, copies = sample_book
        loan = loan_repo.borrow(BorrowRequestSchema(copy_id=copies[0].copy_id, user_id=7))

        # Due on day 14; returned on day 16
        clock.advance(days=16)
        closed = loan_repo.return_loan(ReturnRequestSchema(borrower_id=loan.borrower_id, user_id=7))

        assert closed.late_fee == 1.00
        assert closed.librarian_id == 9

    def test_returned_copy_can_be_borrowed_again(self, loan_repo, sample_book, clock):
        _, copies = sample_book
        copy_id = copies[0].copy_id
        loan = loan_repo.borrow(BorrowRequestSchema(copy_id=copy_id, user_id=7))
        clock.advance(days=3)
        loan_repo.return_loan(ReturnRequestSchema(borrower_id=loan.borrower_id, user_id=7))

        clock.advance(days=1)
        again = loan_repo.borrow(BorrowRequestSchema(copy_id=copy_id, user_id=8))

        assert again.borrower_id != loan.borrower_id
        assert again.status == LoanStatus.BORROWED

    def test_return_by_another_user_not_found(self, loan_repo, test_db_session, sample_book):
        _, copies = sample_book
        copy_id = copies[0].copy_id
        loan = loan_repo.borrow(BorrowRequestSchema(copy_id=copy_id, user_id=7))

        with pytest.raises(NotFoundError, match=LOAN_NOT_FOUND):
            loan_repo.return_loan(ReturnRequestSchema(borrower_id=loan.borrower_id, user_id=8))

        assert _loan_status(test_db_session, loan.borrower_id) == LoanStatusEnum.BORROWED
        assert _copy_status(test_db_session, copy_id) == CopyStatusEnum.BORROWED

    def test_double_return_not_found(self, loan_repo, sample_book):
        _, copies = sample_book
        loan = loan_repo.borrow(BorrowRequestSchema(copy_id=copies[0].copy_id, user_id=7))
        request = ReturnRequestSchema(borrower_id=loan.borrower_id, user_id=7)
        loan_repo.return_loan(request)

        with pytest.raises(NotFoundError):
            loan_repo.return_loan(request)

    def test_unknown_loan_not_found(self, loan_repo):
        with pytest.raises(NotFoundError):
            loan_repo.return_loan(ReturnRequestSchema(borrower_id=999, user_id=7))


class TestLoanHistory:
    def test_loans_for_user_newest_first(self, loan_repo, sample_book, clock):
        _, copies = sample_book
        first = loan_repo.borrow(BorrowRequestSchema(copy_id=copies[0].copy_id, user_id=7))
        clock.advance(days=1)
        second = loan_repo.borrow(BorrowRequestSchema(copy_id=copies[1].copy_id, user_id=7))
        clock.advance(days=1)
        loan_repo.return_loan(ReturnRequestSchema(borrower_id=first.borrower_id, user_id=7))

        all_loans = loan_repo.loans_for_user(7)
        open_loans = loan_repo.loans_for_user(7, open_only=True)

        assert [loan.borrower_id for loan in all_loans] == [second.borrower_id, first.borrower_id]
        assert [loan.borrower_id for loan in open_loans] == [second.borrower_id]
        assert loan_repo.loans_for_user(8) == []
