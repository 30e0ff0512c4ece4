"""Tests for the Pydantic models."""

from datetime import datetime, timedelta

import pytest
from pydantic import ValidationError

from library_catalog.models import (
    AvailableCopy,
    Book,
    BookAvailability,
    BookFields,
    BookIdentity,
    CopyStatus,
    Loan,
    LoanStatus,
)
from tests.conftest import make_book_data


class TestBookModels:
    def test_valid_book(self):
        book = Book(id=1, **make_book_data())
        assert book.title == "The Great Gatsby"

    @pytest.mark.parametrize(
        ("field", "value"),
        [
            ("title", ""),
            ("pages", -1),
            ("price", -0.01),
            ("year", datetime.now().year + 5),
        ],
    )
    def test_invalid_fields(self, field, value):
        with pytest.raises(ValidationError):
            BookFields(**make_book_data(**{field: value}))

    def test_extra_fields_forbidden_on_input(self):
        with pytest.raises(ValidationError):
            BookFields(**make_book_data(isbn="9780000000000"))


class TestCopyModels:
    def test_availability_count(self):
        copy = AvailableCopy(
            copy_id=3, id=1, status=CopyStatus.AVAILABLE, condition="Good",
            location="", title="Dune", author="Frank Herbert",
        )
        availability = BookAvailability(
            book=BookIdentity(id=1, title="Dune", author="Frank Herbert"), copies=[copy]
        )
        assert availability.count == 1
        assert BookAvailability(book=availability.book).count == 0


class TestLoanModel:
    def _loan(self, **overrides):
        borrowed = datetime(2024, 3, 1, 9, 0)
        data = {
            "borrower_id": 1,
            "user_id": 5,
            "copy_id": 2,
            "librarian_id": 9,
            "borrow_date": borrowed,
            "expected_return_date": borrowed + timedelta(days=14),
        }
        data.update(overrides)
        return Loan(**data)

    def test_open_loan(self):
        loan = self._loan()
        assert loan.status == LoanStatus.BORROWED
        assert loan.actual_return_date is None
        assert loan.late_fee is None

    def test_returned_loan_needs_return_date(self):
        with pytest.raises(ValidationError, match="actual return date"):
            self._loan(status=LoanStatus.RETURNED)

    def test_open_loan_cannot_have_return_date(self):
        with pytest.raises(ValidationError):
            self._loan(actual_return_date=datetime(2024, 3, 5))

    def test_late_fee_must_be_positive(self):
        with pytest.raises(ValidationError):
            self._loan(
                status=LoanStatus.RETURNED,
                actual_return_date=datetime(2024, 3, 20),
                late_fee=0,
            )

    def test_returned_loan(self):
        loan = self._loan(
            status=LoanStatus.RETURNED, actual_return_date=datetime(2024, 3, 20), late_fee=2.5
        )
        assert loan.status == LoanStatus.RETURNED
        assert loan.late_fee == 2.5
