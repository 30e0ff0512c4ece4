"""
Loan models for the Library Catalog service.

A loan ("borrower record") links a user to one copy for a bounded period.
It is opened by the borrow tool and closed by the return tool, which also
assesses the late fee.
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator


class LoanStatus(str, Enum):
    """Status of a loan record."""

    BORROWED = "Borrowed"
    RETURNED = "Returned"


class Loan(BaseModel):
    """A loan record as stored."""

    borrower_id: int = Field(..., ge=1)
    user_id: int
    copy_id: int
    librarian_id: int
    borrow_date: datetime
    expected_return_date: datetime
    actual_return_date: datetime | None = None
    status: LoanStatus = LoanStatus.BORROWED
    late_fee: float | None = Field(
        None,
        description="Fee assessed at return time; null when returned on time",
        gt=0,
    )

    model_config = ConfigDict(from_attributes=True)

    @model_validator(mode="after")
    def validate_dates(self) -> "Loan":
        """Returned loans carry a return date; open loans do not."""
        if self.status == LoanStatus.RETURNED and self.actual_return_date is None:
            raise ValueError("Returned loan must have an actual return date")
        if self.status == LoanStatus.BORROWED and self.actual_return_date is not None:
            raise ValueError("Open loan cannot have an actual return date")
        return self
