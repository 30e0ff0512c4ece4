"""
SQLAlchemy database schema for the Library Catalog service.

Three tables back the service:

1. ``books`` - the catalog, managed through role-gated CRUD
2. ``bookcopies`` - physical copies of a book; ``status`` gates borrowing
3. ``borrowers`` - loan records linking a user to a copy

Table and column names match the layout shared with the user service and
the browser frontend, so the mapped attribute ``BookCopy.book_id`` is
stored in the ``id`` column of ``bookcopies``.
"""

import enum

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    text,
)
from sqlalchemy.orm import declarative_base, relationship, validates

# Base class for all SQLAlchemy models
Base = declarative_base()


class CopyStatusEnum(str, enum.Enum):
    """Database enum for the state of a physical copy."""

    AVAILABLE = "Available"
    RETURNED = "Returned"
    BORROWED = "Borrowed"


class LoanStatusEnum(str, enum.Enum):
    """Database enum for the state of a loan record."""

    BORROWED = "Borrowed"
    RETURNED = "Returned"


# Copy states from which a new loan may start
BORROWABLE_STATUSES = (CopyStatusEnum.AVAILABLE, CopyStatusEnum.RETURNED)


def _enum_values(enum_cls: type[enum.Enum]) -> list[str]:
    return [member.value for member in enum_cls]


class Book(Base):
    """
    Books table - stores the library's catalog.

    Usage:
    - Resources: GET /books, GET /books/{id}
    - Tools: create, full update, partial update and delete
    - One-to-many with copies; deleting a book deletes its copies
    """

    __tablename__ = "books"

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String(500), nullable=False)
    author = Column(String(200), nullable=False)
    genre = Column(String(100), nullable=False)
    year = Column(Integer, nullable=False)
    pages = Column(Integer, nullable=False)
    publisher = Column(String(200), nullable=False)
    description = Column(Text, nullable=False, default="")
    image = Column(String(500), nullable=False, default="")
    price = Column(Float, nullable=False)

    copies = relationship(
        "BookCopy",
        back_populates="book",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="BookCopy.copy_id",
    )

    __table_args__ = (
        Index("idx_book_genre", "genre"),
        CheckConstraint("pages >= 0", name="check_pages_non_negative"),
        CheckConstraint("price >= 0", name="check_price_non_negative"),
    )


class BookCopy(Base):
    """
    Book copies table - one row per physical copy.

    Usage:
    - Resources: GET /books/available, GET /books/available/{id}
    - Tools: borrow flips status to Borrowed, return flips it to Returned
    - ``status`` is the only concurrency-sensitive column
    """

    __tablename__ = "bookcopies"

    copy_id = Column(Integer, primary_key=True, autoincrement=True)
    book_id = Column(
        "id", Integer, ForeignKey("books.id", ondelete="CASCADE"), nullable=False
    )
    status = Column(
        Enum(
            CopyStatusEnum,
            name="copy_status",
            values_callable=_enum_values,
            validate_strings=True,
        ),
        nullable=False,
        default=CopyStatusEnum.AVAILABLE,
    )
    condition = Column(String(50), nullable=False, default="Good")
    location = Column(String(100), nullable=False, default="")

    book = relationship("Book", back_populates="copies")
    loans = relationship(
        "Loan", back_populates="copy", cascade="all, delete-orphan", passive_deletes=True
    )

    __table_args__ = (
        Index("idx_copy_book", "id"),
        Index("idx_copy_status", "status"),
    )


class Loan(Base):
    """
    Borrowers table - one row per loan of a copy.

    Usage:
    - Tools: borrow inserts a row, return closes it and records the late fee
    - Resources: GET /books/loans lists the caller's loans
    - At most one row per copy may be open (status Borrowed)
    """

    __tablename__ = "borrowers"

    borrower_id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, nullable=False)
    copy_id = Column(
        Integer, ForeignKey("bookcopies.copy_id", ondelete="CASCADE"), nullable=False
    )
    librarian_id = Column(Integer, nullable=False)
    borrow_date = Column(DateTime, nullable=False)
    expected_return_date = Column(DateTime, nullable=False)
    actual_return_date = Column(DateTime, nullable=True)
    status = Column(
        Enum(
            LoanStatusEnum,
            name="loan_status",
            values_callable=_enum_values,
            validate_strings=True,
        ),
        nullable=False,
        default=LoanStatusEnum.BORROWED,
    )
    late_fee = Column(Float, nullable=True)

    copy = relationship("BookCopy", back_populates="loans")

    __table_args__ = (
        Index("idx_loan_user", "user_id"),
        Index("idx_loan_status", "status"),
        # Second line of defence for the one-open-loan-per-copy invariant
        Index(
            "uq_open_loan_per_copy",
            "copy_id",
            unique=True,
            sqlite_where=text("status = 'Borrowed'"),
            postgresql_where=text("status = 'Borrowed'"),
        ),
        CheckConstraint(
            "expected_return_date > borrow_date", name="check_expected_after_borrow"
        ),
        CheckConstraint("late_fee IS NULL OR late_fee > 0", name="check_late_fee_positive"),
    )

    @validates("late_fee")
    def validate_late_fee(self, key, value):  # noqa: ARG002
        """A late fee is written once, when the loan closes."""
        if self.late_fee is not None and value != self.late_fee:
            raise ValueError("Late fee is immutable once assessed")
        return value
