"""
Sample data for the Library Catalog service.

Generates a small but realistic catalog for local development and demos:
- Books across a weighted mix of genres
- One to four physical copies per book
- Circulation history: closed loans (some with late fees) and open loans

Every generated loan respects the circulation rules: a copy with an open
loan is Borrowed, a copy whose last loan closed is Returned, and late fees
come from ``calculate_late_fee``.
"""

import logging
import random
from dataclasses import dataclass
from datetime import datetime, timedelta

from faker import Faker
from sqlalchemy.orm import Session

from .loan_repository import LoanPolicy, calculate_late_fee
from .schema import Book, BookCopy, CopyStatusEnum, Loan, LoanStatusEnum

logger = logging.getLogger(__name__)

GENRES = [
    "Fiction", "Mystery", "Science Fiction", "Fantasy", "Romance",
    "Thriller", "Biography", "History", "Science", "Poetry",
]

# Popular fiction first, then non-fiction
GENRE_WEIGHTS = [20, 15, 12, 12, 10, 8, 8, 10, 8, 3]

PUBLISHERS = ["Penguin", "HarperCollins", "Knopf", "Scribner", "Tor", "Vintage"]

CONDITIONS = ["New", "Good", "Good", "Good", "Worn"]


@dataclass
class SeedSummary:
    books: int = 0
    copies: int = 0
    open_loans: int = 0
    closed_loans: int = 0


def generate_books(fake: Faker, rng: random.Random, num_books: int) -> list[Book]:
    """Generate catalog entries."""
    books = []
    for _ in range(num_books):
        books.append(
            Book(
                title=fake.catch_phrase().title(),
                author=fake.name(),
                genre=rng.choices(GENRES, weights=GENRE_WEIGHTS)[0],
                year=rng.randint(1900, datetime.now().year),
                pages=rng.randint(80, 900),
                publisher=rng.choice(PUBLISHERS),
                description=fake.text(max_nb_chars=400),
                image=f"https://covers.example.org/{fake.uuid4()}.jpg",
                price=round(rng.uniform(4.99, 39.99), 2),
            )
        )
    return books


def generate_copies(rng: random.Random, books: list[Book]) -> list[BookCopy]:
    """One to four copies per book, all Available to begin with."""
    copies = []
    for book in books:
        for _ in range(rng.randint(1, 4)):
            copies.append(
                BookCopy(
                    book_id=book.id,
                    status=CopyStatusEnum.AVAILABLE,
                    condition=rng.choice(CONDITIONS),
                    location=f"Shelf {rng.choice('ABCDEF')}{rng.randint(1, 12)}",
                )
            )
    return copies


def generate_loans(
    rng: random.Random,
    copies: list[BookCopy],
    policy: LoanPolicy,
    num_users: int = 20,
    now: datetime | None = None,
) -> list[Loan]:
    """
    Generate circulation history and set copy statuses to match.

    About a third of the copies get a closed loan; about a fifth are
    currently out.
    """
    now = now or datetime.now()
    loan_period = timedelta(days=policy.loan_period_days)
    loans = []

    for copy in copies:
        returned = None
        if rng.random() < 0.35:
            borrow_date = now - timedelta(days=rng.randint(40, 300))
            expected = borrow_date + loan_period
            # Mostly on time, sometimes up to three weeks late
            returned = expected + timedelta(hours=rng.randint(-240, 500))
            loans.append(
                Loan(
                    user_id=rng.randint(1, num_users),
                    copy_id=copy.copy_id,
                    librarian_id=policy.default_librarian_id,
                    borrow_date=borrow_date,
                    expected_return_date=expected,
                    actual_return_date=returned,
                    status=LoanStatusEnum.RETURNED,
                    late_fee=calculate_late_fee(expected, returned, policy.late_fee_per_day),
                )
            )
            copy.status = CopyStatusEnum.RETURNED

        if rng.random() < 0.2:
            borrow_date = now - timedelta(days=rng.randint(0, 25))
            if returned is not None:
                # Reopened only after the previous loan closed
                borrow_date = max(borrow_date, returned)
            loans.append(
                Loan(
                    user_id=rng.randint(1, num_users),
                    copy_id=copy.copy_id,
                    librarian_id=policy.default_librarian_id,
                    borrow_date=borrow_date,
                    expected_return_date=borrow_date + loan_period,
                    status=LoanStatusEnum.BORROWED,
                )
            )
            copy.status = CopyStatusEnum.BORROWED

    return loans


def seed_database(
    session: Session,
    num_books: int = 50,
    policy: LoanPolicy | None = None,
    seed: int = 42,
) -> SeedSummary:
    """
    Insert sample books, copies and loans.

    Args:
        session: Session bound to a database whose tables already exist
        num_books: Number of catalog entries to generate
        policy: Loan rules used for due dates and late fees
        seed: Random seed; the same seed produces the same catalog

    Returns:
        Counts of what was inserted
    """
    policy = policy or LoanPolicy()
    fake = Faker()
    fake.seed_instance(seed)
    rng = random.Random(seed)
    summary = SeedSummary()

    try:
        books = generate_books(fake, rng, num_books)
        session.add_all(books)
        session.flush()
        summary.books = len(books)

        copies = generate_copies(rng, books)
        session.add_all(copies)
        session.flush()
        summary.copies = len(copies)

        loans = generate_loans(rng, copies, policy)
        session.add_all(loans)
        session.commit()
    except Exception:
        session.rollback()
        logger.exception("Seeding failed")
        raise

    summary.open_loans = sum(1 for loan in loans if loan.status == LoanStatusEnum.BORROWED)
    summary.closed_loans = len(loans) - summary.open_loans
    logger.info(
        "Seeded %d books, %d copies, %d open and %d closed loans",
        summary.books,
        summary.copies,
        summary.open_loans,
        summary.closed_loans,
    )
    return summary
