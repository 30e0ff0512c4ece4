"""Test configuration and fixtures for the Library Catalog service.

1. Isolated test databases - each test gets its own SQLite file
2. Configuration overrides - test-specific settings, never the developer's .env
3. HTTP client - the real application behind FastAPI's TestClient
4. Resource cleanup - engines disposed, global config reset
"""

import os
from collections.abc import Callable, Generator
from pathlib import Path

import logfire
import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from library_catalog.auth import Role, encode_session_token
from library_catalog.config import CatalogConfig, reset_config
from library_catalog.database.book_repository import BookCreateSchema, BookRepository
from library_catalog.database.copy_repository import CopyCreateSchema, CopyRepository
from library_catalog.database.session import DatabaseManager
from library_catalog.server import create_app

TEST_SECRET = "test-session-secret-0123456789abcdef"

# === Pytest Configuration ===


def pytest_configure(config):
    """Register markers and keep telemetry local."""
    config.addinivalue_line("markers", "integration: test drives the HTTP application")
    config.addinivalue_line("markers", "slow: test uses threads or waits on locks")
    logfire.configure(send_to_logfire=False, console=False)


# === Test Data Helpers ===


def make_book_data(**overrides) -> dict:
    """A complete, valid book payload."""
    data = {
        "title": "The Great Gatsby",
        "author": "F. Scott Fitzgerald",
        "genre": "Fiction",
        "year": 1925,
        "pages": 180,
        "publisher": "Scribner",
        "description": "A classic American novel set in the Jazz Age.",
        "image": "https://covers.example.org/gatsby.jpg",
        "price": 12.99,
    }
    data.update(overrides)
    return data


# === Test Database Fixtures ===


@pytest.fixture
def test_db_path(tmp_path: Path) -> Path:
    """Each test gets its own database file."""
    return tmp_path / "test_library.db"


@pytest.fixture
def test_database_url(test_db_path: Path) -> str:
    return f"sqlite:///{test_db_path}"


@pytest.fixture
def db_manager(test_database_url: str) -> Generator[DatabaseManager, None, None]:
    """A database manager with the schema created."""
    manager = DatabaseManager(test_database_url)
    manager.init_database()
    yield manager
    manager.close()


@pytest.fixture
def test_db_session(db_manager: DatabaseManager) -> Generator[Session, None, None]:
    """Provide a SQLAlchemy session for repository tests."""
    session = db_manager.create_session()
    try:
        yield session
    finally:
        session.close()


# === Configuration Fixtures ===


@pytest.fixture
def test_config(test_db_path: Path) -> Generator[CatalogConfig, None, None]:
    """Provide a test-specific configuration."""
    reset_config()

    config = CatalogConfig(
        _env_file=None,
        service_name="test-library-catalog",
        service_version="0.0.1-test",
        database_path=test_db_path,
        session_secret=TEST_SECRET,
        debug=True,
        log_level="DEBUG",
    )

    yield config

    reset_config()


# === HTTP Fixtures ===


@pytest.fixture
def app(test_config: CatalogConfig, db_manager: DatabaseManager):
    return create_app(test_config, db_manager=db_manager)


@pytest.fixture
def client(app) -> Generator[TestClient, None, None]:
    """TestClient with the application lifespan running."""
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def login(test_config: CatalogConfig) -> Callable[..., None]:
    """Put a session cookie for the given user and role on a client."""

    def _login(client: TestClient, user_id: int = 100, role: int = Role.BORROWER) -> None:
        token = encode_session_token(user_id, int(role), TEST_SECRET)
        client.cookies.set(test_config.session_cookie_name, token)

    return _login


# === Sample Data Fixtures ===


@pytest.fixture
def sample_book(test_db_session):
    """A book with two available copies."""
    book = BookRepository(test_db_session).create(BookCreateSchema(**make_book_data()))
    copy_repo = CopyRepository(test_db_session)
    copies = [
        copy_repo.add_copy(CopyCreateSchema(book_id=book.id, location="Shelf A1")),
        copy_repo.add_copy(CopyCreateSchema(book_id=book.id, location="Shelf A2")),
    ]
    return book, copies


@pytest.fixture
def sample_books(test_db_session):
    """A small catalog for filter and sort tests, inserted in this id order."""
    book_repo = BookRepository(test_db_session)
    payloads = [
        make_book_data(
            title="Dune", author="Frank Herbert", genre="Science Fiction", year=1965, pages=412,
            description="Desert planet politics.",
        ),
        make_book_data(
            title="beloved", author="Toni Morrison", genre="Fiction", year=1987, pages=324,
            description="A haunting story.",
        ),
        make_book_data(
            title="Annihilation", author="jeff VanderMeer", genre="science fiction", year=2014,
            pages=195, description="An expedition into Area X.",
        ),
        make_book_data(
            title="Gone Girl", author="Gillian Flynn", genre="Thriller", year=2012, pages=432,
            description="A marriage gone wrong, with a dune buggy.",
        ),
    ]
    return [book_repo.create(BookCreateSchema(**payload)) for payload in payloads]


# === Cleanup Fixtures ===


@pytest.fixture(autouse=True)
def cleanup_after_test():
    """Reset global configuration and drop test-only environment variables."""
    yield

    reset_config()

    for key in list(os.environ.keys()):
        if key.startswith("LIBRARY_CATALOG_TEST_"):
            del os.environ[key]
