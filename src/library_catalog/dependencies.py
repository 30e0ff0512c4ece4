"""FastAPI dependencies shared by the routers.

The application stores its ``CatalogConfig`` and ``DatabaseManager`` on
``app.state`` during startup; these helpers hand them to endpoints.
"""

from collections.abc import Callable, Generator
from datetime import datetime

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from .config import CatalogConfig
from .database.loan_repository import LoanPolicy
from .database.session import DatabaseManager


def get_settings(request: Request) -> CatalogConfig:
    return request.app.state.config


def get_db_manager(request: Request) -> DatabaseManager:
    return request.app.state.db_manager


def get_session(
    db_manager: DatabaseManager = Depends(get_db_manager),
) -> Generator[Session, None, None]:
    """One session per request, closed when the response is sent."""
    session = db_manager.create_session()
    try:
        yield session
    finally:
        session.close()


def get_loan_policy(config: CatalogConfig = Depends(get_settings)) -> LoanPolicy:
    return LoanPolicy.from_config(config)


def get_clock() -> Callable[[], datetime]:
    """Time source for loan dates; tests override it to travel in time."""
    return datetime.now
