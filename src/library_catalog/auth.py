"""
Caller identity and authorization for the Library Catalog service.

Login happens in the separate user service, which sets a session cookie
holding an HS256 JWT with ``user_id`` and ``role_id`` claims. This module:

1. Decodes that cookie into a ``CallerIdentity`` (or nothing)
2. Decides which roles may run which catalog operations, from one table
3. Provides the FastAPI dependencies the routers declare

Reading the catalog needs no identity. Borrowing and returning need any
identity. Catalog writes need a permitted role.
"""

import logging
from datetime import UTC, datetime, timedelta
from enum import Enum, IntEnum

import jwt
from fastapi import Depends, HTTPException, Request, status
from pydantic import BaseModel, ValidationError

from .config import CatalogConfig
from .dependencies import get_settings

logger = logging.getLogger(__name__)


class Role(IntEnum):
    """Role ids shared with the user service."""

    ADMIN = 1
    LIBRARIAN = 2
    BORROWER = 3


class CatalogOperation(str, Enum):
    """Role-gated catalog operations."""

    CREATE_BOOK = "create_book"
    UPDATE_BOOK = "update_book"
    DELETE_BOOK = "delete_book"
    ADD_COPY = "add_copy"


PERMISSIONS: dict[CatalogOperation, frozenset[Role]] = {
    CatalogOperation.CREATE_BOOK: frozenset({Role.ADMIN}),
    CatalogOperation.DELETE_BOOK: frozenset({Role.ADMIN}),
    CatalogOperation.UPDATE_BOOK: frozenset({Role.ADMIN, Role.LIBRARIAN}),
    CatalogOperation.ADD_COPY: frozenset({Role.ADMIN, Role.LIBRARIAN}),
}

DENIAL_MESSAGES: dict[CatalogOperation, str] = {
    CatalogOperation.CREATE_BOOK: "Access denied: Only Admins can create books",
    CatalogOperation.DELETE_BOOK: "Only admins can delete this book",
    CatalogOperation.UPDATE_BOOK: "Access denied: Only Admins and Librarians can update books",
    CatalogOperation.ADD_COPY: "Access denied: Only Admins and Librarians can add copies",
}

NOT_AUTHORIZED = "Not authorized"


def is_permitted(role_id: int | None, operation: CatalogOperation) -> bool:
    """Return True if the role may perform the operation."""
    if role_id is None:
        return False
    try:
        role = Role(role_id)
    except ValueError:
        return False
    return role in PERMISSIONS.get(operation, frozenset())


class CallerIdentity(BaseModel):
    """The authenticated user behind a request."""

    user_id: int
    role_id: int


def encode_session_token(
    user_id: int,
    role_id: int,
    secret: str,
    algorithm: str = "HS256",
    expires_in: timedelta = timedelta(hours=1),
) -> str:
    """Issue a session token the way the user service does (development and tests)."""
    now = datetime.now(UTC)
    payload = {
        "user_id": user_id,
        "role_id": role_id,
        "iat": now,
        "exp": now + expires_in,
    }
    return jwt.encode(payload, secret, algorithm=algorithm)


def decode_session_token(token: str, secret: str, algorithm: str = "HS256") -> CallerIdentity | None:
    """
    Verify a session token.

    Returns:
        The caller identity, or None if the token is expired, tampered with,
        signed with another key or missing the identity claims
    """
    try:
        claims = jwt.decode(token, secret, algorithms=[algorithm])
    except jwt.InvalidTokenError as e:
        logger.debug("Rejected session token: %s", e)
        return None

    try:
        return CallerIdentity(user_id=claims.get("user_id"), role_id=claims.get("role_id"))
    except ValidationError:
        logger.debug("Session token is missing identity claims")
        return None


# =============================================================================
# FASTAPI DEPENDENCIES
# =============================================================================


def get_caller(
    request: Request, config: CatalogConfig = Depends(get_settings)
) -> CallerIdentity | None:
    """Identity from the session cookie, or None for anonymous callers."""
    token = request.cookies.get(config.session_cookie_name)
    if not token:
        return None
    return decode_session_token(token, config.session_secret, config.session_algorithm)


def require_caller(caller: CallerIdentity | None = Depends(get_caller)) -> CallerIdentity:
    """Reject anonymous callers with 401."""
    if caller is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=NOT_AUTHORIZED)
    return caller


def require_permission(operation: CatalogOperation):
    """
    Build a dependency that admits only roles permitted for ``operation``.

    Anonymous callers get 401 and callers with any other role get 403,
    before the handler touches the store.
    """

    def dependency(caller: CallerIdentity = Depends(require_caller)) -> CallerIdentity:
        if not is_permitted(caller.role_id, operation):
            logger.info(
                "User %s (role %s) denied %s", caller.user_id, caller.role_id, operation.value
            )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN, detail=DENIAL_MESSAGES[operation]
            )
        return caller

    return dependency
