"""Exception hierarchy shared by the session helpers and the repositories.

The HTTP layer maps each class onto a status code:

- ``NotFoundError`` -> 404
- ``UnavailableError`` -> 400
- ``StoreError`` and any other ``RepositoryException`` -> 500
"""


class RepositoryException(Exception):
    """Base exception for repository operations."""


class NotFoundError(RepositoryException):
    """Raised when an entity is not found."""


class UnavailableError(RepositoryException):
    """Raised when a copy is not in a borrowable state."""


class StoreError(RepositoryException):
    """Raised when a round-trip to the relational store fails."""
