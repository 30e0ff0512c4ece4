"""Library Catalog - REST backend for browsing, borrowing and returning books."""

__version__ = "0.1.0"
