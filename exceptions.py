"""Custom exceptions for the storefront API.

Each exception carries the HTTP status the API layer answers with.
"""
from __future__ import annotations


class StoreException(Exception):
    """Base exception for all storefront errors."""

    status_code = 500

    def __init__(self, message: str, *args: object) -> None:
        super().__init__(message, *args)
        self.message = message


class DatabaseException(StoreException):
    """Database is not configured or unreachable."""

    pass


class ValidationException(StoreException):
    """Input validation errors."""

    status_code = 400


class NotFoundException(StoreException):
    """Requested document does not exist."""

    status_code = 404

    def __init__(self, resource: str) -> None:
        super().__init__(f"{resource} not found")
        self.resource = resource


class AuthenticationException(StoreException):
    """No valid session."""

    status_code = 401


class AuthorizationException(StoreException):
    """Session is valid but lacks the required permission."""

    status_code = 403
