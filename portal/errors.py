"""Error taxonomy shared by the portal services and the HTTP layer."""

from __future__ import annotations


class PortalError(Exception):
    """Base class for failures that are reported to API callers."""

    status_code: int = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(PortalError):
    """Missing or malformed input."""

    status_code = 400


class AuthError(PortalError):
    """Bad credentials or a missing session."""

    status_code = 401


class NotFoundError(PortalError):
    status_code = 404


class ConflictError(PortalError):
    """The request clashes with existing state (duplicate email, full course...)."""

    status_code = 409


class StorageError(PortalError):
    """The on-disk collections could not be read or written."""

    status_code = 500


__all__ = [
    "AuthError",
    "ConflictError",
    "NotFoundError",
    "PortalError",
    "StorageError",
    "ValidationError",
]
