"""Domain exceptions raised by services and rendered by the API.

Every exception carries a human readable message and the HTTP status code
used when it reaches the API boundary. The application factory registers a
single handler for CatalogError that renders ``{"detail": message}``.

Example:
    Raise from a service and let the API translate it:
        >>> from catalog.core import errors
        >>> raise errors.NotFoundError("Metadata record not found")
"""


class CatalogError(Exception):
    """Base exception for all catalog failures."""

    status_code: int = 500

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(message)


class AuthenticationError(CatalogError):
    """No authenticated user was supplied."""

    status_code = 401


class PermissionDeniedError(CatalogError):
    """The caller lacks the capability required for the action."""

    status_code = 403


class NotFoundError(CatalogError):
    """The requested entity does not exist or is not visible."""

    status_code = 404


class TransitionNotAllowedError(CatalogError):
    """The workflow action is not legal from the record's current status."""

    status_code = 409


class ConflictError(CatalogError):
    """The change conflicts with existing data, such as a duplicate name."""

    status_code = 409


class ValidationError(CatalogError):
    """Input failed domain validation."""

    status_code = 422


class StorageError(CatalogError):
    """The persistence layer failed to complete the operation."""

    status_code = 503
