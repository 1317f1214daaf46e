"""Exception hierarchy for the storage layer.

Every error carries the operation that was attempted and the path it was
attempted on, so route handlers and logs never lose that context.
"""

from __future__ import annotations


class FileHubError(Exception):
    """Base exception for all FileHub storage errors."""

    status_code = 500

    def __init__(self, operation: str, path: str, message: str | None = None):
        self.operation = operation
        self.path = path
        self.message = message or self.__class__.__doc__ or "Storage error"
        super().__init__(f"{operation} {path!r}: {self.message}")

    def to_dict(self) -> dict:
        return {
            "success": False,
            "error": self.message,
            "operation": self.operation,
            "path": self.path,
        }


class TraversalError(FileHubError):
    """Path resolves outside the tenant root."""

    status_code = 403


class NotFound(FileHubError):
    """File or folder not found."""

    status_code = 404


class PermissionDenied(FileHubError):
    """Operation not permitted."""

    status_code = 403


class Conflict(FileHubError):
    """A file or folder with this name already exists."""

    status_code = 409


class MoveIntoSelf(Conflict):
    """Cannot move into itself or subdirectory."""

    status_code = 400


class InvalidQuery(FileHubError):
    """Invalid search query."""

    status_code = 400


class InvalidInput(FileHubError):
    """Invalid request parameter."""

    status_code = 400
