# core/errors.py

from enum import Enum
from typing import Optional


class ErrorKind(Enum):
    """Closed set of failures reported by the repository service."""
    REPOSITORY_ALREADY_EXISTS = "RepositoryAlreadyExists"
    REPOSITORY_NOT_FOUND = "RepositoryNotFound"
    FILE_NOT_FOUND = "FileNotFound"
    REQUIRED_FILE_PROTECTED = "RequiredFileProtected"
    PATH_TRAVERSAL_REJECTED = "PathTraversalRejected"
    VERSION_NOT_FOUND = "VersionNotFound"
    IO_FAILURE = "IOFailure"
    FILE_TOO_LARGE = "FileTooLarge"
    FILE_TYPE_NOT_ALLOWED = "FileTypeNotAllowed"

    @property
    def http_status(self) -> int:
        """Suggested status code for the HTTP layer."""
        return _HTTP_STATUS[self]


_HTTP_STATUS = {
    ErrorKind.REPOSITORY_ALREADY_EXISTS: 409,
    ErrorKind.REPOSITORY_NOT_FOUND: 404,
    ErrorKind.FILE_NOT_FOUND: 404,
    ErrorKind.REQUIRED_FILE_PROTECTED: 400,
    ErrorKind.PATH_TRAVERSAL_REJECTED: 400,
    ErrorKind.VERSION_NOT_FOUND: 404,
    ErrorKind.IO_FAILURE: 500,
    ErrorKind.FILE_TOO_LARGE: 413,
    ErrorKind.FILE_TYPE_NOT_ALLOWED: 400,
}


class RepositoryError(Exception):
    """Base class for every error the service reports to its callers."""

    kind: ErrorKind = ErrorKind.IO_FAILURE
    default_message = "Repository operation failed"

    def __init__(self, message: Optional[str] = None, idea_id: Optional[str] = None,
                 path: Optional[str] = None):
        self.message = message or self.default_message
        self.idea_id = idea_id
        self.path = path
        super().__init__(self.message)

    def to_dict(self):
        return {
            "kind": self.kind.value,
            "message": self.message,
            "ideaId": self.idea_id,
            "path": self.path,
        }


class RepositoryAlreadyExistsError(RepositoryError):
    kind = ErrorKind.REPOSITORY_ALREADY_EXISTS
    default_message = "Repository already exists"


class RepositoryNotFoundError(RepositoryError):
    kind = ErrorKind.REPOSITORY_NOT_FOUND
    default_message = "Repository not found"


class FileNotFoundInRepositoryError(RepositoryError):
    kind = ErrorKind.FILE_NOT_FOUND
    default_message = "File not found"


class RequiredFileProtectedError(RepositoryError):
    kind = ErrorKind.REQUIRED_FILE_PROTECTED
    default_message = "Cannot delete required file"


class PathTraversalError(RepositoryError):
    kind = ErrorKind.PATH_TRAVERSAL_REJECTED
    default_message = "Path resolves outside the repository"


class VersionNotFoundError(RepositoryError):
    kind = ErrorKind.VERSION_NOT_FOUND
    default_message = "Version not found"


class RepositoryIOError(RepositoryError):
    kind = ErrorKind.IO_FAILURE
    default_message = "Filesystem operation failed"


class FileTooLargeError(RepositoryError):
    kind = ErrorKind.FILE_TOO_LARGE
    default_message = "File size exceeds limit"


class FileTypeNotAllowedError(RepositoryError):
    kind = ErrorKind.FILE_TYPE_NOT_ALLOWED
    default_message = "File type not allowed"
