"""
Service-layer error types.

Services raise these exceptions; the application registers a single
handler (see ``main.py``) that turns any ``ServiceError`` into a JSON
response with the matching HTTP status, so none of them reaches the
ASGI server unhandled.
"""

from enum import Enum
from typing import List, Optional

from fastapi import status


class ErrorCode(Enum):
    """Machine readable error codes returned in error bodies."""

    VALIDATION_ERROR = "VALIDATION_ERROR"
    CONFLICT = "CONFLICT"
    NOT_FOUND = "NOT_FOUND"
    FORBIDDEN = "FORBIDDEN"
    MISSING_CREDENTIAL = "MISSING_CREDENTIAL"
    INVALID_CREDENTIAL = "INVALID_CREDENTIAL"
    INVALID_FILTER = "INVALID_FILTER"
    STORAGE_ERROR = "STORAGE_ERROR"


class ServiceError(Exception):
    """Base exception for service layer errors."""

    code: ErrorCode = ErrorCode.STORAGE_ERROR
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)

    def to_dict(self) -> dict:
        return {"message": self.message, "code": self.code.value}


class ValidationError(ServiceError):
    """Raised when a payload is incomplete or malformed.

    ``errors`` holds one entry per offending field so that clients can
    fix everything in a single resubmission.
    """

    code = ErrorCode.VALIDATION_ERROR
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, errors: List[dict], message: str = "Validation failed") -> None:
        self.errors = errors
        super().__init__(message)

    @property
    def fields(self) -> List[str]:
        return [error["field"] for error in self.errors]

    def to_dict(self) -> dict:
        body = super().to_dict()
        body["errors"] = self.errors
        return body


class ConflictError(ServiceError):
    """Raised when an event with the same title and date already exists."""

    code = ErrorCode.CONFLICT
    status_code = status.HTTP_409_CONFLICT

    def __init__(self, message: str = "Event already exists", existing_id: Optional[str] = None) -> None:
        self.existing_id = existing_id
        super().__init__(message)

    def to_dict(self) -> dict:
        body = super().to_dict()
        if self.existing_id:
            body["existing_id"] = self.existing_id
        return body


class NotFoundError(ServiceError):
    """Raised when a requested resource is not found."""

    code = ErrorCode.NOT_FOUND
    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, resource: str, identifier: str) -> None:
        self.resource = resource
        self.identifier = identifier
        super().__init__(f"{resource} not found")


class ForbiddenError(ServiceError):
    """Raised when an authenticated actor may not perform an action."""

    code = ErrorCode.FORBIDDEN
    status_code = status.HTTP_403_FORBIDDEN


class AuthError(ServiceError):
    """Base class for credential failures."""

    code = ErrorCode.INVALID_CREDENTIAL
    status_code = status.HTTP_401_UNAUTHORIZED


class MissingCredentialError(AuthError):
    code = ErrorCode.MISSING_CREDENTIAL

    def __init__(self, message: str = "No token, authorization denied") -> None:
        super().__init__(message)


class InvalidCredentialError(AuthError):
    code = ErrorCode.INVALID_CREDENTIAL

    def __init__(self, message: str = "Invalid or expired token") -> None:
        super().__init__(message)


class InvalidFilterError(ServiceError):
    """Raised when search parameters cannot be interpreted."""

    code = ErrorCode.INVALID_FILTER
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str, parameter: Optional[str] = None) -> None:
        self.parameter = parameter
        super().__init__(message)


class StorageError(ServiceError):
    """Raised when the database fails for reasons other than a conflict."""

    code = ErrorCode.STORAGE_ERROR
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
