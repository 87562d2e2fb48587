"""
Error taxonomy for the course catalog.
Every propagated failure is one of these classes, and every class resolves
to a single user-facing message class through the fixed tables below.
"""
from typing import Any, Dict, Optional

from supabase import PostgrestAPIError

# Gateway sentinels
UNIQUE_VIOLATION = '23505'
NO_ROWS = 'PGRST116'

# Transport status -> message class
STATUS_MESSAGES = {
    0: 'Network error. Please check your connection.',
    400: 'The request could not be processed.',
    401: 'Session expired. Please log in again.',
    403: 'Access denied. Insufficient permissions.',
    404: 'Resource not found.',
    409: 'The request conflicts with the current state.',
    422: 'Validation error occurred.',
    429: 'Too many requests. Please try again later.',
    500: 'Server error. Please try again later.',
    502: 'Service temporarily unavailable. Please try again later.',
    503: 'Service temporarily unavailable. Please try again later.',
    504: 'Service temporarily unavailable. Please try again later.',
}

DEFAULT_MESSAGE = 'An unexpected error occurred.'

# Error code -> message class, consulted before the status table
CODE_MESSAGES = {
    'INVALID_CREDENTIALS': 'Invalid email or password.',
    'USER_NOT_FOUND': 'No account exists for this email.',
    'PROFILE_CREATION_FAILED': 'Your account was created but the profile could not be set up.',
    'PROFILE_UPDATE_FAILED': 'Failed to update profile.',
    'ALREADY_ENROLLED': 'Already enrolled in this course.',
    'ENROLLMENT_FAILED': 'Failed to enroll in course.',
    'UNENROLLMENT_FAILED': 'Failed to unenroll from course.',
    'OPERATION_CANCELLED': 'The request was superseded by a newer session.',
}


def describe_status(status: Optional[int]) -> str:
    """
    Resolve a transport status to its message class
    @param status: int - HTTP-like status, 0 for network failure
    @returns: str - Human-readable message class
    """
    if status is None:
        return DEFAULT_MESSAGE
    return STATUS_MESSAGES.get(status, DEFAULT_MESSAGE)


class CatalogError(Exception):
    """
    Base exception for the course catalog.

    Attributes:
        message: Error message from the failing operation
        code: Stable error code
        details: Additional error details
        status: HTTP status the error maps to
    """

    code = 'CATALOG_ERROR'
    status = 500

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        status: Optional[int] = None
    ):
        self.message = message
        self.details = details or {}
        if status is not None:
            self.status = status
        super().__init__(self.message)

    @property
    def message_class(self) -> str:
        return CODE_MESSAGES.get(self.code) or describe_status(self.status)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'error': self.message_class,
            'code': self.code,
            'message': self.message,
            'details': self.details,
        }


class InvalidCredentials(CatalogError):
    code = 'INVALID_CREDENTIALS'
    status = 401


class UserNotFound(CatalogError):
    code = 'USER_NOT_FOUND'
    status = 404


class ProfileCreationFailed(CatalogError):
    code = 'PROFILE_CREATION_FAILED'
    status = 500


class ProfileUpdateFailed(CatalogError):
    code = 'PROFILE_UPDATE_FAILED'
    status = 500


class Unauthorized(CatalogError):
    """Raised when the current user's role does not allow the operation."""

    code = 'UNAUTHORIZED'
    status = 403


class AlreadyEnrolled(CatalogError):
    code = 'ALREADY_ENROLLED'
    status = 409


class EnrollmentFailed(CatalogError):
    code = 'ENROLLMENT_FAILED'
    status = 500


class UnenrollmentFailed(CatalogError):
    code = 'UNENROLLMENT_FAILED'
    status = 500


class NotFound(CatalogError):
    code = 'NOT_FOUND'
    status = 404


class NetworkOrServiceError(CatalogError):
    """Raised when the gateway is unreachable or fails server-side."""

    code = 'SERVICE_ERROR'
    status = 503


class OperationCancelled(CatalogError):
    """Raised when an in-flight operation belongs to a superseded session."""

    code = 'OPERATION_CANCELLED'
    status = 409


def gateway_details(error: Exception) -> Dict[str, Any]:
    """
    Extract {message, code, details} from a gateway exception
    @param error: Exception - Error raised by the Supabase client
    @returns: dict - Normalized error fields
    """
    if isinstance(error, PostgrestAPIError):
        return {
            'message': error.message,
            'code': error.code,
            'details': error.details,
        }
    return {'message': str(error), 'code': None, 'details': None}


def is_unique_violation(error: Exception) -> bool:
    return isinstance(error, PostgrestAPIError) and error.code == UNIQUE_VIOLATION


def is_no_rows(error: Exception) -> bool:
    return isinstance(error, PostgrestAPIError) and error.code == NO_ROWS


def service_error(error: Exception, message: str) -> NetworkOrServiceError:
    """Wrap an arbitrary gateway failure as a NetworkOrServiceError."""
    status = 500 if isinstance(error, PostgrestAPIError) else 503
    return NetworkOrServiceError(message, details=gateway_details(error), status=status)
