"""Custom exception classes for the application."""
from typing import Any, Optional


class AppException(Exception):
    """Base exception for the application."""

    def __init__(self, message: str, detail: Any = None):
        self.message = message
        self.detail = detail
        super().__init__(message)


class NotFoundError(AppException):
    """Resource not found."""
    pass


class ValidationError(AppException):
    """Request data failed validation beyond schema checks."""
    pass


class UpstreamError(AppException):
    """The marketplace API could not be reached or returned an unusable payload."""

    def __init__(self, message: str, detail: Any = None, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message, detail)
