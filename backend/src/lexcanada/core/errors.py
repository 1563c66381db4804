"""
Application error hierarchy.

Services raise these; the exception handlers in main.py map them onto the
standard response envelope with the matching HTTP status code.
"""

from typing import Any, Dict, Optional


class ApiError(Exception):
    """Base class for errors that carry an HTTP status."""

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        is_operational: bool = True,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.is_operational = is_operational
        self.details = details

    def __repr__(self):
        return f"<{self.__class__.__name__}(status={self.status_code}, message='{self.message}')>"


class ValidationError(ApiError):
    def __init__(self, message: str = "Validation failed", errors: Optional[Dict[str, str]] = None):
        super().__init__(message, 400, details={"errors": errors} if errors else None)
        self.errors = errors or {}


class AuthenticationError(ApiError):
    def __init__(self, message: str = "Authentication required"):
        super().__init__(message, 401)


class AuthorizationError(ApiError):
    def __init__(self, message: str = "Access denied"):
        super().__init__(message, 403)


class NotFoundError(ApiError):
    def __init__(self, resource: str = "Resource"):
        super().__init__(f"{resource} not found", 404)
        self.resource = resource


class ConflictError(ApiError):
    def __init__(self, message: str = "Resource already exists", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, 409, details=details)


class PayloadTooLargeError(ApiError):
    def __init__(self, message: str = "Payload too large"):
        super().__init__(message, 413)


class RateLimitError(ApiError):
    def __init__(self, message: str = "Too many requests, please try again later"):
        super().__init__(message, 429)


class DatabaseError(ApiError):
    def __init__(self, message: str = "Database operation failed"):
        super().__init__(message, 500, is_operational=False)


class ExternalServiceError(ApiError):
    def __init__(self, service: str, message: Optional[str] = None, status_code: int = 502):
        super().__init__(message or f"{service} request failed", status_code)
        self.service = service


class ServiceUnavailableError(ExternalServiceError):
    def __init__(self, service: str, message: Optional[str] = None):
        super().__init__(service, message or f"{service} is not configured", status_code=503)
