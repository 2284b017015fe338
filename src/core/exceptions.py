"""
Core Exceptions
================

Custom exceptions for the application following clean architecture principles.

Every exception carries the error code surfaced to API callers. The
interface layer renders them as ``{"error": {"code": ..., "message": ...}}``
and never exposes the underlying cause.
"""

from typing import Optional


class ApplicationException(Exception):
    """Base exception for all application errors."""

    code = "INTERNAL_ERROR"
    status_code = 500

    def __init__(self, message: str, details: Optional[dict] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class DomainException(ApplicationException):
    """Base exception for domain logic violations."""


class RepositoryException(ApplicationException):
    """Base exception for repository/data access errors."""


class ValidationException(ApplicationException):
    """Exception for validation errors."""

    code = "VALIDATION_ERROR"
    status_code = 400

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        details: Optional[dict] = None
    ):
        self.field = field
        super().__init__(message, details)


class ResourceNotFoundException(ApplicationException):
    """Exception when a requested resource is not found."""

    code = "NOT_FOUND"
    status_code = 404

    def __init__(
        self,
        resource_type: str,
        resource_id: Optional[str] = None,
        details: Optional[dict] = None
    ):
        self.resource_type = resource_type
        self.resource_id = resource_id
        super().__init__(f"{resource_type} not found", details)


class ConflictException(DomainException):
    """Raised when a write is made against a stale version."""

    code = "CONFLICT"
    status_code = 409


class ForbiddenException(ApplicationException):
    """Raised when the principal's role lacks a permission."""

    code = "FORBIDDEN"
    status_code = 403


class AuthenticationException(ApplicationException):
    """Raised when no usable principal is attached to the request."""

    code = "UNAUTHORIZED"
    status_code = 401
