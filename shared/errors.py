"""
Shared error handling for the Appetite Checker backend.

Core components raise these typed errors; the HTTP boundary maps each one
to a status code through ``http_status``.
"""

from typing import Dict, Any, Optional

from pydantic import BaseModel, Field

from shared.logging import get_request_id


class ErrorResponse(BaseModel):
    """Standard error response format."""

    request_id: Optional[str] = None
    code: str
    message: str
    details: Dict[str, Any] = Field(default_factory=dict)


class AppetiteException(Exception):
    """Base exception for Appetite Checker services."""

    http_status: int = 400

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_response(self) -> ErrorResponse:
        """Convert to error response."""
        return ErrorResponse(
            request_id=get_request_id(),
            code=self.code,
            message=self.message,
            details=self.details
        )


class NotFoundError(AppetiteException):
    """Unknown rule, submission, carrier, product or user."""

    http_status = 404

    def __init__(self, entity: str, entity_id: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            "NOT_FOUND",
            f"{entity} {entity_id} not found",
            {"entity": entity, "id": entity_id, **(details or {})}
        )


class ValidationError(AppetiteException):
    """Validation-related errors."""

    http_status = 400

    def __init__(self, message: str = "Validation failed", details: Optional[Dict[str, Any]] = None):
        super().__init__("VALIDATION_ERROR", message, details)


class ConflictError(AppetiteException):
    """Duplicate identifier or unique attribute on create."""

    http_status = 409

    def __init__(self, message: str = "Resource already exists", details: Optional[Dict[str, Any]] = None):
        super().__init__("CONFLICT", message, details)


class AuthenticationError(AppetiteException):
    """Authentication-related errors."""

    http_status = 401

    def __init__(self, message: str = "Authentication failed", details: Optional[Dict[str, Any]] = None):
        super().__init__("AUTHENTICATION_ERROR", message, details)


class AuthorizationError(AppetiteException):
    """Authorization-related errors."""

    http_status = 403

    def __init__(self, message: str = "Authorization failed", details: Optional[Dict[str, Any]] = None):
        super().__init__("AUTHORIZATION_ERROR", message, details)


class PersistenceError(AppetiteException):
    """Backing datastore failures."""

    http_status = 503

    def __init__(self, message: str = "Persistence error", details: Optional[Dict[str, Any]] = None):
        super().__init__("PERSISTENCE_ERROR", message, details)
