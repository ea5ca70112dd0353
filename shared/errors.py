"""
Shared error handling for the Relay Access Layer.
"""

from typing import Dict, Any, Optional
from pydantic import BaseModel

from shared.logging import get_request_id


class ErrorResponse(BaseModel):
    """Standard error response format."""

    trace_id: Optional[str] = None
    code: str
    message: str
    details: Dict[str, Any] = {}


class AccessLayerException(Exception):
    """Base exception for Access Layer services."""

    status_code = 400

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_response(self) -> ErrorResponse:
        """Convert to error response."""
        return ErrorResponse(
            trace_id=get_request_id(),
            code=self.code,
            message=self.message,
            details=self.details
        )


class ValidationError(AccessLayerException):
    """Required field or path parameter missing."""

    def __init__(self, message: str = "Validation failed", details: Optional[Dict[str, Any]] = None):
        super().__init__("VALIDATION_ERROR", message, details)


class NotFoundError(AccessLayerException):
    """Lookup of an identifier that was never created."""

    status_code = 404

    def __init__(self, message: str = "Not found", details: Optional[Dict[str, Any]] = None):
        super().__init__("NOT_FOUND", message, details)


class AuthenticationError(AccessLayerException):
    """Signature verification failures."""

    status_code = 403

    def __init__(self, message: str = "Authentication failed", details: Optional[Dict[str, Any]] = None):
        super().__init__("AUTHENTICATION_ERROR", message, details)


class SignatureExpiredError(AuthenticationError):
    """Signed envelope presented outside its validity window."""

    def __init__(self, message: str = "Signature expired", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details)
        self.code = "SIGNATURE_EXPIRED"


class AuthorizationError(AccessLayerException):
    """Authorization-related errors."""

    status_code = 403

    def __init__(self, message: str = "Authorization failed", details: Optional[Dict[str, Any]] = None):
        super().__init__("AUTHORIZATION_ERROR", message, details)


class SigningError(AccessLayerException):
    """Credential absent or malformed at signing time."""

    status_code = 500

    def __init__(self, message: str = "Request signing failed", details: Optional[Dict[str, Any]] = None):
        super().__init__("SIGNING_ERROR", message, details)


class ServiceError(AccessLayerException):
    """Service-related errors."""

    status_code = 500

    def __init__(self, message: str = "Service error", details: Optional[Dict[str, Any]] = None):
        super().__init__("SERVICE_ERROR", message, details)


class ExternalServiceError(AccessLayerException):
    """External service errors."""

    status_code = 502

    def __init__(self, service: str, message: str = "External service error", details: Optional[Dict[str, Any]] = None):
        super().__init__("EXTERNAL_SERVICE_ERROR", f"{service}: {message}", details)


class TransportError(ExternalServiceError):
    """Network failure talking to an internal service."""

    def __init__(self, service: str, message: str = "Transport failure", details: Optional[Dict[str, Any]] = None):
        super().__init__(service, message, details)
        self.code = "TRANSPORT_ERROR"


class UpstreamStatusError(ExternalServiceError):
    """Internal service answered with a non-2xx status."""

    def __init__(self, service: str, status: int, details: Optional[Dict[str, Any]] = None):
        super().__init__(service, f"unexpected status {status}", details)
        self.code = "UPSTREAM_STATUS_ERROR"
        self.upstream_status = status
