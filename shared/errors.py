"""
Shared error handling for the OIDC relying party.
"""

from typing import Dict, Any, Optional
from pydantic import BaseModel

try:
    from opentelemetry import trace
    HAS_OPENTELEMETRY = True
except ImportError:
    HAS_OPENTELEMETRY = False


class ErrorResponse(BaseModel):
    """Standard error response format."""

    trace_id: Optional[str] = None
    code: str
    message: str
    details: Dict[str, Any] = {}


class RelyingPartyException(Exception):
    """Base exception for relying party errors.

    ``status`` is the HTTP status the service answers with; unset means 400.
    """

    status: Optional[int] = None

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_response(self) -> ErrorResponse:
        """Convert to error response."""
        # Get trace ID from current span
        trace_id = None
        if HAS_OPENTELEMETRY:
            current_span = trace.get_current_span()
            if current_span and current_span.is_recording():
                span_context = current_span.get_span_context()
                if span_context.trace_id != 0:
                    trace_id = f"{span_context.trace_id:032x}"

        return ErrorResponse(
            trace_id=trace_id,
            code=self.code,
            message=self.message,
            details=self.details
        )


class AuthenticationError(RelyingPartyException):
    """Authentication-related errors.

    Carries an HTTP-style status so callers can surface the rejection
    without treating it as a server fault.
    """

    def __init__(self, message: str = "Authentication failed", details: Optional[Dict[str, Any]] = None,
                 status: Optional[int] = None):
        self.status = status
        super().__init__("AUTHENTICATION_ERROR", message, details)


class ValidationError(RelyingPartyException):
    """Validation-related errors."""

    def __init__(self, message: str = "Validation failed", details: Optional[Dict[str, Any]] = None):
        super().__init__("VALIDATION_ERROR", message, details)


class ConfigurationError(RelyingPartyException):
    """Invalid or incomplete configuration."""

    def __init__(self, message: str = "Invalid configuration", details: Optional[Dict[str, Any]] = None):
        super().__init__("CONFIGURATION_ERROR", message, details)


class SessionUnavailableError(RelyingPartyException):
    """Raised when the incoming request carries no session."""

    def __init__(
        self,
        message: str = "OpenID Connect requires session support. Did you forget to install SessionMiddleware?",
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__("SESSION_UNAVAILABLE", message, details)


class ExternalServiceError(RelyingPartyException):
    """External service errors."""

    def __init__(self, service: str, message: str = "External service error", details: Optional[Dict[str, Any]] = None):
        super().__init__("EXTERNAL_SERVICE_ERROR", f"{service}: {message}", details)
