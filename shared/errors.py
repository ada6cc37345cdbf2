"""
Shared error handling for the Portfolio Roast gateway.
"""

from typing import Dict, Any, Optional

from opentelemetry import trace
from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """Standard error response format."""

    trace_id: Optional[str] = None
    code: str
    message: str
    details: Dict[str, Any] = {}


class GatewayException(Exception):
    """Base exception for gateway errors."""

    status_code: int = 400

    def __init__(
        self,
        code: str,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        status_code: Optional[int] = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        self.code = code
        self.message = message
        self.details = details or {}
        if status_code is not None:
            self.status_code = status_code
        self.headers = headers or {}
        super().__init__(message)

    def to_response(self) -> ErrorResponse:
        """Convert to error response."""
        trace_id = None
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


class InvalidInputError(GatewayException):
    """Malformed or empty input; never forwarded upstream."""

    status_code = 400

    def __init__(self, message: str = "Invalid input", details: Optional[Dict[str, Any]] = None):
        super().__init__("INVALID_INPUT", message, details)


class UnauthorizedError(GatewayException):
    """Missing or wrong ingestion credential."""

    status_code = 401

    def __init__(self, message: str = "Unauthorized", details: Optional[Dict[str, Any]] = None):
        super().__init__("UNAUTHORIZED", message, details, headers={"WWW-Authenticate": "Bearer"})


class RateLimitedError(GatewayException):
    """Upstream throttling, republished to the caller with its retry window."""

    status_code = 429

    def __init__(self, signal, headers: Optional[Dict[str, str]] = None):
        self.signal = signal
        super().__init__(
            "RATE_LIMITED",
            signal.message,
            details={
                "retryAfterSeconds": signal.retry_after_seconds,
                "limit": signal.limit,
                "remaining": signal.remaining,
            },
            headers=headers,
        )


class UpstreamUnavailableError(GatewayException):
    """Transport failure or unexpected upstream status."""

    status_code = 502

    def __init__(self, message: str = "Upstream unavailable", details: Optional[Dict[str, Any]] = None):
        super().__init__("UPSTREAM_UNAVAILABLE", message, details)


class RecordingFailureError(GatewayException):
    """Analytics event could not be handed to the metrics store."""

    status_code = 500

    def __init__(self, message: str = "Failed to track event", details: Optional[Dict[str, Any]] = None):
        super().__init__("RECORDING_FAILURE", message, details)
