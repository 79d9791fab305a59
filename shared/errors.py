"""
Shared error handling for the token validation cache.
"""

from typing import Dict, Any, Optional
from pydantic import BaseModel
from opentelemetry import trace


class ErrorResponse(BaseModel):
    """Standard error response format."""

    trace_id: Optional[str] = None
    code: str
    message: str
    details: Dict[str, Any] = {}


class TokenCacheException(Exception):
    """Base exception for the token validation cache."""

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.details = details or {}
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


class StoreLookupError(TokenCacheException):
    """Record store could not be queried (a missing record is not an error)."""

    def __init__(self, message: str = "Record store lookup failed", details: Optional[Dict[str, Any]] = None):
        super().__init__("STORE_LOOKUP_ERROR", message, details)


class StoreWriteError(TokenCacheException):
    """Upsert of a validation outcome failed."""

    def __init__(self, message: str = "Record store write failed", details: Optional[Dict[str, Any]] = None):
        super().__init__("STORE_WRITE_ERROR", message, details)


class StoreError(TokenCacheException):
    """Record store lifecycle errors (start, schema bootstrap, not started)."""

    def __init__(self, message: str = "Record store error", details: Optional[Dict[str, Any]] = None):
        super().__init__("STORE_ERROR", message, details)


class OracleError(TokenCacheException):
    """Validation oracle unreachable, rejected the request, or answered garbage."""

    def __init__(self, message: str = "Validation oracle error", details: Optional[Dict[str, Any]] = None):
        super().__init__("ORACLE_ERROR", message, details)


class ConfigurationError(TokenCacheException):
    """Invalid configuration."""

    def __init__(self, message: str = "Invalid configuration", details: Optional[Dict[str, Any]] = None):
        super().__init__("CONFIGURATION_ERROR", message, details)
