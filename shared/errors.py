"""
Shared error handling for the CRPT document gateway.
"""

import asyncio
from typing import Dict, Any, Optional

from opentelemetry import trace
from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """Standard error response format."""

    trace_id: Optional[str] = None
    code: str
    message: str
    details: Dict[str, Any] = Field(default_factory=dict)


def current_trace_id() -> Optional[str]:
    """Return the active trace id as hex, if a recording span exists."""
    current_span = trace.get_current_span()
    if current_span and current_span.is_recording():
        span_context = current_span.get_span_context()
        if span_context.trace_id != 0:
            return f"{span_context.trace_id:032x}"
    return None


class AccessLayerException(Exception):
    """Base exception for gateway components."""

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_response(self) -> ErrorResponse:
        """Convert to error response."""
        return ErrorResponse(
            trace_id=current_trace_id(),
            code=self.code,
            message=self.message,
            details=self.details
        )


class ConfigurationError(AccessLayerException):
    """Invalid construction parameters."""

    def __init__(self, message: str = "Invalid configuration", details: Optional[Dict[str, Any]] = None):
        super().__init__("CONFIGURATION_ERROR", message, details)


class SerializationError(AccessLayerException):
    """A document could not be encoded for the wire."""

    def __init__(self, message: str = "Document serialization failed", details: Optional[Dict[str, Any]] = None):
        super().__init__("SERIALIZATION_ERROR", message, details)


class TransportError(AccessLayerException):
    """Network, DNS or timeout failure talking to the remote endpoint."""

    def __init__(self, service: str, message: str = "Transport error", details: Optional[Dict[str, Any]] = None):
        super().__init__("TRANSPORT_ERROR", f"{service}: {message}", details)


class GateUnavailableError(AccessLayerException):
    """The admission gate can no longer hand out permits."""

    def __init__(self, message: str = "Admission gate unavailable", details: Optional[Dict[str, Any]] = None):
        super().__init__("GATE_UNAVAILABLE", message, details)


class Cancelled(asyncio.CancelledError):
    """
    Cooperative cancellation while waiting on the gate or the network.

    Derives from ``asyncio.CancelledError`` so task cancellation keeps
    working; callers that need to tell it apart from a transport failure can
    catch it explicitly.
    """

    code = "CANCELLED"

    def __init__(self, message: str = "Operation cancelled", details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)
