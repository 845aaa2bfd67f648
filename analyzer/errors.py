"""
Error taxonomy for the audit pipeline.

Every failure that ends an audit derives from AuditError and carries a
human-readable message plus the HTTP status the API layer should answer with.
"""

from typing import Optional


class AuditError(Exception):
    """Base class for failures that terminate an audit."""

    status_code = 500

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code

    def __str__(self) -> str:
        return self.message


class ValidationError(AuditError):
    """A required input (url, telemetry) was not supplied."""

    status_code = 400


class UpstreamError(AuditError):
    """A provider answered with a non-success status or was unreachable."""

    status_code = 502


class MalformedTelemetry(AuditError):
    """The telemetry call succeeded but the payload has no Lighthouse root."""

    status_code = 502


class ParseError(AuditError):
    """The analysis provider's payload is not JSON at all."""

    status_code = 502


class SchemaViolation(AuditError):
    """The analysis provider returned JSON that breaks the response contract."""

    status_code = 502

    def __init__(self, path: str, reason: str):
        super().__init__(
            f"Analysis provider returned invalid data: {path}: {reason}"
        )
        self.path = path
        self.reason = reason


class AuditInProgressError(RuntimeError):
    """start_audit() was called while another audit is still running."""
