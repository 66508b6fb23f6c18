"""
Silver Load Exceptions

Exception hierarchy:
- SilverLoadError (base)
  - SourceReadError: a raw snapshot could not be read or conformed
  - StorageError: truncate or bulk write against the destination failed

Per-field anomalies never surface as exceptions; they resolve to
sentinel values inside the normalizers (see MalformedFieldError in
src.transformation.enrichers).
"""

from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel


class ErrorSeverity(str, Enum):
    """Severity attached to an aborted run"""
    ERROR = "error"  # Failure in transformation logic
    CRITICAL = "critical"  # Infrastructure failure (source or destination)


class SilverLoadError(Exception):
    """Base exception for the silver load.

    Attributes:
        message: Human readable description.
        details: Structured context for logging.
    """

    code = "silver_load_error"
    severity = ErrorSeverity.ERROR

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


class SourceReadError(SilverLoadError):
    """Raw snapshot could not be read from the provider."""

    code = "source_read_error"
    severity = ErrorSeverity.CRITICAL

    def __init__(self, table: str, message: str) -> None:
        super().__init__(f"Failed to read raw snapshot for {table}: {message}", details={"table": table})
        self.table = table


class StorageError(SilverLoadError):
    """Destination store rejected a truncate or write.

    Raised on resource exhaustion, schema mismatch or an unreachable store.
    """

    code = "storage_error"
    severity = ErrorSeverity.CRITICAL

    def __init__(
        self,
        table: str,
        operation: str,
        message: str,
        code: Optional[str] = None,
    ) -> None:
        super().__init__(
            f"{operation} failed for {table}: {message}",
            details={"table": table, "operation": operation},
        )
        self.table = table
        self.operation = operation
        if code:
            self.code = code


class ErrorReport(BaseModel):
    """Error descriptor handed back to the caller of an aborted run"""
    message: str
    code: str
    severity: ErrorSeverity
    table: Optional[str] = None
    error_type: str

    @classmethod
    def from_exception(cls, exc: BaseException, table: Optional[str] = None) -> "ErrorReport":
        """Describe an exception raised while loading a table."""
        code = getattr(exc, "code", None)
        severity = getattr(exc, "severity", ErrorSeverity.ERROR)
        return cls(
            message=getattr(exc, "message", None) or str(exc) or type(exc).__name__,
            code=str(code) if code else type(exc).__name__,
            severity=severity if isinstance(severity, ErrorSeverity) else ErrorSeverity.ERROR,
            table=table,
            error_type=type(exc).__name__,
        )
