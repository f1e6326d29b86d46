"""Exceptions raised by the analytics core."""

from typing import Any, Dict, Optional


class SupplyOpsError(Exception):
    """Base exception for analyzer failures."""

    def __init__(
        self,
        message: str,
        error_code: str = "ANALYSIS_ERROR",
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "message": self.message,
            "code": self.error_code,
            "details": self.details,
        }


class InsufficientDataError(SupplyOpsError):
    """An analyzer had no usable input rows."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, error_code="INSUFFICIENT_DATA", details=details)


class AnalysisCancelled(SupplyOpsError):
    """The caller asked a long-running analyzer to stop."""

    def __init__(self, message: str = "Analysis cancelled", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, error_code="CANCELLED", details=details)
