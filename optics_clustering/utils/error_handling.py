"""
Error Handling Module

Provides the exception hierarchy for the OPTICS clustering library:
- InvalidInputError: payload arity mismatch, missing coordinate dimension
- ConfigurationError: invalid engine/extraction/settings values
- ConfigurationOverflowError: too many clusters extracted
- DegenerateInputError: ordering carries nothing to compute statistics on

Errors are raised where they are detected and are never retried: a run is a
single-pass analytical computation.
"""

import time
from typing import Any, Optional


# =============================================================================
# Custom Exception Hierarchy
# =============================================================================


class OpticsError(Exception):
    """Base exception for all OPTICS clustering errors."""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        self.timestamp = time.time()

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for logging/reports."""
        return {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details,
            "timestamp": self.timestamp,
        }


# Configuration Errors
class ConfigurationError(OpticsError, ValueError):
    """Error in engine, extraction or settings configuration."""
    pass


class ConfigurationOverflowError(OpticsError):
    """More clusters extracted than the configured maximum."""
    pass


# Input Errors
class InvalidInputError(OpticsError, ValueError):
    """Point payload does not match what the distance metric expects."""
    pass


class DegenerateInputError(OpticsError):
    """Ordering has no values to compute a statistic over."""
    pass
