"""Custom exceptions for the amortizer.

All exceptions derive from ``ValueError`` so callers that already handle bad
input values keep working.
"""

from typing import Optional


class AmortizerError(ValueError):
    """Base exception for all amortizer errors."""

    def __init__(self, message: str, details: Optional[str] = None):
        self.message = message
        self.details = details
        super().__init__(self.message)

    def __str__(self):
        if self.details:
            return f"{self.message}\nDetails: {self.details}"
        return self.message


class SessionValidationError(AmortizerError):
    """Raised when a session envelope has the wrong shape or out-of-range values."""


class SessionFileError(AmortizerError):
    """Raised when a session file cannot be accepted or read."""


class UpdateNotFoundError(AmortizerError):
    """Raised when a loan update id is not present in a collection."""
