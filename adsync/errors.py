"""
Exceptions raised inside the engine. Entry points convert them to results.
"""
from .models import ErrorCode


class AdSyncError(Exception):
    """Base class for engine errors."""


class PreconditionError(AdSyncError):
    """A session cannot be attempted (no cookies, no egress, no ad id)."""

    def __init__(self, code: ErrorCode, detail: str = ""):
        self.code = code
        super().__init__(detail or code.value)


class SessionError(AdSyncError):
    """Browser launch or navigation failed."""
