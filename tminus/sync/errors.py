"""
Sync queue exceptions.
"""

from typing import Optional


class SyncError(Exception):
    """Base exception for outbound sync errors."""
    pass


class SyncFailedError(SyncError):
    """
    A remote operation failed on every attempt.

    Attributes:
        operation: Operation that failed ("upsert-collection" or "delete-one").
        attempts: Number of attempts made.
    """

    def __init__(self, message: str, operation: Optional[str] = None, attempts: int = 0):
        super().__init__(message)
        self.operation = operation
        self.attempts = attempts


class SyncConfigError(SyncError, ValueError):
    """
    Invalid sync configuration.

    Raised when:
    - An interval, multiplier or retry count is not positive
    - An unknown option is passed to configure()
    """
    pass
