"""Error taxonomy for scoring submissions and store access.

Every error carries a stable ``kind`` plus the status code the transport layer
is expected to map it to. Ranking computations never raise these; they are
raised only on the write path and when the store cannot be reached.
"""
from __future__ import annotations

from .types import LockKey


class TabulationError(Exception):
    """Base class for all engine errors."""

    kind: str = "error"
    status_code: int = 500
    retryable: bool = False

    def __init__(self, message: str | None = None):
        super().__init__(message or self.kind)
        self.message = message


class ValidationError(TabulationError):
    """Raw score outside [0, max] for its criterion, or a malformed submission."""

    kind = "validation"
    status_code = 422

    def __init__(self, message: str | None = None, *, field: str | None = None):
        super().__init__(message)
        self.field = field


class LockConflict(TabulationError):
    """Write attempted for an already locked (judge, category, contestant) tuple."""

    kind = "already_submitted"
    status_code = 409

    def __init__(self, key: LockKey, message: str | None = None):
        super().__init__(message or f"scores already submitted for {key.describe()}")
        self.key = key


class TransientStoreError(TabulationError):
    """The backing store could not be reached. Retry policy belongs to the caller."""

    kind = "store_unavailable"
    status_code = 503
    retryable = True


class IncompleteSubmission(TabulationError):
    """Scores were written but the lock step failed; retry the lock only."""

    kind = "incomplete_submission"
    status_code = 503
    retryable = True

    def __init__(self, key: LockKey, message: str | None = None):
        super().__init__(message or f"scores stored but lock not created for {key.describe()}")
        self.key = key


class AuthorizationError(TabulationError):
    kind = "forbidden"
    status_code = 403


__all__ = [
    "TabulationError",
    "ValidationError",
    "LockConflict",
    "TransientStoreError",
    "IncompleteSubmission",
    "AuthorizationError",
]
