"""
Error types raised across the fetch path.

Only InvalidRequest and StoreUnavailable ever reach a caller of the
coordinator; cache faults are absorbed where they occur.
"""
from typing import Optional


class CacheBenchError(Exception):
    """Base class for all cachebench errors."""


class InvalidRequest(CacheBenchError):
    """Raised when a fetch request has a bad limit or an unknown strategy."""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.field = field


class StoreUnavailable(CacheBenchError):
    """Raised when the primary store cannot be reached or a query fails.

    ``timings`` holds whatever phase timings were accumulated before the
    failure (set by the coordinator, not by the store adapter).
    """

    def __init__(self, message: str, timings=None):
        super().__init__(message)
        self.message = message
        self.timings = timings


class CacheUnavailable(CacheBenchError):
    """Raised by the cache adapter on connectivity loss (never for a plain miss)."""

    def __init__(self, message: str, operation: str = "unknown"):
        super().__init__(message)
        self.message = message
        self.operation = operation


class DeserializationError(CacheBenchError):
    """Raised when a single cached payload cannot be turned back into an entity."""

    def __init__(self, message: str, raw: object = None):
        super().__init__(message)
        self.message = message
        self.raw = raw


class SeedError(CacheBenchError):
    """Raised when the remote seed source cannot be fetched or parsed."""
