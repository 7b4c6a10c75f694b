"""Exception hierarchy for infrakit.

    InfrakitError
    ├── CacheError
    │   ├── CacheNotFoundError   no snapshot saved yet
    │   ├── CacheCorruptError    snapshot does not parse as a resource list
    │   ├── CacheIOError         filesystem failure
    │   └── CacheLockError       writer lock not acquired in time
    ├── UpstreamFetchError       a fetcher failed
    └── InvalidProviderError     unknown provider name
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class InfrakitError(Exception):
    """Base class for all infrakit errors.

    Attributes:
        message: Human readable message
        cause: Underlying exception, if any
        details: Extra context for logs and JSON responses
    """

    def __init__(
        self,
        message: str,
        cause: Optional[BaseException] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.cause = cause
        self.details = details or {}

    def __str__(self) -> str:
        if self.cause:
            return f"{self.message}: {self.cause}"
        return self.message

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "cause": str(self.cause) if self.cause else None,
            "details": self.details,
        }


class CacheError(InfrakitError):
    """Base class for snapshot store failures."""


class CacheNotFoundError(CacheError):
    def __init__(self, path: str):
        super().__init__(
            "cache file not found. Please run 'sync' first",
            details={"path": path},
        )
        self.path = path


class CacheCorruptError(CacheError):
    def __init__(self, path: str, cause: Optional[BaseException] = None):
        super().__init__(
            "failed to parse cache file; run 'sync' to rebuild it",
            cause=cause,
            details={"path": path},
        )
        self.path = path


class CacheIOError(CacheError):
    def __init__(self, operation: str, path: str, cause: Optional[BaseException] = None):
        super().__init__(
            f"failed to {operation} cache file",
            cause=cause,
            details={"path": path, "operation": operation},
        )
        self.path = path
        self.operation = operation


class CacheLockError(CacheError):
    def __init__(self, lock_path: str, timeout: float):
        super().__init__(
            f"another infrakit process holds the cache lock (waited {timeout:g}s)",
            details={"lock_path": lock_path, "timeout": timeout},
        )
        self.lock_path = lock_path
        self.timeout = timeout


class UpstreamFetchError(InfrakitError):
    """A fetcher raised; carries the fetcher's name and the original error."""

    def __init__(self, fetcher: str, cause: Optional[BaseException] = None):
        super().__init__(f"error fetching {fetcher}", cause=cause, details={"fetcher": fetcher})
        self.fetcher = fetcher


class InvalidProviderError(InfrakitError):
    def __init__(self, provider: str, reason: Optional[str] = None):
        message = reason or (
            f"invalid provider '{provider}'. Valid providers are 'aws' or 'gcp', "
            "or no provider to sync all"
        )
        super().__init__(message, details={"provider": provider})
        self.provider = provider
