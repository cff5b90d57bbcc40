"""
Error Taxonomy - Consistent error codes across the application.

Usage:
    from rdapcache.config.errors import ErrorCode, RdapCacheError

    raise RdapCacheError(ErrorCode.INVALID_INPUT, "Query is empty")

Exceptions in this module are raised and caught *inside* component
boundaries. The request executor and the query orchestrator turn them
into ``StructuredError`` values before anything reaches a caller.
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Standardized error codes for machine-readable error responses."""

    # Query errors
    INVALID_INPUT = "INVALID_INPUT"
    BOOTSTRAP_UNAVAILABLE = "BOOTSTRAP_UNAVAILABLE"

    # Upstream RDAP errors
    NOT_FOUND = "NOT_FOUND"
    RATE_LIMITED = "RATE_LIMITED"
    CLIENT_ERROR = "CLIENT_ERROR"
    SERVER_ERROR = "SERVER_ERROR"
    GATEWAY_TIMEOUT = "GATEWAY_TIMEOUT"
    TOO_MANY_REDIRECTS = "TOO_MANY_REDIRECTS"
    BAD_GATEWAY = "BAD_GATEWAY"
    UNEXPECTED_RESPONSE_SHAPE = "UNEXPECTED_RESPONSE_SHAPE"

    # Storage errors
    CACHE_WRITE_CONFLICT = "CACHE_WRITE_CONFLICT"
    STORAGE_FAILED = "STORAGE_FAILED"

    # General errors
    INTERNAL_ERROR = "INTERNAL_ERROR"


class RdapCacheError(Exception):
    """Base exception with error code support."""

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(f"[{code.value}] {message}")

    def to_dict(self) -> dict[str, Any]:
        """Convert to API-friendly dictionary."""
        return {
            "code": self.code.value,
            "message": self.message,
            "details": self.details,
        }


class InvalidInputError(RdapCacheError):
    """Malformed query, rejected before any I/O."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(ErrorCode.INVALID_INPUT, message, details)


class BootstrapUnavailableError(RdapCacheError):
    """Bootstrap registries have never loaded and the attempted load failed."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(ErrorCode.BOOTSTRAP_UNAVAILABLE, message, details)


class StorageError(RdapCacheError):
    """Storage/database errors."""

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
        code: ErrorCode = ErrorCode.STORAGE_FAILED,
    ) -> None:
        super().__init__(code, message, details)


class CacheWriteConflictError(StorageError):
    """A cache row with the same unique key already exists."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message, details, code=ErrorCode.CACHE_WRITE_CONFLICT)
