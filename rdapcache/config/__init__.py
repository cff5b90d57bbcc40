"""
Configuration - Application settings and error taxonomy.
"""

from .errors import (
    BootstrapUnavailableError,
    CacheWriteConflictError,
    ErrorCode,
    InvalidInputError,
    RdapCacheError,
    StorageError,
)
from .settings import Settings, get_settings

__all__ = [
    # Settings
    "Settings",
    "get_settings",
    # Errors
    "ErrorCode",
    "RdapCacheError",
    "InvalidInputError",
    "BootstrapUnavailableError",
    "StorageError",
    "CacheWriteConflictError",
]
