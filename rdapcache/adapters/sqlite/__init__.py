"""
SQLite Adapter - Persistent cache of RDAP responses.
"""

from .repository import SQLiteCacheRepository

__all__ = ["SQLiteCacheRepository"]
