"""
CLI Interface - Command-line tools for rdapcache.

Provides commands for:
- One-off lookups through the local cache
- Bootstrap registry inspection
- Database setup
- Running the API server
"""

from .main import app, main

__all__ = ["app", "main"]
