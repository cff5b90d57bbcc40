"""
API Routes.
"""

from . import health, rdap

__all__ = ["health", "rdap"]
