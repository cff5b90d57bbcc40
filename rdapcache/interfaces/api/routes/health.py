"""
Health Routes - System health and status endpoints.
"""

from typing import Any

from fastapi import APIRouter

from rdapcache import __version__

router = APIRouter()


@router.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "healthy", "service": "rdapcache"}


@router.get("/api")
async def api_info() -> dict[str, Any]:
    """API info endpoint."""
    return {
        "name": "rdapcache API",
        "version": __version__,
        "description": "Cached RDAP lookups for domains and IP addresses",
        "docs": "/docs",
    }
