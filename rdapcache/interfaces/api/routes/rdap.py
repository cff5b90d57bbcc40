"""
RDAP Routes - Cached lookups and bootstrap status.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from rdapcache.domains.bootstrap import BootstrapRegistryCache
from rdapcache.domains.lookup import QueryOrchestrator, StructuredError
from rdapcache.interfaces.api.deps import get_orchestrator, get_registry

router = APIRouter()


class LookupResult(BaseModel):
    """Successful lookup body."""

    rdapResponse: dict[str, Any]
    cacheStatus: str = Field(..., description="hit or miss")
    type: str = Field(..., description="domain or ip")


class ErrorEnvelope(BaseModel):
    """RDAP error body."""

    errorCode: int
    title: str
    description: list[str]


@router.get(
    "/rdap",
    response_model=LookupResult,
    responses={
        400: {"model": ErrorEnvelope},
        404: {"model": ErrorEnvelope},
        429: {"model": ErrorEnvelope},
        500: {"model": ErrorEnvelope},
        502: {"model": ErrorEnvelope},
        504: {"model": ErrorEnvelope},
        508: {"model": ErrorEnvelope},
    },
)
async def lookup(
    query: str = Query(default="", description="Domain name or IP address"),
    orchestrator: QueryOrchestrator = Depends(get_orchestrator),
):
    """
    Look up RDAP data for a domain or IP address.

    - **query**: e.g. `example.com` or `8.8.8.8`

    Cached responses are served without contacting the upstream server.
    """
    if not query.strip():
        return JSONResponse(
            status_code=400,
            content={
                "errorCode": 400,
                "title": "Bad Request",
                "description": ["Query parameter is required."],
            },
        )

    result = await orchestrator.lookup(query)
    if isinstance(result, StructuredError):
        return JSONResponse(status_code=result.http_status, content=result.to_envelope())
    return result.to_dict()


@router.get("/bootstrap")
async def bootstrap_status(
    registry: BootstrapRegistryCache = Depends(get_registry),
) -> dict[str, Any]:
    """Versions, entry counts and freshness of the loaded bootstrap registries."""
    summary = registry.snapshot.summary()
    summary["fresh"] = registry.is_fresh()
    summary["loading"] = registry.is_loading
    return summary
