"""
API Dependencies - Dependency injection for FastAPI routes.

Components are built once in the lifespan handler and kept on
``app.state``; routes receive them through these providers.
"""

from __future__ import annotations

from fastapi import FastAPI, Request

from rdapcache.adapters.sqlite import SQLiteCacheRepository
from rdapcache.config import get_settings
from rdapcache.domains.bootstrap import BootstrapRegistryCache
from rdapcache.domains.lookup import QueryOrchestrator


def get_orchestrator(request: Request) -> QueryOrchestrator:
    """Get the application's query orchestrator."""
    return request.app.state.orchestrator


def get_registry(request: Request) -> BootstrapRegistryCache:
    """Get the bootstrap registry cache owned by the orchestrator."""
    return request.app.state.orchestrator.registry


async def init_services(app: FastAPI) -> None:
    """
    Initialize services on startup.

    This should be called from the FastAPI lifespan handler.
    """
    settings = get_settings()

    # Initialize SQLite
    store = SQLiteCacheRepository(settings.db_path)
    await store.initialize()

    orchestrator = QueryOrchestrator.from_settings(settings, store)
    await orchestrator.warm_up()

    app.state.store = store
    app.state.orchestrator = orchestrator


async def cleanup_services(app: FastAPI) -> None:
    """Cleanup services on shutdown."""
    orchestrator = getattr(app.state, "orchestrator", None)
    if orchestrator is not None:
        await orchestrator.aclose()

    store = getattr(app.state, "store", None)
    if store is not None:
        await store.close()
