"""
Bootstrap Contracts - Interfaces for the bootstrap domain.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from .models import QueryKind, RegistryCacheState


@runtime_checkable
class RegistryProvider(Protocol):
    """Contract for a source of bootstrap registry snapshots."""

    @property
    def snapshot(self) -> RegistryCacheState:
        """Current snapshot without I/O."""
        ...

    async def ensure_fresh(self, force_refresh: bool = False) -> RegistryCacheState:
        """
        Return a fresh snapshot, loading it if needed.

        Args:
            force_refresh: Reload even if the snapshot is fresh

        Returns:
            The current snapshot
        """
        ...


@runtime_checkable
class ServerLocator(Protocol):
    """Contract for mapping a query to an RDAP base URL."""

    async def resolve(self, query: str, kind: QueryKind) -> str | None:
        """
        Find the authoritative base URL.

        Args:
            query: Domain name or IP address
            kind: Query kind

        Returns:
            Base URL, or None when no registry entry matches
        """
        ...
